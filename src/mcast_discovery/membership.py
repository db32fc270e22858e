"""
Bounded, self-expiring set of discovered services.
"""
from collections.abc import Iterator

import structlog

from .models.service import Service

logger = structlog.get_logger(__name__)


class MembershipSet:
    """
    Services keyed by identity, with idle and capacity eviction.

    Entries live in a dict keyed by ``Service.identity``; finding the oldest
    entry is a linear scan, which is fine for the small ``max_services``
    values this is meant for.
    """

    def __init__(self, max_idle: float, max_services: int):
        if max_services < 1:
            raise ValueError("max_services must be at least 1.")
        if max_idle <= 0:
            raise ValueError("max_idle must be positive.")
        self.max_idle = max_idle
        self.max_services = max_services
        self._services: dict[tuple[str, str, str, int], Service] = {}

    def __len__(self) -> int:
        return len(self._services)

    def __iter__(self) -> Iterator[Service]:
        return iter(self.snapshot())

    def __contains__(self, service: object) -> bool:
        return isinstance(service, Service) and service.identity in self._services

    def upsert(self, service: Service) -> None:
        """Inserts the service, replacing a stored entry with the same identity."""
        # Drop first so the dict order reflects the latest refresh
        self._services.pop(service.identity, None)
        self._services[service.identity] = service

    def remove_idle(self, now: float) -> bool:
        """
        Removes every service whose last_seen is older than ``now - max_idle``.
        Returns True if at least one service was removed.
        """
        deadline = now - self.max_idle
        expired = [key for key, service in self._services.items() if service.last_seen < deadline]
        for key in expired:
            removed = self._services.pop(key)
            logger.debug("Removed idle service", service=removed.identity, idle_for=now - removed.last_seen)
        return bool(expired)

    def oldest(self) -> Service | None:
        """Returns the service with the smallest last_seen, or None if empty."""
        if not self._services:
            return None
        return min(self._services.values(), key=lambda service: service.last_seen)

    def evict_oldest_over_capacity(self) -> Service | None:
        """
        Removes the oldest service if the set holds more than max_services.
        One insert happens per received announcement, so a single removal
        restores the bound.
        """
        if len(self._services) <= self.max_services:
            return None
        oldest = self.oldest()
        assert oldest is not None
        del self._services[oldest.identity]
        logger.debug("Dropped oldest service over capacity", service=oldest.identity, max_services=self.max_services)
        return oldest

    def next_deadline(self) -> float | None:
        """Monotonic time at which the oldest service becomes idle, or None if empty."""
        oldest = self.oldest()
        if oldest is None:
            return None
        return oldest.last_seen + self.max_idle

    def snapshot(self) -> tuple[Service, ...]:
        """Read-only view of the current members, ordered by identity."""
        return tuple(sorted(self._services.values()))
