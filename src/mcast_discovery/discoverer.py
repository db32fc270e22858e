"""
Discovers services announced by ServiceAnnouncer and keeps a live,
bounded, self-expiring set of them.
"""
import asyncio
import time
from collections.abc import Callable
from typing import Any

import structlog

from .codec import decode_announcement
from .config import Config, DEFAULT_LISTEN_ADDRESS, DEFAULT_MULTICAST_GROUP, DEFAULT_MULTICAST_PORT
from .exceptions import MalformedAnnouncementError
from .membership import MembershipSet
from .models.common import Endpoint
from .models.service import Service
from .transport import Address, AnnouncementListenProtocol, create_listener_socket

logger = structlog.get_logger(__name__)

ServicesChangedCallback = Callable[[tuple[Service, ...]], Any]

# asyncio may wake a timeout up to one clock tick before its deadline
_IDLE_WAKEUP_SLACK_SECONDS = 0.001


class ServiceDiscoverer:
    """
    Listens for announcements of ``listen_for_service`` and calls
    ``on_services_changed`` with the full, current set of services each time
    it changes.

    The callback gets a tuple ordered by service identity. It is a snapshot:
    later changes produce a new tuple and a new call.

    Usage:
        def on_change(services):
            for service in services:
                print("discovered:", service)

        async with ServiceDiscoverer("my_awesome_service", on_change):
            ...
    """

    def __init__(
        self,
        listen_for_service: str,
        on_services_changed: ServicesChangedCallback,
        max_idle: float = 30.0,
        max_services: int = 10,
        multicast_port: int = DEFAULT_MULTICAST_PORT,
        listen_address: str = DEFAULT_LISTEN_ADDRESS,
        multicast_address: str = DEFAULT_MULTICAST_GROUP,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            listen_for_service: Only announcements with exactly this service name are kept.
            on_services_changed: Called with the service set whenever it changes.
            max_idle: Seconds after which a service that has not re-announced itself is removed.
            max_services: Upper bound on the set size. Protects against a flood of announcers.
            multicast_port: UDP port to listen on. Must match the announcers.
            listen_address: Local address to bind to.
            multicast_address: Multicast group to join. Must match the announcers.
            clock: Monotonic clock used for last_seen and idle deadlines.
        """
        self.listen_for_service = listen_for_service
        self.on_services_changed = on_services_changed
        self.multicast_port = multicast_port
        self.listen_address = str(listen_address)
        self.multicast_address = str(multicast_address)
        self._clock = clock
        self._membership = MembershipSet(max_idle=max_idle, max_services=max_services)

        self.logger = logger.bind(listen_for_service=listen_for_service)
        self._inbox: asyncio.Queue[tuple[bytes, Address]] = asyncio.Queue()
        self._idle_deadline: float | None = None
        self._transport: asyncio.DatagramTransport | None = None
        self._task: asyncio.Task | None = None

    @classmethod
    def from_config(cls, config: Config, on_services_changed: ServicesChangedCallback) -> "ServiceDiscoverer":
        return cls(
            listen_for_service=config.discoverer.listen_for_service,
            on_services_changed=on_services_changed,
            max_idle=config.discoverer.max_idle_seconds,
            max_services=config.discoverer.max_services,
            multicast_port=config.multicast.port,
            listen_address=str(config.multicast.listen_address),
            multicast_address=str(config.multicast.group),
        )

    @property
    def max_idle(self) -> float:
        return self._membership.max_idle

    @property
    def max_services(self) -> int:
        return self._membership.max_services

    @property
    def services(self) -> tuple[Service, ...]:
        return self._membership.snapshot()

    @property
    def idle_deadline(self) -> float | None:
        """Clock time of the next idle check, None while the set is empty."""
        return self._idle_deadline

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> "ServiceDiscoverer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
        return False

    async def start(self) -> None:
        """Binds the multicast socket, joins the group and starts the event loop task."""
        if self._task is not None:
            self.logger.warning("Discoverer already running")
            return

        self._transport = await self._open_endpoint()
        self.logger.info(
            "Discoverer started",
            listen_address=self.listen_address,
            multicast_address=self.multicast_address,
            multicast_port=self.multicast_port,
        )
        self._task = asyncio.create_task(self._run())

    async def _open_endpoint(self) -> asyncio.DatagramTransport:
        loop = asyncio.get_running_loop()
        sock = create_listener_socket(self.listen_address, self.multicast_port, self.multicast_address)
        transport, _ = await loop.create_datagram_endpoint(
            lambda: AnnouncementListenProtocol(self._enqueue_datagram, self.logger), sock=sock
        )
        return transport

    async def stop(self) -> None:
        """Cancels the event loop task and closes the socket."""
        if self._task is not None:
            self._task.cancel()
            results = await asyncio.gather(self._task, return_exceptions=True)
            if isinstance(results[0], Exception):
                self.logger.error("Discoverer loop had failed", error=repr(results[0]))
            self._task = None
        if self._transport is not None:
            self._transport.close()
            self._transport = None
        self._idle_deadline = None
        self.logger.info("Discoverer stopped")

    def _enqueue_datagram(self, data: bytes, sender: Address) -> None:
        self._inbox.put_nowait((data, sender))

    async def _run(self) -> None:
        """Handles one event per iteration: the next datagram or the idle deadline, whichever comes first."""
        try:
            while True:
                timeout = None
                if self._idle_deadline is not None:
                    timeout = max(0.0, self._idle_deadline - self._clock()) + _IDLE_WAKEUP_SLACK_SECONDS
                try:
                    data, sender = await asyncio.wait_for(self._inbox.get(), timeout=timeout)
                except TimeoutError:
                    self._handle_event(self.handle_idle_timeout)
                    continue
                self._handle_event(self.handle_datagram, data, sender)
        except asyncio.CancelledError:
            self.logger.debug("Discoverer loop cancelled")
            raise

    def _handle_event(self, handler: Callable[..., None], *args: Any) -> None:
        try:
            handler(*args)
        except Exception as e:
            # The failed event is dropped, the loop keeps serving later ones
            self.logger.exception("Failed to handle discovery event", handler=handler.__name__, error=str(e))

    def handle_datagram(self, data: bytes, sender: Address) -> None:
        """Processes one received datagram. Malformed and foreign announcements leave the set untouched."""
        sender_host = sender[0]
        try:
            announcement = decode_announcement(data)
        except MalformedAnnouncementError as e:
            self.logger.warning("Ignoring malformed announcement", reason=e.reason, sender=sender_host, message=data[:200])
            return

        now = self._clock()
        discovered = Service(
            service_name=announcement.service_name,
            computer_name=announcement.computer_name,
            endpoint=Endpoint(host=sender_host, port=announcement.port),
            last_seen=now,
        )

        if announcement.service_name != self.listen_for_service:
            self.logger.debug("Ignoring announcement", service=discovered.describe(now))
            return

        # Replace rather than insert so last_seen is refreshed for a known identity
        self._membership.upsert(discovered)
        self._membership.remove_idle(now)

        dropped = self._membership.evict_oldest_over_capacity()
        if dropped is not None:
            self.logger.info("Too many services, dropped the oldest", dropped=dropped.describe(now), max_services=self.max_services)

        self._rearm_idle_timer()
        self._notify()

    def handle_idle_timeout(self) -> None:
        """Removes idle services when the idle deadline has passed."""
        if self._membership.remove_idle(self._clock()):
            self.logger.info("Idle services removed", remaining=len(self._membership))
            self._notify()
        self._rearm_idle_timer()

    def _rearm_idle_timer(self) -> None:
        self._idle_deadline = self._membership.next_deadline()

    def _notify(self) -> None:
        services = self._membership.snapshot()
        try:
            self.on_services_changed(services)
        except Exception as e:
            self.logger.exception("on_services_changed callback failed", error=str(e))
