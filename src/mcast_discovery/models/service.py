import time
from functools import total_ordering

from pydantic import Field

from .common import BasePydanticModel, Endpoint


@total_ordering
class Service(BasePydanticModel):
    """
    A service discovered through a multicast announcement.

    Equality, ordering and hashing only look at the identity key
    ``(service_name, computer_name, endpoint)``. ``last_seen`` is ignored so a
    re-announcement of the same service replaces the stored entry instead of
    adding a second one.
    """
    service_name: str
    computer_name: str # As reported by the announcing host, unverified
    endpoint: Endpoint
    last_seen: float = Field(default_factory=time.monotonic, description="time.monotonic() of the latest announcement")

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }

    @property
    def identity(self) -> tuple[str, str, str, int]:
        return (self.service_name, self.computer_name, self.endpoint.host, self.endpoint.port)

    def age_in_seconds(self, now: float | None = None) -> float:
        if now is None:
            now = time.monotonic()
        return now - self.last_seen

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Service):
            return NotImplemented
        return self.identity == other.identity

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Service):
            return NotImplemented
        return self.identity < other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def describe(self, now: float | None = None) -> str:
        """Human readable form; pass ``now`` from the same clock that set last_seen."""
        return (
            f"{self.service_name} on {self.computer_name}({self.endpoint}) "
            f"{self.age_in_seconds(now):.3f} seconds ago"
        )

    def __str__(self) -> str:
        return self.describe()
