"""
Custom exceptions for mcast-discovery.
"""


class DiscoveryError(Exception):
    """Base class for all mcast-discovery errors."""
    pass

class MalformedAnnouncementError(DiscoveryError):
    """Raised when a received datagram is not a valid service announcement
    (bad encoding, wrong field count, unparseable or out-of-range port)."""
    def __init__(self, reason: str, payload: bytes | str | None = None):
        super().__init__(f"Malformed announcement: {reason}")
        self.reason = reason
        self.payload = payload
