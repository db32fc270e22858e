"""mcast-discovery - lightweight LAN service discovery over UDP multicast.

A ServiceAnnouncer periodically announces a named service to a multicast group;
a ServiceDiscoverer listens for one service name and keeps a bounded,
self-expiring set of the services it has heard from.
"""

__version__ = "0.1.0"

from .announcer import ServiceAnnouncer
from .config import Config
from .discoverer import ServiceDiscoverer
from .exceptions import DiscoveryError, MalformedAnnouncementError
from .models.common import Endpoint
from .models.service import Service

__all__ = [
    "Config",
    "DiscoveryError",
    "Endpoint",
    "MalformedAnnouncementError",
    "Service",
    "ServiceAnnouncer",
    "ServiceDiscoverer",
]
