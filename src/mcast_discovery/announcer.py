"""
Announces a named network service to a UDP multicast group.
"""
import asyncio
import socket

import structlog

from .codec import encode_announcement
from .config import Config, DEFAULT_MULTICAST_GROUP, DEFAULT_MULTICAST_PORT
from .transport import AnnouncementSendProtocol, create_sender_socket

logger = structlog.get_logger(__name__)


class ServiceAnnouncer:
    """
    Announces ``service_name`` listening on ``service_port`` once per interval.

    The announcer does not check that anything actually listens on
    ``service_port``; it only tells discoverers where to look.

    Usage:
        async with ServiceAnnouncer("my_awesome_service", 1337):
            ...
    """

    def __init__(
        self,
        service_name: str,
        service_port: int,
        multicast_port: int = DEFAULT_MULTICAST_PORT,
        multicast_address: str = DEFAULT_MULTICAST_GROUP,
        interval_seconds: float = 1.0,
        ttl: int = 1,
        loopback: bool = True,
    ):
        if not 1 <= service_port <= 65535:
            raise ValueError(f"service_port must be in 1..65535, got {service_port}")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")

        self.service_name = service_name
        self.service_port = service_port
        self.multicast_port = multicast_port
        self.multicast_address = str(multicast_address)
        self.interval_seconds = interval_seconds
        self.ttl = ttl
        self.loopback = loopback

        self.logger = logger.bind(service_name=service_name, service_port=service_port)
        self._transport: asyncio.DatagramTransport | None = None
        self._task: asyncio.Task | None = None

    @classmethod
    def from_config(cls, config: Config) -> "ServiceAnnouncer":
        return cls(
            service_name=config.announcer.service_name,
            service_port=config.announcer.service_port,
            multicast_port=config.multicast.port,
            multicast_address=str(config.multicast.group),
            interval_seconds=config.announcer.interval_seconds,
            ttl=config.multicast.ttl,
            loopback=config.multicast.loopback,
        )

    async def __aenter__(self) -> "ServiceAnnouncer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
        return False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Opens the send socket, sends the first announcement and starts the repeat loop."""
        if self._task is not None:
            self.logger.warning("Announcer already running")
            return

        self._transport = await self._open_endpoint()
        self.logger.info(
            "Announcer started",
            multicast_address=self.multicast_address,
            multicast_port=self.multicast_port,
            interval=self.interval_seconds,
        )
        self.send_announcement()
        self._task = asyncio.create_task(self._announce_loop())

    async def _open_endpoint(self) -> asyncio.DatagramTransport:
        loop = asyncio.get_running_loop()
        sock = create_sender_socket(self.multicast_address, ttl=self.ttl, loopback=self.loopback)
        transport, _ = await loop.create_datagram_endpoint(
            lambda: AnnouncementSendProtocol(self.logger), sock=sock
        )
        return transport

    async def stop(self) -> None:
        """Cancels the repeat loop and closes the socket."""
        if self._task is not None:
            self._task.cancel()
            results = await asyncio.gather(self._task, return_exceptions=True)
            if isinstance(results[0], Exception):
                self.logger.error("Announce loop had failed", error=repr(results[0]))
            self._task = None
        if self._transport is not None:
            self._transport.close()
            self._transport = None
        self.logger.info("Announcer stopped")

    def build_message(self) -> bytes:
        """
        Serializes the announcement. The host name is looked up on every call
        so a renamed host is picked up by the next announcement.
        """
        try:
            host_name = socket.gethostname()
        except OSError as e:
            self.logger.error("Failed to resolve host name", error=str(e))
            host_name = ""
        return encode_announcement(self.service_name, host_name, self.service_port)

    def send_announcement(self) -> None:
        """Sends one announcement. Errors are logged, never raised."""
        if self._transport is None:
            self.logger.warning("Announcement skipped, socket not open")
            return
        message = self.build_message()
        try:
            self._transport.sendto(message, (self.multicast_address, self.multicast_port))
        except OSError as e:
            self.logger.error("Failed to send announcement", error=str(e))
            return
        self.logger.debug("Announcement sent", size=len(message))

    async def _announce_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval_seconds)
                try:
                    self.send_announcement()
                except Exception as e:
                    self.logger.exception("Announcement failed", error=str(e))
        except asyncio.CancelledError:
            self.logger.debug("Announce loop cancelled")
            raise
