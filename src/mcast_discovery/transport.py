"""
UDP multicast sockets and asyncio datagram protocols.
"""
import asyncio
import ipaddress
import socket
import struct
from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

Address = tuple[Any, ...] # (host, port) for IPv4, (host, port, flowinfo, scope_id) for IPv6


def address_family(address: str) -> socket.AddressFamily:
    """Returns AF_INET or AF_INET6 for a textual IP address."""
    if ipaddress.ip_address(address).version == 6:
        return socket.AF_INET6
    return socket.AF_INET


def create_sender_socket(group: str, ttl: int = 1, loopback: bool = True) -> socket.socket:
    """
    Creates a non-blocking UDP socket for sending to a multicast group.

    Args:
        group: Multicast group the socket will send to, selects the address family.
        ttl: Multicast TTL / hop limit. 1 keeps datagrams on the local network.
        loopback: Whether datagrams are looped back to listeners on this host.
    """
    family = address_family(group)
    sock = socket.socket(family, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        if family == socket.AF_INET6:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_HOPS, ttl)
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_LOOP, int(loopback))
            sock.bind(("::", 0))
        else:
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, ttl)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, int(loopback))
            sock.bind(("0.0.0.0", 0))
        sock.setblocking(False)
    except OSError:
        sock.close()
        raise
    return sock


def create_listener_socket(listen_address: str, port: int, group: str) -> socket.socket:
    """
    Creates a non-blocking UDP socket bound to ``listen_address:port`` that has
    joined the multicast group.

    Address reuse is enabled so several discoverers on one host can share the port.

    Raises:
        ValueError: if the listen address and the group are of different families.
        OSError: if binding or joining the group fails.
    """
    family = address_family(group)
    if address_family(listen_address) != family:
        raise ValueError(f"listen address {listen_address} and multicast group {group} use different address families")

    sock = socket.socket(family, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_REUSEPORT"): # Needed on BSD/macOS to share a multicast port
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        sock.bind((listen_address, port))

        if family == socket.AF_INET6:
            mreq = struct.pack("16sI", socket.inet_pton(socket.AF_INET6, group), 0)
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_JOIN_GROUP, mreq)
        else:
            mreq = struct.pack("4s4s", socket.inet_aton(group), socket.inet_aton("0.0.0.0"))
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
        sock.setblocking(False)
    except OSError:
        sock.close()
        raise
    return sock


class AnnouncementSendProtocol(asyncio.DatagramProtocol):
    """Protocol for the announcer's send-only socket. Only reports errors."""

    def __init__(self, log: structlog.BoundLogger | None = None):
        self.transport: asyncio.DatagramTransport | None = None
        self.logger = log or logger

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        pass # Nothing is expected on the send socket

    def error_received(self, exc):
        self.logger.error("Failed to send announcement", error=str(exc))

    def connection_lost(self, exc):
        if exc:
            self.logger.warning("Announcement socket lost", error=str(exc))


class AnnouncementListenProtocol(asyncio.DatagramProtocol):
    """Protocol for the discoverer's multicast socket. Hands every datagram to ``on_datagram``."""

    def __init__(self, on_datagram: Callable[[bytes, Address], None], log: structlog.BoundLogger | None = None):
        self.on_datagram = on_datagram
        self.transport: asyncio.DatagramTransport | None = None
        self.logger = log or logger

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        self.on_datagram(data, addr)

    def error_received(self, exc):
        self.logger.error("Multicast receive error", error=str(exc))

    def connection_lost(self, exc):
        if exc:
            self.logger.warning("Multicast listener connection lost", error=str(exc))
