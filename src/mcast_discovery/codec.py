"""
Wire codec for service announcements.

An announcement is a single UDP datagram holding UTF-8 text of the form
``<service_name>:<computer_name>:<port>``. There is no escaping, no version
byte and no length prefix: a name containing ``:`` produces a datagram that
decodes to the wrong number of fields and is rejected.
"""
from typing import NamedTuple

from .exceptions import MalformedAnnouncementError

FIELD_SEPARATOR = ":"
MAX_PORT = 65535


class Announcement(NamedTuple):
    service_name: str
    computer_name: str
    port: int


def encode_announcement(service_name: str, computer_name: str, port: int) -> bytes:
    """Serializes an announcement into a datagram payload."""
    return FIELD_SEPARATOR.join((service_name, computer_name, str(port))).encode("utf-8")


def parse_port(port_string: str) -> int:
    """
    Parses an unsigned decimal port number.

    Raises:
        MalformedAnnouncementError: if the string is not made of ASCII digits
            or the value does not fit a 16 bit port.
    """
    if not (port_string.isascii() and port_string.isdigit()):
        raise MalformedAnnouncementError(f"failed to parse port number from {port_string[:16]!r}", port_string)
    # int() refuses very long digit strings, leading zeros included
    digits = port_string.lstrip("0") or "0"
    if len(digits) > len(str(MAX_PORT)):
        raise MalformedAnnouncementError(f"port number {digits[:16]}... out of range", port_string)
    port = int(digits)
    if port > MAX_PORT:
        raise MalformedAnnouncementError(f"port number {port} out of range", port_string)
    return port


def decode_announcement(payload: bytes) -> Announcement:
    """
    Parses a datagram payload into an Announcement.

    Raises:
        MalformedAnnouncementError: on invalid UTF-8, a field count other than
            three, or a bad port field.
    """
    try:
        message = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedAnnouncementError(f"payload is not valid UTF-8 ({e.reason})", payload) from e

    tokens = message.split(FIELD_SEPARATOR)
    if len(tokens) != 3:
        raise MalformedAnnouncementError(f"invalid number of tokens: {len(tokens)}", message)

    service_name, computer_name, port_string = tokens
    return Announcement(service_name, computer_name, parse_port(port_string))
