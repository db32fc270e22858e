"""
Tests for the announcement wire codec.
"""
import pytest

from mcast_discovery.codec import Announcement, decode_announcement, encode_announcement, parse_port
from mcast_discovery.exceptions import DiscoveryError, MalformedAnnouncementError


def test_encode_announcement():
    assert encode_announcement("my_service_name", "my_computer", 2052) == b"my_service_name:my_computer:2052"

@pytest.mark.parametrize("service_name, computer_name, port", [
    ("svc", "host", 1),
    ("my_awesome_service", "box.local", 65535),
    ("сервис", "ホスト", 8080),
    ("", "", 1337),
])
def test_round_trip(service_name, computer_name, port):
    decoded = decode_announcement(encode_announcement(service_name, computer_name, port))
    assert decoded == Announcement(service_name, computer_name, port)

def test_long_service_name_survives_round_trip():
    name = "x" * 10_000
    decoded = decode_announcement(encode_announcement(name, "host", 1337))
    assert decoded.service_name == name
    assert decoded.port == 1337

@pytest.mark.parametrize("payload", [
    b"",
    b"svc",
    b"svc:host",
    b"svc:host:1337:extra",
    b"svc:host:1337:",
])
def test_decode_rejects_wrong_field_count(payload):
    with pytest.raises(MalformedAnnouncementError) as exc_info:
        decode_announcement(payload)
    assert "tokens" in exc_info.value.reason

def test_colon_in_name_breaks_framing():
    """Names are not escaped, so a ':' inside one yields an undecodable datagram."""
    payload = encode_announcement("svc:v2", "host", 1337)
    with pytest.raises(MalformedAnnouncementError):
        decode_announcement(payload)

@pytest.mark.parametrize("port_string", ["", "abc", "-1", "+5", " 12", "12x", "1.5", "65536", "99999999999999999999", "²", "1" * 5000])
def test_parse_port_rejects_invalid(port_string):
    with pytest.raises(MalformedAnnouncementError):
        parse_port(port_string)

def test_parse_port_accepts_full_range():
    assert parse_port("0") == 0
    assert parse_port("00080") == 80
    assert parse_port("65535") == 65535
    assert parse_port("0" * 5000 + "80") == 80

def test_decode_rejects_bad_port():
    with pytest.raises(MalformedAnnouncementError):
        decode_announcement(b"svc:host:70000")

def test_decode_rejects_huge_port_field():
    with pytest.raises(MalformedAnnouncementError) as exc_info:
        decode_announcement(b"svc:host:" + b"1" * 5000)
    assert "out of range" in exc_info.value.reason

def test_decode_rejects_invalid_utf8():
    with pytest.raises(MalformedAnnouncementError) as exc_info:
        decode_announcement(b"\xff\xfe:host:1337")
    assert exc_info.value.payload == b"\xff\xfe:host:1337"

def test_malformed_announcement_is_discovery_error():
    assert issubclass(MalformedAnnouncementError, DiscoveryError)
