"""Tests for configuration module."""

import json
from ipaddress import IPv4Address

import pytest
from pydantic import ValidationError

from mcast_discovery.config import AnnouncerConfig, Config, DiscovererConfig, MulticastConfig


def test_config_defaults():
    """Test default configuration values."""
    config = Config()

    # MulticastConfig defaults, must match between announcer and discoverer
    assert config.multicast.group == IPv4Address("239.255.0.1")
    assert config.multicast.port == 30001
    assert str(config.multicast.listen_address) == "0.0.0.0"
    assert config.multicast.ttl == 1
    assert config.multicast.loopback is True

    # AnnouncerConfig defaults
    assert config.announcer.interval_seconds == 1.0

    # DiscovererConfig defaults
    assert config.discoverer.max_idle_seconds == 30.0
    assert config.discoverer.max_services == 10

    # LoggingConfig defaults
    assert config.logging.level == "INFO"
    assert config.logging.format == "json"


def test_config_from_env(monkeypatch):
    """Test loading configuration from environment variables."""
    monkeypatch.setenv("MCAST_DISCOVERY_LOGGING__LEVEL", "DEBUG")
    monkeypatch.setenv("MCAST_DISCOVERY_MULTICAST__GROUP", "239.1.2.3")
    monkeypatch.setenv("MCAST_DISCOVERY_MULTICAST__PORT", "31337")
    monkeypatch.setenv("MCAST_DISCOVERY_DISCOVERER__LISTEN_FOR_SERVICE", "printer")
    monkeypatch.setenv("MCAST_DISCOVERY_DISCOVERER__MAX_SERVICES", "3")
    monkeypatch.setenv("MCAST_DISCOVERY_ANNOUNCER__SERVICE_PORT", "631")

    config = Config()

    assert config.logging.level == "DEBUG"
    assert str(config.multicast.group) == "239.1.2.3"
    assert config.multicast.port == 31337
    assert config.discoverer.listen_for_service == "printer"
    assert config.discoverer.max_services == 3
    assert config.announcer.service_port == 631


def test_config_from_file(tmp_path):
    """Test loading configuration from a JSON file."""
    config_content = {
        "multicast": {"group": "ff15::1234", "port": 40000, "listen_address": "::"},
        "announcer": {"service_name": "svc", "service_port": 1337, "interval_seconds": 0.5},
        "discoverer": {"listen_for_service": "svc", "max_idle_seconds": 5},
        "logging": {"level": "WARNING", "format": "console"},
    }
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(config_content))

    config = Config.from_file(config_file)

    assert str(config.multicast.group) == "ff15::1234"
    assert config.multicast.port == 40000
    assert config.announcer.service_name == "svc"
    assert config.announcer.interval_seconds == 0.5
    assert config.discoverer.max_idle_seconds == 5
    assert config.discoverer.max_services == 10 # default preserved
    assert config.logging.format == "console"


def test_multicast_group_must_be_multicast():
    with pytest.raises(ValidationError):
        MulticastConfig(group="192.168.1.1")
    with pytest.raises(ValidationError):
        MulticastConfig(group="not-an-ip")


@pytest.mark.parametrize("kwargs", [{"port": 0}, {"port": 65536}, {"ttl": 256}])
def test_multicast_config_ranges(kwargs):
    with pytest.raises(ValidationError):
        MulticastConfig(**kwargs)


def test_announcer_and_discoverer_limits():
    with pytest.raises(ValidationError):
        AnnouncerConfig(service_port=0)
    with pytest.raises(ValidationError):
        AnnouncerConfig(interval_seconds=0)
    with pytest.raises(ValidationError):
        DiscovererConfig(max_services=0)
    with pytest.raises(ValidationError):
        DiscovererConfig(max_idle_seconds=0)
