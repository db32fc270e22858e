"""Configuration management for mcast-discovery."""

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, IPvAnyAddress, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MULTICAST_GROUP = "239.255.0.1"
DEFAULT_MULTICAST_PORT = 30001
DEFAULT_LISTEN_ADDRESS = "0.0.0.0"


class MulticastConfig(BaseModel): # Nested under Config (BaseSettings)
    """Network parameters shared by announcers and discoverers. Must match on both sides."""

    group: IPvAnyAddress = Field(default=DEFAULT_MULTICAST_GROUP, validate_default=True, description="Multicast group address announcements are sent to.")
    port: int = Field(default=DEFAULT_MULTICAST_PORT, ge=1, le=65535, description="UDP port of the multicast group.")
    listen_address: IPvAnyAddress = Field(default=DEFAULT_LISTEN_ADDRESS, validate_default=True, description="Local address discoverers bind to.")
    ttl: int = Field(default=1, ge=0, le=255, description="Multicast TTL (hop limit) for outgoing announcements. 1 keeps them on the local network.")
    loopback: bool = Field(default=True, description="Deliver announcements to discoverers on the sending host.")

    @field_validator("group")
    @classmethod
    def check_multicast_group(cls, v):
        if not v.is_multicast:
            raise ValueError(f"{v} is not a multicast address")
        return v

class AnnouncerConfig(BaseModel):
    """Configuration for the service announcer."""

    service_name: str = Field(default="", description="Name of the announced service. Any string without ':'.")
    service_port: int = Field(default=1, ge=1, le=65535, description="Port the announced service listens on.")
    interval_seconds: float = Field(default=1.0, gt=0, le=3600, description="Delay between two announcements.")

class DiscovererConfig(BaseModel):
    """Configuration for the service discoverer."""

    listen_for_service: str = Field(default="", description="Only announcements with exactly this service name are kept.")
    max_idle_seconds: float = Field(default=30.0, gt=0, description="Services not announced for this long are removed.")
    max_services: int = Field(default=10, ge=1, description="Maximum number of services held; the oldest is dropped on overflow.")

class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    format: Literal["json", "console"] = Field(default="json", description="Log format")


class Config(BaseSettings):
    """Main configuration for mcast-discovery. Loads from environment variables prefixed with MCAST_DISCOVERY_."""

    model_config = SettingsConfigDict(
        env_prefix='MCAST_DISCOVERY_',
        env_nested_delimiter='__', # e.g., MCAST_DISCOVERY_DISCOVERER__MAX_SERVICES
        extra='ignore',
        env_file='.env',
        env_file_encoding='utf-8'
    )

    multicast: MulticastConfig = Field(default_factory=MulticastConfig)
    announcer: AnnouncerConfig = Field(default_factory=AnnouncerConfig)
    discoverer: DiscovererConfig = Field(default_factory=DiscovererConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, file_path: Path) -> "Config":
        """Create configuration strictly from a JSON file.
        Note: This does not layer with environment variables.
        """
        with open(file_path) as f:
            config_data = json.load(f)
        return cls.model_validate(config_data)
