"""Configuration management for the mcwatch sidecar."""

import base64
import binascii
import socket
from pathlib import Path
from typing import Optional

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

# Log Analytics HTTP Data Collector API
COLLECTOR_URL_TEMPLATE = "https://{customer_id}.ods.opinsights.azure.com"
COLLECTOR_RESOURCE = "/api/logs"
COLLECTOR_API_VERSION = "2016-04-01"


class Settings(BaseSettings):
    """Process-wide settings loaded from RCON_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RCON_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Pod identity
    pod_name: str = Field(default_factory=socket.gethostname)

    # Minecraft server
    host: str = "localhost"
    port: int = 25565
    password: Optional[str] = None  # used by the remote console only
    data_volume: Path = Path("./world/playerdata")

    # Log Analytics workspace
    azure_customer_id: str = Field(min_length=1)
    azure_shared_key: str = Field(min_length=1)
    log_type: str = "MinecraftStats"
    collector_url: Optional[str] = None

    # Timing (seconds)
    interval: float = 30.0
    probe_timeout: float = 10.0
    publish_timeout: float = 30.0

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError(f"port {value} is out of range")
        return value

    @field_validator("interval", "probe_timeout", "publish_timeout")
    @classmethod
    def _check_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("azure_shared_key")
    @classmethod
    def _check_shared_key(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise ValueError(f"shared key is not valid base64: {e}") from e
        return value

    @property
    def address(self) -> str:
        """host:port of the game server."""
        return f"{self.host}:{self.port}"

    @property
    def collector_endpoint(self) -> str:
        """Full URL telemetry is posted to."""
        base = self.collector_url or COLLECTOR_URL_TEMPLATE.format(
            customer_id=self.azure_customer_id
        )
        return f"{base.rstrip('/')}{COLLECTOR_RESOURCE}?api-version={COLLECTOR_API_VERSION}"

    @classmethod
    def from_yaml(cls, path: str) -> "Settings":
        """Load settings from a YAML file; its values win over the environment."""
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a mapping at the top level")
        bad_keys = [key for key in data if not isinstance(key, str)]
        if bad_keys:
            raise ConfigError(f"{path}: setting names must be strings, got {bad_keys!r}")
        return cls(**data)


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Load settings once at startup, raising ConfigError on any failure."""
    try:
        if config_path:
            return Settings.from_yaml(config_path)
        return Settings()
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read {config_path}: {e}") from e
