"""Configuration management for keyloader.

Loads settings from a YAML configuration file with environment variable
overrides (``KEYLOADER_`` prefix, ``__`` as the nesting delimiter).
Command-line flags are applied on top by the CLI.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/zfs-remote-keyloader/config.yaml")


class ConfigError(Exception):
    """Raised when required startup configuration is missing or invalid."""


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3333, ge=1, le=65535)


class UnlockConfig(BaseModel):
    dataset: str | None = Field(default=None, description="ZFS dataset to load keys for")
    zfs_command: str = Field(default="zfs")
    timeout: float | None = Field(default=None, gt=0, description="Seconds before load-key is killed")
    key_dir: str | None = Field(default=None, description="Directory for staged key files")
    check_key_status: bool = Field(default=True)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the key loader.

    Loads from YAML file and supports environment variable overrides.
    """

    model_config = {
        "env_prefix": "KEYLOADER_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    unlock: UnlockConfig = Field(default_factory=UnlockConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def listen_address(self) -> str:
        return f"{self.server.host}:{self.server.port}"

    def require_dataset(self) -> str:
        """Return the configured dataset or raise ConfigError."""
        dataset = (self.unlock.dataset or "").strip()
        if not dataset:
            raise ConfigError(
                "no dataset configured: pass --dataset or set unlock.dataset"
            )
        return dataset


def parse_listen_address(value: str) -> tuple[str, int]:
    """Split an ``addr:port`` string into host and port.

    The host may be empty (all interfaces) or a bracketed IPv6 literal.
    """
    host, sep, port_str = value.rpartition(":")
    if not sep:
        raise ConfigError(f"invalid listen address {value!r}: expected addr:port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_str)
    except ValueError:
        raise ConfigError(f"invalid port in listen address {value!r}") from None
    if not 1 <= port <= 65535:
        raise ConfigError(f"port out of range in listen address {value!r}")
    return host or "0.0.0.0", port


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Values present in the YAML file take precedence over environment
    variables, which take precedence over defaults.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        try:
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read configuration {path}: {e}") from e
        if not isinstance(yaml_data, dict):
            raise ConfigError(f"configuration {path} must be a mapping")
        logger.info("Loaded configuration from %s", path)
    elif config_path:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    try:
        return Settings(**yaml_data)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
