"""Configuration management for keyloader.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides.
"""

from keyloader.config.settings import ConfigError, Settings, load_settings

__all__ = ["ConfigError", "Settings", "load_settings"]
