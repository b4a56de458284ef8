"""Configuration management for whatsgate.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides for sensitive values like
the API key.
"""

from whatsgate.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
