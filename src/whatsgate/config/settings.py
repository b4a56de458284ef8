"""Configuration management for whatsgate.

Loads settings from a YAML configuration file with environment variable
overrides for sensitive values (the API key). Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from whatsgate.commands.catalog import (
    DEFAULT_REPLIES,
    DEFAULT_RESERVED_REPLY,
    DEFAULT_VARIANTS,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/whatsgate.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001, ge=1, le=65535)
    cors_origin: str = Field(default="*", description="Origin allowed to call the API")


class PhoneConfig(BaseModel):
    country_code: str = Field(default="90", min_length=1)
    trunk_prefix: str = Field(default="0", min_length=1)
    chat_suffix: str = Field(default="@c.us")

    @field_validator("country_code", "trunk_prefix")
    @classmethod
    def _digits_only(cls, value: str) -> str:
        if not value.isdigit():
            raise ValueError(f"must contain digits only, got {value!r}")
        return value


class SessionConfig(BaseModel):
    bridge_url: str = Field(default="http://localhost:3002")
    http_timeout: float = Field(default=30.0, gt=0)
    poll_timeout: float = Field(default=25.0, gt=0, description="Long-poll wait on the bridge")
    max_poll_failures: int = Field(default=5, gt=0)
    reconnect_delay: float = Field(default=5.0, ge=0)
    operation_timeout: float | None = Field(
        default=None, gt=0, description="Optional timeout for pair/send/logout calls"
    )


class CommandConfig(BaseModel):
    threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    reserved_keyword: str = Field(default="ping")
    reserved_reply: str = Field(default=DEFAULT_RESERVED_REPLY)
    variants: dict[str, list[str]] = Field(default_factory=lambda: dict(DEFAULT_VARIANTS))
    replies: dict[str, dict[str, str]] = Field(default_factory=lambda: dict(DEFAULT_REPLIES))


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the whatsgate service.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "WHATSGATE_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # Shared secret for the x-api-key header; empty disables the check
    api_secret_key: SecretStr = Field(default=SecretStr(""))

    # Configuration sections
    server: ServerConfig = Field(default_factory=ServerConfig)
    phone: PhoneConfig = Field(default_factory=PhoneConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    commands: CommandConfig = Field(default_factory=CommandConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Keyword values (the YAML file) rank below the environment
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    # Load .env file manually for non-prefixed vars
    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply overrides from the non-prefixed deployment variables."""
    api_key = os.environ.get("API_SECRET_KEY", "")
    port = os.environ.get("PORT", "")
    main_app_url = os.environ.get("MAIN_APP_URL", "")
    bridge_url = os.environ.get("WHATSAPP_BRIDGE_URL", "")

    if api_key:
        yaml_data["api_secret_key"] = api_key

    yaml_data.setdefault("server", {})
    yaml_data.setdefault("session", {})

    if port:
        yaml_data["server"]["port"] = int(port)

    if main_app_url:
        yaml_data["server"]["cors_origin"] = main_app_url

    if bridge_url:
        yaml_data["session"]["bridge_url"] = bridge_url
