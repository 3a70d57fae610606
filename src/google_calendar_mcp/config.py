"""
Server configuration.

The configuration is read once at start-up from environment variables (and an
optional .env file) and passed explicitly to the components that need it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError
from .models import DEFAULT_CALENDAR_ID, DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}
ENVIRONMENTS = ("development", "staging", "production", "test")
TRANSPORTS = ("stdio", "streamable-http", "sse")

_TRUE_VALUES = {"1", "t", "true", "y", "yes", "on"}
_FALSE_VALUES = {"0", "f", "false", "n", "no", "off"}


class CalendarConfig(BaseModel):
    """Configuration for calendar access and the MCP server."""

    credentials_json: str = Field(repr=False)
    calendar_id: str = DEFAULT_CALENDAR_ID
    timezone: str = DEFAULT_TIMEZONE
    server_name: str = "Google Calendar MCP Server"
    server_version: str = "1.0.0"
    log_level: str = "info"
    environment: str = "development"
    debug: bool = False
    transport: str = "stdio"
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)

    @field_validator("credentials_json")
    @classmethod
    def validate_credentials(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("GOOGLE_CALENDAR_CREDENTIALS_JSON is required")
        if not v.lstrip().startswith("{") and not Path(v).exists():
            raise ValueError(f"Credentials file not found: {v}")
        return v

    @field_validator("calendar_id")
    @classmethod
    def validate_calendar_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Calendar ID cannot be empty")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        if not v:
            raise ValueError("Timezone cannot be empty")
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Invalid timezone: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.lower() not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Valid levels are: {', '.join(LOG_LEVELS)}"
            )
        return v.lower()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v.lower() not in ENVIRONMENTS:
            raise ValueError(
                f"Invalid environment: {v}. Valid environments are: {', '.join(ENVIRONMENTS)}"
            )
        return v.lower()

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, v: str) -> str:
        if v not in TRANSPORTS:
            raise ValueError(
                f"Invalid transport: {v}. Valid transports are: {', '.join(TRANSPORTS)}"
            )
        return v

    @model_validator(mode="after")
    def force_debug_logging(self) -> "CalendarConfig":
        if self.debug:
            self.log_level = "debug"
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def logging_level(self) -> int:
        """Log level as a ``logging`` constant."""
        return LOG_LEVELS[self.log_level]

    def get_tz(self) -> ZoneInfo:
        """Returns ZoneInfo."""
        return ZoneInfo(self.timezone)

    def __str__(self) -> str:
        return (
            f"CalendarConfig(calendar_id={self.calendar_id}, timezone={self.timezone}, "
            f"environment={self.environment}, debug={self.debug})"
        )


def _env(key: str, default: str) -> str:
    return os.getenv(key) or default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value:
        if value.lower() in _TRUE_VALUES:
            return True
        if value.lower() in _FALSE_VALUES:
            return False
    return default


def load_config(env_file: Optional[str | Path] = None) -> CalendarConfig:
    """Load configuration from environment variables.

    Variables already set in the environment take precedence over the .env
    file.

    Args:
        env_file: Optional path to a .env file. Defaults to searching for
            ``.env`` from the working directory upwards.

    Returns:
        CalendarConfig: Validated configuration.

    Raises:
        ConfigurationError: if any setting is invalid.
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    raw = {
        "credentials_json": _env("GOOGLE_CALENDAR_CREDENTIALS_JSON", ""),
        "calendar_id": _env("GOOGLE_CALENDAR_ID", DEFAULT_CALENDAR_ID),
        "timezone": _env("GOOGLE_CALENDAR_TIMEZONE", DEFAULT_TIMEZONE),
        "server_name": _env("MCP_SERVER_NAME", "Google Calendar MCP Server"),
        "server_version": _env("MCP_SERVER_VERSION", "1.0.0"),
        "log_level": _env("LOG_LEVEL", "info"),
        "environment": _env("ENVIRONMENT", "development"),
        "debug": _env_bool("DEBUG", False),
        "transport": _env("MCP_TRANSPORT", "stdio"),
        "host": _env("MCP_HOST", "127.0.0.1"),
        "port": _env("MCP_PORT", "8000"),
    }

    try:
        return CalendarConfig.model_validate(raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(
            "Invalid configuration",
            f"configuration validation failed: {problems}",
        ) from None
