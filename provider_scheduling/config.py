"""
Centralized configuration with environment variable overrides.

Scheduling limits, notification settings, and server binding are
configurable here. The 30-minute slot step is a protocol constant and
deliberately lives in ``scheduling.slots`` instead.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag from an env var (true/false, yes/no, 1/0, on/off)."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class SchedulingConfig:
    """Booking duration limits and the default extension increment."""

    extension_increment_minutes: int = _safe_int("EXTENSION_INCREMENT_MINUTES", "30")
    min_booking_duration_minutes: int = _safe_int("MIN_BOOKING_DURATION_MINUTES", "10")
    max_notes_length: int = _safe_int("MAX_NOTES_LENGTH", "500")


@dataclass(frozen=True)
class NotificationConfig:
    """Reschedule notification settings."""

    enabled: bool = _safe_bool("NOTIFICATIONS_ENABLED", "true")
    sender: str = os.getenv("NOTIFICATION_SENDER", "no-reply@provider-scheduling.local")


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server binding used by ``main.py``."""

    host: str = os.getenv("API_HOST", "0.0.0.0")
    port: int = _safe_int("API_PORT", "8000")
    seed_demo_data: bool = _safe_bool("SEED_DEMO_DATA", "false")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "provider-scheduling")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.scheduling.extension_increment_minutes < 1:
        raise ValueError(
            "EXTENSION_INCREMENT_MINUTES must be >= 1, "
            f"got {config.scheduling.extension_increment_minutes}"
        )
    if config.scheduling.min_booking_duration_minutes < 1:
        raise ValueError(
            "MIN_BOOKING_DURATION_MINUTES must be >= 1, "
            f"got {config.scheduling.min_booking_duration_minutes}"
        )
    if config.scheduling.max_notes_length < 0:
        raise ValueError(
            f"MAX_NOTES_LENGTH must be >= 0, got {config.scheduling.max_notes_length}"
        )
    if not 0 < config.server.port < 65536:
        raise ValueError(f"API_PORT must be between 1 and 65535, got {config.server.port}")
    if "@" not in config.notifications.sender:
        raise ValueError(
            f"NOTIFICATION_SENDER must be an email address, got {config.notifications.sender!r}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
