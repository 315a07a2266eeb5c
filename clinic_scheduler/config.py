"""
Centralized configuration with environment variable overrides.

Two layers live here:

* ``AppConfig``: process settings read once from the environment
  (timezones, mail transport, directory mode, logging).
* ``SchedulingConfig``: the clinic-wide scheduling values an operator can
  change at runtime (room count, default duration, slot step). These are
  held by a ``ConfigStore`` as immutable, versioned snapshots so one booking
  decision always sees a consistent set of values.
"""

import logging
import os
import threading
from dataclasses import dataclass, field, replace
from typing import Optional

import pytz
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


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
    """Parse a boolean flag; accepts true/false, yes/no, 1/0."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


def _safe_days(env_var: str, default: str) -> tuple[int, ...]:
    """Parse a comma-separated list of weekday numbers (0=Sunday)."""
    raw = os.getenv(env_var, default)
    try:
        return tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError:
        raise ValueError(f"Invalid day list for {env_var}: {raw!r}") from None


@dataclass(frozen=True)
class ClinicConfig:
    """Clinic-wide scheduling defaults."""

    name: str = os.getenv("CLINIC_NAME", "Company Health Clinic")
    display_timezone: str = os.getenv("DISPLAY_TIMEZONE", "UTC")
    number_of_rooms: int = _safe_int("NUMBER_OF_ROOMS", "1")
    default_duration_minutes: int = _safe_int("DEFAULT_DURATION_MINUTES", "30")
    slot_step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "5")
    display_days_of_week: tuple[int, ...] = _safe_days(
        "DISPLAY_DAYS_OF_WEEK", "0,1,2,3,4,5,6"
    )


@dataclass(frozen=True)
class ReminderConfig:
    """Reminder dispatch settings."""

    timezone: str = os.getenv("REMINDER_TIMEZONE", "UTC")
    interval_seconds: int = _safe_int("REMINDER_INTERVAL_SECONDS", "3600")
    template_name: str = os.getenv("REMINDER_TEMPLATE_NAME", "Reminder")


@dataclass(frozen=True)
class MailConfig:
    """Outgoing mail transport settings."""

    mode: str = os.getenv("MAIL_MODE", "mock")
    smtp_host: str = os.getenv("SMTP_HOST", "localhost")
    smtp_port: int = _safe_int("SMTP_PORT", "25")
    smtp_username: str = os.getenv("SMTP_USERNAME", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    from_address: str = os.getenv("SMTP_FROM", "clinic@example.com")
    use_tls: bool = _safe_bool("SMTP_USE_TLS", "false")


@dataclass(frozen=True)
class DirectoryConfig:
    """Employee directory settings."""

    mock_mode: bool = _safe_bool("MOCK_MODE", "true")
    employee_data_path: str = os.getenv("EMPLOYEE_DATA_PATH", "")
    base_url: str = os.getenv("DIRECTORY_BASE_URL", "https://graph.microsoft.com/v1.0")
    token: str = os.getenv("DIRECTORY_TOKEN", "")
    timeout_seconds: int = _safe_int("DIRECTORY_TIMEOUT_SECONDS", "5")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    clinic: ClinicConfig = field(default_factory=ClinicConfig)
    reminders: ReminderConfig = field(default_factory=ReminderConfig)
    mail: MailConfig = field(default_factory=MailConfig)
    directory: DirectoryConfig = field(default_factory=DirectoryConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_timezone(env_var: str, name: str) -> None:
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValueError(f"{env_var} is not a known timezone: {name!r}") from None


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.clinic.number_of_rooms < 0:
        raise ValueError(
            f"NUMBER_OF_ROOMS must be >= 0, got {config.clinic.number_of_rooms}"
        )
    if config.clinic.default_duration_minutes < 1:
        raise ValueError(
            "DEFAULT_DURATION_MINUTES must be >= 1, "
            f"got {config.clinic.default_duration_minutes}"
        )
    if config.clinic.slot_step_minutes < 1:
        raise ValueError(
            f"SLOT_STEP_MINUTES must be >= 1, got {config.clinic.slot_step_minutes}"
        )
    if any(not 0 <= day <= 6 for day in config.clinic.display_days_of_week):
        raise ValueError(
            "DISPLAY_DAYS_OF_WEEK entries must be between 0 and 6, "
            f"got {config.clinic.display_days_of_week}"
        )
    if config.reminders.interval_seconds < 1:
        raise ValueError(
            "REMINDER_INTERVAL_SECONDS must be >= 1, "
            f"got {config.reminders.interval_seconds}"
        )
    if config.mail.mode not in ("mock", "smtp"):
        raise ValueError(f"MAIL_MODE must be 'mock' or 'smtp', got {config.mail.mode!r}")
    if config.directory.timeout_seconds < 1:
        raise ValueError(
            "DIRECTORY_TIMEOUT_SECONDS must be >= 1, "
            f"got {config.directory.timeout_seconds}"
        )

    _validate_timezone("DISPLAY_TIMEZONE", config.clinic.display_timezone)
    _validate_timezone("REMINDER_TIMEZONE", config.reminders.timezone)


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.clinic.name)
    return config


# Singleton instance
settings = load_config()


# --------------------------------------------------------------------------- #
# Runtime scheduling configuration
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class SchedulingConfig:
    """One immutable version of the clinic's scheduling configuration.

    ``number_of_rooms`` of ``None`` means no room limit is configured and
    the capacity check is skipped entirely.
    """

    version: int = 1
    number_of_rooms: Optional[int] = 1
    default_duration_minutes: int = 30
    slot_step_minutes: int = 5
    display_timezone: str = "UTC"
    display_days_of_week: tuple[int, ...] = (0, 1, 2, 3, 4, 5, 6)

    @classmethod
    def from_settings(cls, config: AppConfig) -> "SchedulingConfig":
        rooms = config.clinic.number_of_rooms
        return cls(
            number_of_rooms=rooms if rooms > 0 else None,
            default_duration_minutes=config.clinic.default_duration_minutes,
            slot_step_minutes=config.clinic.slot_step_minutes,
            display_timezone=config.clinic.display_timezone,
            display_days_of_week=config.clinic.display_days_of_week,
        )


def _validate_scheduling(config: SchedulingConfig) -> None:
    if config.number_of_rooms is not None and config.number_of_rooms < 1:
        raise ValueError(
            f"number_of_rooms must be >= 1 or None, got {config.number_of_rooms}"
        )
    if config.default_duration_minutes < 1:
        raise ValueError(
            f"default_duration_minutes must be >= 1, got {config.default_duration_minutes}"
        )
    if config.slot_step_minutes < 1:
        raise ValueError(
            f"slot_step_minutes must be >= 1, got {config.slot_step_minutes}"
        )
    if any(not 0 <= day <= 6 for day in config.display_days_of_week):
        raise ValueError(
            "display_days_of_week entries must be between 0 and 6, "
            f"got {config.display_days_of_week}"
        )
    _validate_timezone("display_timezone", config.display_timezone)


class ConfigStore:
    """Holds the current ``SchedulingConfig`` and hands out snapshots.

    Usage:
        store = ConfigStore()
        snapshot = store.snapshot()
        store.update(number_of_rooms=3)   # -> version 2
    """

    def __init__(self, initial: Optional[SchedulingConfig] = None) -> None:
        initial = initial or SchedulingConfig.from_settings(settings)
        _validate_scheduling(initial)
        self._current = initial
        self._lock = threading.Lock()

    def snapshot(self) -> SchedulingConfig:
        return self._current

    def update(self, **changes) -> SchedulingConfig:
        """Apply changes and publish them as a new version.

        Raises:
            ValueError: If a changed value is out of range or unknown.
        """
        changes.pop("version", None)
        with self._lock:
            try:
                candidate = replace(
                    self._current, version=self._current.version + 1, **changes
                )
            except TypeError as exc:
                raise ValueError(str(exc)) from None
            _validate_scheduling(candidate)
            self._current = candidate
        logger.info(
            "Scheduling config updated to version %d: %s",
            candidate.version, ", ".join(sorted(changes)) or "no changes",
        )
        return candidate
