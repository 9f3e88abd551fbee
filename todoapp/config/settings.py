"""
Central configuration for the Todo application.

All tunables live here. Nothing is hardcoded in module code.

Settings can be overlaid from an ``appsettings.json`` style document,
either explicitly via ``Settings.from_file()`` or by pointing the
``TODOAPP_SETTINGS`` environment variable at the file.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

SETTINGS_ENV_VAR = "TODOAPP_SETTINGS"

# Names of the rate limit configuration sections, one per operation class
READ_SECTION = "Read"
WRITE_SECTION = "Write"


class ConfigurationError(ValueError):
    """Raised at startup when configuration is missing or invalid."""


def _project_root() -> Path:
    """Walk up from this file to find the project root (where pyproject.toml lives)."""
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if (current / "pyproject.toml").exists():
            return current
        current = current.parent
    # Fallback: two levels up from config/settings.py
    return Path(__file__).resolve().parent.parent.parent


class QueueProcessingOrder(str, Enum):
    """Order in which queued acquisitions are served once tokens appear."""

    OLDEST_FIRST = "OldestFirst"
    NEWEST_FIRST = "NewestFirst"

    @classmethod
    def parse(cls, value: Any) -> "QueueProcessingOrder":
        if isinstance(value, cls):
            return value
        aliases = {
            "oldestfirst": cls.OLDEST_FIRST,
            "fifo": cls.OLDEST_FIRST,
            "newestfirst": cls.NEWEST_FIRST,
            "lifo": cls.NEWEST_FIRST,
        }
        try:
            return aliases[str(value).strip().lower()]
        except KeyError:
            raise ConfigurationError(f"Unknown queue processing order: {value!r}") from None


_TIMESPAN_RE = re.compile(
    r"^(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{2}):(?P<seconds>\d{2}(?:\.\d+)?)$"
)


def parse_duration(value: Any) -> float:
    """
    Parse a duration into seconds.

    Accepts numbers (seconds), numeric strings, and ``[d.]hh:mm:ss[.fff]``
    timespan strings such as ``"00:00:10"``.
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        match = _TIMESPAN_RE.match(text)
        if match:
            return (
                int(match.group("days") or 0) * 86400
                + int(match.group("hours")) * 3600
                + int(match.group("minutes")) * 60
                + float(match.group("seconds"))
            )
        try:
            return float(text)
        except ValueError:
            pass
    raise ConfigurationError(f"Invalid duration: {value!r}")


def _is_int(value: Any) -> bool:
    # bool is an int subclass, but JSON true/false is never a valid count
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class RateLimitSettings:
    """
    Token bucket configuration for one operation class.

    Validated on construction so an invalid section can never reach a
    limiter.
    """

    # Bucket capacity; a fresh bucket starts full
    token_limit: int = 100

    # Tokens added per replenishment period
    tokens_per_period: int = 100

    # Seconds between replenishments
    replenishment_period: float = 60.0

    # True: refill is driven by the background replenisher.
    # False: refill is computed lazily when the bucket is accessed.
    auto_replenishment: bool = True

    # Maximum number of tokens that queued requests may wait for (0 = never queue)
    queue_limit: int = 0

    queue_processing_order: QueueProcessingOrder = QueueProcessingOrder.OLDEST_FIRST

    def __post_init__(self) -> None:
        # Coerce loosely-typed values (e.g. from JSON) before validating
        object.__setattr__(
            self, "queue_processing_order", QueueProcessingOrder.parse(self.queue_processing_order)
        )
        object.__setattr__(self, "replenishment_period", parse_duration(self.replenishment_period))

        if not _is_int(self.token_limit) or self.token_limit <= 0:
            raise ConfigurationError(f"token_limit must be a positive integer, got {self.token_limit!r}")
        if not _is_int(self.tokens_per_period) or self.tokens_per_period <= 0:
            raise ConfigurationError(
                f"tokens_per_period must be a positive integer, got {self.tokens_per_period!r}"
            )
        if self.replenishment_period <= 0:
            raise ConfigurationError(
                f"replenishment_period must be positive, got {self.replenishment_period!r}"
            )
        if not isinstance(self.auto_replenishment, bool):
            raise ConfigurationError(
                f"auto_replenishment must be true or false, got {self.auto_replenishment!r}"
            )
        if not _is_int(self.queue_limit) or self.queue_limit < 0:
            raise ConfigurationError(f"queue_limit must be >= 0, got {self.queue_limit!r}")

    @classmethod
    def from_section(cls, name: str, section: Any) -> "RateLimitSettings":
        """Build from an ``appsettings.json`` style ``RateLimits:<name>`` object."""
        if not isinstance(section, dict):
            raise ConfigurationError(f"Rate limit section '{name}' must be an object")

        keys = {
            "TokenLimit": "token_limit",
            "TokensPerPeriod": "tokens_per_period",
            "ReplenishmentPeriod": "replenishment_period",
            "AutoReplenishment": "auto_replenishment",
            "QueueLimit": "queue_limit",
            "QueueProcessingOrder": "queue_processing_order",
        }
        missing = [k for k in keys if k not in section]
        if missing:
            raise ConfigurationError(
                f"Rate limit section '{name}' is missing: {', '.join(missing)}"
            )
        try:
            return cls(**{attr: section[key] for key, attr in keys.items()})
        except ConfigurationError as exc:
            raise ConfigurationError(f"Rate limit section '{name}': {exc}") from exc


def _default_rate_limits() -> dict[str, RateLimitSettings]:
    # Reads are cheaper than writes, so they get a larger bucket
    return {
        READ_SECTION: RateLimitSettings(
            token_limit=100,
            tokens_per_period=25,
            replenishment_period=15.0,
        ),
        WRITE_SECTION: RateLimitSettings(
            token_limit=20,
            tokens_per_period=5,
            replenishment_period=30.0,
        ),
    }


@dataclass(frozen=True)
class StorageSettings:
    """Settings for SQLite storage."""

    # Name of the SQLite database file inside the data directory
    db_name: str = "TodoApp.db"

    # SQLite journal mode
    journal_mode: str = "WAL"

    # SQLite busy timeout (milliseconds): how long to wait for a locked DB
    busy_timeout_ms: int = 5000


@dataclass(frozen=True)
class AuthSettings:
    """Settings for JWT bearer authentication."""

    # Shared HS256 secret. Override outside local development.
    jwt_secret: str = "todoapp-development-secret-change-me"

    jwt_algorithm: str = "HS256"

    issuer: str = "todoapp"

    audience: str = "todoapp"

    # Lifetime of tokens minted by the dev token CLI (minutes)
    token_lifetime_minutes: int = 60


@dataclass
class Settings:
    """
    Top-level settings container. Aggregates all subsystem settings.

    Usage:
        settings = get_settings()
        print(settings.rate_limits["Read"].token_limit)
    """

    project_root: Path = field(default_factory=_project_root)

    # Absolute directory for the database and logs. Relative or empty
    # values fall back to <project_root>/App_Data.
    data_directory: Optional[Path] = None

    storage: StorageSettings = field(default_factory=StorageSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    rate_limits: dict[str, RateLimitSettings] = field(default_factory=_default_rate_limits)

    # How often the background replenisher ticks (seconds)
    replenish_interval: float = 0.1

    # Longest a queued request waits for a token before it is rejected.
    # None waits until a token arrives or the client disconnects.
    rate_limit_queue_timeout: Optional[float] = None

    @property
    def data_dir(self) -> Path:
        """Root directory for all runtime data (DB, logs)."""
        if self.data_directory is not None and Path(self.data_directory).is_absolute():
            return Path(self.data_directory)
        return self.project_root / "App_Data"

    @property
    def db_path(self) -> Path:
        """Full path to the SQLite database file."""
        return self.data_dir / self.storage.db_name

    @property
    def logs_dir(self) -> Path:
        """Root directory for log files."""
        return self.data_dir / "logs"

    def ensure_dirs(self) -> None:
        """Create all required data directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_file(cls, path: Path, **overrides: Any) -> "Settings":
        """
        Load settings from an ``appsettings.json`` style document.

        Recognised top-level keys: ``DataDirectory``, ``RateLimits``
        (with ``Read`` and ``Write`` sections) and ``Jwt``. Anything absent
        keeps its default.
        """
        try:
            document = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Could not read settings file {path}: {exc}") from exc
        if not isinstance(document, dict):
            raise ConfigurationError(f"Settings file {path} must contain a JSON object")

        kwargs: dict[str, Any] = {}

        if document.get("DataDirectory"):
            kwargs["data_directory"] = Path(document["DataDirectory"])

        if "RateLimits" in document:
            sections = document["RateLimits"]
            if not isinstance(sections, dict):
                raise ConfigurationError("'RateLimits' must be an object")
            kwargs["rate_limits"] = {
                name: RateLimitSettings.from_section(name, section)
                for name, section in sections.items()
            }

        jwt_section = document.get("Jwt")
        if isinstance(jwt_section, dict):
            auth = AuthSettings()
            kwargs["auth"] = replace(
                auth,
                jwt_secret=jwt_section.get("Secret", auth.jwt_secret),
                issuer=jwt_section.get("Issuer", auth.issuer),
                audience=jwt_section.get("Audience", auth.audience),
            )

        kwargs.update(overrides)
        return cls(**kwargs)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Returns the singleton Settings instance.

    Call this instead of constructing Settings() directly so the entire
    application shares one config object.
    """
    settings_file = os.environ.get(SETTINGS_ENV_VAR)
    settings = Settings.from_file(Path(settings_file)) if settings_file else Settings()
    settings.ensure_dirs()
    return settings
