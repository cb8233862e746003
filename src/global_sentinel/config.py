# Global Sentinel - Runtime Settings
#
# Settings come from SENTINEL_* environment variables.  An optional .env
# file (python-dotenv) is loaded first; real environment variables win.

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from dotenv import load_dotenv

from .errors import ConfigError
from .intel.collector import DEFAULT_SOURCE_DELAY_SEC, DEFAULT_TIMEOUT_SEC, DEFAULT_USER_AGENT
from .intel.scheduler import (
    DEFAULT_HEALTH_MINUTES,
    DEFAULT_INITIAL_DELAY_SEC,
    DEFAULT_INTERVAL_MINUTES,
    MAX_INTERVAL_MINUTES,
    MIN_INTERVAL_MINUTES,
)
from .intel.selection import DEFAULT_CAPACITY
from .intel.store import DEFAULT_DB_PATH

ENV_PREFIX = "SENTINEL_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    db_path: str = DEFAULT_DB_PATH
    capacity: int = DEFAULT_CAPACITY
    cycle_minutes: int = DEFAULT_INTERVAL_MINUTES
    health_minutes: int = DEFAULT_HEALTH_MINUTES
    initial_delay_seconds: float = DEFAULT_INITIAL_DELAY_SEC
    forward_url: str = ""
    request_timeout: float = DEFAULT_TIMEOUT_SEC
    source_delay: float = DEFAULT_SOURCE_DELAY_SEC
    user_agent: str = DEFAULT_USER_AGENT
    audit_dir: str = "./audit_logs"
    max_workers: int = 4
    log_level: str = "INFO"

    @property
    def forwarding_enabled(self) -> bool:
        return bool(self.forward_url)

    def validate(self) -> "Settings":
        """Raise ConfigError on out-of-range values; returns self."""
        if self.capacity < 1:
            raise ConfigError(f"SENTINEL_CAPACITY must be >= 1, got {self.capacity}")
        if not MIN_INTERVAL_MINUTES <= self.cycle_minutes <= MAX_INTERVAL_MINUTES:
            raise ConfigError(
                f"SENTINEL_CYCLE_MINUTES must be {MIN_INTERVAL_MINUTES}-"
                f"{MAX_INTERVAL_MINUTES}, got {self.cycle_minutes}"
            )
        if self.health_minutes < 1:
            raise ConfigError("SENTINEL_HEALTH_MINUTES must be >= 1")
        if self.initial_delay_seconds < 0:
            raise ConfigError("SENTINEL_INITIAL_DELAY_SECONDS must be >= 0")
        if self.request_timeout <= 0:
            raise ConfigError("SENTINEL_REQUEST_TIMEOUT must be > 0")
        if self.source_delay < 0:
            raise ConfigError("SENTINEL_SOURCE_DELAY must be >= 0")
        if self.max_workers < 1:
            raise ConfigError("SENTINEL_MAX_WORKERS must be >= 1")
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"SENTINEL_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        if self.forward_url and not self.forward_url.startswith(("http://", "https://")):
            raise ConfigError(f"SENTINEL_FORWARD_URL must be http(s), got {self.forward_url!r}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _read(name: str, cast: Callable[[str], Any], default: Any) -> Any:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"Invalid {ENV_PREFIX}{name}={raw!r}: {exc}") from exc


def load_settings(env_file: Optional[Union[str, Path]] = None) -> Settings:
    """Build validated Settings from the environment.

    Args:
        env_file: Optional .env path; when None, python-dotenv searches
            for a ``.env`` from the working directory upward.

    Raises:
        ConfigError: if a variable is malformed or out of range.
    """
    load_dotenv(dotenv_path=env_file, override=False)
    defaults = Settings()

    settings = Settings(
        db_path=_read("DB_PATH", str, defaults.db_path),
        capacity=_read("CAPACITY", int, defaults.capacity),
        cycle_minutes=_read("CYCLE_MINUTES", int, defaults.cycle_minutes),
        health_minutes=_read("HEALTH_MINUTES", int, defaults.health_minutes),
        initial_delay_seconds=_read(
            "INITIAL_DELAY_SECONDS", float, defaults.initial_delay_seconds
        ),
        forward_url=_read("FORWARD_URL", str, defaults.forward_url).rstrip("/"),
        request_timeout=_read("REQUEST_TIMEOUT", float, defaults.request_timeout),
        source_delay=_read("SOURCE_DELAY", float, defaults.source_delay),
        user_agent=_read("USER_AGENT", str, defaults.user_agent),
        audit_dir=_read("AUDIT_DIR", str, defaults.audit_dir),
        max_workers=_read("MAX_WORKERS", int, defaults.max_workers),
        log_level=_read("LOG_LEVEL", str.upper, defaults.log_level),
    )
    logging.getLogger(__name__).debug("Loaded settings: %s", settings.to_dict())
    return settings.validate()
