from __future__ import annotations

import math
import os
import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from staff_portal.errors import ConfigurationError


def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()

DEFAULT_CRON_SCHEDULE = "0 2 * * *"
DEFAULT_TIMEZONE = "UTC"
DEFAULT_MISFIRE_GRACE_SECONDS = 6 * 60 * 60


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    candidates = [Path.cwd(), PROJECT_ROOT]
    for base in candidates:
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break

    for base in candidates:
        env_specific = base / f".env.{env_name}"
        if env_specific.exists():
            load_dotenv(env_specific, override=True)
            break


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_dir: str = "logs"
    cron_schedule: str = DEFAULT_CRON_SCHEDULE
    scheduler_timezone: str = DEFAULT_TIMEZONE
    misfire_grace_seconds: int = DEFAULT_MISFIRE_GRACE_SECONDS
    spawn_timeout_seconds: float | None = None


def _positive_number(name: str, raw: str | None) -> float | None:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(f"{name} must be a finite positive number, got {raw!r}")
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_env()

    database_url = os.getenv("DATABASE_URL", "").strip()
    if not database_url:
        raise ConfigurationError("DATABASE_URL is not set. Create a .env file with your connection string.")

    misfire_grace = _positive_number("MISFIRE_GRACE_SECONDS", os.getenv("MISFIRE_GRACE_SECONDS"))

    return Settings(
        database_url=database_url,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=os.getenv("LOG_DIR", "logs"),
        cron_schedule=os.getenv("CRON_SCHEDULE", "").strip() or DEFAULT_CRON_SCHEDULE,
        scheduler_timezone=os.getenv("SCHEDULER_TIMEZONE", "").strip() or DEFAULT_TIMEZONE,
        misfire_grace_seconds=max(1, int(misfire_grace)) if misfire_grace else DEFAULT_MISFIRE_GRACE_SECONDS,
        spawn_timeout_seconds=_positive_number("SPAWN_TIMEOUT_SECONDS", os.getenv("SPAWN_TIMEOUT_SECONDS")),
    )
