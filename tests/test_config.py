from __future__ import annotations

import pytest

from staff_portal import config
from staff_portal.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config, "PROJECT_ROOT", tmp_path)
    for name in (
        "DATABASE_URL",
        "CRON_SCHEDULE",
        "SCHEDULER_TIMEZONE",
        "SPAWN_TIMEOUT_SECONDS",
        "MISFIRE_GRACE_SECONDS",
        "LOG_LEVEL",
    ):
        # setenv first so teardown also removes values written by load_dotenv
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


def test_missing_database_url_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        config.get_settings()


def test_defaults_schedule_daily_at_two_utc(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite:///portal.db")

    settings = config.get_settings()

    assert settings.cron_schedule == "0 2 * * *"
    assert settings.scheduler_timezone == "UTC"
    assert settings.spawn_timeout_seconds is None


def test_env_file_is_loaded(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text(
        "DATABASE_URL=sqlite:///from-env.db\nCRON_SCHEDULE=15 3 * * 1-5\nSPAWN_TIMEOUT_SECONDS=2.5\n",
        encoding="utf-8",
    )

    settings = config.get_settings()

    assert settings.database_url == "sqlite:///from-env.db"
    assert settings.cron_schedule == "15 3 * * 1-5"
    assert settings.spawn_timeout_seconds == 2.5


def test_bad_timeout_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite:///portal.db")
    monkeypatch.setenv("SPAWN_TIMEOUT_SECONDS", "soon")

    with pytest.raises(ConfigurationError):
        config.get_settings()


@pytest.mark.parametrize("raw", ["-5", "0", "nan", "inf", "-inf"])
def test_timeout_must_be_finite_and_positive(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite:///portal.db")
    monkeypatch.setenv("SPAWN_TIMEOUT_SECONDS", raw)

    with pytest.raises(ConfigurationError):
        config.get_settings()


def test_misfire_grace_defaults_to_hours_and_is_configurable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite:///portal.db")
    assert config.get_settings().misfire_grace_seconds == 6 * 60 * 60

    config.get_settings.cache_clear()
    monkeypatch.setenv("MISFIRE_GRACE_SECONDS", "900")
    assert config.get_settings().misfire_grace_seconds == 900

    config.get_settings.cache_clear()
    monkeypatch.setenv("MISFIRE_GRACE_SECONDS", "-1")
    with pytest.raises(ConfigurationError):
        config.get_settings()
