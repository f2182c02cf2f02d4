"""Tests for configuration validation."""

import pytest
from pydantic import ValidationError

from src.core.config import Constants, Settings


def test_defaults(monkeypatch) -> None:
    """Test settings defaults when no environment is configured."""
    for name in ("SQLITE_DB_PATH", "ENABLE_DUE_TASK_NOTIFICATIONS", "DUE_NOTIFICATION_HOUR"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.sqlite_db_path == "./data/tidyquest.db"
    assert settings.enable_due_task_notifications is True
    assert settings.due_notification_hour == 9
    assert settings.due_notification_minute == 0


def test_environment_override(monkeypatch) -> None:
    """Test values are read from the environment case-insensitively."""
    monkeypatch.setenv("DUE_NOTIFICATION_HOUR", "18")
    monkeypatch.setenv("enable_due_task_notifications", "false")

    settings = Settings(_env_file=None)

    assert settings.due_notification_hour == 18
    assert settings.enable_due_task_notifications is False


def test_invalid_hour_rejected() -> None:
    """Test the scan hour must be a valid clock hour."""
    with pytest.raises(ValidationError):
        Settings(_env_file=None, due_notification_hour=24)


def test_coin_table_covers_every_effort() -> None:
    """Test the default coin table has an entry per effort level."""
    efforts = range(Constants.MIN_EFFORT, Constants.MAX_EFFORT + 1)

    assert sorted(Constants.DEFAULT_COINS_BY_EFFORT) == list(efforts)


def test_min_frequency_is_one_hour() -> None:
    """Test the frequency floor equals one hour."""
    assert Constants.MIN_FREQUENCY_DAYS * Constants.SECONDS_PER_DAY == pytest.approx(3600)
