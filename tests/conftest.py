"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from src.main import app


# Wednesday, mid-day UTC
FIXED_NOW = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)


@pytest.fixture
def client() -> TestClient:
    """HTTP client for the FastAPI app; the lifespan is not started."""
    return TestClient(app)


@pytest.fixture
def fixed_now():
    """A fixed evaluation instant for time-dependent tests."""
    return FIXED_NOW


@pytest.fixture
def freeze_completion_clock(monkeypatch):
    """Pin the completion service clock; returns a setter for moving it."""
    current = {"now": FIXED_NOW}

    def _set(now: datetime) -> None:
        current["now"] = now

    monkeypatch.setattr("src.services.completion_service._utcnow", lambda: current["now"])
    return _set
