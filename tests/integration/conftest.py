"""Pytest configuration and fixtures for integration tests against SQLite."""

import pytest

from src.core import db_client, schema


@pytest.fixture
async def sqlite_db(monkeypatch, tmp_path):
    """Point the client at a fresh database file with the schema applied."""
    db_path = str(tmp_path / "tidyquest.db")
    monkeypatch.setattr(db_client.settings, "sqlite_db_path", db_path)

    await schema.init_db()
    yield db_path
    await db_client.close_connection()
