"""Pytest configuration and fixtures for unit tests."""

from datetime import datetime
from typing import Any

import pytest

from src.domain.task import AssignmentMode
from src.domain.user import UserRole
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("src.core.db_client.get_first_record", in_memory_db.get_first_record)
    monkeypatch.setattr("src.core.db_client.transaction", in_memory_db.transaction)
    return in_memory_db


class HouseholdFactory:
    """Seeds users, rooms and tasks straight into the in-memory database."""

    def __init__(self, db: InMemoryDBClient):
        self._db = db

    async def add_user(self, name: str, role: UserRole = UserRole.MEMBER, **fields: Any) -> dict[str, Any]:
        data = {"name": name, "role": role, "coins": 0, "current_streak": 0, "last_active_date": None}
        return await self._db.create_record("users", {**data, **fields})

    async def update_user(self, user_id: str, **fields: Any) -> dict[str, Any]:
        return await self._db.update_record("users", user_id, fields)

    async def add_room(self, name: str = "Kitchen", **fields: Any) -> dict[str, Any]:
        data = {"name": name, "room_type": "kitchen", "color": None, "sort_order": 0, "assigned_user_id": None}
        return await self._db.create_record("rooms", {**data, **fields})

    async def add_task(
        self,
        room_id: str,
        name: str = "Wipe counters",
        *,
        assignees: list[tuple[str, int]] | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        data = {
            "room_id": room_id,
            "name": name,
            "notes": "",
            "frequency_days": 7.0,
            "effort": 1,
            "is_seasonal": False,
            "last_completed_at": None,
            "assignment_mode": AssignmentMode.FIRST,
            "assigned_to_children": False,
        }
        record = await self._db.create_record("tasks", {**data, **fields})
        for user_id, percentage in assignees or []:
            await self._db.create_record(
                "task_assignees",
                {"task_id": record["id"], "user_id": user_id, "coin_percentage": percentage},
            )
        return record

    async def add_completion(
        self, task_id: str, user_id: str, completed_at: datetime, coins_earned: int = 5
    ) -> dict[str, Any]:
        return await self._db.create_record(
            "task_completions",
            {
                "task_id": task_id,
                "user_id": user_id,
                "completed_at": completed_at,
                "completed_on": completed_at.date(),
                "coins_earned": coins_earned,
            },
        )


@pytest.fixture
def household(patched_db):
    """Factory for seeding household records."""
    return HouseholdFactory(patched_db)


@pytest.fixture
def sample_task_data():
    """Returns sample task data for testing."""
    return {
        "name": "Vacuum carpet",
        "notes": "Living room rug too",
        "frequency_days": 3,
        "effort": 2,
    }
