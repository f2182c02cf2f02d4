"""Tests for InMemoryDBClient implementation."""

from datetime import UTC, date, datetime

import pytest

from src.core.db_client import DatabaseError, RecordNotFoundError


@pytest.mark.unit
class TestInMemoryDBClient:
    """Test suite for InMemoryDBClient."""

    async def test_create_record(self, in_memory_db):
        """Test creating a record assigns an id and timestamps."""
        record = await in_memory_db.create_record("rooms", {"name": "Kitchen", "sort_order": 1})

        assert record["id"] is not None
        assert record["name"] == "Kitchen"
        assert "created" in record
        assert "updated" in record

    async def test_dates_stored_as_iso_strings(self, in_memory_db):
        """Test dates are stored the way SQLite stores them."""
        record = await in_memory_db.create_record(
            "task_completions",
            {"completed_at": datetime(2026, 10, 14, 9, 30, tzinfo=UTC), "completed_on": date(2026, 10, 14)},
        )

        assert record["completed_at"] == "2026-10-14T09:30:00+00:00"
        assert record["completed_on"] == "2026-10-14"

    async def test_create_record_invalid_data(self, in_memory_db):
        with pytest.raises(DatabaseError, match="Data must be a dictionary"):
            await in_memory_db.create_record("users", "invalid")

    async def test_update_and_delete(self, in_memory_db):
        created = await in_memory_db.create_record("users", {"name": "Cleo", "coins": 0})

        updated = await in_memory_db.update_record("users", created["id"], {"coins": 15})
        await in_memory_db.delete_record("users", created["id"])

        assert updated["coins"] == 15
        with pytest.raises(RecordNotFoundError):
            await in_memory_db.get_record("users", created["id"])

    async def test_missing_record(self, in_memory_db):
        with pytest.raises(RecordNotFoundError, match="Record not found"):
            await in_memory_db.update_record("users", "404", {"coins": 1})

    async def test_filter_and_chain(self, in_memory_db):
        await in_memory_db.create_record("task_completions", {"task_id": "1", "completed_on": "2026-10-14"})
        await in_memory_db.create_record("task_completions", {"task_id": "1", "completed_on": "2026-10-13"})
        await in_memory_db.create_record("task_completions", {"task_id": "2", "completed_on": "2026-10-14"})

        records = await in_memory_db.list_records(
            "task_completions", filter_query='task_id = "1" && completed_on = "2026-10-14"'
        )

        assert len(records) == 1

    async def test_filter_not_equal_and_boolean(self, in_memory_db):
        await in_memory_db.create_record("tasks", {"name": "Mop", "is_seasonal": False})
        await in_memory_db.create_record("tasks", {"name": "Gutters", "is_seasonal": True})

        seasonal = await in_memory_db.list_records("tasks", filter_query="is_seasonal = true")
        others = await in_memory_db.list_records("tasks", filter_query='name != "Mop"')

        assert [r["name"] for r in seasonal] == ["Gutters"]
        assert [r["name"] for r in others] == ["Gutters"]

    async def test_invalid_filter(self, in_memory_db):
        await in_memory_db.create_record("users", {"name": "Test"})

        with pytest.raises(DatabaseError, match="Invalid filter syntax"):
            await in_memory_db.list_records("users", filter_query="invalid filter")

    async def test_sort_directions(self, in_memory_db):
        for name, order in (("Garage", 3), ("Kitchen", 1), ("Bathroom", 2)):
            await in_memory_db.create_record("rooms", {"name": name, "sort_order": order})

        ascending = await in_memory_db.list_records("rooms", sort="sort_order ASC")
        descending = await in_memory_db.list_records("rooms", sort="-sort_order")

        assert [r["name"] for r in ascending] == ["Kitchen", "Bathroom", "Garage"]
        assert [r["name"] for r in descending] == ["Garage", "Bathroom", "Kitchen"]

    async def test_get_first_record_no_match(self, in_memory_db):
        assert await in_memory_db.get_first_record("users", 'name = "Bob"') is None

    async def test_transaction_rolls_back_on_error(self, in_memory_db):
        kept = await in_memory_db.create_record("users", {"name": "Alice", "coins": 5})

        with pytest.raises(RuntimeError):
            async with in_memory_db.transaction():
                await in_memory_db.update_record("users", kept["id"], {"coins": 50})
                await in_memory_db.create_record("users", {"name": "Ghost"})
                raise RuntimeError("abort")

        users = await in_memory_db.list_records("users")
        assert [(u["name"], u["coins"]) for u in users] == [("Alice", 5)]

    async def test_nested_transaction_joins_outer(self, in_memory_db):
        with pytest.raises(RuntimeError):
            async with in_memory_db.transaction():
                await in_memory_db.create_record("users", {"name": "Outer"})
                async with in_memory_db.transaction():
                    await in_memory_db.create_record("users", {"name": "Inner"})
                raise RuntimeError("abort")

        assert await in_memory_db.list_records("users") == []

    async def test_record_modifications_dont_affect_storage(self, in_memory_db):
        created = await in_memory_db.create_record("users", {"name": "Cleo"})
        created["name"] = "Modified"

        fetched = await in_memory_db.get_record("users", created["id"])
        assert fetched["name"] == "Cleo"
