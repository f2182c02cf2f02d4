"""Integration tests running the services on a real SQLite database."""

import asyncio

import pytest

from src.core import db_client
from src.core.errors import ConflictError, ErrorCode
from src.domain.completion import CompletionState
from src.domain.create_models import AssigneeInput, RoomCreate, TaskCreate, UserCreate
from src.domain.task import AssignmentMode
from src.domain.user import UserRole
from src.services import completion_service, room_service, task_service, user_service


pytestmark = pytest.mark.integration


async def test_crud_round_trip(sqlite_db):
    record = await db_client.create_record(collection="users", data={"name": "Alice", "role": "admin"})

    assert record["id"] == "1"
    assert record["coins"] == 0

    updated = await db_client.update_record(collection="users", record_id=record["id"], data={"coins": 7})
    assert updated["coins"] == 7

    found = await db_client.get_first_record(collection="users", filter_query='name = "Alice"')
    assert found is not None
    assert found["id"] == record["id"]

    await db_client.delete_record(collection="users", record_id=record["id"])
    with pytest.raises(db_client.RecordNotFoundError):
        await db_client.get_record(collection="users", record_id=record["id"])


async def test_transaction_rolls_back(sqlite_db):
    with pytest.raises(RuntimeError, match="abort"):
        async with db_client.transaction():
            await db_client.create_record(collection="users", data={"name": "Ghost"})
            raise RuntimeError("abort")

    assert await db_client.list_records(collection="users") == []


async def test_negative_coins_rejected_by_schema(sqlite_db):
    record = await db_client.create_record(collection="users", data={"name": "Alice"})

    with pytest.raises(db_client.DatabaseError):
        await db_client.update_record(collection="users", record_id=record["id"], data={"coins": -1})


async def test_shared_task_completion_flow(sqlite_db, freeze_completion_clock):
    admin = await user_service.create_user(data=UserCreate(name="Alice"))
    kid = await user_service.create_user(data=UserCreate(name="Cleo", role=UserRole.CHILD), acting_user_id=admin.id)
    room = await room_service.create_room(acting_user_id=admin.id, data=RoomCreate(name="Kitchen"))
    task = await task_service.create_task(
        acting_user_id=admin.id,
        data=TaskCreate(
            room_id=room.id,
            name="Dishes",
            effort=2,
            assignment_mode=AssignmentMode.SHARED,
            assignees=[AssigneeInput(user_id=admin.id), AssigneeInput(user_id=kid.id)],
        ),
    )

    first = await completion_service.complete_task(task_id=task.id, acting_user_id=kid.id)
    assert first.state == CompletionState.PARTIALLY_DONE
    assert first.coins_earned == 5
    assert (await task_service.get_task(task.id)).last_completed_at is None

    with pytest.raises(ConflictError) as exc_info:
        await completion_service.complete_task(task_id=task.id, acting_user_id=kid.id)
    assert exc_info.value.reason == ErrorCode.ALREADY_DONE_TODAY

    second = await completion_service.complete_task(task_id=task.id, acting_user_id=admin.id)
    assert second.state == CompletionState.DONE
    assert (await task_service.get_task(task.id)).last_completed_at is not None

    cancelled = await completion_service.cancel_completion(
        completion_id=second.completion.id, acting_user_id=admin.id
    )
    assert cancelled.coins_deducted == 5
    assert cancelled.task_last_completed_at is None
    assert (await task_service.get_task(task.id)).last_completed_at is None
    assert (await user_service.get_user(kid.id)).coins == 5


async def test_write_from_other_task_waits_for_open_transaction(sqlite_db):
    user = await db_client.create_record(collection="users", data={"name": "Alice"})
    updated = asyncio.Event()
    release = asyncio.Event()

    async def failing_transaction():
        async with db_client.transaction():
            await db_client.update_record(collection="users", record_id=user["id"], data={"coins": 99})
            updated.set()
            await release.wait()
            raise RuntimeError("abort")

    async def concurrent_write():
        await updated.wait()
        writer = asyncio.create_task(db_client.create_record(collection="rooms", data={"name": "Kitchen"}))
        await asyncio.sleep(0.05)
        blocked = not writer.done()
        release.set()
        return blocked, await writer

    aborted, (blocked, room) = await asyncio.gather(failing_transaction(), concurrent_write(), return_exceptions=True)

    assert isinstance(aborted, RuntimeError)
    assert blocked
    assert room["name"] == "Kitchen"
    assert (await db_client.get_record(collection="users", record_id=user["id"]))["coins"] == 0
    assert [r["name"] for r in await db_client.list_records(collection="rooms")] == ["Kitchen"]


async def test_duplicate_completion_row_rejected(sqlite_db):
    row = {"task_id": "1", "user_id": "1", "completed_at": "2026-10-14T12:00:00+00:00", "completed_on": "2026-10-14"}
    await db_client.create_record(collection="task_completions", data=row)

    with pytest.raises(db_client.UniqueConstraintError):
        await db_client.create_record(collection="task_completions", data=row)


async def test_same_day_race_maps_to_already_done(sqlite_db, freeze_completion_clock, monkeypatch):
    admin = await user_service.create_user(data=UserCreate(name="Alice"))
    room = await room_service.create_room(acting_user_id=admin.id, data=RoomCreate(name="Kitchen"))
    task = await task_service.create_task(acting_user_id=admin.id, data=TaskCreate(room_id=room.id, name="Dishes"))
    first = await completion_service.complete_task(task_id=task.id, acting_user_id=admin.id)

    async def no_completions(*_args):
        return []

    # Simulates a second request that read the day's rows before the first one committed.
    monkeypatch.setattr(completion_service, "_completions_on", no_completions)

    with pytest.raises(ConflictError) as exc_info:
        await completion_service.complete_task(task_id=task.id, acting_user_id=admin.id)

    assert exc_info.value.reason == ErrorCode.ALREADY_DONE_TODAY
    assert (await user_service.get_user(admin.id)).coins == first.user_coins
    assert len(await db_client.list_records(collection="task_completions")) == 1
