"""Task service for task definitions, assignees and write-time validation."""

import logging
import math
from collections import defaultdict
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from src.core import db_client
from src.core.config import Constants
from src.core.errors import ErrorCode, InvalidInputError, NotFoundError
from src.core.logging import span
from src.domain.create_models import AssigneeInput, TaskCreate
from src.domain.task import AssignmentMode, Task, TaskAssignee
from src.domain.update_models import TaskUpdate
from src.services import room_service, user_service


logger = logging.getLogger(__name__)


def validate_frequency(frequency_days: float | None) -> float:
    """Return a usable frequency, defaulting to 7 days.

    Raises:
        InvalidInputError: If the value is not finite or below the one-hour floor
    """
    if frequency_days is None:
        return Constants.DEFAULT_FREQUENCY_DAYS
    if not math.isfinite(frequency_days) or frequency_days < Constants.MIN_FREQUENCY_DAYS:
        raise InvalidInputError(
            ErrorCode.INVALID_FREQUENCY,
            f"frequency_days must be at least {Constants.MIN_FREQUENCY_DAYS:.4f} (one hour)",
        )
    return float(frequency_days)


def validate_effort(effort: int | None) -> int:
    """Return a usable effort, defaulting to 1.

    Raises:
        InvalidInputError: If effort is outside 1-5
    """
    if effort is None:
        return Constants.DEFAULT_EFFORT
    if not Constants.MIN_EFFORT <= effort <= Constants.MAX_EFFORT:
        raise InvalidInputError(ErrorCode.INVALID_EFFORT, "effort must be between 1 and 5")
    return effort


def validate_assignees(mode: AssignmentMode, assignees: Sequence[AssigneeInput]) -> list[AssigneeInput]:
    """Check the assignee list against the assignment mode.

    Custom mode needs a positive percentage for every assignee, summing to
    exactly 100. Other modes carry no percentages.

    Raises:
        InvalidInputError: On too many participants, duplicates or bad percentages
    """
    if len(assignees) > Constants.MAX_TASK_PARTICIPANTS:
        raise InvalidInputError(
            ErrorCode.TOO_MANY_PARTICIPANTS,
            f"A task can have at most {Constants.MAX_TASK_PARTICIPANTS} assignees",
        )

    user_ids = [assignee.user_id for assignee in assignees]
    if len(set(user_ids)) != len(user_ids):
        raise InvalidInputError(ErrorCode.DUPLICATE_ASSIGNEE, "Each user can only be assigned once")

    if mode != AssignmentMode.CUSTOM:
        return [AssigneeInput(user_id=assignee.user_id, coin_percentage=0) for assignee in assignees]

    if not assignees:
        return []

    percentages = [assignee.coin_percentage for assignee in assignees]
    if any(pct is None or pct <= 0 for pct in percentages):
        raise InvalidInputError(ErrorCode.INVALID_PERCENTAGES, "Every custom assignee needs a positive percentage")
    if sum(pct for pct in percentages if pct is not None) != Constants.PERCENTAGE_TOTAL:
        raise InvalidInputError(ErrorCode.INVALID_PERCENTAGES, "Custom percentages must sum to exactly 100")
    return list(assignees)


def last_completed_for_health(health: int, frequency_days: float, *, now: datetime) -> datetime:
    """Synthetic completion anchor that makes a task report ``health`` at ``now``.

    Raises:
        InvalidInputError: If health is outside 0-100
    """
    if not Constants.MIN_HEALTH <= health <= Constants.MAX_HEALTH:
        raise InvalidInputError(ErrorCode.INVALID_HEALTH, "health must be between 0 and 100")
    if health >= Constants.MAX_HEALTH:
        return now
    days_since = (Constants.MAX_HEALTH - health) / Constants.MAX_HEALTH * frequency_days
    return now - timedelta(days=days_since)


async def _ensure_users_exist(user_ids: Sequence[str]) -> None:
    for user_id in user_ids:
        try:
            await user_service.get_user(user_id)
        except NotFoundError as e:
            raise InvalidInputError(ErrorCode.UNKNOWN_USER, f"Unknown user: {user_id}") from e


async def _load_assignees(task_id: str | None = None) -> dict[str, list[TaskAssignee]]:
    filter_query = f'task_id = "{db_client.sanitize_param(task_id)}"' if task_id else ""
    records = await db_client.list_records(
        collection="task_assignees",
        filter_query=filter_query,
        per_page=Constants.MAX_RECORDS_PER_QUERY,
    )
    grouped: dict[str, list[TaskAssignee]] = defaultdict(list)
    for record in records:
        grouped[record["task_id"]].append(TaskAssignee.model_validate(record))
    return grouped


async def _replace_assignees(task_id: str, assignees: Sequence[AssigneeInput]) -> None:
    existing = await db_client.list_records(
        collection="task_assignees",
        filter_query=f'task_id = "{db_client.sanitize_param(task_id)}"',
        per_page=Constants.MAX_RECORDS_PER_QUERY,
    )
    for record in existing:
        await db_client.delete_record(collection="task_assignees", record_id=record["id"])

    for assignee in assignees:
        await db_client.create_record(
            collection="task_assignees",
            data={
                "task_id": task_id,
                "user_id": assignee.user_id,
                "coin_percentage": assignee.coin_percentage or 0,
            },
        )


async def get_task(task_id: str) -> Task:
    """Fetch a task with its assignees.

    Raises:
        NotFoundError: If the task does not exist
    """
    try:
        record = await db_client.get_record(collection="tasks", record_id=task_id)
    except KeyError as e:
        raise NotFoundError(ErrorCode.TASK_NOT_FOUND, f"Task not found: {task_id}") from e

    assignees = await _load_assignees(task_id)
    return Task.model_validate({**record, "assignees": assignees.get(record["id"], [])})


async def list_tasks(*, room_id: str | None = None) -> list[Task]:
    """List tasks (optionally for one room) with their assignees."""
    filter_query = f'room_id = "{db_client.sanitize_param(room_id)}"' if room_id else ""
    records = await db_client.list_records(
        collection="tasks",
        filter_query=filter_query,
        per_page=Constants.MAX_RECORDS_PER_QUERY,
    )
    assignees = await _load_assignees()
    return [Task.model_validate({**record, "assignees": assignees.get(record["id"], [])}) for record in records]


async def create_task(*, acting_user_id: str, data: TaskCreate, now: datetime | None = None) -> Task:
    """Create a task (admin only) after validating every field.

    Args:
        acting_user_id: Admin creating the task
        data: Task definition
        now: Override for the current time (used for the health anchor)

    Returns:
        The created Task

    Raises:
        PermissionDeniedError: If the acting user is not an admin
        NotFoundError: If the room does not exist
        InvalidInputError: If frequency, effort, health or assignees are invalid
    """
    with span("task_service.create_task"):
        await user_service.require_admin(acting_user_id)
        await room_service.get_room(data.room_id)

        frequency_days = validate_frequency(data.frequency_days)
        effort = validate_effort(data.effort)
        assignees = validate_assignees(data.assignment_mode, data.assignees)
        await _ensure_users_exist([assignee.user_id for assignee in assignees])

        last_completed_at = None
        if data.health is not None:
            last_completed_at = last_completed_for_health(
                data.health, frequency_days, now=now or datetime.now(UTC)
            ).isoformat()

        async with db_client.transaction():
            record = await db_client.create_record(
                collection="tasks",
                data={
                    "room_id": data.room_id,
                    "name": data.name,
                    "notes": data.notes,
                    "frequency_days": frequency_days,
                    "effort": effort,
                    "is_seasonal": data.is_seasonal,
                    "last_completed_at": last_completed_at,
                    "assignment_mode": data.assignment_mode,
                    "assigned_to_children": data.assigned_to_children,
                },
            )
            await _replace_assignees(record["id"], assignees)

        logger.info("Created task", extra={"task_id": record["id"], "room_id": data.room_id, "user_id": acting_user_id})
        return await get_task(record["id"])


async def update_task(
    *,
    acting_user_id: str,
    task_id: str,
    data: TaskUpdate,
    now: datetime | None = None,
) -> Task:
    """Apply a partial update to a task (admin only).

    Assignees are validated against the resulting assignment mode, so
    switching to custom mode without supplying percentages is rejected.

    Raises:
        PermissionDeniedError: If the acting user is not an admin
        NotFoundError: If the task or target room does not exist
        InvalidInputError: If any supplied value is invalid
    """
    with span("task_service.update_task"):
        await user_service.require_admin(acting_user_id)
        task = await get_task(task_id)

        changes: dict[str, Any] = data.model_dump(exclude_unset=True, exclude={"assignees", "health"})
        if "room_id" in changes:
            await room_service.get_room(changes["room_id"])
        if "frequency_days" in changes:
            changes["frequency_days"] = validate_frequency(changes["frequency_days"])
        if "effort" in changes:
            changes["effort"] = validate_effort(changes["effort"])

        mode = changes.get("assignment_mode") or task.assignment_mode
        requested = data.assignees
        if requested is None:
            requested = [AssigneeInput(user_id=a.user_id, coin_percentage=a.coin_percentage) for a in task.assignees]
        assignees = validate_assignees(mode, requested)
        if data.assignees is not None:
            await _ensure_users_exist([assignee.user_id for assignee in assignees])

        if data.health is not None:
            frequency_days = changes.get("frequency_days", task.frequency_days)
            changes["last_completed_at"] = last_completed_for_health(
                data.health, frequency_days, now=now or datetime.now(UTC)
            ).isoformat()

        async with db_client.transaction():
            if changes:
                await db_client.update_record(collection="tasks", record_id=task_id, data=changes)
            if data.assignees is not None or "assignment_mode" in changes:
                await _replace_assignees(task_id, assignees)

        logger.info("Updated task", extra={"task_id": task_id, "fields": sorted(changes)})
        return await get_task(task_id)


async def delete_task(*, acting_user_id: str, task_id: str) -> None:
    """Delete a task (admin only); assignees and completions cascade."""
    with span("task_service.delete_task"):
        await user_service.require_admin(acting_user_id)
        try:
            await db_client.delete_record(collection="tasks", record_id=task_id)
        except KeyError as e:
            raise NotFoundError(ErrorCode.TASK_NOT_FOUND, f"Task not found: {task_id}") from e
        logger.info("Deleted task", extra={"task_id": task_id, "user_id": acting_user_id})
