"""Room service for room metadata and room-level assignment."""

import logging

from src.core import db_client
from src.core.config import Constants
from src.core.errors import ConflictError, ErrorCode, NotFoundError
from src.core.logging import span
from src.domain.create_models import RoomCreate
from src.domain.room import Room
from src.services import user_service


logger = logging.getLogger(__name__)


async def get_room(room_id: str) -> Room:
    """Fetch a room by ID.

    Raises:
        NotFoundError: If the room does not exist
    """
    try:
        record = await db_client.get_record(collection="rooms", record_id=room_id)
    except KeyError as e:
        raise NotFoundError(ErrorCode.ROOM_NOT_FOUND, f"Room not found: {room_id}") from e
    return Room.model_validate(record)


async def list_rooms() -> list[Room]:
    """List every room in dashboard order."""
    records = await db_client.list_records(
        collection="rooms",
        sort="sort_order ASC",
        per_page=Constants.DEFAULT_PER_PAGE_LIMIT,
    )
    return [Room.model_validate(record) for record in records]


async def create_room(*, acting_user_id: str, data: RoomCreate) -> Room:
    """Create a room (admin only)."""
    with span("room_service.create_room"):
        await user_service.require_admin(acting_user_id)
        record = await db_client.create_record(
            collection="rooms",
            data={
                "name": data.name,
                "room_type": data.room_type,
                "color": data.color,
                "sort_order": data.sort_order,
                "assigned_user_id": None,
            },
        )
        logger.info("Created room", extra={"room_id": record["id"], "user_id": acting_user_id})
        return Room.model_validate(record)


async def _conflicting_assignee_rows(room_id: str, user_id: str) -> list[dict]:
    tasks = await db_client.list_records(
        collection="tasks",
        filter_query=f'room_id = "{db_client.sanitize_param(room_id)}"',
        per_page=Constants.MAX_RECORDS_PER_QUERY,
    )
    conflicts: list[dict] = []
    for task in tasks:
        rows = await db_client.list_records(
            collection="task_assignees",
            filter_query=f'task_id = "{task["id"]}"',
            per_page=Constants.MAX_TASK_PARTICIPANTS,
        )
        conflicts.extend(row for row in rows if row["user_id"] != user_id)
    return conflicts


async def set_room_assignee(
    *,
    acting_user_id: str,
    room_id: str,
    user_id: str | None,
    force: bool = False,
) -> Room:
    """Assign a room to a single user, or clear the assignment (admin only).

    A room assignee overrides every task-level assignee in the room. If any
    task in the room names someone else, the change is refused unless
    ``force`` is set, in which case those task-level rows are removed.

    Args:
        acting_user_id: Admin performing the change
        room_id: Room to update
        user_id: New room assignee, or None to clear
        force: Drop conflicting task-level assignees instead of failing

    Returns:
        The updated Room

    Raises:
        PermissionDeniedError: If the acting user is not an admin
        NotFoundError: If the room or user does not exist
        ConflictError: If task-level assignees conflict and force is not set
    """
    with span("room_service.set_room_assignee"):
        await user_service.require_admin(acting_user_id)
        await get_room(room_id)

        async with db_client.transaction():
            if user_id is not None:
                await user_service.get_user(user_id)
                conflicts = await _conflicting_assignee_rows(room_id, user_id)
                if conflicts and not force:
                    raise ConflictError(
                        ErrorCode.ROOM_ASSIGNMENT_CONFLICT,
                        f"{len(conflicts)} task assignment(s) in this room name other users",
                    )
                for row in conflicts:
                    await db_client.delete_record(collection="task_assignees", record_id=row["id"])
                if conflicts:
                    logger.info(
                        "Removed conflicting task assignees",
                        extra={"room_id": room_id, "removed": len(conflicts)},
                    )

            record = await db_client.update_record(
                collection="rooms",
                record_id=room_id,
                data={"assigned_user_id": user_id},
            )

        logger.info("Room assignee set", extra={"room_id": room_id, "assigned_user_id": user_id})
        return Room.model_validate(record)
