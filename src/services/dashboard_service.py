"""Dashboard assembly: room and house health plus today's quests."""

import logging
from collections import defaultdict
from datetime import UTC, datetime

from src.core.config import Constants
from src.core.logging import span
from src.domain.task import Task
from src.models.service_models import Dashboard, RoomHealthSummary
from src.services import house_config_service, room_service, task_service
from src.services.health_service import compute_house_health, list_due_and_upcoming, task_health, weighted_health


logger = logging.getLogger(__name__)


async def get_dashboard(*, now: datetime | None = None) -> Dashboard:
    """Build the household overview.

    Vacation state is read once and passed to every computation.

    Args:
        now: Evaluation instant (defaults to the current UTC time)

    Returns:
        Dashboard with per-room health, house health and quest lists
    """
    with span("dashboard_service.get_dashboard"):
        now = now or datetime.now(UTC)
        vacation = await house_config_service.get_vacation_state()
        rooms = await room_service.list_rooms()
        tasks = await task_service.list_tasks()

        tasks_by_room: dict[str, list[Task]] = defaultdict(list)
        for task in tasks:
            tasks_by_room[task.room_id].append(task)

        summaries = []
        for room in rooms:
            entries = [task_health(task, vacation, now=now) for task in tasks_by_room[room.id]]
            summaries.append(
                RoomHealthSummary(
                    room_id=room.id,
                    name=room.name,
                    health=weighted_health(entries),
                    critical_count=sum(1 for e in entries if e.health < Constants.CRITICAL_HEALTH_THRESHOLD),
                    assigned_user_id=room.assigned_user_id,
                    tasks=entries,
                )
            )

        schedule = list_due_and_upcoming(tasks, vacation, now=now, limit=Constants.DASHBOARD_QUEST_LIMIT)

        logger.info("Built dashboard", extra={"rooms": len(rooms), "tasks": len(tasks)})
        return Dashboard(
            house_health=compute_house_health(tasks, vacation, now=now),
            rooms=summaries,
            todays_quests=schedule.today,
            next_tasks=schedule.upcoming,
            vacation=vacation,
        )
