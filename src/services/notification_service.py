"""Notification service: decides what to notify and hands messages to a sender.

Delivery itself is pluggable. The default sender only logs, so the engine
never depends on an external messaging service.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Protocol

from src.core import db_client
from src.core.logging import span
from src.domain.house import NotificationType
from src.models.service_models import AchievementProgress, NotificationEvent, NotificationResult
from src.services import house_config_service, room_service, task_service
from src.services.health_service import compute_due_at


logger = logging.getLogger(__name__)


class NotificationSender(Protocol):
    """Delivers a single notification; returns True when it was accepted."""

    async def send(self, event: NotificationEvent) -> bool: ...


class LoggingNotificationSender:
    """Sender that records the message in the log and performs no delivery."""

    async def send(self, event: NotificationEvent) -> bool:
        logger.info(
            "Notification: %s",
            event.message,
            extra={"type": event.type, "user_id": event.user_id, "task_id": event.task_id},
        )
        return True


default_sender: NotificationSender = LoggingNotificationSender()


async def _achievement_already_notified(user_id: str, achievement_id: str) -> bool:
    record = await db_client.get_first_record(
        collection="user_achievement_notifications",
        filter_query=(
            f'user_id = "{db_client.sanitize_param(user_id)}" '
            f'&& achievement_id = "{db_client.sanitize_param(achievement_id)}"'
        ),
    )
    return record is not None


async def achievement_events_for(user_id: str, progress: Sequence[AchievementProgress]) -> list[NotificationEvent]:
    """Events for achievements that are unlocked and have not been announced yet."""
    events = []
    for achievement in progress:
        if not achievement.unlocked:
            continue
        if await _achievement_already_notified(user_id, achievement.id):
            continue
        events.append(
            NotificationEvent(
                type=NotificationType.ACHIEVEMENT_UNLOCKED,
                user_id=user_id,
                achievement_id=achievement.id,
                message=f"Achievement unlocked: {achievement.title_key}",
            )
        )
    return events


async def dispatch_events(
    events: Sequence[NotificationEvent],
    sender: NotificationSender | None = None,
) -> list[NotificationResult]:
    """Send events whose type is enabled, recording achievement announcements.

    Args:
        events: Events returned by the completion flow
        sender: Delivery collaborator (defaults to the logging sender)

    Returns:
        One NotificationResult per event
    """
    with span("notification_service.dispatch_events"):
        sender = sender or default_sender
        settings_model = await house_config_service.get_notification_settings()

        results = []
        for event in events:
            if not settings_model.is_enabled(event.type):
                results.append(
                    NotificationResult(
                        type=event.type, user_id=event.user_id, success=False, skipped_reason="type_disabled"
                    )
                )
                continue

            is_achievement = event.type == NotificationType.ACHIEVEMENT_UNLOCKED
            if (
                is_achievement
                and event.user_id
                and event.achievement_id
                and await _achievement_already_notified(event.user_id, event.achievement_id)
            ):
                results.append(
                    NotificationResult(
                        type=event.type, user_id=event.user_id, success=False, skipped_reason="already_notified"
                    )
                )
                continue

            try:
                sent = await sender.send(event)
            except Exception as e:
                logger.exception("Notification delivery failed", extra={"type": event.type, "user_id": event.user_id})
                results.append(NotificationResult(type=event.type, user_id=event.user_id, success=False, error=str(e)))
                continue

            if sent and is_achievement:
                await db_client.create_record(
                    collection="user_achievement_notifications",
                    data={"user_id": event.user_id, "achievement_id": event.achievement_id},
                )
            results.append(NotificationResult(type=event.type, user_id=event.user_id, success=sent))

        logger.info(
            "Dispatched %d notifications (%d sent)",
            len(results),
            sum(1 for r in results if r.success),
        )
        return results


async def send_due_task_notifications(
    *,
    now: datetime | None = None,
    sender: NotificationSender | None = None,
) -> list[NotificationResult]:
    """Announce every non-seasonal task that falls due today, once per due date.

    Args:
        now: Override for the current time
        sender: Delivery collaborator (defaults to the logging sender)

    Returns:
        One NotificationResult per task announced in this run
    """
    with span("notification_service.send_due_task_notifications"):
        if not await house_config_service.is_notification_type_enabled(NotificationType.TASK_DUE):
            logger.info("Due-task notifications disabled, skipping scan")
            return []

        sender = sender or default_sender
        now = now or datetime.now(UTC)
        today = now.date().isoformat()
        vacation = await house_config_service.get_vacation_state()
        room_names = {room.id: room.name for room in await room_service.list_rooms()}

        results = []
        for task in await task_service.list_tasks():
            if task.is_seasonal:
                continue
            if compute_due_at(task, vacation, now=now).date().isoformat() != today:
                continue

            already_sent = await db_client.get_first_record(
                collection="task_due_notifications",
                filter_query=f'task_id = "{task.id}" && due_date = "{today}"',
            )
            if already_sent is not None:
                continue

            room_name = room_names.get(task.room_id)
            event = NotificationEvent(
                type=NotificationType.TASK_DUE,
                task_id=task.id,
                message=f'Task due today: "{task.name}"' + (f" ({room_name})" if room_name else "") + ".",
            )
            try:
                sent = await sender.send(event)
            except Exception as e:
                logger.exception("Due-task notification failed", extra={"task_id": task.id})
                results.append(NotificationResult(type=event.type, success=False, error=str(e)))
                continue

            if sent:
                await db_client.create_record(
                    collection="task_due_notifications",
                    data={"task_id": task.id, "due_date": today},
                )
            results.append(NotificationResult(type=event.type, success=sent))

        logger.info("Due-task scan finished", extra={"notified": sum(1 for r in results if r.success)})
        return results
