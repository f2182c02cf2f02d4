"""Completion state machine: completing tasks and cancelling completions.

Each mutation runs as a single ``db_client.transaction()`` so the
"already done today" check and the insert cannot race. Achievement
evaluation happens after commit and only produces notification events.
"""

import logging
from datetime import UTC, datetime
from typing import assert_never

from src.core import db_client
from src.core.config import Constants
from src.core.errors import ConflictError, ErrorCode, NotFoundError, PermissionDeniedError
from src.core.logging import log_with_user_context, span
from src.domain.completion import CompletionState, TaskCompletion
from src.domain.room import Room
from src.domain.task import CustomSplit, FirstCome, SharedSplit, Task
from src.models.service_models import CancellationResult, CompletionResult, NotificationEvent
from src.services import (
    achievement_service,
    assignment_service,
    coin_service,
    house_config_service,
    notification_service,
    room_service,
    streak_service,
    task_service,
    user_service,
)


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


async def _completions_on(task_id: str, day: str) -> list[TaskCompletion]:
    records = await db_client.list_records(
        collection="task_completions",
        filter_query=f'task_id = "{db_client.sanitize_param(task_id)}" && completed_on = "{day}"',
        per_page=Constants.MAX_RECORDS_PER_QUERY,
    )
    return [TaskCompletion.model_validate(record) for record in records]


async def _room_or_none(room_id: str) -> Room | None:
    try:
        return await room_service.get_room(room_id)
    except NotFoundError:
        logger.warning("Task room missing, treating as unassigned", extra={"room_id": room_id})
        return None


def next_last_completed_at(task: Task, state: CompletionState, now: datetime) -> datetime | None:
    """New decay anchor for ``task`` after a completion at ``now``.

    First mode always resets the anchor. Shared and custom modes only reset
    it once the day is fully done, so a partially done task stays due.
    """
    policy = task.policy
    match policy:
        case FirstCome():
            return now
        case SharedSplit() | CustomSplit():
            return now if state == CompletionState.DONE else task.last_completed_at
        case _:
            assert_never(policy)


async def _achievement_events(user_id: str, now: datetime) -> list[NotificationEvent]:
    try:
        progress = await achievement_service.get_achievements_for_user(user_id, now=now)
        return await notification_service.achievement_events_for(user_id, progress)
    except Exception:
        logger.exception("Achievement evaluation failed after completion", extra={"user_id": user_id})
        return []


async def complete_task(
    *,
    task_id: str,
    acting_user_id: str,
    on_behalf_of_user_id: str | None = None,
) -> CompletionResult:
    """Mark a task done for the acting user or, for overseers, on behalf of someone.

    Args:
        task_id: Task being completed
        acting_user_id: User making the request
        on_behalf_of_user_id: Target user; only admins and members may set it

    Returns:
        CompletionResult with the stored completion, coins and events to notify

    Raises:
        NotFoundError: If the task or a user does not exist
        PermissionDeniedError: ``on_behalf_not_allowed`` or ``not_assigned``
        ConflictError: ``already_done_today`` or ``already_done_by_other``
    """
    with span("completion_service.complete_task"):
        acting_user = await user_service.get_user(acting_user_id)
        target_id = on_behalf_of_user_id or acting_user_id
        if target_id != acting_user_id and not acting_user.role.is_privileged:
            raise PermissionDeniedError(
                ErrorCode.ON_BEHALF_NOT_ALLOWED,
                "Only admins and members can complete tasks for someone else",
            )

        now = _utcnow()
        today = now.date().isoformat()

        async with db_client.transaction():
            target = await user_service.get_user(target_id)
            task = await task_service.get_task(task_id)
            room = await _room_or_none(task.room_id)
            child_ids = await user_service.list_child_ids() if task.assigned_to_children else []
            effective = assignment_service.resolve_effective_assignees(task, room, child_ids)
            completions_today = await _completions_on(task_id, today)

            if any(completion.user_id == target_id for completion in completions_today):
                raise ConflictError(ErrorCode.ALREADY_DONE_TODAY, "You already completed this task today")
            if isinstance(task.policy, FirstCome) and completions_today:
                raise ConflictError(ErrorCode.ALREADY_DONE_BY_OTHER, "Someone else already completed this task today")
            if not assignment_service.can_complete(task, room, target, child_ids):
                raise PermissionDeniedError(ErrorCode.NOT_ASSIGNED, "This task is assigned to someone else")

            vacation = await house_config_service.get_vacation_state()
            coin_policy = await coin_service.get_coin_policy()
            tasks_before = await task_service.list_tasks()

            total = coin_service.coins_for_effort(task.effort, coin_policy)
            coins = coin_service.split_coins(total, task.policy, user_id=target_id, effective=effective)

            try:
                record = await db_client.create_record(
                    collection="task_completions",
                    data={
                        "task_id": task_id,
                        "user_id": target_id,
                        "completed_at": now.isoformat(),
                        "completed_on": today,
                        "coins_earned": coins,
                        "previous_last_completed_at": task.last_completed_at,
                    },
                )
            except db_client.UniqueConstraintError as e:
                raise ConflictError(ErrorCode.ALREADY_DONE_TODAY, "You already completed this task today") from e
            completion = TaskCompletion.model_validate(record)

            state = assignment_service.completion_state(task, effective, [*completions_today, completion])
            last_completed_at = next_last_completed_at(task, state, now)
            if last_completed_at != task.last_completed_at:
                await db_client.update_record(
                    collection="tasks",
                    record_id=task_id,
                    data={"last_completed_at": last_completed_at},
                )
                record = await db_client.update_record(
                    collection="task_completions",
                    record_id=completion.id,
                    data={"moved_anchor": True},
                )
                completion = TaskCompletion.model_validate(record)

            streak = streak_service.advance_streak(target, now, tasks_before, vacation)
            user_changes: dict = {"coins": target.coins + coins}
            if streak.changed:
                user_changes["current_streak"] = streak.current_streak
                user_changes["last_active_date"] = streak.last_active_date
            await db_client.update_record(collection="users", record_id=target_id, data=user_changes)

        log_with_user_context(
            logger,
            "info",
            "Task completed",
            user_id=target_id,
            task_id=task_id,
            acting_user_id=acting_user_id,
            coins=coins,
            state=state,
        )

        events = await _achievement_events(target_id, now)

        return CompletionResult(
            completion=completion,
            coins_earned=coins,
            user_coins=target.coins + coins,
            current_streak=streak.current_streak,
            state=state,
            task_last_completed_at=last_completed_at,
            events=events,
        )


async def _restore_anchor(completion: TaskCompletion) -> datetime | None:
    """Undo the anchor change made by a deleted ``completion``; returns the task's anchor.

    Later completions that recorded this completion's timestamp as their
    previous anchor inherit its own previous anchor instead.
    """
    remaining = await db_client.list_records(
        collection="task_completions",
        filter_query=f'task_id = "{db_client.sanitize_param(completion.task_id)}"',
        per_page=Constants.MAX_RECORDS_PER_QUERY,
    )
    for row in remaining:
        later = TaskCompletion.model_validate(row)
        if later.previous_last_completed_at == completion.completed_at:
            await db_client.update_record(
                collection="task_completions",
                record_id=later.id,
                data={"previous_last_completed_at": completion.previous_last_completed_at},
            )

    try:
        task = await task_service.get_task(completion.task_id)
    except NotFoundError:
        logger.warning("Cancelled completion for a deleted task", extra={"task_id": completion.task_id})
        return None

    if not completion.moved_anchor or task.last_completed_at != completion.completed_at:
        return task.last_completed_at

    await db_client.update_record(
        collection="tasks",
        record_id=task.id,
        data={"last_completed_at": completion.previous_last_completed_at},
    )
    return completion.previous_last_completed_at


async def cancel_completion(*, completion_id: str, acting_user_id: str) -> CancellationResult:
    """Undo a completion (admin only).

    The recorded coins are deducted (never below zero) and the row is deleted.
    If this completion set the task's current decay anchor, the anchor goes
    back to its value from before the completion. Streaks are left untouched.

    Raises:
        PermissionDeniedError: If the acting user is not an admin
        NotFoundError: If the completion does not exist
    """
    with span("completion_service.cancel_completion"):
        await user_service.require_admin(acting_user_id)

        async with db_client.transaction():
            try:
                record = await db_client.get_record(collection="task_completions", record_id=completion_id)
            except KeyError as e:
                raise NotFoundError(ErrorCode.COMPLETION_NOT_FOUND, f"Completion not found: {completion_id}") from e
            completion = TaskCompletion.model_validate(record)

            user = await user_service.get_user(completion.user_id)
            balance = max(0, user.coins - completion.coins_earned)
            await db_client.update_record(collection="users", record_id=user.id, data={"coins": balance})

            await db_client.delete_record(collection="task_completions", record_id=completion_id)

            last_completed_at = await _restore_anchor(completion)

        log_with_user_context(
            logger,
            "info",
            "Completion cancelled",
            user_id=completion.user_id,
            completion_id=completion_id,
            coins_deducted=user.coins - balance,
        )

        return CancellationResult(
            completion_id=completion_id,
            task_id=completion.task_id,
            user_id=completion.user_id,
            coins_deducted=user.coins - balance,
            user_coins=balance,
            task_last_completed_at=last_completed_at,
        )
