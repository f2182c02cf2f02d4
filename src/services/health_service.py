"""Task health decay and its aggregation into room and house health.

Everything here is pure: results depend only on the arguments and the
supplied ``now``. Vacation state is always passed in explicitly.
"""

import math
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from src.core.config import Constants
from src.domain.house import VacationState
from src.domain.task import Task
from src.models.service_models import DueSchedule, TaskHealth


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return math.floor(value + 0.5)


def effective_frequency_days(frequency_days: float) -> float:
    """Frequency used for decay, defaulting junk values and honouring the one-hour floor."""
    if not math.isfinite(frequency_days) or frequency_days <= 0:
        frequency_days = Constants.DEFAULT_FREQUENCY_DAYS
    return max(Constants.MIN_FREQUENCY_DAYS, frequency_days)


def compute_health(
    last_completed_at: datetime | None,
    frequency_days: float,
    vacation: VacationState | None = None,
    *,
    now: datetime | None = None,
) -> int:
    """Compute the 0-100 health of a recurring task.

    Health decays linearly from 100 at completion to 0 once one full period
    has elapsed. While vacation is active, elapsed time is frozen at the
    vacation start.

    Args:
        last_completed_at: Anchor of the decay, None if never completed
        frequency_days: Recurrence interval in days
        vacation: Global vacation state, None when unknown/off
        now: Evaluation instant (defaults to the current UTC time)

    Returns:
        Integer health between 0 and 100
    """
    if last_completed_at is None:
        return Constants.MIN_HEALTH

    now = now or datetime.now(UTC)
    effective_now = vacation.effective_now(now) if vacation else now

    elapsed_ms = max(0.0, (effective_now - last_completed_at).total_seconds() * 1000)
    period_ms = effective_frequency_days(frequency_days) * Constants.MS_PER_DAY
    raw = Constants.MAX_HEALTH * (1 - elapsed_ms / period_ms)

    return min(Constants.MAX_HEALTH, max(Constants.MIN_HEALTH, round_half_up(raw)))


def compute_due_at(task: Task, vacation: VacationState | None = None, *, now: datetime | None = None) -> datetime:
    """Instant at which the task becomes fully due.

    Never-completed tasks are due immediately. Time spent on an active
    vacation pushes the due date back by the same amount.
    """
    now = now or datetime.now(UTC)
    if task.last_completed_at is None:
        return now

    paused = now - vacation.effective_now(now) if vacation else timedelta(0)
    return task.last_completed_at + timedelta(days=effective_frequency_days(task.frequency_days)) + paused


def task_health(task: Task, vacation: VacationState | None = None, *, now: datetime | None = None) -> TaskHealth:
    """Build the health snapshot of a single task."""
    now = now or datetime.now(UTC)
    due_at = compute_due_at(task, vacation, now=now)
    return TaskHealth(
        task_id=task.id,
        room_id=task.room_id,
        name=task.name,
        health=compute_health(task.last_completed_at, task.frequency_days, vacation, now=now),
        effort=task.effort,
        is_seasonal=task.is_seasonal,
        due_at=due_at,
        due_in_days=(due_at.date() - now.date()).days,
    )


def weighted_health(entries: Sequence[TaskHealth]) -> int:
    """Effort-weighted average health.

    Seasonal tasks are ignored whenever at least one non-seasonal task is
    present. An empty set is vacuously healthy (100).
    """
    non_seasonal = [entry for entry in entries if not entry.is_seasonal]
    eligible = non_seasonal or list(entries)

    total_effort = sum(entry.effort for entry in eligible)
    if total_effort <= 0:
        return Constants.MAX_HEALTH

    return round_half_up(sum(entry.health * entry.effort for entry in eligible) / total_effort)


def compute_room_health(
    tasks: Sequence[Task],
    vacation: VacationState | None = None,
    *,
    now: datetime | None = None,
) -> int:
    """Health of a room from the tasks it owns."""
    now = now or datetime.now(UTC)
    return weighted_health([task_health(task, vacation, now=now) for task in tasks])


def compute_house_health(
    tasks: Sequence[Task],
    vacation: VacationState | None = None,
    *,
    now: datetime | None = None,
) -> int:
    """Health of the whole house across the union of every room's tasks."""
    return compute_room_health(tasks, vacation, now=now)


def _urgency_key(entry: TaskHealth) -> tuple[int, int]:
    return (entry.due_in_days, entry.health)


def list_due_and_upcoming(
    tasks: Sequence[Task],
    vacation: VacationState | None = None,
    *,
    now: datetime | None = None,
    limit: int | None = None,
) -> DueSchedule:
    """Split non-seasonal tasks into today's quests and next tasks.

    A task belongs to today's quests when its due date falls on the current
    UTC day or earlier. Both lists are ordered most overdue first, then least
    healthy first.

    Args:
        tasks: Tasks to classify (seasonal tasks are skipped)
        vacation: Global vacation state
        now: Evaluation instant (defaults to the current UTC time)
        limit: Optional cap applied to each list after sorting

    Returns:
        DueSchedule with ``today`` and ``upcoming`` lists
    """
    now = now or datetime.now(UTC)
    entries = [task_health(task, vacation, now=now) for task in tasks if not task.is_seasonal]

    today = sorted((e for e in entries if e.due_in_days <= 0), key=_urgency_key)
    upcoming = sorted((e for e in entries if e.due_in_days > 0), key=_urgency_key)

    if limit is not None:
        today, upcoming = today[:limit], upcoming[:limit]

    return DueSchedule(today=today, upcoming=upcoming)
