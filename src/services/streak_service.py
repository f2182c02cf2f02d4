"""Daily completion streaks with gap forgiveness.

A missed day only breaks a streak if something was actually due that day;
a user who had nothing to do keeps their streak.
"""

import logging
from collections.abc import Iterator, Sequence
from datetime import UTC, date, datetime, time, timedelta

from src.core.config import Constants
from src.domain.house import VacationState
from src.domain.task import Task
from src.domain.user import User
from src.models.service_models import StreakUpdate
from src.services.health_service import compute_due_at, compute_health


logger = logging.getLogger(__name__)


def end_of_day(day: date) -> datetime:
    """Last instant of a UTC calendar day."""
    return datetime.combine(day, time.max, tzinfo=UTC)


def iter_gap_days(last_active: date, today: date) -> Iterator[date]:
    """Days strictly after ``last_active`` up to and including yesterday."""
    day = last_active + timedelta(days=1)
    while day < today:
        yield day
        day += timedelta(days=1)


def had_due_task_on(day: date, tasks: Sequence[Task], vacation: VacationState | None = None) -> bool:
    """Return True if any non-seasonal task was due and not fresh by the end of ``day``."""
    cutoff = end_of_day(day)
    for task in tasks:
        if task.is_seasonal:
            continue
        if compute_due_at(task, vacation, now=cutoff) > cutoff:
            continue
        if compute_health(task.last_completed_at, task.frequency_days, vacation, now=cutoff) < Constants.MAX_HEALTH:
            return True
    return False


def advance_streak(
    user: User,
    completed_at: datetime,
    tasks: Sequence[Task],
    vacation: VacationState | None = None,
) -> StreakUpdate:
    """Work out a user's streak after a completion at ``completed_at``.

    Args:
        user: User being credited (current streak and last active day)
        completed_at: Instant of the qualifying completion
        tasks: Household tasks as they stood before the completion
        vacation: Global vacation state; while active the streak is frozen

    Returns:
        StreakUpdate with the new streak and last active day
    """
    unchanged = StreakUpdate(
        current_streak=user.current_streak,
        last_active_date=user.last_active_date,
        changed=False,
    )

    if vacation is not None and vacation.is_active_at(completed_at):
        return unchanged

    today = completed_at.astimezone(UTC).date()
    last_active = user.last_active_date

    if last_active is None:
        streak = 1
    elif last_active >= today:
        return unchanged
    elif last_active == today - timedelta(days=1):
        streak = user.current_streak + 1
    elif any(had_due_task_on(day, tasks, vacation) for day in iter_gap_days(last_active, today)):
        streak = 1
    else:
        logger.debug("streak_gap_forgiven", extra={"user_id": user.id, "last_active_date": str(last_active)})
        streak = user.current_streak + 1

    return StreakUpdate(current_streak=streak, last_active_date=today, changed=True)
