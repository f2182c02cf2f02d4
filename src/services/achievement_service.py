"""Achievement evaluation from live statistics.

Eligibility is never stored: statistics are re-derived from raw completion
rows every time and compared against the static ``ACHIEVEMENTS`` table.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel

from src.core import db_client
from src.core.config import Constants
from src.core.logging import span
from src.domain.completion import TaskCompletion
from src.domain.house import VacationState
from src.domain.task import Task
from src.domain.user import User
from src.models.service_models import AchievementProgress, AchievementStats
from src.services import house_config_service, task_service, user_service
from src.services.health_service import compute_room_health, round_half_up


logger = logging.getLogger(__name__)

SATURDAY = 5


class AchievementMetric(StrEnum):
    """Statistic an achievement threshold is compared against."""

    COMPLETIONS = "completions"
    STREAK = "streak"
    COINS = "coins"
    ROOMS_CLEAN = "rooms_clean"
    WEEKLY_TASKS = "weekly_tasks"
    WEEKEND_TASKS = "weekend_tasks"
    PERFECT_WEEKS = "perfect_weeks"


class AchievementDefinition(BaseModel):
    """Static (metric, threshold) pair plus display keys."""

    id: str
    metric: AchievementMetric
    threshold: int
    title_key: str
    desc_key: str
    icon: str


def _achievement(
    achievement_id: str, metric: AchievementMetric, threshold: int, key: str, icon: str
) -> AchievementDefinition:
    return AchievementDefinition(
        id=achievement_id,
        metric=metric,
        threshold=threshold,
        title_key=f"achievements.{key}",
        desc_key=f"achievements.{key}Desc",
        icon=icon,
    )


ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    # Getting started
    _achievement("first_task", AchievementMetric.COMPLETIONS, 1, "firstStep", "spark"),
    _achievement("helper_10", AchievementMetric.COMPLETIONS, 10, "helper", "star"),
    _achievement("busy_bee_25", AchievementMetric.COMPLETIONS, 25, "busyBee", "broom"),
    _achievement("cleaning_hero_50", AchievementMetric.COMPLETIONS, 50, "cleaningHero", "shield"),
    _achievement("chore_champion_100", AchievementMetric.COMPLETIONS, 100, "choreChampion", "crown"),
    _achievement("tidyquest_legend_250", AchievementMetric.COMPLETIONS, 250, "legend", "diamond"),
    _achievement("unstoppable_500", AchievementMetric.COMPLETIONS, 500, "unstoppable", "rocket"),
    # Streaks
    _achievement("streak_3", AchievementMetric.STREAK, 3, "onFire", "fire"),
    _achievement("streak_7", AchievementMetric.STREAK, 7, "streakMaster", "fire"),
    _achievement("streak_14", AchievementMetric.STREAK, 14, "twoWeekWarrior", "fire"),
    _achievement("streak_30", AchievementMetric.STREAK, 30, "monthlyMachine", "crown"),
    _achievement("streak_100", AchievementMetric.STREAK, 100, "centurion", "diamond"),
    _achievement("streak_60_night_owl", AchievementMetric.STREAK, 60, "nightOwl", "rocket"),
    # Coins
    _achievement("coins_50", AchievementMetric.COINS, 50, "piggyBank", "coin"),
    _achievement("coins_100", AchievementMetric.COINS, 100, "saver", "coin"),
    _achievement("coins_500", AchievementMetric.COINS, 500, "treasureHunter", "coin"),
    _achievement("coins_1000", AchievementMetric.COINS, 1000, "goldMaster", "crown"),
    _achievement("coins_5000", AchievementMetric.COINS, 5000, "millionaire", "diamond"),
    # Room mastery
    _achievement("room_master_3", AchievementMetric.ROOMS_CLEAN, 3, "roomTamer", "heart"),
    _achievement("room_master_5", AchievementMetric.ROOMS_CLEAN, 5, "housePride", "shield"),
    # Weekly productivity
    _achievement("weekly_5", AchievementMetric.WEEKEND_TASKS, 5, "weekendWarrior", "star"),
    _achievement("weekly_15", AchievementMetric.WEEKLY_TASKS, 15, "superWeek", "rocket"),
    # Perfect weeks
    _achievement("perfect_1", AchievementMetric.PERFECT_WEEKS, 1, "perfectWeek", "star"),
    _achievement("perfect_4", AchievementMetric.PERFECT_WEEKS, 4, "perfectMonth", "crown"),
)


def evaluate_achievements(stats: AchievementStats) -> list[AchievementProgress]:
    """Compare a stats snapshot against every achievement threshold.

    Pure: identical stats always yield identical results.
    """
    results = []
    for definition in ACHIEVEMENTS:
        value = int(getattr(stats, definition.metric.value))
        results.append(
            AchievementProgress(
                id=definition.id,
                metric=definition.metric,
                threshold=definition.threshold,
                value=value,
                progress=min(100, round_half_up(value / definition.threshold * 100)),
                unlocked=value >= definition.threshold,
                title_key=definition.title_key,
                desc_key=definition.desc_key,
                icon=definition.icon,
            )
        )
    return results


def get_week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def most_recent_weekend(today: date) -> tuple[date, date]:
    """Saturday and Sunday of the latest weekend that has started by ``today``."""
    days_since_saturday = (today.weekday() - SATURDAY) % 7
    saturday = today - timedelta(days=days_since_saturday)
    return saturday, saturday + timedelta(days=1)


def count_perfect_weeks(completion_days: Iterable[date], today: date) -> int:
    """Count full Monday-Sunday weeks in which every day had a completion.

    Scans from the Monday of the first completion up to, but excluding, the
    current week.
    """
    days = set(completion_days)
    if not days:
        return 0

    week = get_week_start(min(days))
    this_monday = get_week_start(today)
    perfect = 0
    while week < this_monday:
        if all(week + timedelta(days=offset) in days for offset in range(7)):
            perfect += 1
        week += timedelta(days=7)
    return perfect


def compute_stats(
    user: User,
    completions: Sequence[TaskCompletion],
    tasks: Sequence[Task],
    vacation: VacationState | None = None,
    *,
    now: datetime | None = None,
) -> AchievementStats:
    """Derive the achievement statistics for ``user`` from raw rows.

    Args:
        user: User with current coins and streak
        completions: Every completion credited to the user
        tasks: Every household task, used for the rooms-clean count
        vacation: Global vacation state (affects room health)
        now: Evaluation instant (defaults to the current UTC time)

    Returns:
        AchievementStats snapshot
    """
    now = now or datetime.now(UTC)
    today = now.date()

    tasks_by_room: dict[str, list[Task]] = defaultdict(list)
    for task in tasks:
        tasks_by_room[task.room_id].append(task)
    rooms_clean = sum(
        1
        for room_tasks in tasks_by_room.values()
        if compute_room_health(room_tasks, vacation, now=now) >= Constants.CLEAN_ROOM_HEALTH_THRESHOLD
    )

    week_start = get_week_start(today)
    saturday, sunday = most_recent_weekend(today)
    days = [completion.completed_on for completion in completions]

    return AchievementStats(
        completions=len(completions),
        streak=user.current_streak,
        coins=user.coins,
        rooms_clean=rooms_clean,
        weekly_tasks=sum(1 for day in days if week_start <= day <= today),
        weekend_tasks=sum(1 for day in days if saturday <= day <= sunday),
        perfect_weeks=count_perfect_weeks(days, today),
    )


async def list_user_completions(user_id: str) -> list[TaskCompletion]:
    """Every completion credited to ``user_id``, oldest first."""
    records = await db_client.list_records(
        collection="task_completions",
        filter_query=f'user_id = "{db_client.sanitize_param(user_id)}"',
        sort="completed_at ASC",
        per_page=Constants.MAX_RECORDS_PER_QUERY,
    )
    return [TaskCompletion.model_validate(record) for record in records]


async def build_stats_for_user(user_id: str, *, now: datetime | None = None) -> AchievementStats:
    """Load everything needed and compute the user's achievement statistics.

    Raises:
        NotFoundError: If the user does not exist
    """
    with span("achievement_service.build_stats_for_user"):
        user = await user_service.get_user(user_id)
        completions = await list_user_completions(user_id)
        tasks = await task_service.list_tasks()
        vacation = await house_config_service.get_vacation_state()
        return compute_stats(user, completions, tasks, vacation, now=now)


async def get_achievements_for_user(user_id: str, *, now: datetime | None = None) -> list[AchievementProgress]:
    """Evaluate every achievement for ``user_id`` against live statistics."""
    with span("achievement_service.get_achievements_for_user"):
        stats = await build_stats_for_user(user_id, now=now)
        achievements = evaluate_achievements(stats)
        logger.info(
            "Evaluated achievements",
            extra={"user_id": user_id, "unlocked": sum(1 for a in achievements if a.unlocked)},
        )
        return achievements
