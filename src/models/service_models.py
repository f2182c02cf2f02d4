"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from src.domain.completion import CompletionState, TaskCompletion
from src.domain.house import NotificationType, VacationState


class TaskHealth(BaseModel):
    """Health snapshot of a single task at a given instant."""

    task_id: str
    room_id: str
    name: str
    health: int
    effort: int
    is_seasonal: bool
    due_at: datetime
    due_in_days: int


class DueSchedule(BaseModel):
    """Non-seasonal tasks split into due-now and upcoming, both most urgent first."""

    today: list[TaskHealth]
    upcoming: list[TaskHealth]


class RoomHealthSummary(BaseModel):
    """Aggregated health of a room."""

    room_id: str
    name: str
    health: int
    critical_count: int
    assigned_user_id: str | None = None
    tasks: list[TaskHealth] = Field(default_factory=list)


class Dashboard(BaseModel):
    """Household overview."""

    house_health: int
    rooms: list[RoomHealthSummary]
    todays_quests: list[TaskHealth]
    next_tasks: list[TaskHealth]
    vacation: VacationState


class AssigneeSource(StrEnum):
    """Where an effective assignee set came from."""

    ROOM = "room"
    TASK = "task"
    CHILDREN = "children"
    UNRESTRICTED = "unrestricted"


class EffectiveAssignees(BaseModel):
    """Users currently permitted to complete a task; empty means anyone."""

    user_ids: list[str]
    source: AssigneeSource

    @property
    def is_restricted(self) -> bool:
        return bool(self.user_ids)

    def includes(self, user_id: str) -> bool:
        return user_id in self.user_ids


class NotificationEvent(BaseModel):
    """Something the notification collaborator should be told about."""

    type: NotificationType
    user_id: str | None = None
    achievement_id: str | None = None
    task_id: str | None = None
    message: str


class NotificationResult(BaseModel):
    """Result of sending a notification."""

    type: NotificationType
    user_id: str | None = None
    success: bool
    skipped_reason: str | None = None
    error: str | None = None


class StreakUpdate(BaseModel):
    """Outcome of advancing a user's streak."""

    current_streak: int
    last_active_date: date | None
    changed: bool


class CompletionResult(BaseModel):
    """Outcome of a successful completion."""

    completion: TaskCompletion
    coins_earned: int
    user_coins: int
    current_streak: int
    state: CompletionState
    task_last_completed_at: datetime | None
    events: list[NotificationEvent] = Field(default_factory=list)


class CancellationResult(BaseModel):
    """Outcome of cancelling a completion."""

    completion_id: str
    task_id: str
    user_id: str
    coins_deducted: int
    user_coins: int
    task_last_completed_at: datetime | None


class AchievementStats(BaseModel):
    """Snapshot of statistics achievements are evaluated against."""

    completions: int = 0
    streak: int = 0
    coins: int = 0
    rooms_clean: int = 0
    weekly_tasks: int = 0
    weekend_tasks: int = 0
    perfect_weeks: int = 0


class AchievementProgress(BaseModel):
    """Evaluation of one achievement against a stats snapshot."""

    id: str
    metric: str
    threshold: int
    value: int
    progress: int
    unlocked: bool
    title_key: str
    desc_key: str
    icon: str
