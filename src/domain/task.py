"""Task domain models and enums."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator


class AssignmentMode(StrEnum):
    """Policy governing which users may or must complete a task."""

    FIRST = "first"  # Whoever completes first takes the full reward
    SHARED = "shared"  # Every assignee completes, reward split evenly
    CUSTOM = "custom"  # Every assignee completes, reward split by percentage


class FirstCome(BaseModel):
    """First completer receives the full amount."""

    kind: Literal[AssignmentMode.FIRST] = AssignmentMode.FIRST


class SharedSplit(BaseModel):
    """Amount split evenly across effective assignees."""

    kind: Literal[AssignmentMode.SHARED] = AssignmentMode.SHARED


class CustomSplit(BaseModel):
    """Amount split by explicit per-user percentages."""

    kind: Literal[AssignmentMode.CUSTOM] = AssignmentMode.CUSTOM
    percentages: dict[str, int] = Field(default_factory=dict, description="user_id -> coin percentage")


AssignmentPolicy = Annotated[FirstCome | SharedSplit | CustomSplit, Field(discriminator="kind")]


class TaskAssignee(BaseModel):
    """Association between a task and a user allowed to complete it."""

    task_id: str = Field(..., description="Task ID")
    user_id: str = Field(..., description="Assigned user ID")
    coin_percentage: int = Field(default=0, description="Share of coins in custom mode (0 otherwise)")


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    room_id: str = Field(..., description="Owning room ID")
    name: str = Field(..., description="Task name (e.g., 'Vacuum carpet')")
    notes: str = Field(default="", description="Free-form notes")
    frequency_days: float = Field(default=7.0, description="Recurrence interval in days, may be fractional")
    effort: int = Field(default=1, description="Difficulty 1-5 driving the coin reward")
    is_seasonal: bool = Field(default=False, description="Excluded from health averages and due lists")
    last_completed_at: datetime | None = Field(default=None, description="Anchor for health decay")
    assignment_mode: AssignmentMode = Field(default=AssignmentMode.FIRST, description="Assignment policy")
    assigned_to_children: bool = Field(default=False, description="Unassigned task is reserved for children")
    assignees: list[TaskAssignee] = Field(default_factory=list, description="Task-level assignees")

    @field_validator("last_completed_at")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @property
    def assignee_ids(self) -> list[str]:
        """User IDs of task-level assignees, in stored order."""
        return [assignee.user_id for assignee in self.assignees]

    @property
    def policy(self) -> FirstCome | SharedSplit | CustomSplit:
        """The assignment mode as a closed variant carrying its payload."""
        if self.assignment_mode == AssignmentMode.SHARED:
            return SharedSplit()
        if self.assignment_mode == AssignmentMode.CUSTOM:
            return CustomSplit(percentages={a.user_id: a.coin_percentage for a in self.assignees})
        return FirstCome()
