"""Task completion domain models."""

from datetime import UTC, date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class CompletionState(StrEnum):
    """Per (task, calendar day) completion state."""

    OPEN = "open"
    PARTIALLY_DONE = "partially_done"
    DONE = "done"


class TaskCompletion(BaseModel):
    """Immutable-until-cancelled record of a completed task."""

    id: str = Field(..., description="Unique completion ID from database")
    task_id: str = Field(..., description="Completed task ID")
    user_id: str = Field(..., description="User credited with the completion")
    completed_at: datetime = Field(..., description="Server timestamp of the completion")
    completed_on: date = Field(..., description="UTC calendar day of completed_at")
    coins_earned: int = Field(default=0, ge=0, description="Coins credited for this completion")
    previous_last_completed_at: datetime | None = Field(
        default=None, description="Task anchor before this completion was recorded"
    )
    moved_anchor: bool = Field(default=False, description="Whether this completion reset the task anchor")

    @field_validator("completed_at", "previous_last_completed_at")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v
