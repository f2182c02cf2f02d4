"""Pydantic models for updating records in database."""

from pydantic import BaseModel, Field

from src.domain.create_models import AssigneeInput
from src.domain.task import AssignmentMode


class TaskUpdate(BaseModel):
    """Partial task update; only fields that are set are written."""

    room_id: str | None = None
    name: str | None = Field(default=None, min_length=1)
    notes: str | None = None
    frequency_days: float | None = None
    effort: int | None = None
    is_seasonal: bool | None = None
    assignment_mode: AssignmentMode | None = None
    assigned_to_children: bool | None = None
    assignees: list[AssigneeInput] | None = Field(default=None, description="Replaces all task-level assignees")
    health: int | None = Field(default=None, description="Target health 0-100, rewrites last_completed_at")
