"""Pydantic models for creating records in database."""

from pydantic import BaseModel, Field, field_validator

from src.domain.task import AssignmentMode
from src.domain.user import UserRole, validate_display_name


class AssigneeInput(BaseModel):
    """A requested task assignee with its optional custom-mode share."""

    user_id: str = Field(..., description="User to assign")
    coin_percentage: int | None = Field(default=None, description="Share of coins, custom mode only")


class TaskCreate(BaseModel):
    """Input for creating a task; validated by task_service before any write."""

    room_id: str = Field(..., description="Owning room ID")
    name: str = Field(..., min_length=1, description="Task name")
    notes: str = Field(default="", description="Free-form notes")
    frequency_days: float | None = Field(default=None, description="Recurrence interval, defaults to 7 days")
    effort: int | None = Field(default=None, description="Difficulty 1-5, defaults to 1")
    is_seasonal: bool = Field(default=False, description="Excluded from health averages")
    assignment_mode: AssignmentMode = Field(default=AssignmentMode.FIRST, description="Assignment policy")
    assigned_to_children: bool = Field(default=False, description="Reserve unassigned task for children")
    assignees: list[AssigneeInput] = Field(default_factory=list, description="Task-level assignees")
    health: int | None = Field(default=None, description="Initial health 0-100, converted to a completion anchor")


class RoomCreate(BaseModel):
    """Input for creating a room."""

    name: str = Field(..., min_length=1, description="Display name")
    room_type: str = Field(default="other", description="Room kind used for display")
    color: str | None = Field(default=None, description="Display color")
    sort_order: int = Field(default=0, description="Dashboard ordering")


class UserCreate(BaseModel):
    """Input for creating a household user."""

    name: str = Field(..., description="Display name of the user")
    role: UserRole = Field(default=UserRole.MEMBER, description="User role in household")

    @field_validator("name")
    @classmethod
    def validate_name_usable(cls, v: str) -> str:
        """Validate name is usable."""
        return validate_display_name(v)
