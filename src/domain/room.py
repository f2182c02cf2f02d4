"""Room domain models."""

from pydantic import BaseModel, Field


class Room(BaseModel):
    """Room data transfer object."""

    id: str = Field(..., description="Unique room ID from database")
    name: str = Field(..., description="Display name (e.g., 'Kitchen')")
    room_type: str = Field(default="other", description="Room kind used for display")
    color: str | None = Field(default=None, description="Display color")
    sort_order: int = Field(default=0, description="Dashboard ordering")
    assigned_user_id: str | None = Field(
        default=None,
        description="When set, this user is the exclusive assignee of every task in the room",
    )
