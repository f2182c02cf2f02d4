"""User domain models and enums."""

import re
from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


# Constants for validation
MAX_NAME_LENGTH = 50


class UserRole(StrEnum):
    """User role in the household."""

    ADMIN = "admin"
    MEMBER = "member"
    CHILD = "child"

    @property
    def is_privileged(self) -> bool:
        """Admins and members bypass assignment restrictions."""
        return self in (UserRole.ADMIN, UserRole.MEMBER)


def validate_display_name(v: str) -> str:
    """Validate name is usable - allows Unicode letters, spaces, hyphens, apostrophes."""
    v = v.strip()

    if not v:
        raise ValueError("Name cannot be empty")

    if len(v) > MAX_NAME_LENGTH:
        raise ValueError(f"Name too long (max {MAX_NAME_LENGTH} characters)")

    if not re.match(r"^[\w\s'-]+$", v, re.UNICODE):
        raise ValueError("Name can only contain letters, spaces, hyphens, and apostrophes")

    return v


class User(BaseModel):
    """User data transfer object."""

    id: str = Field(..., description="Unique user ID from database")
    name: str = Field(..., description="Display name of the user")
    role: UserRole = Field(default=UserRole.MEMBER, description="User role in household")
    coins: int = Field(default=0, ge=0, description="Coin balance")
    current_streak: int = Field(default=0, ge=0, description="Consecutive active days")
    last_active_date: date | None = Field(default=None, description="UTC day of the last credited completion")

    @field_validator("name")
    @classmethod
    def validate_name_usable(cls, v: str) -> str:
        """Validate name is usable."""
        return validate_display_name(v)
