"""Household-wide configuration values passed explicitly into computations."""

from datetime import UTC, date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from src.core.config import Constants


class VacationState(BaseModel):
    """Global vacation toggle with its start instant and optional end day."""

    active: bool = Field(default=False, description="Whether vacation mode was switched on")
    start_date: datetime | None = Field(default=None, description="Instant at which decay was frozen")
    end_date: date | None = Field(default=None, description="Last UTC day of the vacation (inclusive)")

    @field_validator("start_date")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    def is_active_at(self, now: datetime) -> bool:
        """Return True if vacation applies at ``now``, honouring auto-expiry past end_date."""
        if not self.active:
            return False
        if self.end_date is not None and now.date() > self.end_date:
            return False
        return self.start_date is None or self.start_date <= now

    def effective_now(self, now: datetime) -> datetime:
        """Clock reading to use for decay: frozen at the vacation start while active."""
        if self.is_active_at(now) and self.start_date is not None:
            return min(now, self.start_date)
        return now


class CoinPolicy(BaseModel):
    """Admin-configurable effort -> coins table."""

    coins_by_effort: dict[int, int] = Field(
        default_factory=lambda: dict(Constants.DEFAULT_COINS_BY_EFFORT),
        description="Coins awarded per effort level 1-5",
    )


class NotificationType(StrEnum):
    """Kinds of notifications the household can switch on or off."""

    TASK_DUE = "task_due"
    REWARD_REQUEST = "reward_request"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"


class NotificationTypeSettings(BaseModel):
    """Per-type notification toggles, all enabled by default."""

    task_due: bool = True
    reward_request: bool = True
    achievement_unlocked: bool = True

    def is_enabled(self, notification_type: NotificationType) -> bool:
        """Return whether notifications of ``notification_type`` should be sent."""
        return bool(getattr(self, notification_type.value))
