"""Configuration management for tidyquest."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/tidyquest.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Due-task Notification Configuration
    enable_due_task_notifications: bool = Field(
        default=True, description="Enable/disable the daily due-task notification job"
    )
    due_notification_hour: int = Field(default=9, ge=0, le=23, description="UTC hour of the daily due-task scan")
    due_notification_minute: int = Field(default=0, ge=0, le=59, description="UTC minute of the daily due-task scan")


# Application Constants
class Constants:
    """Application-wide constants."""

    # Time
    MS_PER_DAY: int = 86_400_000
    SECONDS_PER_DAY: int = 86_400

    # Task Definition
    MIN_FREQUENCY_DAYS: float = 1 / 24  # one hour
    DEFAULT_FREQUENCY_DAYS: float = 7.0
    MIN_EFFORT: int = 1
    MAX_EFFORT: int = 5
    DEFAULT_EFFORT: int = 1
    MAX_TASK_PARTICIPANTS: int = 10
    PERCENTAGE_TOTAL: int = 100

    # Coins
    DEFAULT_COINS_BY_EFFORT: dict[int, int] = {1: 5, 2: 10, 3: 15, 4: 20, 5: 25}
    FALLBACK_COINS_PER_EFFORT: int = 5

    # Health
    MAX_HEALTH: int = 100
    MIN_HEALTH: int = 0
    CLEAN_ROOM_HEALTH_THRESHOLD: int = 70
    CRITICAL_HEALTH_THRESHOLD: int = 30

    # Dashboard
    DASHBOARD_QUEST_LIMIT: int = 10

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_BAD_REQUEST: int = 400
    HTTP_FORBIDDEN: int = 403
    HTTP_NOT_FOUND: int = 404
    HTTP_CONFLICT: int = 409
    HTTP_SERVER_ERROR: int = 500

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100  # Default pagination limit for list queries
    MAX_RECORDS_PER_QUERY: int = 10_000  # Upper bound for full-history scans (completions)

    # app_settings keys
    SETTING_COINS_BY_EFFORT: str = "coins_by_effort"
    SETTING_VACATION: str = "vacation"
    SETTING_NOTIFICATION_TYPES: str = "notification_types"

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
