"""Domain error taxonomy and classification utilities."""

from enum import Enum

from pydantic import BaseModel

from src.core.config import Constants


class ErrorCategory(Enum):
    """Categories of errors raised by the chore engine."""

    VALIDATION = "validation"
    PERMISSION = "permission"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Named failure reasons reported to callers."""

    # Conflict errors
    ALREADY_DONE_TODAY = "already_done_today"
    ALREADY_DONE_BY_OTHER = "already_done_by_other"
    ROOM_ASSIGNMENT_CONFLICT = "room_assignment_conflict"

    # Permission errors
    NOT_ASSIGNED = "not_assigned"
    ADMIN_ONLY = "admin_only"
    ON_BEHALF_NOT_ALLOWED = "on_behalf_not_allowed"
    LAST_ADMIN = "last_admin"

    # Validation errors
    INVALID_FREQUENCY = "invalid_frequency"
    INVALID_EFFORT = "invalid_effort"
    INVALID_PERCENTAGES = "invalid_percentages"
    INVALID_HEALTH = "invalid_health"
    INVALID_COIN_TABLE = "invalid_coin_table"
    INVALID_COIN_ADJUSTMENT = "invalid_coin_adjustment"
    TOO_MANY_PARTICIPANTS = "too_many_participants"
    DUPLICATE_ASSIGNEE = "duplicate_assignee"
    UNKNOWN_USER = "unknown_user"

    # Not-found errors
    TASK_NOT_FOUND = "task_not_found"
    ROOM_NOT_FOUND = "room_not_found"
    USER_NOT_FOUND = "user_not_found"
    COMPLETION_NOT_FOUND = "completion_not_found"

    # Generic errors
    UNKNOWN = "unknown"


class TidyQuestError(Exception):
    """Base class for all rejections raised by the chore engine.

    Every rejection carries a machine-readable ``reason`` which the caller maps
    to user-facing text.
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or reason)


class InvalidInputError(TidyQuestError):
    """Malformed input rejected before any mutation."""

    category = ErrorCategory.VALIDATION


class PermissionDeniedError(TidyQuestError):
    """The acting user may not perform the operation."""

    category = ErrorCategory.PERMISSION


class ConflictError(TidyQuestError):
    """The operation conflicts with state already recorded today."""

    category = ErrorCategory.CONFLICT


class NotFoundError(TidyQuestError):
    """A referenced task, room, user or completion does not exist."""

    category = ErrorCategory.NOT_FOUND


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    status_code: int


_STATUS_BY_CATEGORY: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: Constants.HTTP_BAD_REQUEST,
    ErrorCategory.PERMISSION: Constants.HTTP_FORBIDDEN,
    ErrorCategory.CONFLICT: Constants.HTTP_CONFLICT,
    ErrorCategory.NOT_FOUND: Constants.HTTP_NOT_FOUND,
    ErrorCategory.UNKNOWN: Constants.HTTP_SERVER_ERROR,
}

_MESSAGES: dict[str, tuple[str, str]] = {
    ErrorCode.ALREADY_DONE_TODAY: (
        "You already completed this task today.",
        "Come back tomorrow or pick another quest.",
    ),
    ErrorCode.ALREADY_DONE_BY_OTHER: (
        "Someone else already completed this task today.",
        "Check today's quests for something still open.",
    ),
    ErrorCode.NOT_ASSIGNED: (
        "This task is assigned to someone else.",
        "Ask a grown-up to reassign it if you want to help.",
    ),
    ErrorCode.ADMIN_ONLY: (
        "Only an admin can do this.",
        "Ask a household admin to perform this action.",
    ),
    ErrorCode.ON_BEHALF_NOT_ALLOWED: (
        "You can't complete tasks for other people.",
        "Complete the task from your own account.",
    ),
    ErrorCode.ROOM_ASSIGNMENT_CONFLICT: (
        "Some tasks in this room are assigned to other people.",
        "Retry with force to clear the task-level assignees.",
    ),
}


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, severity, and HTTP status
    """
    if isinstance(exception, TidyQuestError):
        message, suggestion = _MESSAGES.get(exception.reason, (str(exception), "Check the request and try again."))
        severity = ErrorSeverity.LOW if exception.category == ErrorCategory.CONFLICT else ErrorSeverity.MEDIUM
        return ErrorResponse(
            code=exception.reason,
            message=message,
            suggestion=suggestion,
            severity=severity,
            status_code=_STATUS_BY_CATEGORY[exception.category],
        )

    return ErrorResponse(
        code=ErrorCode.UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.HIGH,
        status_code=Constants.HTTP_SERVER_ERROR,
    )
