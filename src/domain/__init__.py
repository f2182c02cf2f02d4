"""Domain models and DTOs."""

from src.domain.completion import CompletionState, TaskCompletion
from src.domain.create_models import AssigneeInput, RoomCreate, TaskCreate, UserCreate
from src.domain.house import CoinPolicy, NotificationType, NotificationTypeSettings, VacationState
from src.domain.room import Room
from src.domain.task import AssignmentMode, CustomSplit, FirstCome, SharedSplit, Task, TaskAssignee
from src.domain.update_models import TaskUpdate
from src.domain.user import User, UserRole


__all__ = [
    "AssigneeInput",
    "AssignmentMode",
    "CoinPolicy",
    "CompletionState",
    "CustomSplit",
    "FirstCome",
    "NotificationType",
    "NotificationTypeSettings",
    "Room",
    "RoomCreate",
    "SharedSplit",
    "Task",
    "TaskAssignee",
    "TaskCompletion",
    "TaskCreate",
    "TaskUpdate",
    "User",
    "UserCreate",
    "UserRole",
    "VacationState",
]
