"""Todos feature module"""

from app.features.todos.api import router
from app.features.todos.service import TodoService
from app.features.todos.sync_service import TodoSyncService
from app.features.todos.domain import (
    NotFound,
    Reminder,
    ReminderKind,
    StoreFailure,
    TodoError,
    TodoFilter,
    Unauthorized,
    ValidationError,
)

__all__ = [
    "router",
    "TodoService",
    "TodoSyncService",
    "NotFound",
    "Reminder",
    "ReminderKind",
    "StoreFailure",
    "TodoError",
    "TodoFilter",
    "Unauthorized",
    "ValidationError",
]
