"""Domain types and errors for the Todos feature"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class TodoError(Exception):
    """Base class for errors surfaced to callers of the todos feature"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(TodoError):
    """No session, or the session could not be verified"""
    status_code = 401


class NotFound(TodoError):
    """The todo does not exist or belongs to another user"""
    status_code = 404


class ValidationError(TodoError):
    """Empty text or malformed payload"""
    status_code = 400


class StoreFailure(TodoError):
    """The task store was unreachable or returned an error"""
    status_code = 500


class TodoFilter(str, Enum):
    """List filters offered by the client"""
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


class ReminderKind(str, Enum):
    """Reminder categories for incomplete todos with a due date"""
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"


class Reminder(BaseModel):
    """A due-date reminder ready to hand to a notifier"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    todo_id: Optional[str] = None
    text: str
    due_date: date
    kind: ReminderKind
    title: str
    body: str


def clean_text(text: Optional[str]) -> str:
    """Trim todo text, rejecting empty content"""
    if text is None or not text.strip():
        raise ValidationError("Text is required")
    return text.strip()
