"""Todo domain model"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class Priority(str, Enum):
    """Todo priority levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Columns a client is allowed to change. id, user_id and created_at are never
# written from client input.
MUTABLE_FIELDS = ("text", "completed", "due_date", "priority")


class TodoBase(BaseModel):
    """Base todo fields"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: str
    completed: bool = False
    due_date: Optional[date] = None
    priority: Priority = Priority.MEDIUM

    @field_validator("due_date", mode="before")
    @classmethod
    def _blank_due_date(cls, value: Any) -> Any:
        # The web client sends "" when no date was picked
        if value == "":
            return None
        return value


class TodoCreate(TodoBase):
    """Todo creation model - timestamps and owner are stamped by the server"""
    user_id: str
    created_at: datetime
    updated_at: datetime


class TodoUpdate(BaseModel):
    """Todo update model - all fields optional"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: Optional[str] = None
    completed: Optional[bool] = None
    due_date: Optional[date] = None
    priority: Optional[Priority] = None
    updated_at: Optional[datetime] = None


class Todo(TodoBase):
    """Complete todo model from the store"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, value: Any) -> Any:
        """Store ids are opaque to callers, whatever the column type"""
        if value is None:
            return value
        return str(value)
