"""Request and response schemas for the Todos feature"""

from datetime import date, datetime
from typing import Annotated, Any, List, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from app.features.todos.domain import Reminder
from app.models.todo import Priority, Todo


def _blank_to_none(value: Any) -> Any:
    if value == "":
        return None
    return value


DueDate = Annotated[Optional[date], BeforeValidator(_blank_to_none)]


class CreateTodoRequest(BaseModel):
    """Request model for creating a todo"""
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    due_date: DueDate = Field(None, alias="dueDate")
    priority: Optional[Priority] = None


class UpdateTodoRequest(BaseModel):
    """
    Request model for updating a todo.

    Only the mutable fields are declared; anything else a client sends
    (id, userId, createdAt, ...) is dropped during parsing.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    text: Optional[str] = None
    completed: Optional[bool] = None
    due_date: DueDate = Field(None, alias="dueDate")
    priority: Optional[Priority] = None


class ClientTodo(BaseModel):
    """A todo as held in a client cache and submitted for sync"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, validation_alias=AliasChoices("id", "_id"))
    text: str = ""
    completed: bool = False
    due_date: DueDate = Field(None, alias="dueDate")
    priority: Priority = Priority.MEDIUM
    updated_at: datetime = Field(..., alias="updatedAt")

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)


class SyncRequest(BaseModel):
    """Request model for reconciling a client cache"""
    model_config = ConfigDict(populate_by_name=True)

    last_sync: Optional[int] = Field(None, alias="lastSync")
    todos: List[ClientTodo] = Field(default_factory=list)


class TodoListResponse(BaseModel):
    todos: List[Todo]


class DeleteResponse(BaseModel):
    success: bool
    message: str


class ClearCompletedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    deleted_count: int = Field(..., alias="deletedCount")


class ReminderListResponse(BaseModel):
    reminders: List[Reminder]
    count: int
