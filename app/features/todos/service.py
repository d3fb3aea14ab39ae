"""Business logic for owner-scoped todo CRUD"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from app.features.todos.domain import (
    NotFound,
    Reminder,
    StoreFailure,
    TodoError,
    clean_text,
)
from app.features.todos.reminders import collect_reminders
from app.infra.supabase.repositories.todos import TodoRepository
from app.models.todo import MUTABLE_FIELDS, Priority, Todo, TodoCreate, TodoUpdate
from app.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_boundary(action: str, failure_message: str):
    """
    Convert anything the store raises into a generic StoreFailure.

    Domain errors pass through untouched. Store details are logged and never
    returned to the caller.
    """
    try:
        yield
    except TodoError:
        raise
    except Exception as e:
        logger.error(f"Store failure during {action}: {e}", exc_info=True)
        raise StoreFailure(failure_message) from e


class TodoService:
    """Service layer for todo CRUD, always scoped to the authenticated owner"""

    def __init__(self, repository: TodoRepository, clock: Callable[[], datetime] = utc_now):
        self.repository = repository
        self._clock = clock

    async def list_todos(self, user_id: str) -> List[Todo]:
        """All of the owner's todos, newest first"""
        async with store_boundary("list", "Failed to fetch todos"):
            return await self.repository.find_by_user(user_id)

    async def get_todo(self, todo_id: str, user_id: str) -> Todo:
        """
        Fetch one todo.

        Raises:
            NotFound: If the id does not exist or belongs to another user
        """
        async with store_boundary("get", "Failed to fetch todo"):
            todo = await self.repository.find_by_id(todo_id, user_id)
        if todo is None:
            raise NotFound("Todo not found")
        return todo

    async def create_todo(
        self,
        user_id: str,
        text: Optional[str],
        due_date: Optional[date] = None,
        priority: Optional[Priority] = None,
    ) -> Todo:
        """
        Create a todo owned by the caller.

        Args:
            user_id: The authenticated owner
            text: Todo content, trimmed; must not be empty
            due_date: Optional due date
            priority: Defaults to medium

        Raises:
            ValidationError: If text is empty
        """
        now = self._clock()
        todo_data = TodoCreate(
            user_id=user_id,
            text=clean_text(text),
            completed=False,
            due_date=due_date,
            priority=priority or Priority.MEDIUM,
            created_at=now,
            updated_at=now,
        )

        async with store_boundary("create", "Failed to create todo"):
            todo = await self.repository.create(todo_data)

        logger.info(f"Created todo {todo.id} for user {user_id}")
        return todo

    async def update_todo(self, todo_id: str, user_id: str, changes: Dict[str, Any]) -> Todo:
        """
        Apply a partial update over the mutable fields only.

        Keys outside text/completed/due_date/priority are ignored, so a client
        can never rewrite id, owner or createdAt.

        Raises:
            ValidationError: If text is supplied but empty
            NotFound: If the id does not exist or belongs to another user
        """
        update_fields = {key: value for key, value in changes.items() if key in MUTABLE_FIELDS}

        if "text" in update_fields:
            update_fields["text"] = clean_text(update_fields["text"])
        if update_fields.get("completed") is None:
            update_fields.pop("completed", None)
        if update_fields.get("priority") is None:
            update_fields.pop("priority", None)

        update_data = TodoUpdate(**update_fields, updated_at=self._clock())

        async with store_boundary("update", "Failed to update todo"):
            todo = await self.repository.update(todo_id, user_id, update_data)

        if todo is None:
            raise NotFound("Todo not found")
        return todo

    async def delete_todo(self, todo_id: str, user_id: str) -> None:
        """
        Permanently delete a todo.

        Raises:
            NotFound: If the id does not exist or belongs to another user
        """
        async with store_boundary("delete", "Failed to delete todo"):
            deleted = await self.repository.delete(todo_id, user_id)

        if not deleted:
            raise NotFound("Todo not found")
        logger.info(f"Deleted todo {todo_id} for user {user_id}")

    async def clear_completed(self, user_id: str) -> int:
        """Delete all of the owner's completed todos and return the count"""
        async with store_boundary("clear-completed", "Failed to clear completed"):
            count = await self.repository.delete_completed(user_id)

        logger.info(f"Cleared {count} completed todos for user {user_id}")
        return count

    async def get_reminders(self, user_id: str, now: Optional[datetime] = None) -> List[Reminder]:
        """Due-date reminders for the owner's incomplete todos"""
        todos = await self.list_todos(user_id)
        return collect_reminders(todos, now or self._clock())
