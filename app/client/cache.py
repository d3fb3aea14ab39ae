"""
Client-side todo cache

An explicit, injectable mirror of the user's todos plus the time of the last
successful sync. Persistence goes through a single serialize/deserialize
boundary (to_snapshot/from_snapshot, save/load) so nothing lives in a
module-level singleton.
"""
import json
import logging
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from app.features.todos.domain import TodoFilter
from app.features.todos.reminders import is_overdue
from app.models.todo import Priority
from app.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)


class CachedTodo(BaseModel):
    """A todo as held on the client; id stays None until the store assigns one"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    text: str
    completed: bool = False
    due_date: Optional[date] = None
    priority: Priority = Priority.MEDIUM
    created_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utc_now)
    user_id: Optional[str] = None
    # Local handle so optimistic entries can be found before they have an id
    local_id: str = Field(default_factory=lambda: uuid.uuid4().hex, exclude=True)

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("due_date", mode="before")
    @classmethod
    def _blank_due_date(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready camelCase dict, as sent to the sync endpoint"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TodoCache:
    """In-memory todo list with load-on-start / save-on-mutate persistence"""

    def __init__(self, todos: Optional[Iterable[CachedTodo]] = None, last_sync: int = 0):
        self.todos: List[CachedTodo] = list(todos or [])
        self.last_sync = last_sync

    # ---- lookup ----

    def get(self, key: str) -> Optional[CachedTodo]:
        """Find a todo by store id or, for unsynced entries, by local id"""
        for todo in self.todos:
            if todo.id == key or todo.local_id == key:
                return todo
        return None

    def index_of_local(self, local_id: str) -> Optional[int]:
        for index, todo in enumerate(self.todos):
            if todo.local_id == local_id:
                return index
        return None

    # ---- mutation ----

    def add(self, todo: CachedTodo) -> CachedTodo:
        self.todos.append(todo)
        return todo

    def replace_local(self, local_id: str, todo: CachedTodo) -> None:
        """Swap an optimistic entry for the store's version of it"""
        index = self.index_of_local(local_id)
        # A refresh may already have brought this record in from the server
        existing = self.get(todo.id) if todo.id else None
        if index is not None:
            if existing is not None and existing.local_id != local_id:
                self.todos.pop(index)
            else:
                self.todos[index] = todo
        elif existing is None:
            self.todos.append(todo)

    def update_local(self, local_id: str, **changes: Any) -> Optional[CachedTodo]:
        """Apply field changes to a cached todo, bumping its updatedAt"""
        index = self.index_of_local(local_id)
        if index is None:
            return None
        changes.setdefault("updated_at", utc_now())
        self.todos[index] = self.todos[index].model_copy(update=changes)
        return self.todos[index]

    def remove_local(self, local_id: str) -> Optional[CachedTodo]:
        index = self.index_of_local(local_id)
        if index is None:
            return None
        return self.todos.pop(index)

    def remove_completed(self) -> int:
        before = len(self.todos)
        self.todos = [todo for todo in self.todos if not todo.completed]
        return before - len(self.todos)

    def replace_all(self, todos: Iterable[CachedTodo], synced_at: int) -> None:
        """Wholesale replacement with the server's snapshot"""
        self.todos = list(todos)
        self.last_sync = synced_at

    def reorder(self, start_index: int, end_index: int) -> None:
        """
        Move a todo within the local list.

        Purely positional: not persisted to the store and undone by the next
        sync, since the server returns todos newest first.
        """
        if not 0 <= start_index < len(self.todos):
            raise IndexError(f"start_index {start_index} out of range")
        moved = self.todos.pop(start_index)
        end_index = max(0, min(end_index, len(self.todos)))
        self.todos.insert(end_index, moved)

    # ---- queries ----

    def search(self, query: str) -> List[CachedTodo]:
        """Case-insensitive substring match on text"""
        needle = query.lower()
        return [todo for todo in self.todos if needle in todo.text.lower()]

    def filter(self, todo_filter: Union[TodoFilter, str] = TodoFilter.ALL) -> List[CachedTodo]:
        todo_filter = TodoFilter(todo_filter)
        if todo_filter == TodoFilter.ACTIVE:
            return [todo for todo in self.todos if not todo.completed]
        if todo_filter == TodoFilter.COMPLETED:
            return [todo for todo in self.todos if todo.completed]
        return list(self.todos)

    def overdue(self, now: Optional[datetime] = None) -> List[CachedTodo]:
        now = now or utc_now()
        return [todo for todo in self.todos if is_overdue(todo, now)]

    def stats(self, now: Optional[datetime] = None) -> Dict[str, int]:
        completed = sum(1 for todo in self.todos if todo.completed)
        return {
            "total": len(self.todos),
            "active": len(self.todos) - completed,
            "completed": completed,
            "overdue": len(self.overdue(now)),
        }

    # ---- serialize / deserialize ----

    def to_wire(self) -> List[Dict[str, Any]]:
        return [todo.to_wire() for todo in self.todos]

    def to_snapshot(self) -> Dict[str, Any]:
        return {"todos": self.to_wire(), "lastSync": self.last_sync}

    @classmethod
    def from_snapshot(cls, snapshot: Dict[str, Any]) -> "TodoCache":
        todos = [CachedTodo.model_validate(item) for item in snapshot.get("todos") or []]
        return cls(todos, last_sync=int(snapshot.get("lastSync") or 0))

    def restore(self, snapshot: Dict[str, Any]) -> None:
        """Reset this cache in place from a snapshot"""
        restored = self.from_snapshot(snapshot)
        self.todos = restored.todos
        self.last_sync = restored.last_sync

    def save(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_snapshot(), ensure_ascii=False), encoding="utf-8")

    @classmethod
    def load(cls, path: Union[str, Path]) -> "TodoCache":
        """Load a persisted snapshot; a missing or unreadable file yields an empty cache"""
        path = Path(path)
        if not path.exists():
            return cls()

        try:
            snapshot = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(snapshot, dict):
                return cls.from_snapshot(snapshot)
            logger.warning(f"Ignoring todo snapshot at {path}: expected an object")
        except (json.JSONDecodeError, PydanticValidationError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable todo snapshot at {path}: {e}")
        return cls()
