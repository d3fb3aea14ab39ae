# tests/fakes.py

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any

from app.models.todo import Todo, TodoCreate, TodoUpdate


class FakeClock:
    """Deterministic clock; call it like utc_now()."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class StoreDown(RuntimeError):
    """Stands in for whatever the Supabase client raises when the store is unreachable."""


class InMemoryTodoRepository:
    """
    Owner-scoped in-memory stand-in for TodoRepository.

    Records every call so tests can assert on reads/writes per owner, and can
    be told to fail on specific methods or after a number of writes.
    """

    def __init__(self) -> None:
        self.rows: dict[str, Todo] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()
        self.fail_after_writes: int | None = None

    # ---- helpers for tests ----

    def seed(self, user_id: str, text: str, *, created_at: datetime, **fields: Any) -> Todo:
        todo = Todo(
            id=fields.pop("id", uuid.uuid4().hex),
            user_id=user_id,
            text=text,
            created_at=created_at,
            updated_at=fields.pop("updated_at", created_at),
            **fields,
        )
        self.rows[todo.id] = todo
        return todo

    @property
    def writes(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] in {"create", "update", "delete", "delete_completed"}]

    def owners_touched(self) -> set[str]:
        return {owner for _, owner in self.calls}

    def _record(self, method: str, owner: str) -> None:
        if method in self.fail_on:
            raise StoreDown(f"{method} failed: connection refused")
        is_write = method in {"create", "update", "delete", "delete_completed"}
        if is_write and self.fail_after_writes is not None and len(self.writes) >= self.fail_after_writes:
            raise StoreDown("write failed: connection reset")
        self.calls.append((method, owner))

    # ---- TodoRepository interface ----

    async def find_by_id(self, id: str, owner_id: str) -> Todo | None:
        self._record("find_by_id", owner_id)
        todo = self.rows.get(id)
        if todo is None or todo.user_id != owner_id:
            return None
        return todo

    async def find_by_user(self, user_id: str) -> list[Todo]:
        self._record("find_by_user", user_id)
        owned = [todo for todo in self.rows.values() if todo.user_id == user_id]
        return sorted(owned, key=lambda todo: todo.created_at, reverse=True)

    async def create(self, data: TodoCreate) -> Todo:
        self._record("create", data.user_id)
        todo = Todo(id=uuid.uuid4().hex, **data.model_dump())
        self.rows[todo.id] = todo
        return todo

    async def update(self, id: str, owner_id: str, data: TodoUpdate) -> Todo | None:
        self._record("update", owner_id)
        todo = self.rows.get(id)
        if todo is None or todo.user_id != owner_id:
            return None
        updated = todo.model_copy(update=data.model_dump(exclude_unset=True))
        self.rows[id] = updated
        return updated

    async def delete(self, id: str, owner_id: str) -> bool:
        self._record("delete", owner_id)
        todo = self.rows.get(id)
        if todo is None or todo.user_id != owner_id:
            return False
        del self.rows[id]
        return True

    async def delete_completed(self, user_id: str) -> int:
        self._record("delete_completed", user_id)
        doomed = [key for key, todo in self.rows.items() if todo.user_id == user_id and todo.completed]
        for key in doomed:
            del self.rows[key]
        return len(doomed)
