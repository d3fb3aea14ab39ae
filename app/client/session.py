"""
Todo Session

Client-side optimistic layer over TodoCache and TodoAPIClient:
- Mutations update the cache first, then call the API
- Failed requests surface on `error`; the optimistic change is kept unless
  `rollback_on_failure` is set, and the next sync repairs the cache
- sync() is gated so manual and periodic triggers never overlap
"""

import asyncio
import inspect
import logging
from contextlib import suppress
from datetime import date, datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from app import config
from app.client.api import TodoAPIClient
from app.client.cache import CachedTodo, TodoCache
from app.features.todos.domain import NotFound, Reminder, TodoError, clean_text
from app.features.todos.reminders import collect_reminders
from app.models.todo import Priority
from app.utils.datetime_helper import to_epoch_millis, utc_now

logger = logging.getLogger(__name__)

Notifier = Callable[[Reminder], Union[None, Awaitable[None]]]


class TodoSession:
    """A signed-in user's todo list on one device"""

    def __init__(
        self,
        api: TodoAPIClient,
        cache: Optional[TodoCache] = None,
        snapshot_path: Optional[Union[str, Path]] = None,
        rollback_on_failure: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.api = api
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None
        if cache is None:
            cache = TodoCache.load(self.snapshot_path) if self.snapshot_path else TodoCache()
        self.cache = cache
        self.rollback_on_failure = rollback_on_failure
        self.error: Optional[str] = None
        self._clock = clock
        self._sync_in_flight = False
        self._sync_task: Optional[asyncio.Task] = None
        # local ids of added todos whose create request has not returned yet
        self._pending_creates: Set[str] = set()

    @property
    def syncing(self) -> bool:
        return self._sync_in_flight

    def persist(self) -> None:
        """Write the cache snapshot if this session has somewhere to put it"""
        if self.snapshot_path is not None:
            self.cache.save(self.snapshot_path)

    def _require(self, key: str) -> CachedTodo:
        todo = self.cache.get(key)
        if todo is None:
            raise NotFound("Todo not found")
        return todo

    async def _mutate(
        self,
        action: str,
        apply: Callable[[], Any],
        request: Optional[Callable[[], Awaitable[Any]]],
    ) -> bool:
        """
        Apply a change locally, then confirm it with the server.

        Returns:
            True if the server accepted the change (or none was needed)
        """
        snapshot = self.cache.to_snapshot() if self.rollback_on_failure else None

        apply()
        self.persist()

        if request is None:
            return True

        try:
            await request()
        except TodoError as e:
            self.error = e.message
            logger.warning(f"{action} failed: {e.message}")
            if snapshot is not None:
                self.cache.restore(snapshot)
                self.persist()
            return False

        self.error = None
        self.persist()
        return True

    # ---- mutations ----

    async def add(
        self,
        text: str,
        due_date: Optional[date] = None,
        priority: Priority = Priority.MEDIUM,
    ) -> CachedTodo:
        """
        Add a todo. It appears in the cache at once without an id; when the
        server confirms, the entry is swapped for the stored record.

        Raises:
            ValidationError: If text is empty (nothing is changed)
        """
        text = clean_text(text)
        now = self._clock()
        placeholder = CachedTodo(
            text=text,
            due_date=due_date,
            priority=priority,
            created_at=now,
            updated_at=now,
        )

        async def request():
            created = await self.api.create_todo(text, due_date, priority)
            self.cache.replace_local(placeholder.local_id, CachedTodo.model_validate(created))

        self._pending_creates.add(placeholder.local_id)
        try:
            await self._mutate("add", lambda: self.cache.add(placeholder), request)
        finally:
            self._pending_creates.discard(placeholder.local_id)
        return placeholder

    async def _change(self, action: str, key: str, changes: Dict[str, Any], wire: Dict[str, Any]) -> bool:
        todo = self._require(key)
        changes["updated_at"] = self._clock()

        def apply():
            self.cache.update_local(todo.local_id, **changes)

        request = None
        if todo.id:
            todo_id = todo.id

            async def request():
                await self.api.update_todo(todo_id, wire)

        return await self._mutate(action, apply, request)

    async def toggle(self, key: str) -> bool:
        completed = not self._require(key).completed
        return await self._change("toggle", key, {"completed": completed}, {"completed": completed})

    async def edit(self, key: str, text: str) -> bool:
        text = clean_text(text)
        return await self._change("edit", key, {"text": text}, {"text": text})

    async def set_priority(self, key: str, priority: Priority) -> bool:
        priority = Priority(priority)
        return await self._change("set_priority", key, {"priority": priority}, {"priority": priority.value})

    async def set_due_date(self, key: str, due_date: Optional[date]) -> bool:
        wire = {"dueDate": due_date.isoformat() if due_date else None}
        return await self._change("set_due_date", key, {"due_date": due_date}, wire)

    async def remove(self, key: str) -> bool:
        todo = self._require(key)

        def apply():
            self.cache.remove_local(todo.local_id)

        request = None
        if todo.id:
            todo_id = todo.id

            async def request():
                await self.api.delete_todo(todo_id)

        return await self._mutate("remove", apply, request)

    async def clear_completed(self) -> bool:
        return await self._mutate("clear_completed", self.cache.remove_completed, self.api.clear_completed)

    def reorder(self, start_index: int, end_index: int) -> None:
        """Local-only move; the next sync restores server order"""
        self.cache.reorder(start_index, end_index)
        self.persist()

    # ---- sync ----

    def _is_pending(self, todo: CachedTodo) -> bool:
        return todo.local_id in self._pending_creates

    def _replace_from_server(self, todos: List[Dict[str, Any]]) -> None:
        # Adds still waiting on their create request survive the replacement
        # so the create response can swap them in place
        pending = [todo for todo in self.cache.todos if self._is_pending(todo)]
        self.cache.replace_all(
            [CachedTodo.model_validate(todo) for todo in todos] + pending,
            synced_at=to_epoch_millis(self._clock()),
        )
        self.error = None
        self.persist()

    async def refresh(self) -> bool:
        """Cold-start path: load the full list and mark the cache as synced"""
        try:
            todos = await self.api.list_todos()
        except TodoError as e:
            self.error = e.message
            logger.warning(f"refresh failed: {e.message}")
            return False

        self._replace_from_server(todos)
        return True

    async def sync(self) -> bool:
        """
        Reconcile the cache with the server.

        Returns False without doing anything if a sync is already running.
        """
        if self._sync_in_flight:
            logger.debug("Sync already in flight, skipping")
            return False

        self._sync_in_flight = True
        try:
            # A pending add is created by its own request, never by the sync
            outgoing = [todo.to_wire() for todo in self.cache.todos if not self._is_pending(todo)]
            todos = await self.api.sync(self.cache.last_sync or None, outgoing)
        except TodoError as e:
            self.error = e.message
            logger.warning(f"sync failed: {e.message}")
            return False
        finally:
            self._sync_in_flight = False

        self._replace_from_server(todos)
        logger.info(f"Synced {len(self.cache.todos)} todos")
        return True

    async def _sync_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.sync()

    def start_periodic_sync(self, interval: float = config.CLIENT_SYNC_INTERVAL_SECONDS) -> Optional[asyncio.Task]:
        """
        Start syncing every `interval` seconds; no-op without a session token.

        The interval must stay below the server's staleness window, otherwise
        every tick arrives stale and local edits are replaced instead of applied.
        """
        if not self.api.is_authenticated:
            logger.info("Not signed in, periodic sync not started")
            return None

        if self._sync_task is None or self._sync_task.done():
            self._sync_task = asyncio.create_task(self._sync_loop(interval))
        return self._sync_task

    async def stop_periodic_sync(self) -> None:
        if self._sync_task is None:
            return
        self._sync_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._sync_task
        self._sync_task = None

    # ---- reminders ----

    async def check_reminders(self, notifier: Notifier, now: Optional[datetime] = None) -> List[Reminder]:
        """Dispatch a reminder for every overdue or due-soon todo in the cache"""
        reminders = collect_reminders(self.cache.todos, now or self._clock())
        for reminder in reminders:
            result = notifier(reminder)
            if inspect.isawaitable(result):
                await result
        return reminders
