"""
Todo Sync Service

Reconciles a client-held todo list with the store:
- Stale or cold clients get the authoritative list back with no writes
- Fresh clients have their locally changed todos applied, last write wins
- The owner's full list is re-read and returned as the new snapshot
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from app import config
from app.features.todos.schemas import ClientTodo
from app.features.todos.domain import clean_text
from app.features.todos.service import store_boundary
from app.infra.supabase.repositories.todos import TodoRepository
from app.models.todo import Todo, TodoCreate, TodoUpdate
from app.utils.datetime_helper import to_epoch_millis, utc_now

logger = logging.getLogger(__name__)

SYNC_FAILED = "Sync failed"


class TodoSyncService:
    """Service for reconciling client caches against the task store"""

    def __init__(
        self,
        repository: TodoRepository,
        staleness_window_ms: int = config.SYNC_STALENESS_WINDOW_MS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.staleness_window_ms = staleness_window_ms
        self._clock = clock

    def is_stale(self, last_sync: Optional[int], now_ms: int) -> bool:
        """A missing/zero last sync, or one at least a full window old, is not trusted"""
        if not last_sync:
            return True
        return now_ms - last_sync >= self.staleness_window_ms

    @staticmethod
    def select_candidates(last_sync: int, client_todos: List[ClientTodo]) -> List[ClientTodo]:
        """Client todos changed strictly after the last trusted sync point"""
        return [todo for todo in client_todos if to_epoch_millis(todo.updated_at) > last_sync]

    async def reconcile(
        self,
        user_id: str,
        last_sync: Optional[int],
        client_todos: List[ClientTodo],
    ) -> List[Todo]:
        """
        Reconcile a client's todo list with the store.

        Args:
            user_id: The authenticated owner; every read and write is scoped to it
            last_sync: Client's last successful sync in epoch millis, or None
            client_todos: The client's current cached list

        Returns:
            The owner's full todo list after any writes, newest first

        Raises:
            ValidationError: If a candidate todo has empty text (nothing is written)
            StoreFailure: If the store fails; writes issued before the failure stay applied
        """
        now_ms = to_epoch_millis(self._clock())

        async with store_boundary("sync", SYNC_FAILED):
            if self.is_stale(last_sync, now_ms):
                logger.info(
                    f"Sync for user {user_id}: client is stale (lastSync={last_sync}), "
                    f"returning authoritative list"
                )
                return await self.repository.find_by_user(user_id)

            candidates = self.select_candidates(last_sync, client_todos)
            cleaned = [(todo, clean_text(todo.text)) for todo in candidates]
            logger.info(
                f"Sync for user {user_id}: {len(candidates)} of {len(client_todos)} "
                f"client todos changed since {last_sync}"
            )

            updated, inserted, skipped = await self._apply(user_id, cleaned)
            logger.info(
                f"Sync for user {user_id} applied: updated={updated}, "
                f"inserted={inserted}, skipped={skipped}"
            )

            return await self.repository.find_by_user(user_id)

    async def _apply(self, user_id: str, candidates: List[Tuple[ClientTodo, str]]) -> Tuple[int, int, int]:
        updated = inserted = skipped = 0

        for todo, text in candidates:
            # Server clock wins over the client's submitted updatedAt
            applied_at = self._clock()

            if todo.id:
                result = await self.repository.update(
                    todo.id,
                    user_id,
                    TodoUpdate(
                        text=text,
                        completed=todo.completed,
                        due_date=todo.due_date,
                        priority=todo.priority,
                        updated_at=applied_at,
                    ),
                )
                if result is None:
                    # Missing or foreign ids look the same: nothing to update
                    logger.info(f"Sync for user {user_id}: todo {todo.id} not found, skipped")
                    skipped += 1
                else:
                    updated += 1
            else:
                await self.repository.create(
                    TodoCreate(
                        user_id=user_id,
                        text=text,
                        completed=todo.completed,
                        due_date=todo.due_date,
                        priority=todo.priority,
                        created_at=applied_at,
                        updated_at=applied_at,
                    )
                )
                inserted += 1

        return updated, inserted, skipped
