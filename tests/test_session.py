# tests/test_session.py

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from app import config
from app.client.api import TodoAPIClient
from app.client.cache import CachedTodo
from app.client.session import TodoSession
from app.features.todos.domain import NotFound, ValidationError
from app.models.todo import Priority
from app.utils.datetime_helper import to_epoch_millis

from .conftest import T0


@pytest.fixture()
def api(transport) -> TodoAPIClient:
    return TodoAPIClient("http://test", token="alice", transport=transport)


@pytest.fixture()
def session(api, clock) -> TodoSession:
    return TodoSession(api, clock=clock)


class GatedAPI:
    """Stands in for TodoAPIClient; sync() blocks until released."""

    def __init__(self, token: str | None = "alice") -> None:
        self.is_authenticated = bool(token)
        self.release = asyncio.Event()
        self.sync_calls = 0

    async def sync(self, last_sync, todos):
        self.sync_calls += 1
        await self.release.wait()
        return []


class HeldCreateAPI(TodoAPIClient):
    """TodoAPIClient whose create_todo parks until released, before or after the POST."""

    def __init__(self, *args, hold_after_post: bool = False, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.hold_after_post = hold_after_post
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def create_todo(self, *args, **kwargs):
        created = await super().create_todo(*args, **kwargs) if self.hold_after_post else None
        self.entered.set()
        await self.release.wait()
        if created is None:
            created = await super().create_todo(*args, **kwargs)
        return created


@pytest.mark.asyncio
async def test_add_shows_placeholder_then_server_record(session, repo) -> None:
    placeholder = await session.add("  write report ", due_date=date(2025, 3, 3), priority=Priority.HIGH)

    assert placeholder.id is None
    assert session.error is None
    assert len(session.cache.todos) == 1
    stored = session.cache.todos[0]
    assert stored.id in repo.rows
    assert stored.text == "write report"
    assert stored.user_id == "alice"
    assert stored.priority == Priority.HIGH


@pytest.mark.asyncio
async def test_add_with_empty_text_changes_nothing(session, repo) -> None:
    with pytest.raises(ValidationError):
        await session.add("   ")

    assert session.cache.todos == []
    assert repo.calls == []


@pytest.mark.asyncio
async def test_failed_create_keeps_placeholder_and_sets_error(session, repo) -> None:
    repo.fail_on.add("create")

    placeholder = await session.add("offline task")

    assert session.error == "Failed to create todo"
    assert [t.local_id for t in session.cache.todos] == [placeholder.local_id]
    assert session.cache.todos[0].id is None

    # Entries without an id only change locally until the next sync
    assert await session.toggle(placeholder.local_id) is True
    assert session.cache.todos[0].completed is True
    assert repo.rows == {}


@pytest.mark.asyncio
async def test_failed_update_sets_error_without_rollback(session, repo) -> None:
    todo = repo.seed("alice", "server todo", created_at=T0)
    await session.refresh()
    repo.fail_on.add("update")

    ok = await session.toggle(todo.id)

    assert ok is False
    assert session.error == "Failed to update todo"
    assert session.cache.get(todo.id).completed is True
    assert repo.rows[todo.id].completed is False


@pytest.mark.asyncio
async def test_rollback_variant_restores_cache_on_failure(api, repo, clock) -> None:
    session = TodoSession(api, rollback_on_failure=True, clock=clock)
    todo = repo.seed("alice", "server todo", created_at=T0)
    await session.refresh()
    repo.fail_on.add("update")

    ok = await session.edit(todo.id, "renamed")

    assert ok is False
    assert session.cache.get(todo.id).text == "server todo"
    assert session.error == "Failed to update todo"


@pytest.mark.asyncio
async def test_edits_reach_the_server(session, repo) -> None:
    todo = repo.seed("alice", "draft", created_at=T0)
    await session.refresh()

    await session.edit(todo.id, "final")
    await session.set_priority(todo.id, Priority.LOW)
    await session.set_due_date(todo.id, date(2025, 4, 1))
    await session.toggle(todo.id)

    stored = repo.rows[todo.id]
    assert (stored.text, stored.priority, stored.due_date, stored.completed) == (
        "final",
        Priority.LOW,
        date(2025, 4, 1),
        True,
    )

    await session.set_due_date(todo.id, None)
    assert repo.rows[todo.id].due_date is None


@pytest.mark.asyncio
async def test_remove_and_clear_completed(session, repo) -> None:
    gone = repo.seed("alice", "remove me", created_at=T0)
    done = repo.seed("alice", "done", created_at=T0, completed=True)
    keep = repo.seed("alice", "keep", created_at=T0)
    await session.refresh()

    assert await session.remove(gone.id) is True
    assert await session.clear_completed() is True

    assert set(repo.rows) == {keep.id}
    assert [t.id for t in session.cache.todos] == [keep.id]
    assert done.id not in repo.rows


@pytest.mark.asyncio
async def test_unknown_key_is_not_found(session) -> None:
    with pytest.raises(NotFound):
        await session.toggle("missing")


@pytest.mark.asyncio
async def test_refresh_marks_cache_synced(session, repo, clock) -> None:
    repo.seed("alice", "A", created_at=T0)

    assert await session.refresh() is True

    assert session.cache.last_sync == to_epoch_millis(clock.now)
    assert [t.text for t in session.cache.todos] == ["A"]


@pytest.mark.asyncio
async def test_offline_changes_reach_store_on_fresh_sync(session, repo, clock) -> None:
    todo = repo.seed("alice", "A", created_at=T0)
    await session.refresh()

    repo.fail_on.update({"create", "update"})
    clock.advance(seconds=5)
    await session.toggle(todo.id)
    await session.add("made offline")
    repo.fail_on.clear()

    assert await session.sync() is True

    assert repo.rows[todo.id].completed is True
    assert sorted(t.text for t in repo.rows.values()) == ["A", "made offline"]
    assert all(t.id for t in session.cache.todos)
    assert session.cache.last_sync == to_epoch_millis(clock.now)


@pytest.mark.asyncio
async def test_stale_sync_discards_local_changes(session, repo, clock) -> None:
    todo = repo.seed("alice", "A", created_at=T0)
    await session.refresh()

    repo.fail_on.add("update")
    clock.advance(minutes=5)
    await session.edit(todo.id, "local only")
    repo.fail_on.clear()

    assert await session.sync() is True

    assert repo.rows[todo.id].text == "A"
    assert session.cache.get(todo.id).text == "A"
    assert repo.writes == []


@pytest.mark.asyncio
async def test_cold_cache_sync_returns_server_list(session, repo) -> None:
    repo.seed("alice", "server", created_at=T0)
    session.cache.add(CachedTodo(text="local"))

    assert await session.sync() is True

    assert [t.text for t in session.cache.todos] == ["server"]
    assert repo.writes == []


@pytest.mark.asyncio
async def test_sync_is_skipped_while_one_is_in_flight() -> None:
    api = GatedAPI()
    session = TodoSession(api)

    first = asyncio.create_task(session.sync())
    await asyncio.sleep(0)
    assert session.syncing is True

    assert await session.sync() is False

    api.release.set()
    assert await first is True
    assert api.sync_calls == 1
    assert session.syncing is False


@pytest.mark.asyncio
async def test_sync_failure_sets_error(transport, repo, clock) -> None:
    session = TodoSession(TodoAPIClient("http://test", transport=transport), clock=clock)

    assert await session.sync() is False
    assert session.error == "Unauthorized"
    assert repo.calls == []


@pytest.mark.asyncio
async def test_periodic_sync_needs_a_session_token() -> None:
    session = TodoSession(GatedAPI(token=None))

    assert session.start_periodic_sync(0.01) is None


@pytest.mark.asyncio
async def test_periodic_sync_runs_until_stopped() -> None:
    api = GatedAPI()
    api.release.set()
    session = TodoSession(api)

    task = session.start_periodic_sync(0.01)
    assert task is not None
    assert session.start_periodic_sync(0.01) is task

    await asyncio.sleep(0.1)
    await session.stop_periodic_sync()

    assert api.sync_calls >= 1
    assert task.done()


@pytest.mark.asyncio
async def test_check_reminders_supports_sync_and_async_notifiers(session, repo) -> None:
    repo.seed("alice", "late", created_at=T0, due_date=date(2025, 2, 20))
    repo.seed("alice", "soon", created_at=T0, due_date=date(2025, 3, 2))
    await session.refresh()

    seen = []

    async def async_notifier(reminder) -> None:
        seen.append(("async", reminder.title))

    plain = await session.check_reminders(lambda reminder: seen.append(("sync", reminder.title)))
    awaited = await session.check_reminders(async_notifier)

    assert len(plain) == len(awaited) == 2
    assert sorted(seen) == [
        ("async", "Task Due Soon!"),
        ("async", "Task Overdue!"),
        ("sync", "Task Due Soon!"),
        ("sync", "Task Overdue!"),
    ]


@pytest.mark.asyncio
async def test_snapshot_survives_restart(api, repo, clock, tmp_path) -> None:
    path = tmp_path / "todos.json"
    first = TodoSession(api, snapshot_path=path, clock=clock)
    await first.add("persist me")

    second = TodoSession(api, snapshot_path=path, clock=clock)

    assert [t.text for t in second.cache.todos] == ["persist me"]
    assert second.cache.todos[0].id == first.cache.todos[0].id


@pytest.mark.asyncio
async def test_add_overlapping_a_sync_is_created_once(transport, repo, clock) -> None:
    api = HeldCreateAPI("http://test", token="alice", transport=transport)
    session = TodoSession(api, clock=clock)
    await session.refresh()
    clock.advance(seconds=5)

    adding = asyncio.create_task(session.add("buy milk"))
    await api.entered.wait()

    assert await session.sync() is True
    assert [(t.text, t.id) for t in session.cache.todos] == [("buy milk", None)]

    api.release.set()
    await adding

    assert sorted(t.text for t in repo.rows.values()) == ["buy milk"]
    assert [t.text for t in session.cache.todos] == ["buy milk"]
    assert session.cache.todos[0].id in repo.rows


@pytest.mark.asyncio
async def test_refresh_landing_before_create_response_keeps_one_copy(transport, repo, clock) -> None:
    api = HeldCreateAPI("http://test", token="alice", transport=transport, hold_after_post=True)
    session = TodoSession(api, clock=clock)

    adding = asyncio.create_task(session.add("buy milk"))
    await api.entered.wait()

    assert await session.refresh() is True
    assert len(session.cache.todos) == 2

    api.release.set()
    await adding

    assert len(repo.rows) == 1
    assert [t.id for t in session.cache.todos] == list(repo.rows)


@pytest.mark.asyncio
async def test_default_sync_interval_lands_inside_staleness_window(session, repo, clock) -> None:
    todo = repo.seed("alice", "A", created_at=T0)
    await session.refresh()

    repo.fail_on.add("update")
    clock.advance(seconds=1)
    await session.edit(todo.id, "edited offline")
    repo.fail_on.clear()
    clock.advance(seconds=config.CLIENT_SYNC_INTERVAL_SECONDS - 1)

    assert config.CLIENT_SYNC_INTERVAL_SECONDS * 1000 < config.SYNC_STALENESS_WINDOW_MS
    assert await session.sync() is True

    assert repo.rows[todo.id].text == "edited offline"
