# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import httpx
import pytest
from fastapi import Header, HTTPException

from app.features.todos.api import get_clock, get_todo_repository
from app.main import app as fastapi_app
from app.middleware.auth import get_current_user_id

from .fakes import FakeClock, InMemoryTodoRepository

T0 = datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


async def bearer_is_user_id(authorization: Optional[str] = Header(None)) -> str:
    """Test identity provider: the bearer token *is* the user id."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return authorization.split(" ", 1)[1]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture()
def repo() -> InMemoryTodoRepository:
    return InMemoryTodoRepository()


@pytest.fixture()
def app(repo: InMemoryTodoRepository, clock: FakeClock):
    """
    The real FastAPI app with the store, clock and identity provider swapped
    for fakes. Everything between the router and the repository is real.
    """
    fastapi_app.dependency_overrides[get_todo_repository] = lambda: repo
    fastapi_app.dependency_overrides[get_clock] = lambda: clock
    fastapi_app.dependency_overrides[get_current_user_id] = bearer_is_user_id
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def transport(app) -> httpx.ASGITransport:
    return httpx.ASGITransport(app=app)


@pytest.fixture()
def http(transport: httpx.ASGITransport):
    """Factory for AsyncClients signed in as a given user (None for anonymous)."""

    def make(user_id: Optional[str] = "alice") -> httpx.AsyncClient:
        headers = {"Authorization": f"Bearer {user_id}"} if user_id else {}
        return httpx.AsyncClient(transport=transport, base_url="http://test", headers=headers)

    return make
