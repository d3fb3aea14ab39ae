"""Todos API endpoints"""

import logging
from datetime import datetime
from typing import Callable, List

from fastapi import APIRouter, Depends, HTTPException

from app.features.todos.domain import TodoError
from app.features.todos.schemas import (
    ClearCompletedResponse,
    CreateTodoRequest,
    DeleteResponse,
    ReminderListResponse,
    SyncRequest,
    TodoListResponse,
    UpdateTodoRequest,
)
from app.features.todos.service import TodoService
from app.features.todos.sync_service import TodoSyncService
from app.infra.supabase.client import get_supabase_client
from app.infra.supabase.repositories.todos import TodoRepository
from app.middleware.auth import get_current_user_id
from app.models.todo import Todo
from app.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/todos", tags=["todos"])


def get_todo_repository() -> TodoRepository:
    return TodoRepository(get_supabase_client())


def get_clock() -> Callable[[], datetime]:
    return utc_now


def get_todo_service(
    repository: TodoRepository = Depends(get_todo_repository),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TodoService:
    return TodoService(repository, clock=clock)


def get_sync_service(
    repository: TodoRepository = Depends(get_todo_repository),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TodoSyncService:
    return TodoSyncService(repository, clock=clock)


def to_http_error(error: TodoError) -> HTTPException:
    """Map a domain error onto the matching HTTP status"""
    return HTTPException(status_code=error.status_code, detail=error.message)


@router.get("", response_model=List[Todo])
async def list_todos(
    user_id: str = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
):
    """List the caller's todos, newest first"""
    try:
        return await service.list_todos(user_id)
    except TodoError as e:
        raise to_http_error(e)


@router.post("", response_model=Todo)
async def create_todo(
    request: CreateTodoRequest,
    user_id: str = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
):
    """Create a todo owned by the caller"""
    try:
        return await service.create_todo(
            user_id=user_id,
            text=request.text,
            due_date=request.due_date,
            priority=request.priority,
        )
    except TodoError as e:
        raise to_http_error(e)


@router.post("/sync", response_model=TodoListResponse)
async def sync_todos(
    request: SyncRequest,
    user_id: str = Depends(get_current_user_id),
    sync_service: TodoSyncService = Depends(get_sync_service),
):
    """
    Reconcile the caller's cached todos with the store.

    Stale or cold clients (no lastSync, or one at least 30s old) get the
    authoritative list back untouched. Fresh clients have todos changed since
    lastSync applied first. Either way the response is the full list the
    client should replace its cache with.
    """
    try:
        todos = await sync_service.reconcile(user_id, request.last_sync, request.todos)
    except TodoError as e:
        raise to_http_error(e)

    return {"todos": todos}


@router.post("/clear-completed", response_model=ClearCompletedResponse)
async def clear_completed(
    user_id: str = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
):
    """Delete all of the caller's completed todos"""
    try:
        count = await service.clear_completed(user_id)
    except TodoError as e:
        raise to_http_error(e)

    return {"success": True, "deletedCount": count}


@router.get("/reminders", response_model=ReminderListResponse)
async def list_reminders(
    user_id: str = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
):
    """Overdue and due-soon reminders for the caller's incomplete todos"""
    try:
        reminders = await service.get_reminders(user_id)
    except TodoError as e:
        raise to_http_error(e)

    return {"reminders": reminders, "count": len(reminders)}


@router.get("/{todo_id}", response_model=Todo)
async def get_todo(
    todo_id: str,
    user_id: str = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
):
    """Get a single todo by ID"""
    try:
        return await service.get_todo(todo_id, user_id)
    except TodoError as e:
        raise to_http_error(e)


@router.put("/{todo_id}", response_model=Todo)
async def update_todo(
    todo_id: str,
    request: UpdateTodoRequest,
    user_id: str = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
):
    """Update the mutable fields of a todo"""
    try:
        return await service.update_todo(
            todo_id,
            user_id,
            request.model_dump(exclude_unset=True),
        )
    except TodoError as e:
        raise to_http_error(e)


@router.delete("/{todo_id}", response_model=DeleteResponse)
async def delete_todo(
    todo_id: str,
    user_id: str = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
):
    """Delete a todo"""
    try:
        await service.delete_todo(todo_id, user_id)
    except TodoError as e:
        raise to_http_error(e)

    return {"success": True, "message": "Todo deleted successfully"}
