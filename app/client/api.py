"""HTTP client for the todo API"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from app import config
from app.features.todos.domain import (
    NotFound,
    StoreFailure,
    TodoError,
    Unauthorized,
    ValidationError,
)
from app.models.todo import Priority

logger = logging.getLogger(__name__)

_STATUS_ERRORS = {
    400: ValidationError,
    401: Unauthorized,
    404: NotFound,
    422: ValidationError,
}


def error_for_response(response: httpx.Response) -> TodoError:
    """Translate a failed response into the matching domain error"""
    try:
        body = response.json()
    except ValueError:
        body = None

    detail = body.get("detail") if isinstance(body, dict) else None
    error_class = _STATUS_ERRORS.get(response.status_code, StoreFailure)
    return error_class(detail if isinstance(detail, str) else f"Request failed ({response.status_code})")


class TodoAPIClient:
    """
    Async client for the /api/todos endpoints.

    A new httpx.AsyncClient is opened per request; pass `transport` to route
    requests somewhere other than the network (e.g. httpx.ASGITransport).
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = config.CLIENT_REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        url = f"{self.base_url}/api/todos{path}"
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.request(method, url, json=json, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise StoreFailure("Request failed") from e

        if response.status_code >= 400:
            error = error_for_response(response)
            logger.warning(f"{method} {url} returned {response.status_code}: {error.message}")
            raise error

        return response.json()

    async def list_todos(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "")

    async def get_todo(self, todo_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/{todo_id}")

    async def create_todo(
        self,
        text: str,
        due_date: Optional[date] = None,
        priority: Priority = Priority.MEDIUM,
    ) -> Dict[str, Any]:
        payload = {
            "text": text,
            "dueDate": due_date.isoformat() if due_date else None,
            "priority": Priority(priority).value,
        }
        return await self._request("POST", "", json=payload)

    async def update_todo(self, todo_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """PUT camelCase field changes for one todo"""
        return await self._request("PUT", f"/{todo_id}", json=changes)

    async def delete_todo(self, todo_id: str) -> None:
        await self._request("DELETE", f"/{todo_id}")

    async def clear_completed(self) -> int:
        body = await self._request("POST", "/clear-completed")
        return body.get("deletedCount", 0)

    async def sync(self, last_sync: Optional[int], todos: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        body = await self._request("POST", "/sync", json={"lastSync": last_sync, "todos": todos})
        return body["todos"]

    async def reminders(self) -> List[Dict[str, Any]]:
        body = await self._request("GET", "/reminders")
        return body["reminders"]
