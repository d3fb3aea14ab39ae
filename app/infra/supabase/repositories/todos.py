"""Todo repository"""
from typing import List

from supabase import Client  # type: ignore

from app import config
from app.models.todo import Todo, TodoCreate, TodoUpdate

from .base import OwnedRepository


class TodoRepository(OwnedRepository[Todo, TodoCreate, TodoUpdate]):
    """Repository for todo operations"""

    def __init__(self, client: Client, table_name: str = config.TODOS_TABLE):
        super().__init__(client, table_name, Todo)

    async def find_by_user(self, user_id: str) -> List[Todo]:
        """Find all todos for a user, newest first"""
        return await self.find_by_owner(user_id, order_by="created_at", desc=True)

    async def delete_completed(self, user_id: str) -> int:
        """Delete a user's completed todos

        Returns:
            Number of deleted todos
        """
        return await self.delete_by_filters(user_id, {"completed": True})
