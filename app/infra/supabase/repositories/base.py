"""Base repository with owner-scoped CRUD operations"""
from typing import Generic, TypeVar, Type, Optional, List, Dict, Any
from pydantic import BaseModel
from supabase import Client

T = TypeVar('T', bound=BaseModel)
CreateT = TypeVar('CreateT', bound=BaseModel)
UpdateT = TypeVar('UpdateT', bound=BaseModel)


class OwnedRepository(Generic[T, CreateT, UpdateT]):
    """
    Base repository for tables whose rows belong to exactly one user.

    Every query is filtered by the owner column, so a row owned by someone
    else is indistinguishable from a row that does not exist.
    Hides Supabase implementation details from the rest of the application.
    """

    owner_column = "user_id"

    def __init__(self, client: Client, table_name: str, model_class: Type[T]):
        self._client = client
        self._table_name = table_name
        self._model_class = model_class

    def _to_model(self, data: Dict[str, Any]) -> T:
        """Convert database dict to domain model"""
        return self._model_class(**data)

    def _to_models(self, data: List[Dict[str, Any]]) -> List[T]:
        """Convert list of database dicts to domain models"""
        return [self._to_model(item) for item in data]

    def _table(self):
        return self._client.table(self._table_name)

    async def find_by_id(self, id: str, owner_id: str) -> Optional[T]:
        """Find a single record by ID, scoped to its owner"""
        response = (
            self._table()
            .select("*")
            .eq("id", id)
            .eq(self.owner_column, owner_id)
            .execute()
        )

        if not response.data:
            return None

        return self._to_model(response.data[0])

    async def find_by_owner(
        self,
        owner_id: str,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[T]:
        """Find all records for an owner with optional ordering"""
        query = self._table().select("*").eq(self.owner_column, owner_id)

        if order_by:
            query = query.order(order_by, desc=desc)

        if limit:
            query = query.limit(limit)

        response = query.execute()
        return self._to_models(response.data)

    async def create(self, data: CreateT) -> T:
        """Create a new record"""
        data_dict = data.model_dump(exclude_unset=False, mode='json')
        response = self._table().insert(data_dict).execute()

        if not response.data:
            raise ValueError("Failed to create record")

        return self._to_model(response.data[0])

    async def update(self, id: str, owner_id: str, data: UpdateT) -> Optional[T]:
        """Update a record by ID and owner; None when nothing matched"""
        data_dict = data.model_dump(exclude_unset=True, mode='json')

        if not data_dict:
            # No fields to update
            return await self.find_by_id(id, owner_id)

        response = (
            self._table()
            .update(data_dict)
            .eq("id", id)
            .eq(self.owner_column, owner_id)
            .execute()
        )

        if not response.data:
            return None

        return self._to_model(response.data[0])

    async def delete(self, id: str, owner_id: str) -> bool:
        """Delete a record by ID and owner"""
        response = (
            self._table()
            .delete()
            .eq("id", id)
            .eq(self.owner_column, owner_id)
            .execute()
        )
        return len(response.data) > 0

    async def delete_by_filters(self, owner_id: str, filters: Dict[str, Any]) -> int:
        """Delete an owner's records matching filters, returning how many went"""
        query = self._table().delete().eq(self.owner_column, owner_id)

        for key, value in filters.items():
            query = query.eq(key, value)

        response = query.execute()
        return len(response.data) if response.data else 0
