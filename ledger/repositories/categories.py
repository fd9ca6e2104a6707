"""
Category Repository

System categories (is_custom=False) are seeded once and are never deleted.
Any category still used by a transaction is kept as well.
"""

from typing import Union

from ledger.errors import ProtectedEntityError, ReferencedEntityError
from ledger.ids import generate_id
from ledger.models.entities import (
    Category,
    CategoryCreate,
    CategoryUpdate,
    TransactionType,
)
from ledger.repositories.base import BaseRepository
from ledger.services.storage import CollectionStorageInterface


class CategoryRepository(BaseRepository[Category]):
    entity_type = "category"
    model = Category

    def __init__(
        self,
        collection: CollectionStorageInterface,
        transactions: CollectionStorageInterface,
        validator=None,
        audit_logger=None,
    ):
        super().__init__(collection, validator, audit_logger)
        self._transactions = transactions

    async def add(self, data: Union[CategoryCreate, dict]) -> str:
        """
        Create a category. Categories are custom unless stated otherwise.

        Without an explicit order the category goes to the end of the list.
        """
        payload = await self._validator.ensure_valid(
            self.entity_type, CategoryCreate, data
        )
        values = payload.model_dump()
        if values["order"] is None:
            values["order"] = await self._collection.count()

        category = Category(id=generate_id(), **values)
        await self._collection.insert(self._to_record(category))
        await self._audit.log_entity_created(self.entity_type, category.id, category.name)
        return category.id

    async def update(
        self,
        category_id: str,
        changes: Union[CategoryUpdate, dict],
    ) -> Category:
        """
        Raises:
            EntityNotFoundError: If the category doesn't exist
            ValidationError: If a change is invalid
        """
        payload = await self._validator.ensure_valid(
            self.entity_type, CategoryUpdate, changes
        )
        existing = await self._require(category_id)
        updated = await self._write(existing, payload.changes())
        await self._audit.log_entity_updated(
            self.entity_type, category_id, list(payload.changes())
        )
        return updated

    async def delete(self, category_id: str) -> None:
        """
        Delete a custom category nothing references.

        Raises:
            EntityNotFoundError: If the category doesn't exist
            ProtectedEntityError: If it is a system category
            ReferencedEntityError: If transactions still use it
        """
        category = await self._require(category_id)

        if not category.is_custom:
            await self._audit.log_delete_blocked(
                self.entity_type, category_id, "system category"
            )
            raise ProtectedEntityError(self.entity_type, category_id)

        references = await self._transactions.count({"category_id": category_id})
        if references > 0:
            await self._audit.log_delete_blocked(
                self.entity_type, category_id, f"{references} transaction(s)"
            )
            raise ReferencedEntityError(self.entity_type, category_id, references)

        await self._collection.delete(category_id)
        await self._audit.log_entity_deleted(self.entity_type, category_id)

    async def get_all(self) -> list[Category]:
        return await self._find(order_by="order")

    async def get_by_type(self, category_type: Union[TransactionType, str]) -> list[Category]:
        return await self._find(
            where={"type": TransactionType(category_type).value},
            order_by="order",
        )
