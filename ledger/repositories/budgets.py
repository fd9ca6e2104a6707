"""
Budget Repository

At most one budget exists per (category_id, period); set_budget upserts.
A budget without a category is a general budget.
"""

from typing import Union

from ledger.ids import generate_id
from ledger.models.entities import Budget, BudgetCreate, BudgetPeriod, BudgetUpdate
from ledger.repositories.base import BaseRepository


class BudgetRepository(BaseRepository[Budget]):
    entity_type = "budget"
    model = Budget

    async def set_budget(self, data: Union[BudgetCreate, dict]) -> str:
        """
        Create the budget for (category_id, period), or update the one that
        already exists.

        Returns:
            The id of the created or updated budget
        """
        payload = await self._validator.ensure_valid(
            self.entity_type, BudgetCreate, data
        )
        existing = await self._find(where={
            "category_id": payload.category_id,
            "period": payload.period.value,
        })

        if existing:
            budget = await self._write(existing[0], {
                "amount": payload.amount,
                "start_date": payload.start_date,
            })
            created = False
        else:
            budget = Budget(id=generate_id(), **payload.model_dump())
            await self._collection.insert(self._to_record(budget))
            created = True

        await self._audit.log_budget_set(
            budget_id=budget.id,
            category_id=budget.category_id,
            period=budget.period.value,
            amount=budget.amount,
            created=created,
        )
        return budget.id

    async def update(self, budget_id: str, changes: Union[BudgetUpdate, dict]) -> Budget:
        """
        Raises:
            EntityNotFoundError: If the budget doesn't exist
        """
        payload = await self._validator.ensure_valid(
            self.entity_type, BudgetUpdate, changes
        )
        existing = await self._require(budget_id)
        updated = await self._write(existing, payload.changes())
        await self._audit.log_entity_updated(
            self.entity_type, budget_id, list(payload.changes())
        )
        return updated

    async def delete(self, budget_id: str) -> bool:
        """Delete a budget. Deleting an absent budget is a no-op."""
        deleted = await self._collection.delete(budget_id)
        if deleted:
            await self._audit.log_entity_deleted(self.entity_type, budget_id)
        return deleted

    async def get_all(self) -> list[Budget]:
        return await self._find()

    async def get_by_period(self, period: Union[BudgetPeriod, str]) -> list[Budget]:
        return await self._find(where={"period": BudgetPeriod(period).value})
