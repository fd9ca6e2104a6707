"""
Savings Goal Repository

CRITICAL: Progress fields (current_amount, achieved, achieved_at) are
written only through update_progress. SavingsGoalUpdate does not carry them,
so a regular update can never touch them.

Achievement is one-way: once a goal reaches its target it stays achieved,
even if the observed savings later drop.
"""

from decimal import Decimal
from typing import Union

from ledger.errors import ValidationError
from ledger.ids import generate_id
from ledger.models.entities import (
    SavingsGoal,
    SavingsGoalCreate,
    SavingsGoalUpdate,
    utc_now,
)
from ledger.models.validation import ValidationIssue
from ledger.repositories.base import BaseRepository, newest_created_first


class SavingsGoalRepository(BaseRepository[SavingsGoal]):
    entity_type = "savings_goal"
    model = SavingsGoal

    async def add(self, data: Union[SavingsGoalCreate, dict]) -> str:
        """
        Create a goal with no progress.

        Raises:
            ValidationError: Blank or over-long name, non-positive target,
                             or a target date before the start date
        """
        payload = await self._validator.ensure_valid(
            self.entity_type, SavingsGoalCreate, data
        )
        now = utc_now()
        goal = SavingsGoal(
            id=generate_id(),
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        await self._collection.insert(self._to_record(goal))
        await self._audit.log_entity_created(self.entity_type, goal.id, goal.name)
        return goal.id

    async def update(
        self,
        goal_id: str,
        changes: Union[SavingsGoalUpdate, dict],
    ) -> SavingsGoal:
        """
        Raises:
            EntityNotFoundError: If the goal doesn't exist
            ValidationError: If a change is invalid or names a progress field
        """
        payload = await self._validator.ensure_valid(
            self.entity_type, SavingsGoalUpdate, changes
        )
        existing = await self._require(goal_id)

        values = payload.changes()
        start_date = values.get("start_date", existing.start_date)
        target_date = values.get("target_date", existing.target_date)
        if target_date is not None and start_date is not None and target_date < start_date:
            raise ValidationError(
                "Target date cannot be before start date",
                issues=[ValidationIssue(
                    field="target_date",
                    issue_type="inconsistent",
                    message="Target date cannot be before start date",
                    severity="error",
                )],
            )

        updated = await self._write(existing, {**values, "updated_at": utc_now()})
        await self._audit.log_entity_updated(self.entity_type, goal_id, list(payload.changes()))
        return updated

    async def update_progress(self, goal_id: str, current_amount: Decimal) -> SavingsGoal:
        """
        Record the observed savings for a goal.

        Negative amounts are stored as 0. Reaching the target marks the goal
        achieved and stamps achieved_at; nothing ever un-achieves it.

        Raises:
            EntityNotFoundError: If the goal doesn't exist
        """
        goal = await self._require(goal_id)
        amount = max(Decimal(current_amount), Decimal("0"))

        changes = {"current_amount": amount, "updated_at": utc_now()}
        newly_achieved = not goal.achieved and amount >= goal.target_amount
        if newly_achieved:
            changes["achieved"] = True
            changes["achieved_at"] = changes["updated_at"]

        updated = await self._write(goal, changes)

        if amount != goal.current_amount:
            await self._audit.log_goal_progress_updated(goal_id, goal.current_amount, amount)
        if newly_achieved:
            await self._audit.log_goal_achieved(goal_id, goal.name, goal.target_amount)
        return updated

    async def delete(self, goal_id: str) -> bool:
        """Delete a goal. Deleting an absent goal is a no-op."""
        deleted = await self._collection.delete(goal_id)
        if deleted:
            await self._audit.log_entity_deleted(self.entity_type, goal_id)
        return deleted

    async def get_all(self) -> list[SavingsGoal]:
        """Newest goals first."""
        return newest_created_first(await self._find())

    async def get_active(self) -> list[SavingsGoal]:
        return newest_created_first(await self._find(where={"achieved": False}))
