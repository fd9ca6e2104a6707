"""
Account Repository

CRITICAL: `balance` is an aggregate of the account's transactions.
Only two methods write it:
- apply_balance_change: the reconciliation engine's primitive
- set_balance: repair after a balance was found out of step

Everything else (add, update) derives it from initial_balance.
"""

from decimal import Decimal
from typing import Union

from ledger.errors import LastEntityGuardError, ReferencedEntityError
from ledger.ids import generate_id
from ledger.models.entities import Account, AccountCreate, AccountUpdate
from ledger.repositories.base import BaseRepository
from ledger.services.storage import CollectionStorageInterface


class AccountRepository(BaseRepository[Account]):
    entity_type = "account"
    model = Account

    def __init__(
        self,
        collection: CollectionStorageInterface,
        transactions: CollectionStorageInterface,
        validator=None,
        audit_logger=None,
    ):
        super().__init__(collection, validator, audit_logger)
        self._transactions = transactions

    async def add(self, data: Union[AccountCreate, dict]) -> str:
        """Create an account whose balance starts at its initial balance."""
        payload = await self._validator.ensure_valid(
            self.entity_type, AccountCreate, data
        )
        values = payload.model_dump()
        if values["order"] is None:
            values["order"] = await self._collection.count()

        account = Account(
            id=generate_id(),
            balance=payload.initial_balance,
            **values,
        )
        await self._collection.insert(self._to_record(account))
        await self._audit.log_entity_created(self.entity_type, account.id, account.name)
        return account.id

    async def update(
        self,
        account_id: str,
        changes: Union[AccountUpdate, dict],
    ) -> Account:
        """
        Update account details.

        A new initial_balance moves the running balance by the same delta,
        so the balance invariant still holds.

        Raises:
            EntityNotFoundError: If the account doesn't exist
            ValidationError: If a change is invalid
        """
        payload = await self._validator.ensure_valid(
            self.entity_type, AccountUpdate, changes
        )
        existing = await self._require(account_id)
        values = payload.changes()

        new_initial = values.get("initial_balance")
        if new_initial is not None and new_initial != existing.initial_balance:
            values["balance"] = existing.balance + (new_initial - existing.initial_balance)

        updated = await self._write(existing, values)
        await self._audit.log_entity_updated(
            self.entity_type, account_id, list(payload.changes())
        )
        if "balance" in values:
            await self._audit.log_balance_adjusted(
                account_id=account_id,
                old_balance=existing.balance,
                new_balance=updated.balance,
                reason="initial_balance changed",
            )
        return updated

    async def delete(self, account_id: str) -> None:
        """
        Delete an account nothing references.

        Raises:
            EntityNotFoundError: If the account doesn't exist
            ReferencedEntityError: If transactions still use it
            LastEntityGuardError: If it is the only account left
        """
        await self._require(account_id)

        references = await self._transactions.count({"account_id": account_id})
        if references > 0:
            await self._audit.log_delete_blocked(
                self.entity_type, account_id, f"{references} transaction(s)"
            )
            raise ReferencedEntityError(self.entity_type, account_id, references)

        if await self._collection.count() <= 1:
            await self._audit.log_delete_blocked(
                self.entity_type, account_id, "last account"
            )
            raise LastEntityGuardError(self.entity_type, account_id)

        await self._collection.delete(account_id)
        await self._audit.log_entity_deleted(self.entity_type, account_id)

    async def apply_balance_change(
        self,
        account_id: str,
        amount: Decimal,
        is_income: bool,
        reason: str = "transaction",
        correlation_id=None,
    ) -> Decimal:
        """
        Move the balance by one transaction's effect.

        The sign comes only from `is_income`; `amount` is treated as a
        magnitude whatever its stored sign.

        Returns:
            The new balance

        Raises:
            EntityNotFoundError: If the account doesn't exist
        """
        account = await self._require(account_id)
        magnitude = abs(Decimal(amount))
        new_balance = account.balance + magnitude if is_income else account.balance - magnitude

        await self._write(account, {"balance": new_balance})
        await self._audit.log_balance_adjusted(
            account_id=account_id,
            old_balance=account.balance,
            new_balance=new_balance,
            reason=reason,
            correlation_id=correlation_id,
        )
        return new_balance

    async def set_balance(self, account_id: str, balance: Decimal) -> Account:
        """Overwrite the balance. Used only to repair a drifted account."""
        account = await self._require(account_id)
        return await self._write(account, {"balance": Decimal(balance)})

    async def get_all(self) -> list[Account]:
        return await self._find(order_by="order")
