"""
Transaction Repository

CRITICAL: Only the reconciliation engine calls the write methods here.
Writing a transaction without adjusting its account breaks the balance
invariant; see ledger/reconciliation.py.
"""

import datetime as dt
from typing import Any, Optional, Union

from ledger.ids import generate_id
from ledger.models.entities import (
    Transaction,
    TransactionCreate,
    TransactionUpdate,
    utc_now,
)
from ledger.repositories.base import BaseRepository, newest_created_first


def sort_newest_first(transactions: list[Transaction]) -> list[Transaction]:
    """Date descending, ties broken by creation time (then id) descending."""
    return sorted(
        transactions,
        key=lambda t: (t.date, t.created_at, t.id),
        reverse=True,
    )


class TransactionRepository(BaseRepository[Transaction]):
    entity_type = "transaction"
    model = Transaction

    async def parse_create(
        self,
        data: Union[TransactionCreate, dict],
    ) -> TransactionCreate:
        """Validate a new transaction without writing it."""
        return await self._validator.ensure_valid(
            self.entity_type, TransactionCreate, data
        )

    async def parse_update(
        self,
        changes: Union[TransactionUpdate, dict],
    ) -> TransactionUpdate:
        """Validate a partial update without writing it."""
        return await self._validator.ensure_valid(
            self.entity_type, TransactionUpdate, changes
        )

    async def add(self, data: Union[TransactionCreate, dict]) -> str:
        """
        Store a new transaction.

        Returns:
            The generated id

        Raises:
            ValidationError: If the payload is invalid
        """
        payload = await self.parse_create(data)
        now = utc_now()
        transaction = Transaction(
            id=generate_id(),
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        await self._collection.insert(self._to_record(transaction))
        return transaction.id

    async def update(
        self,
        transaction_id: str,
        changes: Union[TransactionUpdate, dict],
    ) -> Transaction:
        """
        Apply field changes and refresh `updated_at`.

        Raises:
            EntityNotFoundError: If the transaction doesn't exist
            ValidationError: If a change is invalid
        """
        payload = await self.parse_update(changes)
        existing = await self._require(transaction_id)
        return await self._write(
            existing, {**payload.changes(), "updated_at": utc_now()}
        )

    async def delete(self, transaction_id: str) -> bool:
        """Remove a transaction. Returns False if it did not exist."""
        return await self._collection.delete(transaction_id)

    async def get_all(self) -> list[Transaction]:
        return sort_newest_first(await self._find())

    async def get_by_date_range(
        self,
        start_date: dt.date,
        end_date: dt.date,
    ) -> list[Transaction]:
        """Transactions dated within [start_date, end_date], newest first."""
        return sort_newest_first(await self._find(
            range_field="date",
            lower=start_date.isoformat(),
            upper=end_date.isoformat(),
        ))

    async def get_since(self, start_date: dt.date) -> list[Transaction]:
        """Transactions dated on or after start_date, newest first."""
        return sort_newest_first(await self._find(
            range_field="date",
            lower=start_date.isoformat(),
        ))

    async def get_recent(self, limit: int = 10) -> list[Transaction]:
        """Most recently recorded transactions."""
        return newest_created_first(await self._find())[:limit]

    async def get_by_account(self, account_id: str) -> list[Transaction]:
        return sort_newest_first(await self._find(where={"account_id": account_id}))

    async def find(
        self,
        where: Optional[dict[str, Any]] = None,
        start_date: Optional[dt.date] = None,
        end_date: Optional[dt.date] = None,
    ) -> list[Transaction]:
        """Equality filters plus an optional inclusive date range."""
        ranged = start_date is not None or end_date is not None
        return sort_newest_first(await self._find(
            where=where,
            range_field="date" if ranged else None,
            lower=start_date.isoformat() if start_date else None,
            upper=end_date.isoformat() if end_date else None,
        ))

    async def count_by_category(self, category_id: str) -> int:
        return await self._collection.count({"category_id": category_id})

    async def count_by_account(self, account_id: str) -> int:
        return await self._collection.count({"account_id": account_id})
