"""
Operation Journal

DESIGN DECISION: Storage offers no multi-record transaction, so every
ledger operation that writes twice (a transaction record and an account
balance) is journaled:

1. An entry naming the operation and the accounts it touches is written
2. The two writes run
3. The entry is removed

An entry that is still present at startup means the process stopped (or
failed) between steps 1 and 3. The affected balances are then recomputed
from the transactions, which is always correct whatever the writes did.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from ledger.ids import generate_id
from ledger.models.entities import utc_now
from ledger.services.storage import CollectionStorageInterface


class JournalEntry(BaseModel):
    """A two-write ledger operation that has started but not finished."""

    id: str = Field(default_factory=generate_id)
    operation: str = Field(..., description="add, update or delete")
    transaction_id: Optional[str] = None
    account_ids: list[str] = Field(default_factory=list)
    created_at: dt.datetime = Field(default_factory=utc_now)


class OperationJournal:
    """Start/finish markers for two-write operations."""

    def __init__(self, collection: CollectionStorageInterface):
        self._collection = collection

    async def begin(
        self,
        operation: str,
        account_ids: list[str],
        transaction_id: Optional[str] = None,
    ) -> JournalEntry:
        entry = JournalEntry(
            operation=operation,
            transaction_id=transaction_id,
            # Keep order but drop duplicates (same-account edits)
            account_ids=list(dict.fromkeys(account_ids)),
        )
        await self._collection.insert(entry.model_dump(mode="json"))
        return entry

    async def complete(self, entry: JournalEntry) -> None:
        await self._collection.delete(entry.id)

    async def pending(self) -> list[JournalEntry]:
        """Entries left behind by interrupted operations, oldest first."""
        records = await self._collection.find(order_by="created_at")
        return [JournalEntry.model_validate(r) for r in records]
