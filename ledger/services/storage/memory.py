"""
In-Memory Storage Implementation

Used by the test-suite and for throwaway sessions
(LEDGER_STORAGE_BACKEND=memory). Records are deep-copied on the way in and
out so callers can never mutate stored state by accident.
"""

import copy
from typing import Any, Optional

from ledger.services.storage.interface import (
    COLLECTION_INDEXES,
    CollectionStorageInterface,
    DuplicateError,
    NotFoundError,
    SettingsStorageInterface,
    StorageBackend,
    StorageError,
)


def record_matches(
    record: dict,
    where: Optional[dict[str, Any]] = None,
    range_field: Optional[str] = None,
    lower: Any = None,
    upper: Any = None,
) -> bool:
    """Check a record against equality filters and an inclusive range."""
    for field, expected in (where or {}).items():
        if record.get(field) != expected:
            return False
    if range_field is not None:
        value = record.get(range_field)
        if value is None:
            return False
        if lower is not None and value < lower:
            return False
        if upper is not None and value > upper:
            return False
    return True


def sort_records(records: list[dict], order_by: str, descending: bool = False) -> list[dict]:
    """Sort records by one field; nulls sort last in ascending order."""
    return sorted(
        records,
        key=lambda r: (r.get(order_by) is None, r.get(order_by)),
        reverse=descending,
    )


class InMemoryCollection(CollectionStorageInterface):
    """A collection held in a dict keyed by record id."""

    def __init__(self, name: str):
        self.name = name
        self._records: dict[str, dict] = {}

    async def insert(self, record: dict) -> None:
        record_id = record.get("id")
        if not record_id:
            raise StorageError(f"Record for {self.name} has no id")
        if record_id in self._records:
            raise DuplicateError(f"{self.name} record already exists: {record_id}")
        self._records[record_id] = copy.deepcopy(record)

    async def get(self, record_id: str) -> Optional[dict]:
        record = self._records.get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def update(self, record_id: str, changes: dict) -> dict:
        if record_id not in self._records:
            raise NotFoundError(f"{self.name} record not found: {record_id}")
        updated = {**self._records[record_id], **copy.deepcopy(changes), "id": record_id}
        self._records[record_id] = updated
        return copy.deepcopy(updated)

    async def delete(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    async def find(
        self,
        where: Optional[dict[str, Any]] = None,
        range_field: Optional[str] = None,
        lower: Any = None,
        upper: Any = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        results = [
            r for r in self._records.values()
            if record_matches(r, where, range_field, lower, upper)
        ]
        if order_by:
            results = sort_records(results, order_by, descending)
        if limit is not None:
            results = results[:limit]
        return copy.deepcopy(results)

    async def count(self, where: Optional[dict[str, Any]] = None) -> int:
        return sum(1 for r in self._records.values() if record_matches(r, where))


class InMemoryStorageBackend(StorageBackend):
    """All collections in process memory. Nothing survives a restart."""

    def __init__(self):
        self._collections: dict[str, InMemoryCollection] = {}

    def collection(self, name: str) -> InMemoryCollection:
        if name not in COLLECTION_INDEXES:
            raise StorageError(f"Unknown collection: {name}")
        if name not in self._collections:
            self._collections[name] = InMemoryCollection(name)
        return self._collections[name]


class InMemorySettingsStorage(SettingsStorageInterface):
    """Settings blob held in memory."""

    def __init__(self, initial: Optional[dict] = None):
        self._data: dict = copy.deepcopy(initial) if initial else {}

    async def load(self) -> dict:
        return copy.deepcopy(self._data)

    async def save(self, data: dict) -> None:
        self._data = copy.deepcopy(data)
