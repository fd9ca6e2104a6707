"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger in a local SQLite file
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Records are plain JSON-compatible dicts keyed by "id"; the repositories
turn them into pydantic models. Each call is atomic on its own, but there
is NO multi-call transaction: the reconciliation engine sequences its writes
and journals them instead.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ledger.models.audit import AuditEvent


# Collections and the fields each backend may index for equality/range
# queries and ordering. Filtering on other fields still works but is done
# in Python.
COLLECTION_INDEXES: dict[str, tuple[str, ...]] = {
    "transactions": ("type", "category_id", "account_id", "date", "created_at"),
    "categories": ("type", "order"),
    "accounts": ("type", "order"),
    "budgets": ("category_id", "period"),
    "savings_goals": ("achieved", "created_at"),
    "journal": ("created_at",),
    "audit_events": ("entity_type", "entity_id", "timestamp"),
}


class CollectionStorageInterface(ABC):
    """
    Abstract interface for one record collection.

    Any storage implementation (SQLite, in-memory, etc.)
    must implement these methods.
    """

    name: str

    @abstractmethod
    async def insert(self, record: dict) -> None:
        """
        Insert a new record.

        Args:
            record: JSON-compatible dict with a unique "id"

        Raises:
            DuplicateError: If a record with that id exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get(self, record_id: str) -> Optional[dict]:
        """
        Retrieve a record by its id.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def update(self, record_id: str, changes: dict) -> dict:
        """
        Merge `changes` into an existing record.

        Returns:
            The record after the update

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """
        Delete a record by id.

        Returns:
            True if a record was deleted, False if it did not exist
        """
        pass

    @abstractmethod
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
        """
        List records matching all equality filters and an optional range.

        Args:
            where: {field: value} equality filters (None matches null)
            range_field: Field for an inclusive range filter
            lower: Inclusive lower bound (None = unbounded)
            upper: Inclusive upper bound (None = unbounded)
            order_by: Field to sort by
            descending: Sort direction
            limit: Maximum number of results

        Returns:
            List of matching records
        """
        pass

    @abstractmethod
    async def count(self, where: Optional[dict[str, Any]] = None) -> int:
        """Count records matching the equality filters."""
        pass


class StorageBackend(ABC):
    """
    A set of named collections sharing one storage medium.
    """

    @abstractmethod
    def collection(self, name: str) -> CollectionStorageInterface:
        """Get the collection with this name (see COLLECTION_INDEXES)."""
        pass

    def close(self) -> None:
        """Release resources held by the backend."""
        return None


class SettingsStorageInterface(ABC):
    """
    Abstract interface for the small persisted settings blob.
    """

    @abstractmethod
    async def load(self) -> dict:
        """
        Load the stored settings.

        Returns:
            The stored dict ({} if nothing was stored yet)

        Raises:
            StorageError: If the stored blob cannot be read
        """
        pass

    @abstractmethod
    async def save(self, data: dict) -> None:
        """
        Replace the stored settings.

        Raises:
            StorageError: If the blob cannot be written
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class CollectionAuditStorage(AuditStorageInterface):
    """
    Audit storage on top of any backend's "audit_events" collection.
    """

    def __init__(self, collection: CollectionStorageInterface):
        self._collection = collection

    async def append_event(self, event: AuditEvent) -> bool:
        await self._collection.insert(event.to_record())
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        records = await self._collection.find(
            where={"entity_type": entity_type, "entity_id": entity_id},
            order_by="timestamp",
        )
        return [AuditEvent.from_record(r) for r in records]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        records = await self._collection.find(
            order_by="timestamp",
            descending=True,
            limit=limit,
        )
        return [AuditEvent.from_record(r) for r in records]


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not open the storage backend."""
    pass
