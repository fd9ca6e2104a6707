"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
SQLite is the persistent backend; the in-memory backend serves tests and
throwaway sessions.
"""

from ledger.services.storage.interface import (
    COLLECTION_INDEXES,
    AuditStorageInterface,
    CollectionAuditStorage,
    CollectionStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    SettingsStorageInterface,
    StorageBackend,
    StorageError,
)
from ledger.services.storage.memory import (
    InMemoryCollection,
    InMemorySettingsStorage,
    InMemoryStorageBackend,
)
from ledger.services.storage.sqlite import (
    SqliteCollection,
    SqliteDatabase,
    SqliteStorageBackend,
)
from ledger.services.storage.json_settings import JsonFileSettingsStorage

__all__ = [
    # Interfaces
    "COLLECTION_INDEXES",
    "AuditStorageInterface",
    "CollectionAuditStorage",
    "CollectionStorageInterface",
    "SettingsStorageInterface",
    "StorageBackend",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryCollection",
    "InMemorySettingsStorage",
    "InMemoryStorageBackend",
    # SQLite implementation
    "SqliteCollection",
    "SqliteDatabase",
    "SqliteStorageBackend",
    # Settings file
    "JsonFileSettingsStorage",
]
