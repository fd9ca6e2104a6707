"""Services package."""

from ledger.services.storage import (
    AuditStorageInterface,
    CollectionStorageInterface,
    ConnectionError,
    DuplicateError,
    InMemorySettingsStorage,
    InMemoryStorageBackend,
    JsonFileSettingsStorage,
    NotFoundError,
    SettingsStorageInterface,
    SqliteStorageBackend,
    StorageBackend,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "CollectionStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "InMemorySettingsStorage",
    "InMemoryStorageBackend",
    "JsonFileSettingsStorage",
    "NotFoundError",
    "SettingsStorageInterface",
    "SqliteStorageBackend",
    "StorageBackend",
    "StorageError",
]
