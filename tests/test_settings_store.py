"""Tests for the settings store and its storage backends."""

import json

import pytest

from ledger.errors import ValidationError
from ledger.models.entities import Theme
from ledger.services.storage import (
    InMemorySettingsStorage,
    JsonFileSettingsStorage,
    SettingsStorageInterface,
    StorageError,
)
from ledger.settings_store import SettingsStore


class BrokenSettingsStorage(SettingsStorageInterface):
    """Fails every read, like a corrupted or unreadable blob."""

    async def load(self) -> dict:
        raise StorageError("unreadable")

    async def save(self, data: dict) -> None:
        raise StorageError("read-only")


class TestSettingsStore:

    async def test_defaults_when_empty(self):
        settings = await SettingsStore(InMemorySettingsStorage()).get()
        assert settings.currency == "MYR"
        assert settings.default_account_id == ""

    async def test_update_persists(self):
        storage = InMemorySettingsStorage()
        store = SettingsStore(storage)
        await store.update(theme="dark", default_account_id="a1")

        reloaded = await SettingsStore(storage).get()
        assert reloaded.theme == Theme.DARK
        assert reloaded.default_account_id == "a1"

    async def test_read_failure_falls_back_to_defaults(self):
        settings = await SettingsStore(BrokenSettingsStorage()).get()
        assert settings.currency_symbol == "RM"

    async def test_write_failure_propagates(self):
        with pytest.raises(StorageError):
            await SettingsStore(BrokenSettingsStorage()).update(theme="dark")

    async def test_invalid_fields_dropped_valid_kept(self):
        storage = InMemorySettingsStorage({"theme": "neon", "currency": "USD"})
        settings = await SettingsStore(storage).get()
        assert settings.theme == Theme.SYSTEM
        assert settings.currency == "USD"

    async def test_invalid_update_rejected(self):
        storage = InMemorySettingsStorage()
        store = SettingsStore(storage)
        with pytest.raises(ValidationError) as exc:
            await store.update(theme="neon")

        assert [i.field for i in exc.value.issues] == ["theme"]
        assert exc.value.issues[0].issue_type == "invalid_value"
        assert (await store.get()).theme == Theme.SYSTEM

    async def test_unknown_key_rejected(self):
        """A misspelt key fails loudly and nothing else in the update is saved."""
        store = SettingsStore(InMemorySettingsStorage())
        with pytest.raises(ValidationError) as exc:
            await store.update(themee="dark", currency="EUR")

        assert [i.field for i in exc.value.issues] == ["themee"]
        assert exc.value.issues[0].issue_type == "not_editable"
        assert (await store.get()).currency == "MYR"


class TestJsonFileSettingsStorage:

    async def test_missing_file_loads_empty(self, tmp_path):
        storage = JsonFileSettingsStorage(str(tmp_path / "settings.json"))
        assert await storage.load() == {}

    async def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        storage = JsonFileSettingsStorage(str(path))
        await storage.save({"currency": "EUR"})

        assert json.loads(path.read_text()) == {"currency": "EUR"}
        assert await storage.load() == {"currency": "EUR"}

    async def test_corrupt_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        with pytest.raises(StorageError):
            await JsonFileSettingsStorage(str(path)).load()

    async def test_store_survives_corrupt_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2, 3]")
        settings = await SettingsStore(JsonFileSettingsStorage(str(path))).get()
        assert settings.theme == Theme.SYSTEM
