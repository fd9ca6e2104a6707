"""
JSON File Settings Storage

The settings blob (default account, theme, currency, last savings update)
is tiny and read far more often than written, so it lives in a plain JSON
file beside the database rather than in a table.
"""

import json
import os
from pathlib import Path
from typing import Optional

from ledger.config import get_settings
from ledger.services.storage.interface import SettingsStorageInterface, StorageError


class JsonFileSettingsStorage(SettingsStorageInterface):
    """Settings blob persisted as a JSON object in a file."""

    def __init__(self, path: Optional[str] = None):
        self._path = Path(path or get_settings().storage.settings_path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read settings file {self._path}: {e}")
        if not isinstance(data, dict):
            raise StorageError(f"Settings file {self._path} does not hold an object")
        return data

    async def save(self, data: dict) -> None:
        # Write-then-rename so a crash never leaves a half-written file
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StorageError(f"Failed to write settings file {self._path}: {e}")
