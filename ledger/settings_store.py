"""
Settings Store

Key-value user settings (default account, theme, currency, date of the last
savings auto-update) on top of a SettingsStorageInterface.

Reads never fail: an unreadable or malformed blob falls back to defaults,
merged field by field with whatever could be read. Writes are validated
and propagate errors.
"""

from typing import Any

import pydantic
import structlog

from ledger.errors import ValidationError
from ledger.models.entities import LedgerSettings
from ledger.models.validation import ValidationIssue
from ledger.services.storage import SettingsStorageInterface, StorageError

logger = structlog.get_logger(__name__)


class SettingsStore:
    """Typed access to the persisted settings blob."""

    def __init__(self, storage: SettingsStorageInterface):
        self._storage = storage

    async def get(self) -> LedgerSettings:
        """Load settings, falling back to defaults on any read failure."""
        try:
            stored = await self._storage.load()
        except StorageError as e:
            logger.warning("settings_load_failed", error=str(e))
            return LedgerSettings()

        try:
            return LedgerSettings.model_validate(stored)
        except pydantic.ValidationError as e:
            logger.warning("settings_invalid", error=str(e))
            # Keep the fields that are still valid on their own
            settings = LedgerSettings()
            for field, value in stored.items():
                if field not in LedgerSettings.model_fields:
                    continue
                try:
                    settings = LedgerSettings.model_validate(
                        {**settings.model_dump(), field: value}
                    )
                except pydantic.ValidationError:
                    continue
            return settings

    async def save(self, settings: LedgerSettings) -> None:
        await self._storage.save(settings.model_dump(mode="json"))

    async def update(self, **changes: Any) -> LedgerSettings:
        """
        Apply changes on top of the current settings and persist them.

        Unlike reads, writes are strict: an unknown key or an invalid value
        rejects the whole update and nothing is saved.

        Raises:
            ValidationError: If a key is unknown or a value is invalid
            StorageError: If the blob cannot be written
        """
        unknown = [field for field in changes if field not in LedgerSettings.model_fields]
        if unknown:
            raise ValidationError(
                f"Unknown settings: {', '.join(unknown)}",
                issues=[
                    ValidationIssue(
                        field=field,
                        issue_type="not_editable",
                        message=f"'{field}' is not a setting",
                        severity="error",
                    )
                    for field in unknown
                ],
            )

        current = await self.get()
        try:
            updated = LedgerSettings.model_validate({**current.model_dump(), **changes})
        except pydantic.ValidationError as e:
            raise ValidationError(
                f"Invalid settings: {e.error_count()} error(s)",
                issues=[
                    ValidationIssue(
                        field=".".join(str(p) for p in err["loc"]) or "settings",
                        issue_type="invalid_value",
                        message=err["msg"],
                        severity="error",
                    )
                    for err in e.errors()
                ],
            )
        await self.save(updated)
        return updated
