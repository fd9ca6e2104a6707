"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from ledger.config import AppSettings, StorageSettings, get_settings, validate_all_settings


class TestStorageSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LEDGER_STORAGE_BACKEND", raising=False)
        settings = StorageSettings(_env_file=None)
        assert settings.backend == "sqlite"
        assert settings.database_url.startswith("sqlite:///")

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("LEDGER_STORAGE_DATABASE_PATH", ":memory:")

        settings = get_settings().storage
        assert settings.backend == "memory"
        assert settings.database_url == "sqlite://"

    def test_blank_path_rejected(self):
        with pytest.raises(ValidationError):
            StorageSettings(database_path="  ", _env_file=None)

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValidationError):
            StorageSettings(backend="gsheets", _env_file=None)


class TestAppSettings:

    def test_limits(self):
        settings = AppSettings(_env_file=None)
        assert settings.max_goal_name_length == 20
        assert settings.projection_window_months == 3

    def test_fields(self):
        assert set(AppSettings.model_fields) == {
            "max_goal_name_length",
            "max_name_length",
            "max_note_length",
            "projection_window_months",
        }

    def test_window_bounds(self):
        with pytest.raises(ValidationError):
            AppSettings(projection_window_months=0, _env_file=None)


class TestValidateAllSettings:

    def test_all_valid(self):
        results = validate_all_settings()
        assert results["storage"] is True
        assert results["app"] is True

    def test_reports_invalid_section(self, monkeypatch):
        monkeypatch.setenv("LEDGER_PROJECTION_WINDOW_MONTHS", "99")
        results = validate_all_settings()
        assert results["app"] is False
        assert "app_error" in results
