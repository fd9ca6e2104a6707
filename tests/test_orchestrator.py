"""Tests for the Ledger surface and the audit logger."""

import datetime as dt
from decimal import Decimal

import pytest

from conftest import TODAY, transaction_data
from ledger.audit import AuditLogger
from ledger.models.audit import AuditEventBuilder
from ledger.orchestrator import Ledger, create_ledger
from ledger.services.storage import AuditStorageInterface


class FailingAuditStorage(AuditStorageInterface):
    async def append_event(self, event):
        raise RuntimeError("audit store offline")

    async def get_events_by_entity(self, entity_type, entity_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestStartup:

    async def test_fresh_ledger(self, ledger):
        result = await ledger.startup(TODAY)

        assert result == {"seeded": True, "recovered_accounts": [], "goals_updated": True}
        assert (await ledger.get_settings()).savings_goals_last_update == TODAY.isoformat()

    async def test_second_startup_same_day(self, ledger):
        await ledger.startup(TODAY)
        result = await ledger.startup(TODAY)
        assert result == {"seeded": False, "recovered_accounts": [], "goals_updated": False}

    async def test_startup_refreshes_goals(self, ledger):
        await ledger.startup(TODAY)
        account_id = (await ledger.get_settings()).default_account_id
        salary = (await ledger.get_categories("income"))[0]

        goal_id = await ledger.add_goal({
            "name": "Trip",
            "target_amount": "100",
            "start_date": "2024-06-01",
        })
        await ledger.add_transaction(transaction_data(
            account_id, salary.id, "150", transaction_type="income"
        ))

        await ledger.startup(TODAY + dt.timedelta(days=1))

        goal = await ledger.goals.get_by_id(goal_id)
        assert goal.current_amount == Decimal("150")
        assert goal.achieved is True


class TestLedgerSurface:

    async def test_total_balance(self, ledger, account_id, second_account_id, expense_category_id):
        await ledger.add_transaction(transaction_data(second_account_id, expense_category_id, "25"))
        assert await ledger.total_balance() == Decimal("75")

    async def test_daily_groups(self, ledger, account_id, expense_category_id):
        await ledger.add_transaction(transaction_data(account_id, expense_category_id, "5"))
        await ledger.add_transaction(transaction_data(account_id, expense_category_id, "7"))

        groups = await ledger.daily_groups()
        assert len(groups) == 1
        assert groups[0].expense == Decimal("12")

    async def test_update_settings(self, ledger):
        settings = await ledger.update_settings(currency="EUR", currency_symbol="€")
        assert settings.currency == "EUR"
        assert (await ledger.get_settings()).currency_symbol == "€"

    async def test_mutations_are_audited(self, ledger, expense_category_id):
        events = await ledger.events_for("category", expense_category_id)
        assert [e.event_type.value for e in events] == ["entity_created"]


class TestCreateLedger:

    def test_memory_backend(self):
        assert isinstance(create_ledger("memory"), Ledger)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_ledger("gsheets")


class TestAuditLogger:

    async def test_storage_failure_is_swallowed(self):
        logger = AuditLogger(FailingAuditStorage())
        ok = await logger.log(AuditEventBuilder.default_data_seeded(1, 1))
        assert ok is False

    async def test_no_storage_logs_locally(self):
        assert await AuditLogger().log(AuditEventBuilder.default_data_seeded(1, 1)) is True

    async def test_ledger_writes_survive_audit_outage(
        self, backend, settings_storage
    ):
        ledger = Ledger(backend, settings_storage, audit_storage=FailingAuditStorage())
        account_id = await ledger.add_account({"name": "Wallet"})
        category_id = await ledger.add_category({"name": "Food", "type": "expense"})

        await ledger.add_transaction(transaction_data(account_id, category_id, "10"))
        assert (await ledger.get_account(account_id)).balance == Decimal("-10")
