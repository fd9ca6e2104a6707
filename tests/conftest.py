"""
Shared fixtures.

Every test gets a fresh in-memory ledger; nothing touches the filesystem
unless a test asks for tmp_path itself.
"""

import datetime as dt
from decimal import Decimal

import pytest

from ledger.models.entities import TransactionType
from ledger.orchestrator import Ledger
from ledger.services.storage import InMemorySettingsStorage, InMemoryStorageBackend

TODAY = dt.date(2024, 6, 15)


@pytest.fixture
def backend():
    return InMemoryStorageBackend()


@pytest.fixture
def settings_storage():
    return InMemorySettingsStorage()


@pytest.fixture
def ledger(backend, settings_storage):
    """An empty ledger (no defaults seeded)."""
    return Ledger(backend, settings_storage)


@pytest.fixture
async def account_id(ledger):
    return await ledger.add_account({"name": "Wallet", "initial_balance": Decimal("100")})


@pytest.fixture
async def second_account_id(ledger):
    return await ledger.add_account({"name": "Bank", "type": "bank"})


@pytest.fixture
async def expense_category_id(ledger):
    return await ledger.add_category({"name": "Food", "type": "expense"})


@pytest.fixture
async def income_category_id(ledger):
    return await ledger.add_category({"name": "Salary", "type": "income"})


def transaction_data(
    account_id: str,
    category_id: str,
    amount: str = "30",
    transaction_type: TransactionType = TransactionType.EXPENSE,
    date: dt.date = TODAY,
    note=None,
) -> dict:
    """Build a TransactionCreate payload."""
    data = {
        "type": transaction_type,
        "amount": Decimal(amount),
        "category_id": category_id,
        "account_id": account_id,
        "date": date,
    }
    if note is not None:
        data["note"] = note
    return data
