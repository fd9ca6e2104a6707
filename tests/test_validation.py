"""Tests for the two-stage validation pipeline."""

import datetime as dt
from decimal import Decimal

import pytest

from ledger.errors import ValidationError
from ledger.models.entities import (
    AccountCreate,
    CategoryUpdate,
    SavingsGoalCreate,
    TransactionCreate,
    TransactionUpdate,
)
from ledger.services.storage import InMemoryStorageBackend
from ledger.validation import LedgerValidator


@pytest.fixture
async def stores():
    backend = InMemoryStorageBackend()
    accounts = backend.collection("accounts")
    categories = backend.collection("categories")
    await accounts.insert({"id": "a1", "name": "Cash"})
    await categories.insert({"id": "food", "name": "Food", "type": "expense"})
    return accounts, categories


@pytest.fixture
def validator(stores):
    accounts, categories = stores
    return LedgerValidator(accounts=accounts, categories=categories)


def tx(**overrides) -> dict:
    data = {
        "type": "expense",
        "amount": "12.50",
        "category_id": "food",
        "account_id": "a1",
        "date": "2024-06-01",
    }
    data.update(overrides)
    return data


class TestSchemaStage:

    async def test_valid_payload_parses(self, validator):
        payload, result = await validator.validate("transaction", TransactionCreate, tx())
        assert result.is_valid
        assert payload.amount == Decimal("12.50")
        assert payload.date == dt.date(2024, 6, 1)

    async def test_missing_field(self, validator):
        data = tx()
        del data["account_id"]
        payload, result = await validator.validate("transaction", TransactionCreate, data)
        assert payload is None
        assert not result.schema_valid
        assert not result.semantic_valid
        assert result.issues[0].field == "account_id"
        assert result.issues[0].issue_type == "missing"

    @pytest.mark.parametrize("amount", ["0", "-5"])
    async def test_non_positive_amount(self, validator, amount):
        with pytest.raises(ValidationError) as exc:
            await validator.ensure_valid("transaction", TransactionCreate, tx(amount=amount))
        assert exc.value.issues[0].field == "amount"

    async def test_read_only_field_rejected(self, validator):
        with pytest.raises(ValidationError) as exc:
            await validator.ensure_valid(
                "account", AccountCreate, {"name": "Cash", "balance": "500"}
            )
        assert exc.value.issues[0].issue_type == "not_editable"


class TestSemanticStage:

    async def test_unknown_account(self, validator):
        with pytest.raises(ValidationError) as exc:
            await validator.ensure_valid("transaction", TransactionCreate, tx(account_id="nope"))
        assert exc.value.issues[0].issue_type == "unknown_reference"

    async def test_unknown_category(self, validator):
        with pytest.raises(ValidationError):
            await validator.ensure_valid("transaction", TransactionCreate, tx(category_id="nope"))

    async def test_category_type_mismatch_is_warning(self, validator):
        payload, result = await validator.validate(
            "transaction", TransactionCreate, tx(type="income")
        )
        assert result.is_valid
        assert payload is not None
        assert result.issues[0].issue_type == "type_mismatch"
        assert result.issues[0].severity == "warning"

    async def test_partial_update_checks_only_set_fields(self, validator):
        payload = await validator.ensure_valid(
            "transaction", TransactionUpdate, {"note": "lunch"}
        )
        assert payload.changes() == {"note": "lunch"}

    async def test_partial_update_from_model_stays_partial(self, validator):
        payload = await validator.ensure_valid(
            "transaction", TransactionUpdate, TransactionUpdate(amount=Decimal("3"))
        )
        assert payload.changes() == {"amount": Decimal("3")}

    async def test_blank_name(self, validator):
        with pytest.raises(ValidationError) as exc:
            await validator.ensure_valid("category", CategoryUpdate, {"name": "   "})
        assert exc.value.issues[0].field == "name"

    async def test_goal_name_limit(self, validator):
        ok = {"name": "x" * 20, "target_amount": "100", "start_date": "2024-01-01"}
        await validator.ensure_valid("savings_goal", SavingsGoalCreate, ok)

        too_long = {**ok, "name": "x" * 21}
        with pytest.raises(ValidationError) as exc:
            await validator.ensure_valid("savings_goal", SavingsGoalCreate, too_long)
        assert exc.value.issues[0].issue_type == "too_long"

    async def test_note_limit(self, validator):
        with pytest.raises(ValidationError):
            await validator.ensure_valid("transaction", TransactionCreate, tx(note="n" * 501))

    async def test_no_storage_skips_reference_checks(self):
        payload = await LedgerValidator().ensure_valid(
            "transaction", TransactionCreate, tx(account_id="anything")
        )
        assert payload.account_id == "anything"


class TestSummary:

    async def test_summary_lists_errors_and_warnings(self, validator):
        _, result = await validator.validate("transaction", TransactionCreate, tx(type="income"))
        summary = validator.get_user_friendly_summary(result)
        assert "Please verify" in summary

    async def test_summary_all_clear(self, validator):
        _, result = await validator.validate("transaction", TransactionCreate, tx())
        assert validator.get_user_friendly_summary(result) == "All checks passed."
