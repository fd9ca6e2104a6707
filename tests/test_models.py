"""
Tests for Personal Ledger models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows against the in-memory backend
3. SQLite tests against a temporary file, never a shared database
"""

import pytest
from datetime import date
from decimal import Decimal

import pydantic

from ledger.models.entities import (
    Account,
    AccountCreate,
    LedgerSettings,
    SavingsGoal,
    SavingsGoalCreate,
    SavingsGoalUpdate,
    Transaction,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
)
from ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from ledger.models.validation import ValidationIssue, ValidationResult
from ledger.models.views import BalanceDiscrepancy, BudgetProgress


class TestEntityModels:
    """Tests for the stored entity models."""

    def test_transaction_signed_amount(self):
        """Income adds, expense subtracts."""
        income = Transaction(
            id="t1", type="income", amount=Decimal("50"),
            category_id="c", account_id="a", date=date(2024, 1, 1),
        )
        expense = income.model_copy(update={"type": TransactionType.EXPENSE})
        assert income.signed_amount == Decimal("50")
        assert expense.signed_amount == Decimal("-50")

    def test_transaction_rejects_non_positive_amount(self):
        with pytest.raises(pydantic.ValidationError):
            TransactionCreate(
                type="expense", amount=Decimal("0"),
                category_id="c", account_id="a", date=date(2024, 1, 1),
            )

    def test_transaction_is_frozen(self):
        transaction = Transaction(
            id="t1", type="expense", amount=Decimal("5"),
            category_id="c", account_id="a", date=date(2024, 1, 1),
        )
        with pytest.raises(pydantic.ValidationError):
            transaction.amount = Decimal("10")

    def test_transaction_update_changes_only_set_fields(self):
        update = TransactionUpdate(category_id="other")
        assert update.changes() == {"category_id": "other"}

    def test_transaction_update_cannot_set_id(self):
        with pytest.raises(pydantic.ValidationError):
            TransactionUpdate(id="new-id")

    def test_account_create_has_no_balance(self):
        """Balance is derived; callers cannot supply it."""
        with pytest.raises(pydantic.ValidationError):
            AccountCreate(name="Cash", balance=Decimal("1000"))

    def test_account_is_frozen(self):
        account = Account(id="a1", name="Cash")
        with pytest.raises(pydantic.ValidationError):
            account.balance = Decimal("5")

    def test_goal_target_date_before_start(self):
        with pytest.raises(pydantic.ValidationError):
            SavingsGoalCreate(
                name="Trip",
                target_amount=Decimal("100"),
                start_date=date(2024, 6, 1),
                target_date=date(2024, 5, 1),
            )

    def test_goal_update_cannot_touch_progress(self):
        with pytest.raises(pydantic.ValidationError):
            SavingsGoalUpdate(current_amount=Decimal("10"))
        with pytest.raises(pydantic.ValidationError):
            SavingsGoalUpdate(achieved=True)

    def test_goal_remaining_and_progress(self):
        goal = SavingsGoal(
            id="g1", name="Trip", target_amount=Decimal("200"),
            current_amount=Decimal("250"), start_date=date(2024, 1, 1),
        )
        assert goal.remaining_amount == Decimal("0")
        assert goal.progress_percentage == 100.0

    def test_settings_defaults(self):
        settings = LedgerSettings()
        assert settings.default_account_id == ""
        assert settings.theme.value == "system"
        assert settings.currency == "MYR"
        assert settings.currency_symbol == "RM"
        assert settings.show_decimal is True


class TestViewModels:
    """Tests for derived view models."""

    def test_balance_discrepancy_difference(self):
        d = BalanceDiscrepancy(
            account_id="a1",
            stored_balance=Decimal("90"),
            expected_balance=Decimal("100"),
        )
        assert d.difference == Decimal("-10")

    def test_budget_progress_percentage_bounds(self):
        with pytest.raises(pydantic.ValidationError):
            BudgetProgress(
                budget={"id": "b", "amount": "10", "start_date": "2024-01-01"},
                category_name="Food",
                category_color="#000000",
                spent=Decimal("20"),
                remaining=Decimal("-10"),
                percentage=200.0,
            )


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            entity_type="account",
            entity_id="a1",
            description="Created account",
        )
        assert event.event_type == AuditEventType.ENTITY_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_record_roundtrip(self):
        event = AuditEventBuilder.transaction_added(
            transaction_id="t1",
            account_id="a1",
            transaction_type="expense",
            amount=Decimal("30"),
        )
        record = event.to_record()
        assert record["id"] == str(event.event_id)
        assert AuditEvent.from_record(record) == event

    def test_audit_event_builder_delete_blocked(self):
        event = AuditEventBuilder.delete_blocked(
            entity_type="category",
            entity_id="c1",
            reason="system category",
        )
        assert event.event_type == AuditEventType.DELETE_BLOCKED
        assert event.entity_id == "c1"

    def test_to_log_dict_is_flat(self):
        event = AuditEventBuilder.goals_auto_updated("2024-06-15", 2)
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == AuditEventType.GOALS_AUTO_UPDATED.value


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            entity_type="transaction",
            schema_valid=False,
            semantic_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount must be greater than zero",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1
        assert not result.is_valid

    def test_validation_result_warnings_only(self):
        """Test result with only warnings."""
        result = ValidationResult(
            entity_type="transaction",
            schema_valid=True,
            semantic_valid=True,
            issues=[
                ValidationIssue(
                    field="category_id",
                    issue_type="type_mismatch",
                    message="Category type differs",
                    severity="warning",
                ),
            ],
        )
        assert result.is_valid
        assert result.warnings == ["Category type differs"]
