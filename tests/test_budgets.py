"""Tests for the budget aggregator."""

import datetime as dt
from decimal import Decimal

import pytest

from conftest import TODAY, transaction_data
from ledger.analytics import aggregate_budgets, budget_percentage, period_bounds
from ledger.analytics.budgets import UNKNOWN_CATEGORY_COLOR, UNKNOWN_CATEGORY_NAME
from ledger.models.entities import Budget, Category, Transaction, TransactionType


def budget(category_id, amount="100", budget_id="b1") -> Budget:
    return Budget(
        id=budget_id,
        category_id=category_id,
        amount=Decimal(amount),
        start_date=dt.date(2024, 6, 1),
    )


def expense(category_id, amount, transaction_type=TransactionType.EXPENSE) -> Transaction:
    return Transaction(
        id=f"t-{category_id}-{amount}",
        type=transaction_type,
        amount=Decimal(amount),
        category_id=category_id,
        account_id="a1",
        date=dt.date(2024, 6, 3),
    )


class TestAggregateBudgets:

    def test_spent_counts_matching_expenses_only(self):
        progress = aggregate_budgets(
            [budget("food")],
            [
                expense("food", "30"),
                expense("food", "20"),
                expense("rent", "500"),
                expense("food", "1000", TransactionType.INCOME),
            ],
        )
        item = progress[0]
        assert item.spent == Decimal("50")
        assert item.remaining == Decimal("50")
        assert item.percentage == 50.0

    def test_percentage_clamped_at_100(self):
        item = aggregate_budgets([budget("food")], [expense("food", "250")])[0]
        assert item.percentage == 100.0
        assert item.remaining == Decimal("-150")
        assert item.is_over_budget

    def test_general_budget_counts_nothing(self):
        item = aggregate_budgets([budget(None)], [expense("food", "30")])[0]
        assert item.spent == Decimal("0")
        assert item.percentage == 0.0

    @pytest.mark.parametrize("spent,expected", [
        (Decimal("0"), 0.0),
        (Decimal("5"), 100.0),
    ])
    def test_zero_limit(self, spent, expected):
        assert budget_percentage(spent, Decimal("0")) == expected

    def test_category_lookup(self):
        categories = [Category(id="food", name="Food", type="expense", color="#F59E0B")]
        known, unknown = aggregate_budgets(
            [budget("food"), budget("gone", budget_id="b2")],
            [],
            categories,
        )
        assert (known.category_name, known.category_color) == ("Food", "#F59E0B")
        assert (unknown.category_name, unknown.category_color) == (
            UNKNOWN_CATEGORY_NAME,
            UNKNOWN_CATEGORY_COLOR,
        )

    def test_no_budgets(self):
        assert aggregate_budgets([], [expense("food", "1")]) == []


class TestPeriodBounds:

    def test_monthly(self):
        assert period_bounds("monthly", TODAY) == (dt.date(2024, 6, 1), TODAY)

    def test_yearly(self):
        assert period_bounds("yearly", TODAY) == (dt.date(2024, 1, 1), TODAY)


class TestBudgetOverview:

    async def test_overview_uses_month_to_date(self, ledger, account_id, expense_category_id):
        await ledger.set_budget({
            "category_id": expense_category_id,
            "amount": "200",
            "start_date": "2024-06-01",
        })
        # Counted: this month up to today
        await ledger.add_transaction(transaction_data(
            account_id, expense_category_id, "50", date=dt.date(2024, 6, 1)
        ))
        await ledger.add_transaction(transaction_data(
            account_id, expense_category_id, "25", date=TODAY
        ))
        # Not counted: last month, and after today
        await ledger.add_transaction(transaction_data(
            account_id, expense_category_id, "999", date=dt.date(2024, 5, 31)
        ))
        await ledger.add_transaction(transaction_data(
            account_id, expense_category_id, "999", date=TODAY + dt.timedelta(days=1)
        ))

        overview = await ledger.budget_overview("monthly", today=TODAY)

        assert overview.start_date == dt.date(2024, 6, 1)
        assert overview.total_budget == Decimal("200")
        assert overview.total_spent == Decimal("75")
        assert overview.total_percentage == 37.5
        assert overview.items[0].category_name == "Food"

    async def test_empty_overview(self, ledger):
        overview = await ledger.budget_overview(today=TODAY)
        assert overview.items == []
        assert overview.total_percentage == 0.0
