"""
Budget Aggregator

Budget consumption is never stored. It is recomputed from the period's
expense transactions on every read, so it cannot drift.

General budgets (no category) are listed with their limit but nothing is
counted against them: their spent is always 0.
"""

import datetime as dt
from decimal import Decimal
from typing import Iterable, Optional, Union

from ledger.models.entities import (
    Budget,
    BudgetPeriod,
    Category,
    Transaction,
    TransactionType,
)
from ledger.models.views import BudgetOverview, BudgetProgress

UNKNOWN_CATEGORY_NAME = "Unknown category"
UNKNOWN_CATEGORY_COLOR = "#888888"


def budget_percentage(spent: Decimal, amount: Decimal) -> float:
    """
    Share of the limit used, clamped to [0, 100].

    A zero (or negative) limit has no meaningful ratio: it reads as fully
    used once anything was spent, else as unused.
    """
    if amount <= 0:
        return 100.0 if spent > 0 else 0.0
    return max(0.0, min(float(spent / amount * 100), 100.0))


def spending_by_category(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Sum of expense amounts per category id."""
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.type == TransactionType.EXPENSE:
            totals[t.category_id] = totals.get(t.category_id, Decimal("0")) + t.amount
    return totals


def aggregate_budgets(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    categories: Optional[Iterable[Category]] = None,
) -> list[BudgetProgress]:
    """
    Spend-vs-limit for each budget.

    Pure function: the caller picks the period's budgets and transactions.
    """
    spending = spending_by_category(transactions)
    by_id = {c.id: c for c in categories or []}

    progress = []
    for budget in budgets:
        spent = Decimal("0")
        if budget.category_id:
            spent = spending.get(budget.category_id, Decimal("0"))

        if budget.category_id in by_id:
            category = by_id[budget.category_id]
            name, color = category.name, category.color
        else:
            name, color = UNKNOWN_CATEGORY_NAME, UNKNOWN_CATEGORY_COLOR

        progress.append(BudgetProgress(
            budget=budget,
            category_name=name,
            category_color=color,
            spent=spent,
            remaining=budget.amount - spent,
            percentage=budget_percentage(spent, budget.amount),
        ))
    return progress


def period_bounds(period: Union[BudgetPeriod, str], today: dt.date) -> tuple[dt.date, dt.date]:
    """Start of the current month or year, through today."""
    if BudgetPeriod(period) == BudgetPeriod.YEARLY:
        return today.replace(month=1, day=1), today
    return today.replace(day=1), today


class BudgetAggregator:
    """Reads a period's budgets and transactions and aggregates them."""

    def __init__(self, budgets, transactions, categories):
        self._budgets = budgets
        self._transactions = transactions
        self._categories = categories

    async def overview(
        self,
        period: Union[BudgetPeriod, str] = BudgetPeriod.MONTHLY,
        today: Optional[dt.date] = None,
    ) -> BudgetOverview:
        """All budgets of `period` against period-to-date spending."""
        today = today or dt.date.today()
        start, end = period_bounds(period, today)

        budgets = await self._budgets.get_by_period(period)
        transactions = await self._transactions.get_by_date_range(start, end)
        categories = await self._categories.get_all()

        items = aggregate_budgets(budgets, transactions, categories)
        total_budget = sum((i.budget.amount for i in items), Decimal("0"))
        total_spent = sum((i.spent for i in items), Decimal("0"))

        return BudgetOverview(
            period=BudgetPeriod(period),
            start_date=start,
            end_date=end,
            items=items,
            total_budget=total_budget,
            total_spent=total_spent,
            total_percentage=(
                float(total_spent / total_budget * 100) if total_budget > 0 else 0.0
            ),
        )
