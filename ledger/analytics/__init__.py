"""Derived views: budget consumption and savings projections."""

from ledger.analytics.budgets import (
    BudgetAggregator,
    aggregate_budgets,
    budget_percentage,
    period_bounds,
)
from ledger.analytics.savings import (
    SavingsProjectionEngine,
    net_savings,
    project_completion,
)

__all__ = [
    "BudgetAggregator",
    "SavingsProjectionEngine",
    "aggregate_budgets",
    "budget_percentage",
    "net_savings",
    "period_bounds",
    "project_completion",
]
