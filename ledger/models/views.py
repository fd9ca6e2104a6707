"""
Derived View Models

Everything in this module is computed on demand from the stored records
and never persisted. These are what UI collaborators render.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ledger.models.entities import (
    Budget,
    BudgetPeriod,
    Category,
    Transaction,
    TransactionType,
)


# =============================================================================
# QUERY MODELS
# =============================================================================

class TransactionFilter(BaseModel):
    """
    Filter over the transaction collection.

    Every field that is set must match (AND semantics).
    Date bounds are inclusive.
    """
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    type: Optional[TransactionType] = None
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    min_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_amount: Optional[Decimal] = Field(default=None, ge=0)
    keyword: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of the note"
    )


class DateRange(BaseModel):
    """Inclusive date range."""
    start: dt.date
    end: dt.date


class TransactionSummary(BaseModel):
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    count: int = 0


class DailySummary(BaseModel):
    """Income and expense totals for one calendar day (trend feed)."""
    date: dt.date
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    count: int = 0

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class DailyGroup(BaseModel):
    """Transactions of one day, as shown in list views."""
    date: dt.date
    transactions: list[Transaction] = Field(default_factory=list)
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


class CategorySummary(BaseModel):
    category_id: str
    category: Optional[Category] = None
    amount: Decimal = Decimal("0")
    count: int = 0
    percentage: float = Field(default=0.0, ge=0.0, le=100.0)


# =============================================================================
# BUDGET MODELS
# =============================================================================

class BudgetProgress(BaseModel):
    """Spend-vs-limit for a single budget."""
    budget: Budget
    category_name: str
    category_color: str
    spent: Decimal
    remaining: Decimal
    percentage: float = Field(..., ge=0.0, le=100.0)

    @property
    def is_over_budget(self) -> bool:
        return self.remaining < 0


class BudgetOverview(BaseModel):
    """All budgets of a period with their progress and totals."""
    period: BudgetPeriod
    start_date: dt.date
    end_date: dt.date
    items: list[BudgetProgress] = Field(default_factory=list)
    total_budget: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    total_percentage: float = 0.0


# =============================================================================
# SAVINGS MODELS
# =============================================================================

class GoalPrediction(BaseModel):
    """
    Forward estimate of when a savings goal completes.

    `is_on_track` is None when the goal has no target date (undetermined,
    which is not the same as False).
    """
    goal_id: str
    months_remaining: Optional[int] = None
    predicted_date: Optional[dt.date] = None
    monthly_savings: Optional[Decimal] = Field(
        default=None,
        description="Average monthly net savings over the trailing window"
    )
    is_on_track: Optional[bool] = None


# =============================================================================
# RECONCILIATION MODELS
# =============================================================================

class BalanceDiscrepancy(BaseModel):
    """An account whose stored balance disagrees with a full transaction scan."""
    account_id: str
    stored_balance: Decimal
    expected_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored_balance - self.expected_balance
