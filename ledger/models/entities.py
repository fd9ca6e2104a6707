"""
Core Data Models for Personal Ledger

These models define the strict schemas for every record the ledger persists.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep derived state (account balance, goal progress) out of caller hands

DESIGN DECISION: Stored entities are frozen snapshots.
Changes go through the repositories, which take the *Create / *Update
payload models below. Those payloads forbid unknown fields, so a caller
cannot smuggle in `balance`, `current_amount` or `created_at`.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utc_now() -> dt.datetime:
    """Current time as a timezone-aware UTC datetime."""
    return dt.datetime.now(dt.timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. The sign of its effect comes only from here."""
    INCOME = "income"
    EXPENSE = "expense"


class AccountType(str, Enum):
    """Kinds of money containers a user can track."""
    CASH = "cash"
    BANK = "bank"
    ALIPAY = "alipay"
    WECHAT = "wechat"
    CREDIT = "credit"
    OTHER = "other"


class BudgetPeriod(str, Enum):
    """Budget period."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Theme(str, Enum):
    """UI theme preference (stored, never interpreted here)."""
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense record.

    `amount` is always a positive magnitude. Whether it adds to or
    subtracts from the account balance is decided by `type`.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    type: TransactionType
    amount: Decimal = Field(..., gt=0, description="Positive magnitude")
    category_id: str
    account_id: str
    date: dt.date = Field(..., description="Calendar day, no time")
    note: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this transaction on its account balance."""
        return self.amount if self.is_income else -self.amount


class TransactionCreate(BaseModel):
    """Payload for recording a new transaction."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    category_id: str = Field(..., min_length=1)
    account_id: str = Field(..., min_length=1)
    date: dt.date
    note: Optional[str] = None


class TransactionUpdate(BaseModel):
    """
    Partial update of a transaction.

    Only fields explicitly set are applied (see `changes()`).
    `id` and `created_at` are not part of this model and cannot change.
    """
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    category_id: Optional[str] = Field(default=None, min_length=1)
    account_id: Optional[str] = Field(default=None, min_length=1)
    date: Optional[dt.date] = None
    note: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# CATEGORIES
# =============================================================================

class Category(BaseModel):
    """
    A transaction category.

    System categories (`is_custom=False`) are seeded once and can never be
    deleted; user categories can be deleted once nothing references them.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    name: str = Field(..., min_length=1)
    type: TransactionType
    icon: str = "MoreHorizontal"
    color: str = "#6B7280"
    order: int = Field(default=0, ge=0)
    is_custom: bool = True


class CategoryCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str
    type: TransactionType
    icon: str = "MoreHorizontal"
    color: str = "#6B7280"
    order: Optional[int] = Field(default=None, ge=0)
    is_custom: bool = True


class CategoryUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# ACCOUNTS
# =============================================================================

class Account(BaseModel):
    """
    A money container with a running balance.

    INVARIANT: balance == initial_balance + sum(income) - sum(expense)
    over the transactions referencing this account.

    `balance` is a derived aggregate. Only the reconciliation engine (through
    AccountRepository.apply_balance_change) writes it.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    name: str = Field(..., min_length=1)
    type: AccountType = AccountType.CASH
    balance: Decimal = Decimal("0")
    initial_balance: Decimal = Decimal("0")
    icon: str = "CreditCard"
    color: str = "#3B82F6"
    order: int = Field(default=0, ge=0)


class AccountCreate(BaseModel):
    """New account. The balance always starts at `initial_balance`."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str
    type: AccountType = AccountType.CASH
    initial_balance: Decimal = Decimal("0")
    icon: str = "CreditCard"
    color: str = "#3B82F6"
    order: Optional[int] = Field(default=None, ge=0)


class AccountUpdate(BaseModel):
    """
    Partial account update.

    Changing `initial_balance` shifts the running balance by the same delta.
    """
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = None
    type: Optional[AccountType] = None
    initial_balance: Optional[Decimal] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(BaseModel):
    """
    A spending limit for a category over a period.

    A budget without `category_id` is a general budget. At most one budget
    exists per (category_id, period) pair.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    category_id: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: dt.date


class BudgetCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category_id: Optional[str] = None
    amount: Decimal = Field(..., gt=0)
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: dt.date


class BudgetUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: Optional[Decimal] = Field(default=None, gt=0)
    start_date: Optional[dt.date] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# SAVINGS GOALS
# =============================================================================

class SavingsGoal(BaseModel):
    """
    A savings target tracked against observed net savings.

    CRITICAL: `current_amount` is never user-editable. The projection engine
    writes it from net savings. `achieved` goes False -> True once and stays.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    name: str
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0)
    start_date: dt.date
    target_date: Optional[dt.date] = None
    achieved: bool = False
    achieved_at: Optional[dt.datetime] = None
    icon: str = "PiggyBank"
    color: str = "#10B981"
    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)

    @property
    def remaining_amount(self) -> Decimal:
        return max(self.target_amount - self.current_amount, Decimal("0"))

    @property
    def progress_percentage(self) -> float:
        return min(float(self.current_amount / self.target_amount * 100), 100.0)


class SavingsGoalCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str
    target_amount: Decimal = Field(..., gt=0)
    start_date: dt.date
    target_date: Optional[dt.date] = None
    icon: str = "PiggyBank"
    color: str = "#10B981"

    @model_validator(mode='after')
    def validate_dates(self) -> 'SavingsGoalCreate':
        """Validate date relationships."""
        if self.target_date and self.target_date < self.start_date:
            raise ValueError("Target date cannot be before start date")
        return self


class SavingsGoalUpdate(BaseModel):
    """Partial goal update. Progress fields are deliberately absent."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = None
    target_amount: Optional[Decimal] = Field(default=None, gt=0)
    start_date: Optional[dt.date] = None
    target_date: Optional[dt.date] = None
    icon: Optional[str] = None
    color: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# SETTINGS
# =============================================================================

class LedgerSettings(BaseModel):
    """User-level settings persisted outside the record collections."""
    model_config = ConfigDict(extra="ignore")

    default_account_id: str = ""
    theme: Theme = Theme.SYSTEM
    currency: str = "MYR"
    currency_symbol: str = "RM"
    show_decimal: bool = True
    reminder_time: Optional[str] = None
    savings_goals_last_update: Optional[str] = Field(
        default=None,
        description="YYYY-MM-DD of the last savings auto-update run"
    )
