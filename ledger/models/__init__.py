"""
Data Models Package

This package contains all Pydantic models used in the Personal Ledger system.
All data flowing through the system must conform to these schemas.
"""

from ledger.models.entities import (
    Account,
    AccountCreate,
    AccountType,
    AccountUpdate,
    Budget,
    BudgetCreate,
    BudgetPeriod,
    BudgetUpdate,
    Category,
    CategoryCreate,
    CategoryUpdate,
    LedgerSettings,
    SavingsGoal,
    SavingsGoalCreate,
    SavingsGoalUpdate,
    Theme,
    Transaction,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
)
from ledger.models.views import (
    BalanceDiscrepancy,
    BudgetOverview,
    BudgetProgress,
    CategorySummary,
    DailyGroup,
    DailySummary,
    DateRange,
    GoalPrediction,
    TransactionFilter,
    TransactionSummary,
)
from ledger.models.validation import ValidationIssue, ValidationResult
from ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entities
    "Account",
    "AccountCreate",
    "AccountType",
    "AccountUpdate",
    "Budget",
    "BudgetCreate",
    "BudgetPeriod",
    "BudgetUpdate",
    "Category",
    "CategoryCreate",
    "CategoryUpdate",
    "LedgerSettings",
    "SavingsGoal",
    "SavingsGoalCreate",
    "SavingsGoalUpdate",
    "Theme",
    "Transaction",
    "TransactionCreate",
    "TransactionType",
    "TransactionUpdate",
    # Views
    "BalanceDiscrepancy",
    "BudgetOverview",
    "BudgetProgress",
    "CategorySummary",
    "DailyGroup",
    "DailySummary",
    "DateRange",
    "GoalPrediction",
    "TransactionFilter",
    "TransactionSummary",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
