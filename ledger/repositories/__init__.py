"""Entity repositories."""

from ledger.repositories.accounts import AccountRepository
from ledger.repositories.base import BaseRepository
from ledger.repositories.budgets import BudgetRepository
from ledger.repositories.categories import CategoryRepository
from ledger.repositories.savings_goals import SavingsGoalRepository
from ledger.repositories.transactions import TransactionRepository, sort_newest_first

__all__ = [
    "AccountRepository",
    "BaseRepository",
    "BudgetRepository",
    "CategoryRepository",
    "SavingsGoalRepository",
    "TransactionRepository",
    "sort_newest_first",
]
