"""
Personal Ledger - Source Package

The ledger consistency engine of a personal finance tracker.
Transactions, accounts, categories, budgets and savings goals live in a
local embedded database; this package keeps them consistent.

DESIGN PRINCIPLES:
1. Account balances are owned by the reconciliation engine
2. Fail early, fail visibly
3. No silent corrections (only delete-of-missing is a no-op)
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Ledger Team"
