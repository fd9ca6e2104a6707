"""
Main Orchestrator for Personal Ledger

This module ties together all the components and is the surface a UI
collaborator talks to:
1. Startup (seed defaults -> recover interrupted operations -> refresh goals)
2. Transactions (always through the reconciliation engine)
3. Categories, accounts, budgets, savings goals
4. Queries and derived views

DESIGN DECISION: The orchestrator enforces the boundaries:
- Transactions are never written except through BalanceReconciler
- Balances and goal progress are never written by callers
- Every mutation is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional, Union

import structlog

from ledger.analytics import BudgetAggregator, SavingsProjectionEngine
from ledger.audit import AuditLogger
from ledger.bootstrap import DataInitializer
from ledger.config import get_settings
from ledger.errors import EntityNotFoundError
from ledger.journal import OperationJournal
from ledger.models.audit import AuditEvent
from ledger.models.entities import (
    Account,
    AccountCreate,
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
    Transaction,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
)
from ledger.models.views import (
    BalanceDiscrepancy,
    BudgetOverview,
    CategorySummary,
    DailyGroup,
    DailySummary,
    GoalPrediction,
    TransactionFilter,
    TransactionSummary,
)
from ledger.queries import (
    TransactionQueryService,
    category_breakdown,
    group_by_date,
)
from ledger.reconciliation import BalanceReconciler
from ledger.repositories import (
    AccountRepository,
    BudgetRepository,
    CategoryRepository,
    SavingsGoalRepository,
    TransactionRepository,
)
from ledger.services.storage import (
    AuditStorageInterface,
    CollectionAuditStorage,
    InMemorySettingsStorage,
    InMemoryStorageBackend,
    JsonFileSettingsStorage,
    SettingsStorageInterface,
    SqliteDatabase,
    SqliteStorageBackend,
    StorageBackend,
)
from ledger.settings_store import SettingsStore
from ledger.validation import LedgerValidator

logger = structlog.get_logger(__name__)


class Ledger:
    """
    The ledger as one object.

    Wires repositories, the reconciliation engine, analytics and queries
    over one storage backend and one settings blob.
    """

    def __init__(
        self,
        backend: StorageBackend,
        settings_storage: SettingsStorageInterface,
        audit_storage: Optional[AuditStorageInterface] = None,
    ):
        self._backend = backend

        if audit_storage is None:
            audit_storage = CollectionAuditStorage(backend.collection("audit_events"))
        self._audit_storage = audit_storage
        self._audit = AuditLogger(audit_storage)

        transactions = backend.collection("transactions")
        categories = backend.collection("categories")
        accounts = backend.collection("accounts")

        validator = LedgerValidator(
            accounts=accounts,
            categories=categories,
            audit_logger=self._audit,
        )
        self.settings_store = SettingsStore(settings_storage)

        self.transactions = TransactionRepository(transactions, validator, self._audit)
        self.categories = CategoryRepository(categories, transactions, validator, self._audit)
        self.accounts = AccountRepository(accounts, transactions, validator, self._audit)
        self.budgets = BudgetRepository(backend.collection("budgets"), validator, self._audit)
        self.goals = SavingsGoalRepository(
            backend.collection("savings_goals"), validator, self._audit
        )

        self.reconciler = BalanceReconciler(
            self.transactions,
            self.accounts,
            OperationJournal(backend.collection("journal")),
            self._audit,
        )
        self.budget_aggregator = BudgetAggregator(self.budgets, self.transactions, self.categories)
        self.savings = SavingsProjectionEngine(
            self.goals, self.transactions, self.settings_store, self._audit
        )
        self.queries = TransactionQueryService(self.transactions)
        self.initializer = DataInitializer(
            self.categories,
            self.accounts,
            categories,
            accounts,
            self.settings_store,
            self._audit,
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def startup(self, today: Optional[dt.date] = None) -> dict:
        """
        Bring the ledger to a consistent state before first use.

        Returns:
            What happened: {"seeded", "recovered_accounts", "goals_updated"}
        """
        seeded = await self.initializer.ensure_initialized()
        recovered = await self.reconciler.recover()
        goals_updated = await self.savings.run_auto_update(today)

        logger.info(
            "ledger_started",
            seeded=seeded,
            recovered_accounts=len(recovered),
            goals_updated=goals_updated,
        )
        return {
            "seeded": seeded,
            "recovered_accounts": recovered,
            "goals_updated": goals_updated,
        }

    def close(self) -> None:
        self._backend.close()

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def add_transaction(self, data: Union[TransactionCreate, dict]) -> str:
        return await self.reconciler.add_transaction(data)

    async def update_transaction(
        self,
        transaction_id: str,
        changes: Union[TransactionUpdate, dict],
    ) -> Transaction:
        return await self.reconciler.update_transaction(transaction_id, changes)

    async def delete_transaction(self, transaction_id: str) -> bool:
        return await self.reconciler.delete_transaction(transaction_id)

    async def bulk_delete_transactions(self, transaction_ids: list[str]) -> int:
        return await self.reconciler.bulk_delete(transaction_ids)

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return await self.transactions.get_by_id(transaction_id)

    async def list_transactions(
        self,
        query: Optional[Union[TransactionFilter, dict]] = None,
    ) -> list[Transaction]:
        return await self.queries.query(query)

    async def recent_transactions(self, limit: int = 10) -> list[Transaction]:
        return await self.transactions.get_recent(limit)

    async def transactions_for_preset(
        self,
        preset: str,
        today: Optional[dt.date] = None,
    ) -> list[Transaction]:
        return await self.queries.by_preset(preset, today)

    async def summary(self, query: Optional[TransactionFilter] = None) -> TransactionSummary:
        return await self.queries.summary(query)

    async def daily_groups(self, query: Optional[TransactionFilter] = None) -> list[DailyGroup]:
        return group_by_date(await self.queries.query(query))

    async def trend(self, query: Optional[TransactionFilter] = None) -> list[DailySummary]:
        return await self.queries.trend(query)

    async def category_breakdown(
        self,
        transaction_type: Union[TransactionType, str] = TransactionType.EXPENSE,
        query: Optional[TransactionFilter] = None,
    ) -> list[CategorySummary]:
        return category_breakdown(
            await self.queries.query(query),
            transaction_type,
            await self.categories.get_all(),
        )

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def add_category(self, data: Union[CategoryCreate, dict]) -> str:
        return await self.categories.add(data)

    async def update_category(
        self,
        category_id: str,
        changes: Union[CategoryUpdate, dict],
    ) -> Category:
        return await self.categories.update(category_id, changes)

    async def delete_category(self, category_id: str) -> None:
        await self.categories.delete(category_id)

    async def get_categories(
        self,
        category_type: Optional[Union[TransactionType, str]] = None,
    ) -> list[Category]:
        if category_type is None:
            return await self.categories.get_all()
        return await self.categories.get_by_type(category_type)

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    async def add_account(self, data: Union[AccountCreate, dict]) -> str:
        return await self.accounts.add(data)

    async def update_account(
        self,
        account_id: str,
        changes: Union[AccountUpdate, dict],
    ) -> Account:
        return await self.accounts.update(account_id, changes)

    async def delete_account(self, account_id: str) -> None:
        """
        Delete an account. If it was the default account, the first
        remaining account becomes the default.
        """
        await self.accounts.delete(account_id)

        settings = await self.settings_store.get()
        if settings.default_account_id == account_id:
            remaining = await self.accounts.get_all()
            new_default = remaining[0].id if remaining else ""
            await self.settings_store.update(default_account_id=new_default)
            logger.info(
                "default_account_reassigned",
                deleted_account_id=account_id,
                account_id=new_default,
            )

    async def get_accounts(self) -> list[Account]:
        return await self.accounts.get_all()

    async def get_account(self, account_id: str) -> Optional[Account]:
        return await self.accounts.get_by_id(account_id)

    async def total_balance(self) -> Decimal:
        return sum((a.balance for a in await self.accounts.get_all()), Decimal("0"))

    async def verify_balances(self) -> list[BalanceDiscrepancy]:
        return await self.reconciler.verify_balances()

    async def repair_balances(self) -> list[BalanceDiscrepancy]:
        return await self.reconciler.repair_balances()

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def set_budget(self, data: Union[BudgetCreate, dict]) -> str:
        return await self.budgets.set_budget(data)

    async def update_budget(self, budget_id: str, changes: Union[BudgetUpdate, dict]) -> Budget:
        return await self.budgets.update(budget_id, changes)

    async def delete_budget(self, budget_id: str) -> bool:
        return await self.budgets.delete(budget_id)

    async def get_budgets(
        self,
        period: Optional[Union[BudgetPeriod, str]] = None,
    ) -> list[Budget]:
        if period is None:
            return await self.budgets.get_all()
        return await self.budgets.get_by_period(period)

    async def budget_overview(
        self,
        period: Union[BudgetPeriod, str] = BudgetPeriod.MONTHLY,
        today: Optional[dt.date] = None,
    ) -> BudgetOverview:
        return await self.budget_aggregator.overview(period, today)

    # =========================================================================
    # SAVINGS GOALS
    # =========================================================================

    async def add_goal(self, data: Union[SavingsGoalCreate, dict]) -> str:
        return await self.goals.add(data)

    async def update_goal(
        self,
        goal_id: str,
        changes: Union[SavingsGoalUpdate, dict],
    ) -> SavingsGoal:
        return await self.goals.update(goal_id, changes)

    async def delete_goal(self, goal_id: str) -> bool:
        return await self.goals.delete(goal_id)

    async def get_goals(self, active_only: bool = False) -> list[SavingsGoal]:
        if active_only:
            return await self.goals.get_active()
        return await self.goals.get_all()

    async def update_goal_progress(self, goal_id: str, current_amount: Decimal) -> SavingsGoal:
        return await self.savings.update_progress(goal_id, current_amount)

    async def refresh_goals(self, today: Optional[dt.date] = None) -> bool:
        return await self.savings.run_auto_update(today)

    async def predict_goal(
        self,
        goal_id: str,
        today: Optional[dt.date] = None,
    ) -> GoalPrediction:
        goal = await self.goals.get_by_id(goal_id)
        if goal is None:
            raise EntityNotFoundError("savings_goal", goal_id)
        return await self.savings.predict(goal, today)

    # =========================================================================
    # SETTINGS & AUDIT
    # =========================================================================

    async def get_settings(self) -> LedgerSettings:
        return await self.settings_store.get()

    async def update_settings(self, **changes) -> LedgerSettings:
        return await self.settings_store.update(**changes)

    async def recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return await self._audit_storage.get_recent_events(limit)

    async def events_for(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        return await self._audit_storage.get_events_by_entity(entity_type, entity_id)


def create_ledger(
    backend: Optional[str] = None,
    database_path: Optional[str] = None,
    settings_path: Optional[str] = None,
) -> Ledger:
    """
    Factory function to create a ledger from configuration.

    Args:
        backend: "sqlite" or "memory" (defaults to LEDGER_STORAGE_BACKEND)
        database_path: SQLite file (defaults to LEDGER_STORAGE_DATABASE_PATH)
        settings_path: Settings JSON file (defaults to LEDGER_STORAGE_SETTINGS_PATH)

    Returns:
        A Ledger; call `await ledger.startup()` before use
    """
    storage_settings = get_settings().storage
    backend = backend or storage_settings.backend

    if backend == "memory":
        return Ledger(InMemoryStorageBackend(), InMemorySettingsStorage())

    if backend != "sqlite":
        raise ValueError(f"Unknown storage backend: {backend}")

    database_url = None
    if database_path is not None:
        database_url = (
            "sqlite://" if database_path == ":memory:" else f"sqlite:///{database_path}"
        )
    storage = SqliteStorageBackend(SqliteDatabase(database_url))
    logger.info("ledger_storage_opened", backend=backend, url=storage.database.url)

    return Ledger(storage, JsonFileSettingsStorage(settings_path))
