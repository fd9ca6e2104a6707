"""
Default Data Initialisation

A fresh ledger gets the system categories and a starter set of accounts,
and the first account becomes the default. Each collection is seeded only
while it is empty, so running this against an existing ledger changes
nothing.

DESIGN DECISION: One initializer instance owns the "already ran" state.
An asyncio.Lock makes concurrent callers wait for the first run instead of
seeding twice.
"""

import asyncio
from typing import Optional

import structlog

from ledger.audit import AuditLogger
from ledger.models.entities import AccountCreate, AccountType, CategoryCreate, TransactionType
from ledger.repositories import AccountRepository, CategoryRepository
from ledger.services.storage import CollectionStorageInterface
from ledger.settings_store import SettingsStore

logger = structlog.get_logger(__name__)


# (name, icon, color); order is the position in the list
DEFAULT_EXPENSE_CATEGORIES = [
    ("Food", "Utensils", "#F59E0B"),
    ("Transport", "Car", "#3B82F6"),
    ("Shopping", "ShoppingBag", "#EC4899"),
    ("Entertainment", "Gamepad2", "#8B5CF6"),
    ("Medical", "Heart", "#EF4444"),
    ("Housing", "Home", "#10B981"),
    ("Education", "GraduationCap", "#06B6D4"),
    ("Other", "MoreHorizontal", "#6B7280"),
]

DEFAULT_INCOME_CATEGORIES = [
    ("Salary", "Wallet", "#10B981"),
    ("Part-time", "Briefcase", "#3B82F6"),
    ("Investment", "TrendingUp", "#8B5CF6"),
    ("Other", "MoreHorizontal", "#6B7280"),
]

# (name, type, icon, color)
DEFAULT_ACCOUNTS = [
    ("Cash", AccountType.CASH, "Banknote", "#10B981"),
    ("Bank Card", AccountType.BANK, "CreditCard", "#3B82F6"),
    ("Alipay", AccountType.ALIPAY, "Smartphone", "#1677FF"),
    ("WeChat", AccountType.WECHAT, "MessageCircle", "#07C160"),
]


class DataInitializer:
    """Seeds default categories and accounts once per ledger."""

    def __init__(
        self,
        categories: CategoryRepository,
        accounts: AccountRepository,
        category_collection: CollectionStorageInterface,
        account_collection: CollectionStorageInterface,
        settings_store: SettingsStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._categories = categories
        self._accounts = accounts
        self._category_collection = category_collection
        self._account_collection = account_collection
        self._settings_store = settings_store
        self._audit = audit_logger or AuditLogger()
        self._lock = asyncio.Lock()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def ensure_initialized(self) -> bool:
        """
        Seed whatever is missing.

        Returns:
            True if anything was seeded by this call
        """
        async with self._lock:
            if self._initialized:
                return False

            seeded_categories = 0
            if await self._category_collection.count() == 0:
                seeded_categories = await self._seed_categories()

            seeded_accounts = 0
            if await self._account_collection.count() == 0:
                seeded_accounts = await self._seed_accounts()

            self._initialized = True

        if seeded_categories or seeded_accounts:
            await self._audit.log_default_data_seeded(seeded_categories, seeded_accounts)
            return True
        return False

    async def _seed_categories(self) -> int:
        count = 0
        for category_type, defaults in (
            (TransactionType.EXPENSE, DEFAULT_EXPENSE_CATEGORIES),
            (TransactionType.INCOME, DEFAULT_INCOME_CATEGORIES),
        ):
            for order, (name, icon, color) in enumerate(defaults):
                await self._categories.add(CategoryCreate(
                    name=name,
                    type=category_type,
                    icon=icon,
                    color=color,
                    order=order,
                    is_custom=False,
                ))
                count += 1
        return count

    async def _seed_accounts(self) -> int:
        account_ids = []
        for order, (name, account_type, icon, color) in enumerate(DEFAULT_ACCOUNTS):
            account_ids.append(await self._accounts.add(AccountCreate(
                name=name,
                type=account_type,
                icon=icon,
                color=color,
                order=order,
            )))

        settings = await self._settings_store.get()
        if not settings.default_account_id and account_ids:
            await self._settings_store.update(default_account_id=account_ids[0])
            logger.info("default_account_set", account_id=account_ids[0])
        return len(account_ids)
