"""
Transaction Query Layer

DESIGN DECISION: Queries are DETERMINISTIC reads of stored transactions.
- A TransactionFilter matches when EVERY field that is set matches (AND)
- Date bounds are inclusive
- Listings are newest first (date, then creation time); trend feeds
  (daily_totals) run oldest first

Equality and date filters are pushed down to storage. Amount and keyword
filters run here, on what storage returned.

The helpers below (summarize, group_by_date, category_breakdown,
daily_totals) are pure functions over a list of transactions.
"""

import datetime as dt
from decimal import Decimal
from typing import Iterable, Optional, Union

from dateutil.relativedelta import relativedelta

from ledger.models.entities import Category, Transaction, TransactionType
from ledger.models.views import (
    CategorySummary,
    DailyGroup,
    DailySummary,
    DateRange,
    TransactionFilter,
    TransactionSummary,
)
from ledger.repositories import TransactionRepository, sort_newest_first


class QueryExecutionError(Exception):
    """Error during query execution."""
    pass


# =============================================================================
# MATCHING
# =============================================================================

def matches(transaction: Transaction, query: TransactionFilter) -> bool:
    """Check one transaction against every predicate the filter sets."""
    if query.type is not None and transaction.type != query.type:
        return False
    if query.category_id is not None and transaction.category_id != query.category_id:
        return False
    if query.account_id is not None and transaction.account_id != query.account_id:
        return False
    if query.start_date is not None and transaction.date < query.start_date:
        return False
    if query.end_date is not None and transaction.date > query.end_date:
        return False
    if query.min_amount is not None and transaction.amount < query.min_amount:
        return False
    if query.max_amount is not None and transaction.amount > query.max_amount:
        return False
    if query.keyword:
        if query.keyword.lower() not in (transaction.note or "").lower():
            return False
    return True


def filter_transactions(
    transactions: Iterable[Transaction],
    query: Optional[TransactionFilter] = None,
    ascending: bool = False,
) -> list[Transaction]:
    """Matching transactions, newest first unless `ascending`."""
    query = query or TransactionFilter()
    selected = sort_newest_first([t for t in transactions if matches(t, query)])
    if ascending:
        selected.reverse()
    return selected


# =============================================================================
# AGGREGATION
# =============================================================================

def summarize(transactions: Iterable[Transaction]) -> TransactionSummary:
    """Income, expense and net balance totals."""
    income = Decimal("0")
    expense = Decimal("0")
    count = 0
    for t in transactions:
        count += 1
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expense += t.amount
    return TransactionSummary(
        income=income,
        expense=expense,
        balance=income - expense,
        count=count,
    )


def group_by_date(transactions: Iterable[Transaction]) -> list[DailyGroup]:
    """One group per day, newest day first, transactions newest first."""
    groups: dict[dt.date, DailyGroup] = {}
    for t in sort_newest_first(list(transactions)):
        group = groups.setdefault(t.date, DailyGroup(date=t.date))
        group.transactions.append(t)
        if t.type == TransactionType.INCOME:
            group.income += t.amount
        else:
            group.expense += t.amount
    return list(groups.values())


def daily_totals(transactions: Iterable[Transaction]) -> list[DailySummary]:
    """Per-day income/expense totals, oldest day first (trend charts)."""
    days: dict[dt.date, DailySummary] = {}
    for t in transactions:
        day = days.setdefault(t.date, DailySummary(date=t.date))
        day.count += 1
        if t.type == TransactionType.INCOME:
            day.income += t.amount
        else:
            day.expense += t.amount
    return [days[d] for d in sorted(days)]


def category_breakdown(
    transactions: Iterable[Transaction],
    transaction_type: Union[TransactionType, str] = TransactionType.EXPENSE,
    categories: Optional[Iterable[Category]] = None,
) -> list[CategorySummary]:
    """Totals per category for one transaction type, largest first."""
    transaction_type = TransactionType(transaction_type)
    by_id = {c.id: c for c in categories or []}

    totals: dict[str, CategorySummary] = {}
    for t in transactions:
        if t.type != transaction_type:
            continue
        summary = totals.setdefault(
            t.category_id,
            CategorySummary(category_id=t.category_id, category=by_id.get(t.category_id)),
        )
        summary.amount += t.amount
        summary.count += 1

    grand_total = sum((s.amount for s in totals.values()), Decimal("0"))
    for summary in totals.values():
        if grand_total > 0:
            summary.percentage = min(float(summary.amount / grand_total * 100), 100.0)

    return sorted(totals.values(), key=lambda s: s.amount, reverse=True)


# =============================================================================
# DATE PRESETS
# =============================================================================

PRESETS = ("all", "today", "thisWeek", "thisMonth", "lastMonth", "last7Days", "last30Days")


def resolve_preset(preset: str, today: Optional[dt.date] = None) -> DateRange:
    """
    Inclusive date range for a named preset.

    Weeks start on Monday. "all" spans 1970-01-01 to ten years ahead.
    """
    today = today or dt.date.today()

    if preset == "all":
        return DateRange(start=dt.date(1970, 1, 1), end=today + dt.timedelta(days=365 * 10))
    if preset == "today":
        return DateRange(start=today, end=today)
    if preset == "thisWeek":
        start = today - dt.timedelta(days=today.weekday())
        return DateRange(start=start, end=start + dt.timedelta(days=6))
    if preset == "thisMonth":
        start = today.replace(day=1)
        return DateRange(start=start, end=start + relativedelta(months=1, days=-1))
    if preset == "lastMonth":
        start = today.replace(day=1) - relativedelta(months=1)
        return DateRange(start=start, end=today.replace(day=1) - dt.timedelta(days=1))
    if preset == "last7Days":
        return DateRange(start=today - dt.timedelta(days=6), end=today)
    if preset == "last30Days":
        return DateRange(start=today - dt.timedelta(days=29), end=today)

    raise QueryExecutionError(f"Unknown date preset: {preset}")


# =============================================================================
# SERVICE
# =============================================================================

class TransactionQueryService:
    """
    Executes transaction filters against storage.

    GUARANTEES:
    - Only returns real stored transactions
    - Same filter, same data, same order
    """

    def __init__(self, transactions: TransactionRepository):
        self._transactions = transactions

    async def query(
        self,
        query: Optional[Union[TransactionFilter, dict]] = None,
        ascending: bool = False,
    ) -> list[Transaction]:
        """Transactions matching every predicate of `query`."""
        if query is None:
            query = TransactionFilter()
        elif isinstance(query, dict):
            query = TransactionFilter.model_validate(query)

        where = {}
        if query.type is not None:
            where["type"] = query.type.value
        if query.category_id is not None:
            where["category_id"] = query.category_id
        if query.account_id is not None:
            where["account_id"] = query.account_id

        candidates = await self._transactions.find(
            where=where or None,
            start_date=query.start_date,
            end_date=query.end_date,
        )
        return filter_transactions(candidates, query, ascending=ascending)

    async def by_preset(
        self,
        preset: str,
        today: Optional[dt.date] = None,
        query: Optional[TransactionFilter] = None,
    ) -> list[Transaction]:
        """Apply a named date preset on top of an optional filter."""
        date_range = resolve_preset(preset, today)
        base = query or TransactionFilter()
        return await self.query(base.model_copy(update={
            "start_date": date_range.start,
            "end_date": date_range.end,
        }))

    async def summary(self, query: Optional[TransactionFilter] = None) -> TransactionSummary:
        return summarize(await self.query(query))

    async def trend(self, query: Optional[TransactionFilter] = None) -> list[DailySummary]:
        return daily_totals(await self.query(query, ascending=True))
