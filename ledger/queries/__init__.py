"""Transaction query package."""

from ledger.queries.filters import (
    PRESETS,
    QueryExecutionError,
    TransactionQueryService,
    category_breakdown,
    daily_totals,
    filter_transactions,
    group_by_date,
    matches,
    resolve_preset,
    summarize,
)

__all__ = [
    "PRESETS",
    "QueryExecutionError",
    "TransactionQueryService",
    "category_breakdown",
    "daily_totals",
    "filter_transactions",
    "group_by_date",
    "matches",
    "resolve_preset",
    "summarize",
]
