"""
Audit Models for Personal Ledger

Every ledger mutation is logged for audit purposes.
This provides:
1. Complete traceability of balance changes
2. Debugging information when a two-step write is interrupted
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ledger.models.entities import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every write path of the ledger has its own event type.
    """
    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTIONS_BULK_DELETED = "transactions_bulk_deleted"

    # Balances
    BALANCE_ADJUSTED = "balance_adjusted"
    BALANCE_REPAIRED = "balance_repaired"
    JOURNAL_RECOVERED = "journal_recovered"

    # Other entities
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    DELETE_BLOCKED = "delete_blocked"

    # Budgets
    BUDGET_SET = "budget_set"

    # Savings goals
    GOAL_PROGRESS_UPDATED = "goal_progress_updated"
    GOAL_ACHIEVED = "goal_achieved"
    GOALS_AUTO_UPDATED = "goals_auto_updated"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # System events
    DEFAULT_DATA_SEEDED = "default_data_seeded"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'savings_goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all items of one bulk delete)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_record(self) -> dict:
        """
        Convert to a storage record for the audit_events collection.

        The record id is the event id, so appending is naturally idempotent.
        """
        record = self.model_dump(mode="json")
        record["id"] = record.pop("event_id")
        return record

    @classmethod
    def from_record(cls, record: dict) -> "AuditEvent":
        data = dict(record)
        data["event_id"] = data.pop("id")
        return cls.model_validate(data)


def _money(value: Any) -> str:
    return str(value)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(tx_id, account_id, "expense", amount)
        event = AuditEventBuilder.balance_adjusted(account_id, old, new, reason)
    """

    @staticmethod
    def transaction_added(
        transaction_id: str,
        account_id: str,
        transaction_type: str,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction added: {transaction_type} {_money(amount)}",
            details={
                "account_id": account_id,
                "type": transaction_type,
                "amount": _money(amount),
            },
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        changed_fields: list[str],
        rebalanced: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction updated: {', '.join(changed_fields) or 'no fields'}",
            details={
                "changed_fields": changed_fields,
                "rebalanced": rebalanced,
            },
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        account_id: str,
        transaction_type: str,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction deleted: {transaction_type} {_money(amount)}",
            details={
                "account_id": account_id,
                "type": transaction_type,
                "amount": _money(amount),
            },
        )

    @staticmethod
    def transactions_bulk_deleted(
        requested: int,
        deleted: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_BULK_DELETED,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Bulk delete removed {deleted} of {requested} transactions",
            details={
                "requested": requested,
                "deleted": deleted,
            },
        )

    @staticmethod
    def balance_adjusted(
        account_id: str,
        old_balance: Any,
        new_balance: Any,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_ADJUSTED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Balance {_money(old_balance)} -> {_money(new_balance)} ({reason})",
            details={
                "old_balance": _money(old_balance),
                "new_balance": _money(new_balance),
                "reason": reason,
            },
        )

    @staticmethod
    def balance_repaired(
        account_id: str,
        stored_balance: Any,
        expected_balance: Any,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_REPAIRED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=(
                f"Balance repaired from {_money(stored_balance)} "
                f"to {_money(expected_balance)}"
            ),
            details={
                "stored_balance": _money(stored_balance),
                "expected_balance": _money(expected_balance),
            },
        )

    @staticmethod
    def journal_recovered(
        entry_count: int,
        account_ids: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.JOURNAL_RECOVERED,
            severity=AuditSeverity.WARNING,
            entity_type="journal",
            description=f"Recovered {entry_count} interrupted ledger operation(s)",
            details={
                "entry_count": entry_count,
                "account_ids": account_ids,
            },
        )

    @staticmethod
    def entity_created(entity_type: str, entity_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} created: {name}",
            details={"name": name},
        )

    @staticmethod
    def entity_updated(
        entity_type: str,
        entity_id: str,
        changed_fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} updated: {', '.join(changed_fields)}",
            details={"changed_fields": changed_fields},
        )

    @staticmethod
    def entity_deleted(entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} deleted",
        )

    @staticmethod
    def delete_blocked(
        entity_type: str,
        entity_id: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DELETE_BLOCKED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Delete of {entity_type} blocked: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def budget_set(
        budget_id: str,
        category_id: Optional[str],
        period: str,
        amount: Any,
        created: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            entity_type="budget",
            entity_id=budget_id,
            description=(
                f"Budget {'created' if created else 'updated'}: "
                f"{period} {_money(amount)}"
            ),
            details={
                "category_id": category_id,
                "period": period,
                "amount": _money(amount),
                "created": created,
            },
        )

    @staticmethod
    def goal_progress_updated(
        goal_id: str,
        old_amount: Any,
        new_amount: Any,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_PROGRESS_UPDATED,
            entity_type="savings_goal",
            entity_id=goal_id,
            description=f"Goal progress {_money(old_amount)} -> {_money(new_amount)}",
            details={
                "old_amount": _money(old_amount),
                "new_amount": _money(new_amount),
            },
        )

    @staticmethod
    def goal_achieved(goal_id: str, name: str, target_amount: Any) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_ACHIEVED,
            entity_type="savings_goal",
            entity_id=goal_id,
            description=f"Savings goal achieved: {name}",
            details={"target_amount": _money(target_amount)},
        )

    @staticmethod
    def goals_auto_updated(run_date: str, goal_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOALS_AUTO_UPDATED,
            entity_type="savings_goal",
            description=f"Daily savings update for {run_date}: {goal_count} goal(s)",
            details={
                "run_date": run_date,
                "goal_count": goal_count,
            },
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def default_data_seeded(categories: int, accounts: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEFAULT_DATA_SEEDED,
            description=f"Seeded {categories} categories and {accounts} accounts",
            details={
                "categories": categories,
                "accounts": accounts,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
