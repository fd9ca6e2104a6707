"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability when a sequence was interrupted
3. User can see history of their records

The audit logger:
- Is async like the rest of the ledger
- Gracefully handles failures (a failed audit write never fails a ledger write)
- Supports correlation IDs to trace related events
"""

from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from ledger.models.audit import AuditEvent, AuditEventBuilder
from ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit_events collection (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_added(
        self,
        transaction_id: str,
        account_id: str,
        transaction_type: str,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a recorded transaction."""
        event = AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            account_id=account_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_updated(
        self,
        transaction_id: str,
        changed_fields: list[str],
        rebalanced: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction edit."""
        event = AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            changed_fields=changed_fields,
            rebalanced=rebalanced,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        account_id: str,
        transaction_type: str,
        amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction delete."""
        event = AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            account_id=account_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_bulk_deleted(
        self,
        requested: int,
        deleted: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the outcome of a bulk delete."""
        event = AuditEventBuilder.transactions_bulk_deleted(
            requested=requested,
            deleted=deleted,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_balance_adjusted(
        self,
        account_id: str,
        old_balance: Any,
        new_balance: Any,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a running balance change."""
        event = AuditEventBuilder.balance_adjusted(
            account_id=account_id,
            old_balance=old_balance,
            new_balance=new_balance,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_balance_repaired(
        self,
        account_id: str,
        stored_balance: Any,
        expected_balance: Any,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a balance recomputed from a transaction scan."""
        event = AuditEventBuilder.balance_repaired(
            account_id=account_id,
            stored_balance=stored_balance,
            expected_balance=expected_balance,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_journal_recovered(
        self,
        entry_count: int,
        account_ids: list[str],
    ) -> None:
        """Log startup recovery of interrupted operations."""
        event = AuditEventBuilder.journal_recovered(
            entry_count=entry_count,
            account_ids=account_ids,
        )
        await self.log(event)

    async def log_entity_created(self, entity_type: str, entity_id: str, name: str) -> None:
        await self.log(AuditEventBuilder.entity_created(entity_type, entity_id, name))

    async def log_entity_updated(
        self,
        entity_type: str,
        entity_id: str,
        changed_fields: list[str],
    ) -> None:
        await self.log(AuditEventBuilder.entity_updated(entity_type, entity_id, changed_fields))

    async def log_entity_deleted(self, entity_type: str, entity_id: str) -> None:
        await self.log(AuditEventBuilder.entity_deleted(entity_type, entity_id))

    async def log_delete_blocked(
        self,
        entity_type: str,
        entity_id: str,
        reason: str,
    ) -> None:
        """Log a delete rejected by a referential rule."""
        event = AuditEventBuilder.delete_blocked(
            entity_type=entity_type,
            entity_id=entity_id,
            reason=reason,
        )
        await self.log(event)

    async def log_budget_set(
        self,
        budget_id: str,
        category_id: Optional[str],
        period: str,
        amount: Any,
        created: bool,
    ) -> None:
        """Log a budget upsert."""
        event = AuditEventBuilder.budget_set(
            budget_id=budget_id,
            category_id=category_id,
            period=period,
            amount=amount,
            created=created,
        )
        await self.log(event)

    async def log_goal_progress_updated(
        self,
        goal_id: str,
        old_amount: Any,
        new_amount: Any,
    ) -> None:
        await self.log(AuditEventBuilder.goal_progress_updated(goal_id, old_amount, new_amount))

    async def log_goal_achieved(self, goal_id: str, name: str, target_amount: Any) -> None:
        await self.log(AuditEventBuilder.goal_achieved(goal_id, name, target_amount))

    async def log_goals_auto_updated(self, run_date: str, goal_count: int) -> None:
        await self.log(AuditEventBuilder.goals_auto_updated(run_date, goal_count))

    async def log_validation_failed(self, entity_type: str, issues: list[dict]) -> None:
        """Log validation failure."""
        await self.log(AuditEventBuilder.validation_failed(entity_type, issues))

    async def log_default_data_seeded(self, categories: int, accounts: int) -> None:
        await self.log(AuditEventBuilder.default_data_seeded(categories, accounts))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step action (e.g., a bulk delete).
    Pass it through all subsequent operations.
    """
    return uuid4()
