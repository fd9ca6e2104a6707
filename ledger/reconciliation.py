"""
Balance Reconciliation Engine

Keeps every account's running balance equal to

    initial_balance + sum(income) - sum(expense)

over the transactions that reference it, across the four ways a
transaction changes: add, edit, delete and bulk delete.

DESIGN DECISION: Balances are maintained incrementally.
Each operation applies (or reverses) exactly one transaction's effect:
- Add:    write the record, then apply its effect
- Delete: reverse its effect, then remove the record
- Edit:   reverse the old effect on the old account, apply the new effect
          on the new account, then write the field changes
A full scan of the transactions is only used to recover from a failure.

The two writes of each operation are not atomic. They are bracketed by
a journal entry (see journal.py). If the second write fails the affected
accounts are recomputed on the spot; if that fails too, the entry stays
behind and recover() fixes the accounts at the next startup.

Concurrent mutating calls are not serialised here. Bulk delete runs its
items one after another so two balance updates never race on one account.
"""

from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import structlog

from ledger.audit import AuditLogger, create_correlation_id
from ledger.errors import EntityNotFoundError
from ledger.journal import JournalEntry, OperationJournal
from ledger.models.entities import (
    Account,
    Transaction,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
)
from ledger.models.views import BalanceDiscrepancy
from ledger.repositories import AccountRepository, TransactionRepository

logger = structlog.get_logger(__name__)

# Only these fields move money between or within accounts
BALANCE_FIELDS = ("amount", "account_id", "type")


class BalanceReconciler:
    """
    The only writer of transactions and account balances.
    """

    def __init__(
        self,
        transactions: TransactionRepository,
        accounts: AccountRepository,
        journal: OperationJournal,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._transactions = transactions
        self._accounts = accounts
        self._journal = journal
        self._audit = audit_logger or AuditLogger()

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def add_transaction(self, data: Union[TransactionCreate, dict]) -> str:
        """
        Record a transaction and apply it to its account.

        Returns:
            The new transaction's id

        Raises:
            ValidationError: If the payload is invalid (nothing is written)
            StorageError: If a write fails
        """
        payload = await self._transactions.parse_create(data)
        is_income = payload.type == TransactionType.INCOME
        correlation_id = create_correlation_id()

        entry = await self._journal.begin("add", [payload.account_id])
        try:
            transaction_id = await self._transactions.add(payload)
            await self._accounts.apply_balance_change(
                payload.account_id,
                payload.amount,
                is_income,
                reason=f"add transaction {transaction_id}",
                correlation_id=correlation_id,
            )
        except Exception as e:
            await self._compensate(entry, e, correlation_id)
            raise
        await self._journal.complete(entry)

        await self._audit.log_transaction_added(
            transaction_id=transaction_id,
            account_id=payload.account_id,
            transaction_type=payload.type.value,
            amount=payload.amount,
            correlation_id=correlation_id,
        )
        return transaction_id

    async def update_transaction(
        self,
        transaction_id: str,
        changes: Union[TransactionUpdate, dict],
    ) -> Transaction:
        """
        Edit a transaction.

        Balances are only touched when amount, account or type change. The
        old effect is fully reversed and the new one fully applied, even
        when the account stays the same.

        Raises:
            EntityNotFoundError: If the transaction doesn't exist
            ValidationError: If a change is invalid (nothing is written)
        """
        existing = await self._transactions.get_by_id(transaction_id)
        if existing is None:
            raise EntityNotFoundError("transaction", transaction_id)

        payload = await self._transactions.parse_update(changes)
        values = payload.changes()
        # Validate the merged record before any balance moves
        merged = self._transactions.merge(existing, values)

        rebalance = any(
            getattr(merged, field) != getattr(existing, field)
            for field in BALANCE_FIELDS
        )

        if not rebalance:
            updated = await self._transactions.update(transaction_id, payload)
            await self._audit.log_transaction_updated(
                transaction_id=transaction_id,
                changed_fields=list(values),
                rebalanced=False,
            )
            return updated

        correlation_id = create_correlation_id()
        entry = await self._journal.begin(
            "update",
            [existing.account_id, merged.account_id],
            transaction_id=transaction_id,
        )
        try:
            await self._accounts.apply_balance_change(
                existing.account_id,
                existing.amount,
                not existing.is_income,
                reason=f"reverse transaction {transaction_id}",
                correlation_id=correlation_id,
            )
            await self._accounts.apply_balance_change(
                merged.account_id,
                merged.amount,
                merged.is_income,
                reason=f"apply edited transaction {transaction_id}",
                correlation_id=correlation_id,
            )
            updated = await self._transactions.update(transaction_id, payload)
        except Exception as e:
            await self._compensate(entry, e, correlation_id)
            raise
        await self._journal.complete(entry)

        await self._audit.log_transaction_updated(
            transaction_id=transaction_id,
            changed_fields=list(values),
            rebalanced=True,
            correlation_id=correlation_id,
        )
        return updated

    async def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Reverse a transaction's effect and remove it.

        Deleting a transaction that does not exist is a no-op.

        Returns:
            True if a transaction was removed
        """
        existing = await self._transactions.get_by_id(transaction_id)
        if existing is None:
            return False

        correlation_id = correlation_id or create_correlation_id()
        entry = await self._journal.begin(
            "delete",
            [existing.account_id],
            transaction_id=transaction_id,
        )
        try:
            await self._accounts.apply_balance_change(
                existing.account_id,
                existing.amount,
                not existing.is_income,
                reason=f"delete transaction {transaction_id}",
                correlation_id=correlation_id,
            )
            await self._transactions.delete(transaction_id)
        except Exception as e:
            await self._compensate(entry, e, correlation_id)
            raise
        await self._journal.complete(entry)

        await self._audit.log_transaction_deleted(
            transaction_id=transaction_id,
            account_id=existing.account_id,
            transaction_type=existing.type.value,
            amount=existing.amount,
            correlation_id=correlation_id,
        )
        return True

    async def bulk_delete(self, transaction_ids: list[str]) -> int:
        """
        Delete several transactions one at a time, in the given order.

        NOT atomic: the first failure propagates and the remaining ids are
        left alone, while the ones already deleted stay deleted and
        reconciled. Callers should re-read state after a failure.

        Returns:
            Number of transactions actually removed
        """
        correlation_id = create_correlation_id()
        deleted = 0
        try:
            for transaction_id in transaction_ids:
                if await self.delete_transaction(transaction_id, correlation_id):
                    deleted += 1
        finally:
            await self._audit.log_bulk_deleted(
                requested=len(transaction_ids),
                deleted=deleted,
                correlation_id=correlation_id,
            )
        return deleted

    # =========================================================================
    # RECOVERY
    # =========================================================================

    async def expected_balance(self, account: Account) -> Decimal:
        """The balance a full scan of the account's transactions implies."""
        transactions = await self._transactions.get_by_account(account.id)
        return account.initial_balance + sum(
            (t.signed_amount for t in transactions),
            Decimal("0"),
        )

    async def _recompute(
        self,
        account_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        for account_id in account_ids:
            account = await self._accounts.get_by_id(account_id)
            if account is None:
                continue
            expected = await self.expected_balance(account)
            if expected != account.balance:
                await self._accounts.set_balance(account_id, expected)
                await self._audit.log_balance_repaired(
                    account_id=account_id,
                    stored_balance=account.balance,
                    expected_balance=expected,
                    correlation_id=correlation_id,
                )

    async def _compensate(
        self,
        entry: JournalEntry,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Best-effort repair after one of the two writes failed.

        On success the journal entry is cleared. If the repair fails too the
        entry stays for recover(). The original error is re-raised by the
        caller either way.
        """
        await self._audit.log_error(
            error_type=type(error).__name__,
            error_message=str(error),
            details={
                "operation": entry.operation,
                "transaction_id": entry.transaction_id,
                "account_ids": entry.account_ids,
            },
            correlation_id=correlation_id,
        )
        try:
            await self._recompute(entry.account_ids, correlation_id)
            await self._journal.complete(entry)
        except Exception as repair_error:
            logger.error(
                "compensation_failed",
                entry_id=entry.id,
                error=str(repair_error),
            )

    async def recover(self) -> list[str]:
        """
        Recompute balances touched by interrupted operations.

        Run at startup, before anything else writes.

        Returns:
            Ids of the accounts that were recomputed
        """
        entries = await self._journal.pending()
        if not entries:
            return []

        account_ids = list(dict.fromkeys(
            account_id for entry in entries for account_id in entry.account_ids
        ))
        await self._recompute(account_ids)
        for entry in entries:
            await self._journal.complete(entry)

        await self._audit.log_journal_recovered(
            entry_count=len(entries),
            account_ids=account_ids,
        )
        return account_ids

    async def verify_balances(self) -> list[BalanceDiscrepancy]:
        """Every account whose stored balance disagrees with a full scan."""
        discrepancies = []
        for account in await self._accounts.get_all():
            expected = await self.expected_balance(account)
            if expected != account.balance:
                discrepancies.append(BalanceDiscrepancy(
                    account_id=account.id,
                    stored_balance=account.balance,
                    expected_balance=expected,
                ))
        return discrepancies

    async def repair_balances(self) -> list[BalanceDiscrepancy]:
        """Fix every drifted balance. Returns what was fixed."""
        discrepancies = await self.verify_balances()
        await self._recompute([d.account_id for d in discrepancies])
        return discrepancies
