"""
Transaction Ledger

Every transaction mutation follows the same order:

1. Validate the input (nothing leaves the process on bad input)
2. Write to the remote store
3. Update the local index (only if step 2 succeeded)
4. Hand the change to the reconciliation engine

A remote failure in step 2 is raised to the caller with the index
untouched. Reconciliation failures in step 4 are never raised; they
come back inside the ReconciliationResult.

DESIGN DECISION: Edits reconcile against the record as the remote
store had it just before the write, not against the local index. The
index may be stale if another session changed the record.
"""

from datetime import date, datetime
from typing import Any, Mapping, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.ledger.reconciliation import ReconciliationEngine
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.ledger import (
    ReconciliationResult,
    Transaction,
    TransactionType,
)
from finance_tracker.services.preferences import Preferences
from finance_tracker.services.storage import (
    CachedRepository,
    NotFoundError,
    StorageError,
)
from finance_tracker.validation import LedgerValidationError, LedgerValidator


PROTECTED_FIELDS = ("id", "owner", "created_at", "updated_at")


def _summary(transaction: Transaction) -> str:
    return f"{transaction.type.value} {transaction.amount} {transaction.currency} ({transaction.category})"


class TransactionLedger:
    """
    Transaction CRUD for a single owner, with budget reconciliation.

    Args:
        repository: Cached repository over the transactions collection
        owner: The signed-in user
        engine: Reconciliation engine shared with the budget ledger
        preferences: Supplies the default currency
        validator: Input validator (a default one is built if omitted)
        audit_logger: Optional audit trail
    """

    def __init__(
        self,
        repository: CachedRepository[Transaction],
        owner: str,
        engine: ReconciliationEngine,
        preferences: Preferences,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._owner = owner
        self._engine = engine
        self._preferences = preferences
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)
        self._last_reconciliation: Optional[ReconciliationResult] = None

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def last_reconciliation(self) -> Optional[ReconciliationResult]:
        """Outcome of the most recent reconciliation pass, for the UI."""
        return self._last_reconciliation

    async def _fetch_own(self, transaction_id: str) -> Optional[Transaction]:
        """Remote snapshot. Another owner's record reads as not found."""
        transaction = await self._repository.get(transaction_id)
        if transaction is not None and transaction.owner != self._owner:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    async def _rejected(
        self,
        error: LedgerValidationError,
        correlation_id: Optional[UUID],
    ) -> LedgerValidationError:
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                entity_type="transaction",
                issues=[i.model_dump() for i in error.result.issues],
                correlation_id=correlation_id,
            )
        return error

    async def _save_failed(
        self,
        transaction_id: str,
        operation: str,
        error: StorageError,
        correlation_id: Optional[UUID],
    ) -> None:
        self._logger.error(
            "transaction_save_failed",
            transaction_id=transaction_id,
            operation=operation,
            error=str(error),
        )
        if self._audit_logger:
            await self._audit_logger.log_save_failed(
                entity_type="transaction",
                entity_id=transaction_id,
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def _reconcile(self, coro) -> ReconciliationResult:
        result = await coro
        self._last_reconciliation = result
        if result.failures:
            self._logger.warning(
                "reconciliation_incomplete",
                transaction_id=result.transaction_id,
                failed_budgets=[a.budget_id for a in result.failures],
            )
        return result

    async def create(
        self,
        data: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Record a new transaction and return its id.

        ``currency`` defaults to the user's default currency. When the
        caller picked a different one, the entered amount and code are
        also kept as ``original_amount``/``original_currency``.

        Raises:
            LedgerValidationError: Before any remote call, on bad input
            StorageError: If the remote write fails (index unchanged)
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate_transaction(data)
        if result.has_errors:
            raise await self._rejected(LedgerValidationError(result), correlation_id)

        fields = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
        default_currency = self._preferences.default_currency
        currency = str(fields.get("currency") or default_currency).strip().upper()

        fields["currency"] = currency
        fields["type"] = fields.get("type") or TransactionType.EXPENSE
        fields["date"] = fields.get("date") or date.today()
        fields["tags"] = fields.get("tags") or []
        if currency != default_currency:
            fields["original_amount"] = fields["amount"]
            fields["original_currency"] = currency

        try:
            transaction = Transaction.model_validate({**fields, "owner": self._owner})
        except ValidationError as e:
            raise await self._rejected(
                LedgerValidationError.from_model_error("transaction", e),
                correlation_id,
            ) from e

        try:
            await self._repository.put(transaction)
        except StorageError as e:
            await self._save_failed(transaction.id, "create", e, correlation_id)
            raise

        self._logger.info(
            "transaction_created",
            transaction_id=transaction.id,
            type=transaction.type.value,
            amount=str(transaction.amount),
            currency=transaction.currency,
        )
        if self._audit_logger:
            await self._audit_logger.log_transaction_event(
                event_type=AuditEventType.TRANSACTION_CREATED,
                transaction_id=transaction.id,
                summary=_summary(transaction),
                details=transaction.model_dump(mode="json", exclude={"owner"}),
                correlation_id=correlation_id,
            )

        await self._reconcile(self._engine.apply_created(transaction, correlation_id))
        return transaction.id

    async def update(
        self,
        transaction_id: str,
        data: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Apply a partial update and return the stored transaction.

        If the record is missing remotely but still in the local index,
        the merged record is written back in full and reconciliation is
        skipped (there is no trustworthy "before" to reverse).

        Raises:
            LedgerValidationError: On bad input
            NotFoundError: If the record exists neither remotely nor locally
            StorageError: If a remote call fails (index unchanged)
        """
        correlation_id = correlation_id or create_correlation_id()

        changes = {
            k: v for k, v in data.items()
            if k in Transaction.model_fields and k not in PROTECTED_FIELDS
        }
        result = self._validator.validate_transaction(changes, partial=True)
        if result.has_errors:
            raise await self._rejected(LedgerValidationError(result), correlation_id)

        before = await self._fetch_own(transaction_id)
        base = before or self._repository.cached(transaction_id)
        if base is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")

        now = datetime.utcnow()
        try:
            candidate = Transaction.model_validate({
                **base.model_dump(),
                **changes,
                "updated_at": now,
            })
        except ValidationError as e:
            raise await self._rejected(
                LedgerValidationError.from_model_error("transaction", e),
                correlation_id,
            ) from e

        try:
            if before is not None:
                normalized = {name: getattr(candidate, name) for name in changes}
                normalized["updated_at"] = now
                after = await self._repository.patch(transaction_id, normalized)
            else:
                after = await self._repository.put(candidate)
        except StorageError as e:
            await self._save_failed(transaction_id, "update", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_transaction_event(
                event_type=AuditEventType.TRANSACTION_UPDATED,
                transaction_id=transaction_id,
                summary=_summary(after),
                details={"changed_fields": sorted(changes)},
                correlation_id=correlation_id,
            )

        if before is None:
            self._logger.warning(
                "transaction_missing_remotely",
                transaction_id=transaction_id,
                action="rewritten_without_reconciliation",
            )
        else:
            await self._reconcile(
                self._engine.apply_updated(before, after, correlation_id)
            )
        return after

    async def delete(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete a transaction and take it back out of its budgets.

        Returns False if the remote store had nothing to delete (the
        local index is cleared either way).

        Raises:
            NotFoundError: If the record exists neither remotely nor locally
            StorageError: If a remote call fails (index unchanged)
        """
        correlation_id = correlation_id or create_correlation_id()

        before = await self._fetch_own(transaction_id)
        if before is None and self._repository.cached(transaction_id) is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")

        try:
            deleted = await self._repository.delete(transaction_id)
        except StorageError as e:
            await self._save_failed(transaction_id, "delete", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_transaction_event(
                event_type=AuditEventType.TRANSACTION_DELETED,
                transaction_id=transaction_id,
                summary=_summary(before) if before else transaction_id,
                details={"existed_remotely": deleted},
                correlation_id=correlation_id,
            )

        if before is not None:
            await self._reconcile(self._engine.apply_deleted(before, correlation_id))
        return deleted

    async def get(self, transaction_id: str) -> Transaction:
        """Fresh remote read. Raises NotFoundError if it is gone or not ours."""
        transaction = await self._fetch_own(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Transaction]:
        """
        The owner's transactions from the local index, newest first.

        Both bounds are inclusive; either may be omitted.
        """
        transactions = [
            t for t in self._repository.list_all()
            if t.owner == self._owner
            and (start_date is None or t.date >= start_date)
            and (end_date is None or t.date <= end_date)
        ]
        return sorted(transactions, key=lambda t: (t.date, t.created_at), reverse=True)

    async def refresh(self) -> list[Transaction]:
        """Reload the index from the remote store."""
        await self._repository.load(self._owner)
        transactions = self.list_transactions()
        self._logger.info("transactions_loaded", owner=self._owner, count=len(transactions))
        return transactions
