"""
Budget Ledger

Owns one user's budgets: validated create/update/delete against the
remote store, plus the local index that reconciliation and the
dashboard read from.

A budget's ``spent`` is normally written by the reconciliation engine
through ``update``; users may also set it directly when editing.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from finance_tracker.audit import AuditLogger
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.ledger import (
    Budget,
    BudgetPeriod,
    Transaction,
    period_date_range,
)
from finance_tracker.services.preferences import Preferences
from finance_tracker.services.storage import (
    CachedRepository,
    NotFoundError,
    StorageError,
)
from finance_tracker.validation import LedgerValidationError, LedgerValidator


# Never taken from caller input
PROTECTED_FIELDS = ("id", "owner", "created_at", "updated_at")


class BudgetLedger:
    """
    Budget CRUD for a single owner.

    Args:
        repository: Cached repository over the budgets collection
        owner: The signed-in user
        preferences: Supplies the default currency for new budgets
        validator: Input validator (a default one is built if omitted)
        audit_logger: Optional audit trail
    """

    def __init__(
        self,
        repository: CachedRepository[Budget],
        owner: str,
        preferences: Preferences,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._owner = owner
        self._preferences = preferences
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)

    @property
    def owner(self) -> str:
        return self._owner

    async def _fetch_own(self, budget_id: str) -> Optional[Budget]:
        """Remote snapshot. Another owner's budget reads as not found."""
        budget = await self._repository.get(budget_id)
        if budget is not None and budget.owner != self._owner:
            raise NotFoundError(f"Budget {budget_id} not found")
        return budget

    async def _rejected(
        self,
        error: LedgerValidationError,
        correlation_id: Optional[UUID],
    ) -> LedgerValidationError:
        """Audit rejected input and hand the error back for raising."""
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                entity_type="budget",
                issues=[i.model_dump() for i in error.result.issues],
                correlation_id=correlation_id,
            )
        return error

    def _check(self, data: Mapping[str, Any], partial: bool) -> Optional[LedgerValidationError]:
        result = self._validator.validate_budget(data, partial=partial)
        return LedgerValidationError(result) if result.has_errors else None

    async def create(
        self,
        data: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Create a budget and return its id.

        Defaults: monthly period, the period's date range for any missing
        date, the default currency, and zero spent.

        Raises:
            LedgerValidationError: Before any remote call, on bad input
            StorageError: If the remote write fails (index unchanged)
        """
        error = self._check(data, partial=False)
        if error:
            raise await self._rejected(error, correlation_id)

        fields = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
        period = BudgetPeriod(fields.get("period") or BudgetPeriod.MONTHLY)
        default_start, default_end = period_date_range(period)

        fields["period"] = period
        fields["start_date"] = fields.get("start_date") or default_start
        fields["end_date"] = fields.get("end_date") or default_end
        fields["currency"] = fields.get("currency") or self._preferences.default_currency
        if fields.get("spent") in (None, ""):
            fields["spent"] = Decimal("0")

        try:
            budget = Budget.model_validate({**fields, "owner": self._owner})
        except ValidationError as e:
            raise await self._rejected(
                LedgerValidationError.from_model_error("budget", e),
                correlation_id,
            ) from e

        await self._save(budget, "create", correlation_id)

        self._logger.info(
            "budget_created",
            budget_id=budget.id,
            category=budget.category,
            amount=str(budget.amount),
            currency=budget.currency,
        )
        if self._audit_logger:
            await self._audit_logger.log_budget_event(
                event_type=AuditEventType.BUDGET_CREATED,
                budget_id=budget.id,
                summary=budget.name,
                details={
                    "category": budget.category,
                    "amount": str(budget.amount),
                    "currency": budget.currency,
                    "start_date": budget.start_date.isoformat(),
                    "end_date": budget.end_date.isoformat(),
                },
                correlation_id=correlation_id,
            )
        return budget.id

    async def _save(
        self,
        budget: Budget,
        operation: str,
        correlation_id: Optional[UUID],
    ) -> None:
        try:
            await self._repository.put(budget)
        except StorageError as e:
            self._logger.error("budget_save_failed", budget_id=budget.id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    entity_type="budget",
                    entity_id=budget.id,
                    operation=operation,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    async def update(
        self,
        budget_id: str,
        data: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Apply a partial update and return the stored budget.

        The merged record is validated locally before the remote write,
        so a bad date range never reaches the store.

        Raises:
            LedgerValidationError: On bad input
            NotFoundError: If the budget exists neither remotely nor locally
            StorageError: If the remote write fails (index unchanged)
        """
        changes = {
            k: v for k, v in data.items()
            if k in Budget.model_fields and k not in PROTECTED_FIELDS
        }
        error = self._check(changes, partial=True)
        if error:
            raise await self._rejected(error, correlation_id)

        current = self.cached(budget_id) or await self._fetch_own(budget_id)
        if current is None:
            raise NotFoundError(f"Budget {budget_id} not found")

        now = datetime.utcnow()
        try:
            candidate = Budget.model_validate({
                **current.model_dump(),
                **changes,
                "updated_at": now,
            })
        except ValidationError as e:
            raise await self._rejected(
                LedgerValidationError.from_model_error("budget", e),
                correlation_id,
            ) from e

        # Send normalized values (upper-cased codes, parsed dates)
        normalized = {name: getattr(candidate, name) for name in changes}
        normalized["updated_at"] = now

        try:
            updated = await self._repository.patch(budget_id, normalized)
        except NotFoundError:
            # Only known locally; write the whole record back
            await self._save(candidate, "update", correlation_id)
            updated = candidate
        except StorageError as e:
            self._logger.error("budget_save_failed", budget_id=budget_id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    entity_type="budget",
                    entity_id=budget_id,
                    operation="update",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        # Spent-only writes come from reconciliation, which audits them itself
        if self._audit_logger and set(changes) - {"spent"}:
            await self._audit_logger.log_budget_event(
                event_type=AuditEventType.BUDGET_UPDATED,
                budget_id=budget_id,
                summary=updated.name,
                details={"changed_fields": sorted(changes)},
                correlation_id=correlation_id,
            )
        return updated

    async def delete(
        self,
        budget_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete a budget remotely and drop it from the index.

        Returns False if the remote store had nothing to delete.

        Raises:
            NotFoundError: If the budget belongs to another user
            StorageError: If the remote delete fails (index unchanged)
        """
        await self._fetch_own(budget_id)

        try:
            deleted = await self._repository.delete(budget_id)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    entity_type="budget",
                    entity_id=budget_id,
                    operation="delete",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_budget_event(
                event_type=AuditEventType.BUDGET_DELETED,
                budget_id=budget_id,
                summary=budget_id,
                details={"existed": deleted},
                correlation_id=correlation_id,
            )
        return deleted

    async def get(self, budget_id: str) -> Budget:
        """Fresh remote read. Raises NotFoundError if it is gone or not ours."""
        budget = await self._fetch_own(budget_id)
        if budget is None:
            raise NotFoundError(f"Budget {budget_id} not found")
        return budget

    def cached(self, budget_id: str) -> Optional[Budget]:
        budget = self._repository.cached(budget_id)
        return budget if budget is not None and budget.owner == self._owner else None

    def list_budgets(self) -> list[Budget]:
        """The owner's budgets from the local index, newest start date first."""
        budgets = [b for b in self._repository.list_all() if b.owner == self._owner]
        return sorted(budgets, key=lambda b: b.start_date, reverse=True)

    def matching(self, transaction: Transaction) -> list[Budget]:
        """Budgets the transaction counts against: same owner, category, in range."""
        return [b for b in self.list_budgets() if b.matches(transaction)]

    async def refresh(self) -> list[Budget]:
        """Reload the index from the remote store."""
        await self._repository.load(self._owner)
        budgets = self.list_budgets()
        self._logger.info("budgets_loaded", owner=self._owner, count=len(budgets))
        return budgets
