"""
Audit Logger

DESIGN DECISION: Every change to money records is logged.
This provides:
1. Complete traceability
2. An explanation for every budget "spent" change
3. Debugging capability when a remote write fails

The audit logger:
- Is async to match the ledgers
- Gracefully handles failures (doesn't break a ledger write if logging fails)
- Supports correlation IDs to tie a transaction edit to the budget
  adjustments it caused
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
)
from finance_tracker.services.storage import AuditStorageInterface


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
    2. Audit storage, if configured (for persistence and user visibility)
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
        self._logger = structlog.get_logger()

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

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

    async def log_transaction_event(
        self,
        event_type: AuditEventType,
        transaction_id: str,
        summary: str,
        details: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction create/update/delete."""
        await self.log(
            AuditEventBuilder.transaction_changed(
                event_type=event_type,
                transaction_id=transaction_id,
                summary=summary,
                details=details,
                correlation_id=correlation_id,
            )
        )

    async def log_budget_event(
        self,
        event_type: AuditEventType,
        budget_id: str,
        summary: str,
        details: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a budget create/update/delete."""
        await self.log(
            AuditEventBuilder.budget_changed(
                event_type=event_type,
                budget_id=budget_id,
                summary=summary,
                details=details,
                correlation_id=correlation_id,
            )
        )

    async def log_spent_adjusted(
        self,
        budget_id: str,
        transaction_id: str,
        previous_spent: str,
        new_spent: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log one reconciliation adjustment."""
        await self.log(
            AuditEventBuilder.budget_spent_adjusted(
                budget_id=budget_id,
                transaction_id=transaction_id,
                previous_spent=previous_spent,
                new_spent=new_spent,
                correlation_id=correlation_id,
            )
        )

    async def log_reconciliation_failed(
        self,
        budget_id: str,
        transaction_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a budget write that failed during reconciliation."""
        await self.log(
            AuditEventBuilder.reconciliation_failed(
                budget_id=budget_id,
                transaction_id=transaction_id,
                error_message=error_message,
                correlation_id=correlation_id,
            )
        )

    async def log_validation_failed(
        self,
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log rejected ledger input."""
        await self.log(
            AuditEventBuilder.validation_failed(
                entity_type=entity_type,
                issues=issues,
                correlation_id=correlation_id,
            )
        )

    async def log_save_failed(
        self,
        entity_type: str,
        entity_id: Optional[str],
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a remote write that failed."""
        await self.log(
            AuditEventBuilder.save_failed(
                entity_type=entity_type,
                entity_id=entity_id,
                operation=operation,
                error_message=error_message,
                correlation_id=correlation_id,
            )
        )

    async def log_default_currency_changed(
        self,
        previous: str,
        current: str,
    ) -> None:
        await self.log(
            AuditEventBuilder.default_currency_changed(previous=previous, current=current)
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving a transaction).
    Pass it through all subsequent operations.
    """
    return uuid4()
