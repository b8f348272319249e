"""
Audit Models for the Finance Tracker

Every mutation of a ledger is logged for audit purposes.
This provides:
1. Complete traceability of every change to money records
2. An explanation for every change to a budget's spent amount
3. Debugging information when a remote write or conversion fails

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_DELETED = "budget_deleted"

    # Reconciliation
    BUDGET_SPENT_ADJUSTED = "budget_spent_adjusted"
    RECONCILIATION_FAILED = "reconciliation_failed"

    # Input and storage
    VALIDATION_FAILED = "validation_failed"
    SAVE_FAILED = "save_failed"

    # Currency
    CONVERSION_FALLBACK = "conversion_fallback"
    DEFAULT_CURRENCY_CHANGED = "default_currency_changed"


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
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
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
        description="Type of entity ('transaction', 'budget', 'preference')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Ties together all events caused by one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
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
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_CREATED, txn.id, "Lunch", {}, correlation_id
        )
        event = AuditEventBuilder.budget_spent_adjusted(...)
    """

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        transaction_id: str,
        summary: str,
        details: dict,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction {verb}: {summary}",
            details=details,
            is_user_action=True,
        )

    @staticmethod
    def budget_changed(
        event_type: AuditEventType,
        budget_id: str,
        summary: str,
        details: dict,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget {verb}: {summary}",
            details=details,
            is_user_action=True,
        )

    @staticmethod
    def budget_spent_adjusted(
        budget_id: str,
        transaction_id: str,
        previous_spent: str,
        new_spent: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SPENT_ADJUSTED,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget spent {previous_spent} -> {new_spent}",
            details={
                "transaction_id": transaction_id,
                "previous_spent": previous_spent,
                "new_spent": new_spent,
            },
        )

    @staticmethod
    def reconciliation_failed(
        budget_id: str,
        transaction_id: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description="Could not adjust budget spent amount",
            error_message=error_message,
            details={"transaction_id": transaction_id},
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        entity_type: str,
        entity_id: Optional[str],
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Remote {operation} of {entity_type} failed",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def conversion_fallback(
        from_currency: str,
        to_currency: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONVERSION_FALLBACK,
            severity=AuditSeverity.WARNING,
            description=f"No rate for {from_currency}->{to_currency}, used 1:1",
            details={
                "from_currency": from_currency,
                "to_currency": to_currency,
                "amount": amount,
            },
        )

    @staticmethod
    def default_currency_changed(
        previous: str,
        current: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEFAULT_CURRENCY_CHANGED,
            entity_type="preference",
            entity_id="defaultCurrency",
            description=f"Default currency changed from {previous} to {current}",
            details={"previous": previous, "current": current},
            is_user_action=True,
        )

