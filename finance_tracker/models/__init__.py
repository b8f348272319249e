"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.currency import (
    CURRENCIES,
    REFERENCE_CURRENCY,
    ConversionRecord,
    Currency,
    format_currency,
    get_currency_by_code,
    is_supported_currency,
)
from finance_tracker.models.ledger import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    RECONCILED_FIELDS,
    Budget,
    BudgetAdjustment,
    BudgetPeriod,
    CategoryTotals,
    ReconciliationResult,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    period_date_range,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Currency models
    "CURRENCIES",
    "REFERENCE_CURRENCY",
    "ConversionRecord",
    "Currency",
    "format_currency",
    "get_currency_by_code",
    "is_supported_currency",
    # Ledger models
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "RECONCILED_FIELDS",
    "Budget",
    "BudgetAdjustment",
    "BudgetPeriod",
    "CategoryTotals",
    "ReconciliationResult",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "period_date_range",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
