"""Ledger input validation package."""

from finance_tracker.validation.validator import LedgerValidationError, LedgerValidator

__all__ = ["LedgerValidationError", "LedgerValidator"]
