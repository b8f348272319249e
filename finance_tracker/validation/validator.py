"""
Ledger Input Validation

DESIGN DECISION: Input is checked before anything is sent to the
remote store. A rejected transaction never costs a network round trip
and never reaches the reconciliation engine.

Severities:
- error: blocks the write (missing amount, negative amount, bad code)
- warning: shown to the user, write goes ahead (unknown currency code)
- info: category outside the suggested list

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the ledgers decide what to do.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from finance_tracker.config import get_settings
from finance_tracker.models.currency import is_supported_currency
from finance_tracker.models.ledger import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    BudgetPeriod,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)


class LedgerValidationError(Exception):
    """Input rejected before any remote call."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [i.message for i in result.issues if i.severity == "error"]
        super().__init__("; ".join(messages) or "Invalid input")

    @classmethod
    def from_model_error(
        cls,
        entity_type: str,
        error: ValidationError,
    ) -> "LedgerValidationError":
        """Wrap a pydantic error raised while building the record."""
        issues = [
            ValidationIssue(
                field=".".join(str(part) for part in detail["loc"]) or "__root__",
                issue_type=detail["type"],
                message=detail["msg"],
                severity="error",
            )
            for detail in error.errors()
        ]
        return cls(ValidationResult(entity_type=entity_type, issues=issues))


def _to_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _to_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_member(enum_cls, value: Any) -> bool:
    try:
        enum_cls(value)
    except ValueError:
        return False
    return True


class LedgerValidator:
    """Validates transaction and budget input for create and update."""

    def __init__(self, max_amount: Optional[float] = None):
        self._max_amount = Decimal(str(
            max_amount if max_amount is not None
            else get_settings().app.max_transaction_amount
        ))

    def _check_amount(
        self,
        data: Mapping[str, Any],
        field: str,
        required: bool,
        issues: list[ValidationIssue],
    ) -> None:
        if field not in data or _is_blank(data[field]):
            if required or field in data:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=f"{field.capitalize()} is required",
                    severity="error",
                ))
            return

        amount = _to_decimal(data[field])
        if amount is None or not amount.is_finite():
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_format",
                message=f"{field.capitalize()} must be a number",
                severity="error",
            ))
        elif amount < 0:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{field.capitalize()} cannot be negative",
                severity="error",
            ))
        elif amount > self._max_amount:
            issues.append(ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"{field.capitalize()} {amount} looks too large",
                severity="error",
            ))

    def _check_required_text(
        self,
        data: Mapping[str, Any],
        field: str,
        required: bool,
        issues: list[ValidationIssue],
    ) -> None:
        missing = field not in data
        if (required and missing) or (not missing and _is_blank(data[field])):
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{field.capitalize()} is required",
                severity="error",
            ))

    def _check_currency(
        self,
        data: Mapping[str, Any],
        issues: list[ValidationIssue],
    ) -> None:
        if _is_blank(data.get("currency")):
            return
        code = str(data["currency"]).strip()
        if len(code) != 3 or not code.isalpha():
            issues.append(ValidationIssue(
                field="currency",
                issue_type="invalid_format",
                message=f"Currency code must be 3 letters, got {code!r}",
                severity="error",
            ))
        elif not is_supported_currency(code):
            issues.append(ValidationIssue(
                field="currency",
                issue_type="unknown_currency",
                message=f"{code.upper()} has no known rate; amounts will not be converted",
                severity="warning",
            ))

    def _check_date(
        self,
        data: Mapping[str, Any],
        field: str,
        issues: list[ValidationIssue],
    ) -> None:
        if field in data and data[field] is not None and _to_date(data[field]) is None:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_format",
                message=f"{field} is not a valid date",
                severity="error",
            ))

    def validate_transaction(
        self,
        data: Mapping[str, Any],
        partial: bool = False,
    ) -> ValidationResult:
        """
        Validate transaction input.

        Args:
            data: Field values as entered
            partial: True for updates; only the fields present are checked,
                     but required fields may not be cleared
        """
        issues: list[ValidationIssue] = []
        required = not partial

        self._check_amount(data, "amount", required, issues)
        self._check_required_text(data, "category", required, issues)
        self._check_currency(data, issues)
        self._check_date(data, "date", issues)

        if "type" in data and not _is_member(TransactionType, data["type"]):
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Type must be 'income' or 'expense', got {data['type']!r}",
                severity="error",
            ))

        category = data.get("category")
        if isinstance(category, str) and category.strip():
            if category.strip() not in EXPENSE_CATEGORIES + INCOME_CATEGORIES:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="custom_category",
                    message=f"'{category.strip()}' is not one of the suggested categories",
                    severity="info",
                ))

        return ValidationResult(entity_type="transaction", issues=issues)

    def validate_budget(
        self,
        data: Mapping[str, Any],
        partial: bool = False,
    ) -> ValidationResult:
        """Validate budget input. Same ``partial`` rules as transactions."""
        issues: list[ValidationIssue] = []
        required = not partial

        self._check_required_text(data, "name", required, issues)
        self._check_amount(data, "amount", required, issues)
        self._check_required_text(data, "category", required, issues)
        self._check_currency(data, issues)
        self._check_date(data, "start_date", issues)
        self._check_date(data, "end_date", issues)

        if "spent" in data:
            self._check_amount(data, "spent", False, issues)

        if "period" in data and not _is_member(BudgetPeriod, data["period"]):
            issues.append(ValidationIssue(
                field="period",
                issue_type="invalid_value",
                message=f"Unknown budget period {data['period']!r}",
                severity="error",
            ))

        start = _to_date(data.get("start_date"))
        end = _to_date(data.get("end_date"))
        if start and end and end < start:
            issues.append(ValidationIssue(
                field="end_date",
                issue_type="invalid_range",
                message="Budget end date cannot be before start date",
                severity="error",
            ))

        return ValidationResult(entity_type="budget", issues=issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """One message suitable for a form's error banner."""
        if result.is_valid and not result.warnings:
            return "✅ Looks good."

        lines = []
        errors = [i.message for i in result.issues if i.severity == "error"]
        if errors:
            lines.append("❌ Please fix the following:")
            lines.extend(f"   • {message}" for message in errors)
        if result.warnings:
            lines.append("⚠️ Please double-check:")
            lines.extend(f"   • {message}" for message in result.warnings)
        return "\n".join(lines)
