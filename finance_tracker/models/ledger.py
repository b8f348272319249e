"""
Core Data Models for the Finance Tracker

These models define the schemas for everything the ledgers store.
They are designed to:
1. Enforce the amount/currency invariants at construction time
2. Be immutable, so any value handed around is a snapshot
3. Be serializable for the remote document store
4. Support the audit trail

DESIGN DECISION: Transaction and Budget are frozen pydantic models.
An edit never mutates a record in place; it builds a new record from
the old one. The reconciliation engine relies on this: the "before"
and "after" values it receives can never change under it.
"""

from calendar import monthrange
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. The sign lives here, never in the amount."""
    INCOME = "income"
    EXPENSE = "expense"


class BudgetPeriod(str, Enum):
    """
    Budget period.

    Only used to suggest a date range when a budget is created or edited.
    Once start_date/end_date are set, they alone decide which
    transactions count against the budget.
    """
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# Suggested categories. Category is free text; these only seed the forms.
EXPENSE_CATEGORIES = [
    "Food & Dining",
    "Shopping",
    "Transportation",
    "Entertainment",
    "Bills & Utilities",
    "Health & Fitness",
    "Travel",
    "Education",
    "Personal Care",
    "Home",
    "Gifts & Donations",
    "Investments",
    "Business",
    "Other",
]

INCOME_CATEGORIES = [
    "Salary",
    "Freelance",
    "Business",
    "Investments",
    "Gifts",
    "Refunds",
    "Rental Income",
    "Other",
]

# Fields whose change moves money between budgets
RECONCILED_FIELDS = ("type", "category", "amount", "date", "currency")


def period_date_range(
    period: BudgetPeriod,
    today: Optional[date] = None,
) -> tuple[date, date]:
    """
    Default inclusive date range for a budget period.

    - daily: today only
    - weekly: Sunday to Saturday of the current week
    - monthly: first to last day of the current month
    - yearly: January 1st to December 31st
    """
    today = today or date.today()

    if period == BudgetPeriod.DAILY:
        return today, today
    if period == BudgetPeriod.WEEKLY:
        # date.weekday() is Monday=0; the week starts on Sunday
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start, start + timedelta(days=6)
    if period == BudgetPeriod.YEARLY:
        return date(today.year, 1, 1), date(today.year, 12, 31)

    last_day = monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def _new_id() -> str:
    return uuid4().hex


def _coerce_date(v):
    # Forms and remote timestamps hand us datetimes; the ledger keeps days
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, str) and len(v) > 10:
        return v[:10]
    return v


def _normalize_code(v: str) -> str:
    code = v.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError(f"Currency code must be 3 letters, got: {v!r}")
    return code


# =============================================================================
# LEDGER ENTITIES
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense record.

    Aggregation and reconciliation always use ``amount`` + ``currency``.
    ``original_amount``/``original_currency`` only record what the user
    typed when it differs from their default currency.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    # Identity
    id: str = Field(default_factory=_new_id, min_length=1)
    owner: str = Field(..., min_length=1, description="User who created it")

    amount: Decimal = Field(..., ge=0, description="Always non-negative")
    type: TransactionType = TransactionType.EXPENSE
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    date: date
    tags: list[str] = Field(default_factory=list)
    event_id: Optional[str] = None
    currency: str = Field(..., description="3-letter currency code")

    # Display provenance
    original_amount: Optional[Decimal] = Field(default=None, ge=0)
    original_currency: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return _coerce_date(v)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return _normalize_code(v)

    @field_validator("original_currency")
    @classmethod
    def normalize_original_currency(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_code(v) if v else None

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    def budget_fields_differ(self, other: "Transaction") -> bool:
        """Would replacing ``self`` with ``other`` change any budget's spent?"""
        return any(
            getattr(self, name) != getattr(other, name)
            for name in RECONCILED_FIELDS
        )


class Budget(BaseModel):
    """
    A spending ceiling for one category over an inclusive date range.

    ``spent`` is an accumulator maintained by the reconciliation engine.
    It may exceed ``amount`` (overspend) but never goes below zero.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    owner: str = Field(..., min_length=1)

    name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., ge=0)
    spent: Decimal = Field(default=Decimal("0"), ge=0)
    category: str = Field(..., min_length=1, max_length=100)
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: date
    end_date: date
    currency: str

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return _normalize_code(v)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def coerce_dates(cls, v):
        return _coerce_date(v)

    @model_validator(mode="after")
    def validate_dates(self) -> "Budget":
        if self.end_date < self.start_date:
            raise ValueError("Budget end date cannot be before start date")
        return self

    def covers(self, day: date) -> bool:
        """Is ``day`` inside the inclusive budget range?"""
        return self.start_date <= day <= self.end_date

    def matches(self, transaction: Transaction) -> bool:
        """Should this transaction count against this budget?"""
        return (
            self.owner == transaction.owner
            and self.category == transaction.category
            and self.covers(transaction.date)
        )

    @property
    def remaining(self) -> Decimal:
        return self.amount - self.spent

    @property
    def progress(self) -> float:
        """Fraction of the budget used; may exceed 1.0 on overspend."""
        if self.amount == 0:
            return 0.0
        return float(self.spent / self.amount)

    @property
    def is_over(self) -> bool:
        return self.spent > self.amount


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_currency')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of validating ledger input.

    Errors block the write; warnings are passed back for display.
    """

    entity_type: str = Field(
        ...,
        description="'transaction' or 'budget'"
    )
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]


# =============================================================================
# RESULT MODELS
# =============================================================================

class BudgetAdjustment(BaseModel):
    """One change the reconciliation engine made (or tried to make)."""

    budget_id: str
    transaction_id: str
    previous_spent: Decimal
    new_spent: Decimal
    converted_amount: Decimal
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error_message is None


class ReconciliationResult(BaseModel):
    """Outcome of one reconciliation pass."""

    transaction_id: str
    adjustments: list[BudgetAdjustment] = Field(default_factory=list)
    skipped_reason: Optional[str] = None

    @property
    def failures(self) -> list[BudgetAdjustment]:
        return [a for a in self.adjustments if not a.succeeded]

    @property
    def budgets_adjusted(self) -> int:
        return sum(1 for a in self.adjustments if a.succeeded)


class CategoryTotals(BaseModel):
    """Dashboard summary for a date range, in one currency."""

    currency: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    spending_by_category: dict[str, Decimal] = Field(default_factory=dict)
    income_by_category: dict[str, Decimal] = Field(default_factory=dict)

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses
