"""
Budget Reconciliation Engine

Keeps every budget's ``spent`` equal to the sum of matching expenses.

A transaction matches a budget when owner and category are equal and
the transaction date falls inside the budget's inclusive range. The
expense amount is converted to the budget's currency before it is
added or subtracted.

DESIGN DECISION: Reconciliation is best-effort and never raises.
The transaction write that triggered it has already succeeded; a
failed budget write is logged and audited, the loop moves on to the
next budget, and the failure is reported in the returned result.

DESIGN DECISION: All passes run under one asyncio.Lock. Budget writes
are therefore sequential and each adjustment reads the ``spent`` value
the previous one left behind, so quick successive edits cannot lose
an update.
"""

import asyncio
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.ledger.budgets import BudgetLedger
from finance_tracker.models.ledger import (
    BudgetAdjustment,
    ReconciliationResult,
    Transaction,
)
from finance_tracker.services.rates import CurrencyConverter


ADD = 1
REVERSE = -1


class ReconciliationEngine:
    """
    Applies the budget effect of transaction create/update/delete.

    Income never touches a budget. An edit is handled as "reverse the
    old record, apply the new one", each half only if that record is
    an expense.
    """

    def __init__(
        self,
        budgets: BudgetLedger,
        converter: CurrencyConverter,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._budgets = budgets
        self._converter = converter
        self._audit_logger = audit_logger
        self._lock = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    async def apply_created(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationResult:
        """Add a new expense to every matching budget."""
        if not transaction.is_expense:
            return ReconciliationResult(
                transaction_id=transaction.id,
                skipped_reason="income does not affect budgets",
            )

        async with self._lock:
            adjustments = await self._apply(transaction, ADD, correlation_id)
        return ReconciliationResult(transaction_id=transaction.id, adjustments=adjustments)

    async def apply_deleted(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationResult:
        """Take a deleted expense back out of every matching budget."""
        if not transaction.is_expense:
            return ReconciliationResult(
                transaction_id=transaction.id,
                skipped_reason="income does not affect budgets",
            )

        async with self._lock:
            adjustments = await self._apply(transaction, REVERSE, correlation_id)
        return ReconciliationResult(transaction_id=transaction.id, adjustments=adjustments)

    async def apply_updated(
        self,
        before: Transaction,
        after: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationResult:
        """
        Move an edited transaction's contribution between budgets.

        Edits that only touch description, tags or the event link
        change nothing.
        """
        if not before.budget_fields_differ(after):
            return ReconciliationResult(
                transaction_id=after.id,
                skipped_reason="no budget-relevant field changed",
            )

        adjustments: list[BudgetAdjustment] = []
        async with self._lock:
            if before.is_expense:
                adjustments += await self._apply(before, REVERSE, correlation_id)
            if after.is_expense:
                adjustments += await self._apply(after, ADD, correlation_id)
        return ReconciliationResult(transaction_id=after.id, adjustments=adjustments)

    async def _apply(
        self,
        transaction: Transaction,
        direction: int,
        correlation_id: Optional[UUID],
    ) -> list[BudgetAdjustment]:
        adjustments = []

        for budget in self._budgets.matching(transaction):
            converted = Decimal("0")
            new_spent = budget.spent
            try:
                converted = await self._converter.convert(
                    transaction.amount,
                    transaction.currency,
                    budget.currency,
                )
                if direction == ADD:
                    new_spent = budget.spent + converted
                else:
                    new_spent = max(Decimal("0"), budget.spent - converted)

                await self._budgets.update(
                    budget.id,
                    {"spent": new_spent},
                    correlation_id=correlation_id,
                )
            except Exception as e:
                self._logger.error(
                    "budget_reconciliation_failed",
                    budget_id=budget.id,
                    transaction_id=transaction.id,
                    error=str(e),
                )
                if self._audit_logger:
                    await self._audit_logger.log_reconciliation_failed(
                        budget_id=budget.id,
                        transaction_id=transaction.id,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                adjustments.append(BudgetAdjustment(
                    budget_id=budget.id,
                    transaction_id=transaction.id,
                    previous_spent=budget.spent,
                    new_spent=budget.spent,
                    converted_amount=converted,
                    error_message=str(e),
                ))
                continue

            self._logger.info(
                "budget_spent_adjusted",
                budget_id=budget.id,
                transaction_id=transaction.id,
                previous_spent=str(budget.spent),
                new_spent=str(new_spent),
            )
            if self._audit_logger:
                await self._audit_logger.log_spent_adjusted(
                    budget_id=budget.id,
                    transaction_id=transaction.id,
                    previous_spent=str(budget.spent),
                    new_spent=str(new_spent),
                    correlation_id=correlation_id,
                )
            adjustments.append(BudgetAdjustment(
                budget_id=budget.id,
                transaction_id=transaction.id,
                previous_spent=budget.spent,
                new_spent=new_spent,
                converted_amount=converted,
            ))

        return adjustments
