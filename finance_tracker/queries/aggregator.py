"""
Dashboard Aggregation

DESIGN DECISION: Aggregation is READ-ONLY and DETERMINISTIC.
It reads the transaction ledger's local index, converts every amount
into one target currency and sums. Nothing here writes anywhere.

Conversion uses the same converter as reconciliation, so a summary
and a budget see the same rate for the same pair. Pairs without a
rate pass through 1:1 (and are logged by the converter).
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from finance_tracker.ledger import TransactionLedger
from finance_tracker.models.ledger import (
    CategoryTotals,
    Transaction,
    TransactionType,
)
from finance_tracker.services.preferences import Preferences
from finance_tracker.services.rates import CurrencyConverter


class Aggregator:
    """
    Balance and per-category totals over the transaction ledger.

    ``target_currency`` defaults to the user's default currency.
    Date bounds are inclusive and optional.
    """

    def __init__(
        self,
        ledger: TransactionLedger,
        converter: CurrencyConverter,
        preferences: Preferences,
    ):
        self._ledger = ledger
        self._converter = converter
        self._preferences = preferences

    def _target(self, target_currency: Optional[str]) -> str:
        return (target_currency or self._preferences.default_currency).upper()

    async def _converted(self, transaction: Transaction, target: str) -> Decimal:
        return await self._converter.convert(transaction.amount, transaction.currency, target)

    async def balance(self, target_currency: Optional[str] = None) -> Decimal:
        """All-time income minus expenses."""
        target = self._target(target_currency)
        total = Decimal("0")
        for transaction in self._ledger.list_transactions():
            amount = await self._converted(transaction, target)
            total += amount if transaction.type == TransactionType.INCOME else -amount
        return total

    async def _by_category(
        self,
        kind: TransactionType,
        start_date: Optional[date],
        end_date: Optional[date],
        target: str,
    ) -> dict[str, Decimal]:
        totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
        for transaction in self._ledger.list_transactions(start_date, end_date):
            if transaction.type != kind:
                continue
            totals[transaction.category] += await self._converted(transaction, target)
        # Largest first, the order the dashboard charts them in
        return dict(sorted(totals.items(), key=lambda item: item[1], reverse=True))

    async def spending_by_category(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        target_currency: Optional[str] = None,
    ) -> dict[str, Decimal]:
        """Expense totals per category. Categories with no expenses are absent."""
        return await self._by_category(
            TransactionType.EXPENSE, start_date, end_date, self._target(target_currency)
        )

    async def income_by_category(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        target_currency: Optional[str] = None,
    ) -> dict[str, Decimal]:
        """Income totals per category."""
        return await self._by_category(
            TransactionType.INCOME, start_date, end_date, self._target(target_currency)
        )

    async def totals(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        target_currency: Optional[str] = None,
    ) -> CategoryTotals:
        """Everything the dashboard summary cards need, in one pass each."""
        target = self._target(target_currency)
        spending = await self._by_category(TransactionType.EXPENSE, start_date, end_date, target)
        income = await self._by_category(TransactionType.INCOME, start_date, end_date, target)
        return CategoryTotals(
            currency=target,
            start_date=start_date,
            end_date=end_date,
            income=sum(income.values(), Decimal("0")),
            expenses=sum(spending.values(), Decimal("0")),
            spending_by_category=spending,
            income_by_category=income,
        )
