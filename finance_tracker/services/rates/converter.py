"""
Currency Converter

DESIGN DECISION: Conversion never fails. A missing or unreachable rate
means the amount passes through unchanged (1:1). Budgets and summaries
then end up approximately right instead of a write being refused.
Every fallback is logged so it can be noticed and fixed in the rate table.
"""

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import structlog

from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.currency import ConversionRecord
from finance_tracker.services.rates.interface import RateSourceInterface
from finance_tracker.services.rates.offline import StaticRateSource

if TYPE_CHECKING:
    from finance_tracker.audit.logger import AuditLogger
    from finance_tracker.services.preferences import ConversionHistory


class CurrencyConverter:
    """
    Converts amounts between currencies using a rate source.

    Used by the reconciliation engine (transaction -> budget currency),
    the aggregator (transaction -> report currency) and the converter panel.
    """

    def __init__(
        self,
        rate_source: Optional[RateSourceInterface] = None,
        history: Optional["ConversionHistory"] = None,
        audit_logger: Optional["AuditLogger"] = None,
    ):
        self._rate_source = rate_source or StaticRateSource()
        self._history = history
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)

    async def get_rate(self, from_code: str, to_code: str) -> Optional[Decimal]:
        """Rate lookup that swallows source errors (returns None instead)."""
        try:
            return await self._rate_source.get_rate(from_code.upper(), to_code.upper())
        except Exception as e:
            self._logger.error(
                "rate_lookup_error",
                from_currency=from_code,
                to_currency=to_code,
                error=str(e),
            )
            return None

    async def convert(self, amount: Decimal, from_code: str, to_code: str) -> Decimal:
        """
        Convert ``amount`` from one currency to another.

        Returns ``amount`` itself when the codes are the same (for any
        code, known or not) and when no rate can be found.
        """
        if from_code.upper() == to_code.upper():
            return amount

        rate = await self.get_rate(from_code, to_code)
        if rate is None:
            self._logger.warning(
                "conversion_fallback",
                from_currency=from_code,
                to_currency=to_code,
                amount=str(amount),
            )
            if self._audit_logger:
                await self._audit_logger.log(
                    AuditEventBuilder.conversion_fallback(
                        from_currency=from_code,
                        to_currency=to_code,
                        amount=str(amount),
                    )
                )
            return amount

        return amount * rate

    async def convert_and_record(
        self,
        amount: Decimal,
        from_code: str,
        to_code: str,
    ) -> ConversionRecord:
        """Convert for the converter panel and remember it in the history."""
        converted = await self.convert(amount, from_code, to_code)
        record = ConversionRecord(
            from_amount=amount,
            from_currency=from_code.upper(),
            to_amount=converted,
            to_currency=to_code.upper(),
        )
        if self._history is not None:
            self._history.add(record)
        return record
