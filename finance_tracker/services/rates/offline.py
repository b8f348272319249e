"""
Offline Rate Table

Built-in USD-based rates so conversion works with no network at all.
The numbers are a fixed snapshot and will drift from the market; that
is acceptable because every consumer treats conversion as best-effort.
"""

from decimal import Decimal
from typing import Mapping, Optional

from finance_tracker.models.currency import REFERENCE_CURRENCY
from finance_tracker.services.rates.interface import RateSourceInterface


OFFLINE_RATES: dict[str, dict[str, Decimal]] = {
    "USD": {
        "EUR": Decimal("0.91"),
        "GBP": Decimal("0.78"),
        "JPY": Decimal("151.16"),
        "CNY": Decimal("7.23"),
        "INR": Decimal("83.50"),
        "CAD": Decimal("1.37"),
        "AUD": Decimal("1.51"),
        "PHP": Decimal("57.13"),
        "SGD": Decimal("1.35"),
        "MYR": Decimal("4.73"),
        "THB": Decimal("36.31"),
        "KRW": Decimal("1369.86"),
        "IDR": Decimal("16187.50"),
        "RUB": Decimal("92.26"),
        "BRL": Decimal("5.07"),
        "ZAR": Decimal("18.73"),
        "MXN": Decimal("16.82"),
        "AED": Decimal("3.67"),
        "SAR": Decimal("3.75"),
    }
}


class StaticRateSource(RateSourceInterface):
    """
    Rate lookup over a ``{from: {to: rate}}`` table.

    Resolution order:
    1. Direct rate ``table[from][to]``
    2. Inverse of ``table[to][from]``
    3. Two hops through the reference currency
    4. None
    """

    def __init__(
        self,
        rates: Optional[Mapping[str, Mapping[str, Decimal]]] = None,
        reference: str = REFERENCE_CURRENCY,
    ):
        table = OFFLINE_RATES if rates is None else rates
        self._rates = {
            base: {quote: Decimal(str(rate)) for quote, rate in quotes.items()}
            for base, quotes in table.items()
        }
        self._reference = reference

    def lookup(self, from_code: str, to_code: str) -> Optional[Decimal]:
        """Synchronous lookup; the async interface just wraps this."""
        if from_code == to_code:
            return Decimal("1")

        direct = self._rates.get(from_code, {}).get(to_code)
        if direct:
            return direct

        inverse = self._rates.get(to_code, {}).get(from_code)
        if inverse:
            return Decimal("1") / inverse

        from_ref = self._to_reference(from_code)
        if from_ref is None:
            return None
        if to_code == self._reference:
            return from_ref

        ref_quotes = self._rates.get(self._reference, {})
        if ref_quotes.get(to_code):
            return from_ref * ref_quotes[to_code]
        return None

    def _to_reference(self, code: str) -> Optional[Decimal]:
        """Rate from ``code`` to the reference currency."""
        if code == self._reference:
            return Decimal("1")
        quote = self._rates.get(self._reference, {}).get(code)
        if not quote:
            return None
        return Decimal("1") / quote

    async def get_rate(self, from_code: str, to_code: str) -> Optional[Decimal]:
        return self.lookup(from_code, to_code)
