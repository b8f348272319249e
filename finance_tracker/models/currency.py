"""
Currency Reference Data

Static table of the currencies the tracker knows about, plus the
formatting helpers used wherever an amount is shown to the user.

DESIGN DECISION: The table is reference data only. An unknown code is
still a valid currency for a transaction; it simply has no symbol and
no offline rate, so conversion involving it degrades to 1:1.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


REFERENCE_CURRENCY = "USD"


class Currency(BaseModel):
    """A single entry of the currency table."""
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=3, max_length=3)
    name: str
    symbol: str


CURRENCIES: tuple[Currency, ...] = (
    Currency(code="USD", name="US Dollar", symbol="$"),
    Currency(code="EUR", name="Euro", symbol="€"),
    Currency(code="GBP", name="British Pound", symbol="£"),
    Currency(code="JPY", name="Japanese Yen", symbol="¥"),
    Currency(code="CNY", name="Chinese Yuan", symbol="¥"),
    Currency(code="INR", name="Indian Rupee", symbol="₹"),
    Currency(code="CAD", name="Canadian Dollar", symbol="C$"),
    Currency(code="AUD", name="Australian Dollar", symbol="A$"),
    Currency(code="PHP", name="Philippine Peso", symbol="₱"),
    Currency(code="SGD", name="Singapore Dollar", symbol="S$"),
    Currency(code="MYR", name="Malaysian Ringgit", symbol="RM"),
    Currency(code="THB", name="Thai Baht", symbol="฿"),
    Currency(code="KRW", name="South Korean Won", symbol="₩"),
    Currency(code="IDR", name="Indonesian Rupiah", symbol="Rp"),
    Currency(code="RUB", name="Russian Ruble", symbol="₽"),
    Currency(code="BRL", name="Brazilian Real", symbol="R$"),
    Currency(code="ZAR", name="South African Rand", symbol="R"),
    Currency(code="MXN", name="Mexican Peso", symbol="Mex$"),
    Currency(code="AED", name="UAE Dirham", symbol="د.إ"),
    Currency(code="SAR", name="Saudi Riyal", symbol="﷼"),
)

_BY_CODE = {currency.code: currency for currency in CURRENCIES}


def is_supported_currency(code: str) -> bool:
    """Check whether a code is in the reference table."""
    return code.upper() in _BY_CODE


def get_currency_by_code(code: str) -> Currency:
    """
    Look up a currency by its code.

    Unknown codes resolve to the first table entry (US Dollar), so
    callers always get something displayable.
    """
    return _BY_CODE.get(code.upper(), CURRENCIES[0])


def format_currency(amount: Union[Decimal, float, int], code: str) -> str:
    """
    Format an amount for display, e.g. ``$1,234.50``.

    Unknown codes are shown with the code itself as prefix
    (``XYZ 10.00``) rather than borrowing the dollar sign.
    """
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    body = f"{abs(value):,.2f}"
    if is_supported_currency(code):
        return f"{sign}{get_currency_by_code(code).symbol}{body}"
    return f"{sign}{code.upper()} {body}"


class ConversionRecord(BaseModel):
    """One entry of the converter panel's history."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    from_amount: Decimal
    from_currency: str
    to_amount: Decimal
    to_currency: str
    date: datetime = Field(default_factory=datetime.utcnow)
