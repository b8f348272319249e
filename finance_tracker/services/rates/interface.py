"""
Rate Source Interface

A rate source answers one question: how many units of ``to_code`` is
one unit of ``from_code`` worth? It may answer ``None``. Deciding what
to do about a missing rate is the converter's job, not the source's.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional


class RateSourceInterface(ABC):
    """Supplies conversion rates between currency codes."""

    @abstractmethod
    async def get_rate(self, from_code: str, to_code: str) -> Optional[Decimal]:
        """
        Look up the rate from one currency to another.

        Args:
            from_code: Source currency code (upper case)
            to_code: Target currency code (upper case)

        Returns:
            The rate, or None when this source cannot resolve the pair
        """
        pass
