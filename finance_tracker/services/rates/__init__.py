"""
Exchange Rate Services Package

Rate sources (offline table, remote API) and the converter that sits
in front of them.
"""

from finance_tracker.services.rates.converter import CurrencyConverter
from finance_tracker.services.rates.interface import RateSourceInterface
from finance_tracker.services.rates.offline import OFFLINE_RATES, StaticRateSource
from finance_tracker.services.rates.remote import RateFetchError, RemoteRateSource

__all__ = [
    "CurrencyConverter",
    "OFFLINE_RATES",
    "RateFetchError",
    "RateSourceInterface",
    "RemoteRateSource",
    "StaticRateSource",
]
