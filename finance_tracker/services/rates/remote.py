"""
Remote Rate Source

Fetches ``{code: rate}`` for a base currency from an exchange-rate API
(exchangerate-api.com's v4 format by default) and caches the mapping
per base for a while.

Any network or payload problem falls back to the offline table, so a
flaky connection never makes conversion fail.
"""

import asyncio
import json
import time
from decimal import Decimal, InvalidOperation
from http.client import HTTPException
from typing import Optional
from urllib.request import Request, urlopen

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from finance_tracker.config import get_settings
from finance_tracker.services.rates.interface import RateSourceInterface
from finance_tracker.services.rates.offline import StaticRateSource


class RateFetchError(Exception):
    """The rate API could not be reached or returned garbage."""
    pass


class RemoteRateSource(RateSourceInterface):
    """
    Rate source backed by an HTTP API, with the offline table as fallback.

    Args:
        fallback: Source consulted when the API fails (offline table by default)
        api_url: URL template containing ``{base}``
        timeout: HTTP timeout in seconds
        cache_ttl: Seconds a fetched mapping is reused
    """

    def __init__(
        self,
        fallback: Optional[RateSourceInterface] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        cache_ttl: Optional[int] = None,
    ):
        settings = get_settings().rates
        self._fallback = fallback or StaticRateSource()
        self._api_url = api_url or settings.api_url
        self._timeout = timeout if timeout is not None else settings.timeout_secs
        self._cache_ttl = cache_ttl if cache_ttl is not None else settings.cache_ttl_secs
        self._cache: dict[str, tuple[float, dict[str, Decimal]]] = {}
        self._logger = structlog.get_logger(__name__)

    @retry(
        retry=retry_if_exception_type(RateFetchError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    def fetch_rates(self, base: str) -> dict[str, Decimal]:
        """Blocking fetch of all rates for ``base``."""
        url = self._api_url.format(base=base)
        req = Request(url, headers={"Accept": "application/json"})
        try:
            with urlopen(req, timeout=self._timeout) as resp:
                payload = json.loads(resp.read().decode("utf-8"))
        # URLError and socket timeouts are OSErrors; bad JSON or UTF-8 a ValueError
        except (OSError, HTTPException, ValueError) as exc:
            raise RateFetchError(f"Failed to fetch rates for {base}") from exc

        try:
            return {
                code.upper(): Decimal(str(rate))
                for code, rate in payload["rates"].items()
            }
        except (KeyError, AttributeError, TypeError, InvalidOperation) as exc:
            raise RateFetchError("Unexpected rate API response") from exc

    async def _rates_for(self, base: str) -> dict[str, Decimal]:
        cached = self._cache.get(base)
        if cached and time.monotonic() - cached[0] < self._cache_ttl:
            return cached[1]

        rates = await asyncio.to_thread(self.fetch_rates, base)
        self._cache[base] = (time.monotonic(), rates)
        return rates

    async def get_rate(self, from_code: str, to_code: str) -> Optional[Decimal]:
        if from_code == to_code:
            return Decimal("1")

        try:
            rates = await self._rates_for(from_code)
        except RateFetchError as e:
            self._logger.warning(
                "rate_fetch_failed",
                base=from_code,
                error=str(e),
            )
            return await self._fallback.get_rate(from_code, to_code)

        rate = rates.get(to_code)
        if rate:
            return rate
        return await self._fallback.get_rate(from_code, to_code)
