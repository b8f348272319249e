"""
Tests for currency reference data, rate sources and the converter.

No test here touches the network: the remote source's blocking fetch
is replaced with a stub.
"""

from decimal import Decimal

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.currency import (
    CURRENCIES,
    format_currency,
    get_currency_by_code,
    is_supported_currency,
)
from finance_tracker.services.preferences import ConversionHistory
from finance_tracker.services.rates import (
    CurrencyConverter,
    RateFetchError,
    RemoteRateSource,
    StaticRateSource,
)
from finance_tracker.services.rates import remote
from finance_tracker.services.storage import InMemoryAuditStorage


class TestCurrencyTable:
    """Tests for the reference table and formatting."""

    def test_table_has_unique_codes(self):
        codes = [c.code for c in CURRENCIES]
        assert len(codes) == len(set(codes)) == 20

    def test_lookup(self):
        assert get_currency_by_code("eur").symbol == "€"
        assert is_supported_currency("inr")
        assert not is_supported_currency("XYZ")

    def test_unknown_code_falls_back_to_first_entry(self):
        assert get_currency_by_code("XYZ").code == "USD"

    def test_format_currency(self):
        """Symbol prefix, thousands separator, two decimals."""
        assert format_currency(Decimal("1234.5"), "USD") == "$1,234.50"
        assert format_currency(0, "GBP") == "£0.00"
        assert format_currency(Decimal("-12.345"), "EUR") == "-€12.35"

    def test_format_unknown_code_uses_code(self):
        assert format_currency(10, "xyz") == "XYZ 10.00"


class TestStaticRateSource:
    """Tests for the offline rate table."""

    def setup_method(self):
        self.source = StaticRateSource()

    def test_identity(self):
        assert self.source.lookup("JPY", "JPY") == Decimal("1")

    def test_direct(self):
        assert self.source.lookup("USD", "EUR") == Decimal("0.91")

    def test_inverse(self):
        assert self.source.lookup("EUR", "USD") == Decimal("1") / Decimal("0.91")

    def test_cross_rate_through_usd(self):
        """EUR -> GBP goes EUR -> USD -> GBP."""
        expected = Decimal("1") / Decimal("0.91") * Decimal("0.78")
        assert self.source.lookup("EUR", "GBP") == expected

    def test_unknown_code(self):
        assert self.source.lookup("USD", "XYZ") is None
        assert self.source.lookup("XYZ", "EUR") is None

    def test_custom_table(self):
        source = StaticRateSource({"EUR": {"CHF": "0.95"}}, reference="EUR")
        assert source.lookup("EUR", "CHF") == Decimal("0.95")
        assert source.lookup("USD", "CHF") is None

    @pytest.mark.asyncio
    async def test_async_interface(self):
        assert await self.source.get_rate("USD", "INR") == Decimal("83.50")


class TestRemoteRateSource:
    """Tests for the HTTP-backed source with its fallback."""

    @pytest.mark.asyncio
    async def test_uses_fetched_rates_and_caches(self, monkeypatch):
        source = RemoteRateSource(cache_ttl=3600)
        calls = []

        def fake_fetch(base):
            calls.append(base)
            return {"EUR": Decimal("0.5")}

        monkeypatch.setattr(source, "fetch_rates", fake_fetch)

        assert await source.get_rate("USD", "EUR") == Decimal("0.5")
        assert await source.get_rate("USD", "EUR") == Decimal("0.5")
        assert calls == ["USD"]

    @pytest.mark.asyncio
    async def test_zero_ttl_refetches(self, monkeypatch):
        source = RemoteRateSource(cache_ttl=0)
        calls = []

        def fake_fetch(base):
            calls.append(base)
            return {"EUR": Decimal("0.5")}

        monkeypatch.setattr(source, "fetch_rates", fake_fetch)

        await source.get_rate("USD", "EUR")
        await source.get_rate("USD", "EUR")
        assert calls == ["USD", "USD"]

    @pytest.mark.asyncio
    async def test_fetch_failure_falls_back(self, monkeypatch):
        source = RemoteRateSource()

        def failing_fetch(base):
            raise RateFetchError("offline")

        monkeypatch.setattr(source, "fetch_rates", failing_fetch)

        assert await source.get_rate("USD", "GBP") == Decimal("0.78")

    @pytest.mark.asyncio
    async def test_missing_pair_falls_back(self, monkeypatch):
        source = RemoteRateSource()
        monkeypatch.setattr(source, "fetch_rates", lambda base: {"EUR": Decimal("0.5")})

        assert await source.get_rate("USD", "JPY") == Decimal("151.16")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        b"[1, 2]",
        b'{"rates": [1, 2]}',
        b"\xff\xfe not utf-8",
        ConnectionResetError("reset by peer"),
    ])
    async def test_bad_responses_fall_back(self, monkeypatch, body):
        """Whatever the API sends back, the offline table answers."""

        class FakeResponse:
            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

            def read(self):
                if isinstance(body, Exception):
                    raise body
                return body

        monkeypatch.setattr(remote, "urlopen", lambda req, timeout: FakeResponse())
        source = RemoteRateSource(fallback=StaticRateSource())

        assert await source.get_rate("USD", "EUR") == Decimal("0.91")


class TestCurrencyConverter:
    """Tests for conversion and its 1:1 fallback."""

    @pytest.mark.asyncio
    async def test_same_currency_is_identity(self):
        converter = CurrencyConverter(StaticRateSource())
        assert await converter.convert(Decimal("12.34"), "usd", "USD") == Decimal("12.34")
        assert await converter.convert(Decimal("5"), "XYZ", "XYZ") == Decimal("5")

    @pytest.mark.asyncio
    async def test_convert(self):
        converter = CurrencyConverter(StaticRateSource())
        assert await converter.convert(Decimal("100"), "USD", "INR") == Decimal("8350")

    @pytest.mark.asyncio
    async def test_missing_rate_falls_back_and_is_audited(self):
        audit_storage = InMemoryAuditStorage()
        converter = CurrencyConverter(StaticRateSource(), audit_logger=AuditLogger(audit_storage))

        assert await converter.convert(Decimal("7"), "XYZ", "USD") == Decimal("7")

        [event] = await audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.CONVERSION_FALLBACK
        assert event.details["from_currency"] == "XYZ"

    @pytest.mark.asyncio
    async def test_rate_source_error_falls_back(self):
        class BrokenSource(StaticRateSource):
            async def get_rate(self, from_code, to_code):
                raise RuntimeError("boom")

        converter = CurrencyConverter(BrokenSource())
        assert await converter.convert(Decimal("3"), "USD", "EUR") == Decimal("3")

    @pytest.mark.asyncio
    async def test_convert_and_record(self, local_store):
        history = ConversionHistory(local_store, limit=10)
        converter = CurrencyConverter(StaticRateSource(), history=history)

        record = await converter.convert_and_record(Decimal("10"), "usd", "eur")

        assert record.from_currency == "USD"
        assert record.to_currency == "EUR"
        assert record.to_amount == Decimal("9.10")
        assert [r.id for r in history.entries()] == [record.id]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
