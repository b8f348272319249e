"""Tests for locally persisted settings."""

from decimal import Decimal

import pytest

from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.currency import ConversionRecord
from finance_tracker.services.preferences import (
    CONVERSION_HISTORY_KEY,
    DEFAULT_CURRENCY_KEY,
    ConversionHistory,
    LocalKeyValueStore,
    Preferences,
)


def record(n: int) -> ConversionRecord:
    return ConversionRecord(
        from_amount=Decimal(n),
        from_currency="USD",
        to_amount=Decimal(n),
        to_currency="EUR",
    )


class TestLocalKeyValueStore:
    """Tests for the JSON-file store."""

    def test_set_get_delete(self, local_store):
        local_store.set("a", 1)
        assert local_store.get("a") == 1

        local_store.delete("a")
        assert local_store.get("a", "gone") == "gone"

    def test_survives_reopen(self, tmp_path):
        path = str(tmp_path / "nested" / "store.json")
        LocalKeyValueStore(path).set(DEFAULT_CURRENCY_KEY, "GBP")

        assert LocalKeyValueStore(path).get(DEFAULT_CURRENCY_KEY) == "GBP"

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")

        store = LocalKeyValueStore(str(path))
        assert store.get(DEFAULT_CURRENCY_KEY) is None

        store.set(DEFAULT_CURRENCY_KEY, "JPY")
        assert store.get(DEFAULT_CURRENCY_KEY) == "JPY"


class TestPreferences:
    """Tests for the default currency preference."""

    def test_fallback_when_unset(self, local_store):
        assert Preferences(local_store, fallback_currency="cad").default_currency == "CAD"

    def test_set_default_currency(self, local_store):
        prefs = Preferences(local_store, fallback_currency="USD")

        assert prefs.set_default_currency(" inr ") == "INR"
        assert prefs.default_currency == "INR"
        assert local_store.get(DEFAULT_CURRENCY_KEY) == "INR"

    def test_invalid_code_rejected(self, local_store):
        prefs = Preferences(local_store, fallback_currency="USD")

        with pytest.raises(ValueError, match="Invalid currency code"):
            prefs.set_default_currency("EURO")
        assert prefs.default_currency == "USD"

    @pytest.mark.asyncio
    async def test_change_is_audited(self, tracker, audit_storage):
        await tracker.set_default_currency("EUR")
        await tracker.set_default_currency("EUR")

        events = [
            e for e in await audit_storage.get_recent_events()
            if e.event_type == AuditEventType.DEFAULT_CURRENCY_CHANGED
        ]
        assert len(events) == 1
        assert events[0].details == {"previous": "USD", "current": "EUR"}


class TestConversionHistory:
    """Tests for the converter history."""

    def test_newest_first(self, local_store):
        history = ConversionHistory(local_store, limit=10)
        first, second = record(1), record(2)

        history.add(first)
        history.add(second)

        assert [r.id for r in history.entries()] == [second.id, first.id]

    def test_capped_at_limit(self, local_store):
        history = ConversionHistory(local_store, limit=10)
        records = [record(n) for n in range(12)]
        for r in records:
            history.add(r)

        entries = history.entries()
        assert len(entries) == 10
        assert entries[0].id == records[-1].id
        assert records[0].id not in {r.id for r in entries}
        assert len(local_store.get(CONVERSION_HISTORY_KEY)) == 10

    def test_clear(self, local_store):
        history = ConversionHistory(local_store)
        history.add(record(1))

        history.clear()

        assert history.entries() == []

    def test_skips_unreadable_entries(self, local_store):
        local_store.set(CONVERSION_HISTORY_KEY, [{"bogus": True}, record(5).model_dump(mode="json")])

        [entry] = ConversionHistory(local_store).entries()
        assert entry.from_amount == Decimal("5")

    @pytest.mark.asyncio
    async def test_tracker_convert_records_history(self, tracker):
        await tracker.convert(Decimal("1"), "USD", "JPY")
        await tracker.convert(Decimal("2"), "USD", "GBP")

        entries = tracker.history.entries()
        assert [e.to_currency for e in entries] == ["GBP", "JPY"]
        assert entries[1].to_amount == Decimal("151.16")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
