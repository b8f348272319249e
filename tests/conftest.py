"""
Shared fixtures.

Every test runs against the in-memory store and the offline rate
table. No test touches the network or a real spreadsheet.
"""

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.models.audit import AuditEventType
from finance_tracker.orchestrator import FinanceTracker
from finance_tracker.services.preferences import LocalKeyValueStore
from finance_tracker.services.rates import StaticRateSource
from finance_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryDocumentStore,
    StorageError,
)
from finance_tracker.validation import LedgerValidator


OWNER = "user-1"
JAN_START = date(2024, 1, 1)
JAN_END = date(2024, 1, 31)


class FlakyDocumentStore(InMemoryDocumentStore):
    """
    In-memory store that records every call and can be told to fail.

    Writes (put/patch/delete) to any collection in ``failing`` raise
    StorageError without changing anything.
    """

    def __init__(self):
        super().__init__()
        self.failing: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def _record(self, operation: str, collection: str, is_write: bool) -> None:
        self.calls.append((operation, collection))
        if is_write and collection in self.failing:
            raise StorageError(f"{operation} on {collection} refused")

    def writes(self, collection: str) -> list[str]:
        return [op for op, coll in self.calls if coll == collection and op not in ("get", "query")]

    async def get(self, collection, doc_id):
        self._record("get", collection, False)
        return await super().get(collection, doc_id)

    async def put(self, collection, doc_id, document):
        self._record("put", collection, True)
        return await super().put(collection, doc_id, document)

    async def patch(self, collection, doc_id, fields):
        self._record("patch", collection, True)
        return await super().patch(collection, doc_id, fields)

    async def delete(self, collection, doc_id):
        self._record("delete", collection, True)
        return await super().delete(collection, doc_id)

    async def query(self, collection, field, value, order_by=None, descending=False):
        self._record("query", collection, False)
        return await super().query(collection, field, value, order_by, descending)


@pytest.fixture
def store():
    return FlakyDocumentStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def local_store(tmp_path):
    return LocalKeyValueStore(str(tmp_path / "local_store.json"))


@pytest.fixture
def tracker(store, audit_storage, local_store):
    return FinanceTracker(
        store,
        owner=OWNER,
        rate_source=StaticRateSource(),
        local_store=local_store,
        audit_logger=AuditLogger(audit_storage),
        validator=LedgerValidator(max_amount=1_000_000),
    )


@pytest.fixture
def food_budget_data():
    return {
        "name": "Groceries",
        "amount": Decimal("500"),
        "category": "Food & Dining",
        "currency": "USD",
        "start_date": JAN_START,
        "end_date": JAN_END,
    }


def expense(amount="100", category="Food & Dining", day=date(2024, 1, 15), **extra):
    """Transaction input for an expense inside January 2024."""
    return {
        "type": "expense",
        "amount": Decimal(amount),
        "category": category,
        "date": day,
        "currency": "USD",
        **extra,
    }


def income(amount="500", category="Salary", day=date(2024, 1, 1), **extra):
    return {
        "type": "income",
        "amount": Decimal(amount),
        "category": category,
        "date": day,
        "currency": "USD",
        **extra,
    }


async def audit_types(audit_storage) -> list[AuditEventType]:
    return [e.event_type for e in await audit_storage.get_recent_events(limit=1000)]
