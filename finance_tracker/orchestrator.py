"""
Main Orchestrator for the Finance Tracker

Wires the components together and exposes them as one object:

    store ─┬─ CachedRepository[Budget] ──── BudgetLedger ─┐
           │                                               ├─ ReconciliationEngine
           └─ CachedRepository[Transaction] ─ TransactionLedger
                                                   │
    rate source ── CurrencyConverter ──────────────┴── Aggregator

DESIGN DECISION: The orchestrator is the only place that knows which
concrete store and rate source are in use. Everything below it is
handed its collaborators, which is what lets the tests run the whole
stack against the in-memory store.
"""

from decimal import Decimal
from typing import Optional

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.config import get_settings
from finance_tracker.ledger import BudgetLedger, ReconciliationEngine, TransactionLedger
from finance_tracker.models.currency import ConversionRecord
from finance_tracker.models.ledger import Budget, Transaction
from finance_tracker.queries import Aggregator
from finance_tracker.services.preferences import (
    ConversionHistory,
    LocalKeyValueStore,
    Preferences,
)
from finance_tracker.services.rates import (
    CurrencyConverter,
    RateSourceInterface,
    RemoteRateSource,
    StaticRateSource,
)
from finance_tracker.services.storage import (
    CachedRepository,
    DocumentStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
)
from finance_tracker.validation import LedgerValidator


TRANSACTIONS_COLLECTION = "transactions"
BUDGETS_COLLECTION = "budgets"

logger = structlog.get_logger(__name__)


def build_rate_source() -> RateSourceInterface:
    """The offline table, or the remote API in front of it (RATES_SOURCE)."""
    if get_settings().rates.source == "remote":
        return RemoteRateSource(fallback=StaticRateSource())
    return StaticRateSource()


class FinanceTracker:
    """
    One user's finance tracker.

    Attributes:
        transactions: TransactionLedger
        budgets: BudgetLedger
        engine: ReconciliationEngine shared by both ledgers
        aggregator: Dashboard totals
        converter: Currency conversion (also used by the converter panel)
        preferences: Default currency
        history: Converter panel history
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        owner: Optional[str] = None,
        rate_source: Optional[RateSourceInterface] = None,
        local_store: Optional[LocalKeyValueStore] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        self.owner = owner or get_settings().app.user_id
        self.audit_logger = audit_logger or AuditLogger()

        local_store = local_store or LocalKeyValueStore()
        self.preferences = Preferences(local_store)
        self.history = ConversionHistory(local_store)
        self.converter = CurrencyConverter(
            rate_source or build_rate_source(),
            history=self.history,
            audit_logger=self.audit_logger,
        )

        self.validator = validator or LedgerValidator()
        self.budgets = BudgetLedger(
            CachedRepository(store, BUDGETS_COLLECTION, Budget, order_by="start_date"),
            owner=self.owner,
            preferences=self.preferences,
            validator=self.validator,
            audit_logger=self.audit_logger,
        )
        self.engine = ReconciliationEngine(
            self.budgets,
            self.converter,
            audit_logger=self.audit_logger,
        )
        self.transactions = TransactionLedger(
            CachedRepository(store, TRANSACTIONS_COLLECTION, Transaction, order_by="date"),
            owner=self.owner,
            engine=self.engine,
            preferences=self.preferences,
            validator=self.validator,
            audit_logger=self.audit_logger,
        )
        self.aggregator = Aggregator(self.transactions, self.converter, self.preferences)

    async def load(self) -> None:
        """Fill both local indexes from the remote store."""
        await self.budgets.refresh()
        await self.transactions.refresh()

    async def set_default_currency(self, code: str) -> str:
        """
        Persist a new default currency and audit the change.

        Existing records keep their stored currency; only new records
        and unconverted summaries pick up the new default.

        Raises:
            ValueError: If the code is not three letters
        """
        previous = self.preferences.default_currency
        current = self.preferences.set_default_currency(code)
        if current != previous:
            await self.audit_logger.log_default_currency_changed(previous, current)
        return current

    async def convert(
        self,
        amount: Decimal,
        from_code: str,
        to_code: str,
    ) -> ConversionRecord:
        """Converter panel conversion; the result is added to the history."""
        return await self.converter.convert_and_record(amount, from_code, to_code)


def create_app_components(
    use_storage: bool = True,
) -> tuple[FinanceTracker, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run against the in-memory store.

    Returns:
        (tracker, sheets_client)
    """
    sheets_client = None
    store: DocumentStoreInterface
    audit_logger: AuditLogger

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsDocumentStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            store = InMemoryDocumentStore()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        store = InMemoryDocumentStore()
        audit_logger = AuditLogger()

    tracker = FinanceTracker(store, audit_logger=audit_logger)
    return tracker, sheets_client
