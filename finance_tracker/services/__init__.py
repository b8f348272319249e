"""Services package."""

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
    AuditStorageInterface,
    CachedRepository,
    ConnectionError,
    DocumentStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryAuditStorage,
    InMemoryDocumentStore,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Local settings
    "ConversionHistory",
    "LocalKeyValueStore",
    "Preferences",
    # Rates
    "CurrencyConverter",
    "RateSourceInterface",
    "RemoteRateSource",
    "StaticRateSource",
    # Storage services
    "AuditStorageInterface",
    "CachedRepository",
    "ConnectionError",
    "DocumentStoreInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryAuditStorage",
    "InMemoryDocumentStore",
    "NotFoundError",
    "StorageError",
]
