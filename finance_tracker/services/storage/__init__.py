"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory store backs tests and
offline use. Ledgers only see the cached repository in front of either.
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    Document,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
)
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)
from finance_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDocumentStore,
)
from finance_tracker.services.storage.repository import (
    CachedRepository,
    Repository,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "Document",
    "DocumentStoreInterface",
    "Repository",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "CachedRepository",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryAuditStorage",
    "InMemoryDocumentStore",
]
