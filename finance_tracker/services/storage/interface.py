"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the remote store.
This allows us to:
1. Swap Google Sheets for a hosted document database later
2. Use in-memory storage for testing
3. Put a caching repository in front of any backend
4. Keep ledger logic decoupled from storage implementation

The interface is intentionally a plain document store: collections of
JSON-compatible dicts keyed by an opaque id string. Typed models are
the repository's business, not the backend's.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent


Document = dict[str, Any]


class DocumentStoreInterface(ABC):
    """
    Abstract interface for the remote document store.

    Any storage implementation (Google Sheets, Firestore, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """
        Retrieve a document by its id.

        Returns:
            The document if found, None otherwise

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def put(self, collection: str, doc_id: str, document: Document) -> None:
        """
        Create or fully replace a document.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def patch(self, collection: str, doc_id: str, fields: Document) -> Document:
        """
        Merge ``fields`` into an existing document.

        Returns:
            The document after the merge

        Raises:
            NotFoundError: If the document doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """
        Delete a document by id.

        Returns:
            True if a document was deleted, False if there was none
        """
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Document]:
        """
        Find documents where ``field == value``.

        Args:
            collection: Collection name
            field: Field to filter on (equality only)
            value: Value to match
            order_by: Field to sort by
            descending: Sort direction

        Returns:
            Matching documents, sorted if ``order_by`` is given
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one transaction edit
        and the budget adjustments it caused).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
