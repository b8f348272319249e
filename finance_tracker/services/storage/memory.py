"""
In-Memory Storage Implementation

Used by the test suite and whenever no remote backend is configured.
Documents are deep-copied in and out, so callers can never mutate the
stored state by holding on to a returned dict.
"""

import copy
from typing import Any, Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    Document,
    DocumentStoreInterface,
    NotFoundError,
)


class InMemoryDocumentStore(DocumentStoreInterface):
    """Dict-of-dicts document store."""

    def __init__(self):
        self._collections: dict[str, dict[str, Document]] = {}

    def _collection(self, name: str) -> dict[str, Document]:
        return self._collections.setdefault(name, {})

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        document = self._collection(collection).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def put(self, collection: str, doc_id: str, document: Document) -> None:
        self._collection(collection)[doc_id] = copy.deepcopy(document)

    async def patch(self, collection: str, doc_id: str, fields: Document) -> Document:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise NotFoundError(f"{collection}/{doc_id} not found")
        merged = {**docs[doc_id], **copy.deepcopy(fields)}
        docs[doc_id] = merged
        return copy.deepcopy(merged)

    async def delete(self, collection: str, doc_id: str) -> bool:
        return self._collection(collection).pop(doc_id, None) is not None

    async def query(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Document]:
        matches = [
            copy.deepcopy(doc)
            for doc in self._collection(collection).values()
            if doc.get(field) == value
        ]
        if order_by:
            matches.sort(key=lambda d: d.get(order_by) or "", reverse=descending)
        return matches


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
