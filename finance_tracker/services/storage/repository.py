"""
Cached Repository

DESIGN DECISION: The ledgers never talk to the remote store and a
local cache separately. A repository does both, in a fixed order:

1. Write to the remote store
2. Only if that succeeded, update the in-memory index

Both steps run under one asyncio.Lock per collection, so a reader
never sees the index half-way through a mutation and two mutations
on the same collection never interleave.

Remote failures propagate unchanged; there is no retry and no rollback
beyond leaving the index as it was.
"""

from abc import ABC, abstractmethod
import asyncio
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from finance_tracker.services.storage.interface import DocumentStoreInterface


T = TypeVar("T", bound=BaseModel)


class Repository(ABC, Generic[T]):
    """Typed get/list/put/patch/delete over one collection."""

    @abstractmethod
    async def get(self, entity_id: str) -> Optional[T]:
        """Fresh read from the remote store."""
        pass

    @abstractmethod
    def list_all(self) -> list[T]:
        """Everything currently in the local index."""
        pass

    @abstractmethod
    async def put(self, entity: T) -> T:
        """Create or replace an entity."""
        pass

    @abstractmethod
    async def patch(self, entity_id: str, changes: dict[str, Any]) -> T:
        """Merge field changes into an existing entity."""
        pass

    @abstractmethod
    async def delete(self, entity_id: str) -> bool:
        """Remove an entity. Returns False if the remote had nothing to delete."""
        pass


class CachedRepository(Repository[T]):
    """
    Repository backed by a DocumentStoreInterface plus an in-memory index.

    Args:
        store: Remote document store
        collection: Collection name in the store
        model: Pydantic model class of the entities
        owner_field: Field used to scope ``load`` to one user
        order_by: Field ``load`` sorts on (descending)
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        collection: str,
        model: type[T],
        owner_field: str = "owner",
        order_by: Optional[str] = None,
    ):
        self._store = store
        self._collection = collection
        self._model = model
        self._owner_field = owner_field
        self._order_by = order_by
        self._index: dict[str, T] = {}
        self._lock = asyncio.Lock()

    @property
    def collection(self) -> str:
        return self._collection

    def _to_document(self, entity: T) -> dict[str, Any]:
        return entity.model_dump(mode="json")

    def _from_document(self, document: dict[str, Any]) -> T:
        return self._model.model_validate(document)

    async def get(self, entity_id: str) -> Optional[T]:
        document = await self._store.get(self._collection, entity_id)
        return self._from_document(document) if document is not None else None

    def cached(self, entity_id: str) -> Optional[T]:
        """Local index lookup, no remote call."""
        return self._index.get(entity_id)

    def list_all(self) -> list[T]:
        return list(self._index.values())

    async def put(self, entity: T) -> T:
        entity_id = getattr(entity, "id")
        async with self._lock:
            await self._store.put(self._collection, entity_id, self._to_document(entity))
            self._index[entity_id] = entity
        return entity

    async def patch(self, entity_id: str, changes: dict[str, Any]) -> T:
        async with self._lock:
            merged = await self._store.patch(
                self._collection,
                entity_id,
                to_jsonable_python(changes),
            )
            entity = self._from_document(merged)
            self._index[entity_id] = entity
        return entity

    async def delete(self, entity_id: str) -> bool:
        async with self._lock:
            deleted = await self._store.delete(self._collection, entity_id)
            self._index.pop(entity_id, None)
        return deleted

    async def load(self, owner: str) -> list[T]:
        """
        Replace the index with every entity the owner has remotely.

        Returns the entities in the store's sort order.
        """
        documents = await self._store.query(
            self._collection,
            self._owner_field,
            owner,
            order_by=self._order_by,
            descending=True,
        )
        entities = [self._from_document(doc) for doc in documents]
        async with self._lock:
            self._index = {getattr(e, "id"): e for e in entities}
        return entities
