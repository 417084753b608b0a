"""
Whole-collection repository over a single store key.

Each collection (history, intentions, sitters) lives in one JSON blob. Every
change is a read-modify-write of the full list, so each repository owns an
``asyncio.Lock`` and applies mutations and the following write under it.
"""

import asyncio
import logging
from typing import Callable, Generic, List, Optional, Type, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from tripjournal.core.exceptions import PersistenceFailureError, ValidationError
from tripjournal.core.store import KeyValueStore
from tripjournal.schemas.base import JournalModel

T = TypeVar("T", bound=JournalModel)

logger = logging.getLogger(__name__)


class CollectionRepository(Generic[T]):
    """In-memory list of records mirrored to one store key."""

    def __init__(self, store: KeyValueStore, key: str, model: Type[T]):
        self.store = store
        self.key = key
        self._adapter = TypeAdapter(List[model])
        self._items: List[T] = []
        self._lock = asyncio.Lock()

    async def load(self) -> List[T]:
        """
        Replace the in-memory list with what is stored under the key.

        Raises:
            PersistenceFailureError: If the store cannot be read or the blob is malformed
        """
        async with self._lock:
            raw = await self.store.get(self.key)
            if raw is None:
                self._items = []
            else:
                try:
                    self._items = self._adapter.validate_python(raw)
                except (PydanticValidationError, ValidationError) as e:
                    raise PersistenceFailureError(self.key, f"stored collection is malformed: {e}") from e
            logger.info(f"Loaded {len(self._items)} records from {self.key}")
            return list(self._items)

    def all(self) -> List[T]:
        return list(self._items)

    def find(self, predicate: Callable[[T], bool]) -> Optional[T]:
        for item in self._items:
            if predicate(item):
                return item
        return None

    async def flush(self) -> None:
        """Re-write the in-memory collection, e.g. after a failed write."""
        async with self._lock:
            await self._persist()

    async def replace_all(self, items: List[T]) -> List[T]:
        """Swap in a whole new collection and persist it."""
        async with self._lock:
            self._items = list(items)
            await self._persist()
            return list(self._items)

    async def mutate(self, fn: Callable[[List[T]], List[T]]) -> List[T]:
        """
        Apply fn to the current collection and persist the result.

        fn runs under the collection lock and receives a copy, so an exception
        raised by fn leaves both memory and store untouched.
        """
        async with self._lock:
            self._items = list(fn(list(self._items)))
            await self._persist()
            return list(self._items)

    async def _persist(self) -> None:
        payload = self._adapter.dump_python(self._items, mode="json", by_alias=True)
        try:
            await self.store.set(self.key, payload)
        except PersistenceFailureError:
            # In-memory state is kept; the caller surfaces "changes may not be saved".
            logger.warning(f"Persisting {self.key} failed, keeping in-memory state", exc_info=True)
            raise
