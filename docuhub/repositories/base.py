"""
JSON Collection Helper

Each repository owns one key in the store, holding a JSON list of records.
This module is the single place where that list is read, decoded, mutated
and written back.

DESIGN DECISION: Every read-modify-write is a small transaction:
1. An asyncio.Lock serializes writers going through the same repository
2. The write is a compare_and_set against the exact text that was read,
   so a second repository on the same store (another tab, another worker)
   cannot be silently overwritten
3. A lost race raises WriteConflictError, which is retried from a fresh read

Decoding is strict. A payload that is not valid JSON or does not match the
record schema raises StorageDecodeError; it is never read as an empty list.
"""

import asyncio
from typing import Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_random

from docuhub.services.storage.interface import (
    KeyValueStore,
    StorageDecodeError,
    WriteConflictError,
)

T = TypeVar("T", bound=BaseModel)
R = TypeVar("R")

# A mutation gets the current records and returns (new_records, result).
# new_records=None means "nothing to write". It may run more than once,
# so it must not have side effects outside its return value.
Mutation = Callable[[list[T]], tuple[Optional[list[T]], R]]


class JsonCollection(Generic[T]):
    """A typed list of records stored as JSON under one key."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        item_type: type[T],
    ):
        self._store = store
        self._key = key
        self._item_type = item_type
        self._adapter = TypeAdapter(list[item_type])
        self._lock = asyncio.Lock()

    @property
    def key(self) -> str:
        return self._key

    def decode(self, raw: Optional[str]) -> list[T]:
        """Turn stored text into records. A missing key is an empty list."""
        if raw is None:
            return []
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as e:
            raise StorageDecodeError(
                f"Stored value under {self._key!r} is not a valid "
                f"{self._item_type.__name__} list: {e.error_count()} error(s)"
            ) from e

    def encode(self, items: list[T]) -> str:
        return self._adapter.dump_json(items).decode("utf-8")

    async def exists(self) -> bool:
        """Has this collection ever been written?"""
        return await self._store.get(self._key) is not None

    async def load(self) -> list[T]:
        return self.decode(await self._store.get(self._key))

    async def transaction(self, mutate: Mutation) -> R:
        """
        Run a read-modify-write cycle.

        Raises:
            WriteConflictError: If the value kept changing under us
            StorageError: On any read, decode or write failure
        """
        async with self._lock:
            return await self._attempt(mutate)

    @retry(
        retry=retry_if_exception_type(WriteConflictError),
        stop=stop_after_attempt(5),
        wait=wait_random(min=0, max=0.05),
        reraise=True,
    )
    async def _attempt(self, mutate: Mutation) -> R:
        raw = await self._store.get(self._key)
        items = self.decode(raw)

        new_items, result = mutate(items)
        if new_items is None:
            return result

        written = await self._store.compare_and_set(self._key, raw, self.encode(new_items))
        if not written:
            raise WriteConflictError(f"Concurrent write to {self._key!r}")
        return result

    async def create_if_absent(self, items: list[T]) -> bool:
        """
        Write the collection only if its key was never written.

        Returns:
            True if this call created it, False if it already existed
        """
        async with self._lock:
            if await self._store.get(self._key) is not None:
                return False
            return await self._store.compare_and_set(self._key, None, self.encode(items))
