"""
In-Memory Storage Implementation

Backs the repositories with a plain dict. Used by the test suite and by
DOCUHUB_STORAGE_BACKEND=memory for throwaway demos.
"""

from typing import Optional

from docuhub.services.storage.interface import (
    KeyValueStore,
    StorageQuotaExceededError,
)


class InMemoryKeyValueStore(KeyValueStore):
    """
    Dict-backed key-value store.

    None of the methods await, so each call is atomic with respect to the
    event loop and compare_and_set needs no lock.
    """

    def __init__(
        self,
        initial: Optional[dict[str, str]] = None,
        quota_bytes: Optional[int] = None,
    ):
        self._data: dict[str, str] = dict(initial or {})
        self._quota_bytes = quota_bytes

    def _check_quota(self, key: str, value: str) -> None:
        if self._quota_bytes is None:
            return
        others = sum(
            len(k.encode("utf-8")) + len(v.encode("utf-8"))
            for k, v in self._data.items()
            if k != key
        )
        needed = others + len(key.encode("utf-8")) + len(value.encode("utf-8"))
        if needed > self._quota_bytes:
            raise StorageQuotaExceededError(
                f"Writing {key!r} needs {needed} bytes, quota is {self._quota_bytes}"
            )

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._check_quota(key, value)
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def compare_and_set(
        self,
        key: str,
        expected: Optional[str],
        value: Optional[str],
    ) -> bool:
        if self._data.get(key) != expected:
            return False
        if value is None:
            self._data.pop(key, None)
        else:
            self._check_quota(key, value)
            self._data[key] = value
        return True

    async def close(self) -> None:
        self._data.clear()

    def snapshot(self) -> dict[str, str]:
        """Copy of the raw contents (test helper)."""
        return dict(self._data)
