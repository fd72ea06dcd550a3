"""
JSON File Storage Implementation

DESIGN DECISION: The production back-end is a single JSON file holding
{key: value}. It is the closest thing to the browser storage the portal
was written against: flat, text-valued, and trivially inspectable.

TRADEOFFS:
- Every operation reads the whole file (fine for a departmental portal)
- Writes go to a temporary file that is atomically swapped in, so a crash
  never leaves half a file behind
- compare_and_set is atomic within one process (a lock per file path);
  several processes writing the same file are not coordinated
"""

import asyncio
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Union

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from docuhub.services.storage.interface import (
    KeyValueStore,
    StorageDecodeError,
    StorageQuotaExceededError,
    StorageReadError,
    StorageWriteError,
)


_path_locks: dict[Path, threading.Lock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    """One lock per file, shared by every store instance in this process."""
    with _path_locks_guard:
        lock = _path_locks.get(path)
        if lock is None:
            lock = _path_locks[path] = threading.Lock()
        return lock


class JsonFileKeyValueStore(KeyValueStore):
    """
    Key-value store persisted as one JSON object in a file.

    File I/O runs in a worker thread so the event loop is never blocked.
    """

    def __init__(
        self,
        path: Union[str, os.PathLike],
        quota_bytes: Optional[int] = None,
        write_retry_attempts: int = 3,
    ):
        self._path = Path(path).expanduser().resolve()
        self._quota_bytes = quota_bytes
        self._write_retry_attempts = write_retry_attempts
        self._lock = _lock_for(self._path)

    @property
    def path(self) -> Path:
        return self._path

    # -------------------------------------------------------------------------
    # Synchronous helpers (called with the lock held, in a worker thread)
    # -------------------------------------------------------------------------

    def _load(self) -> dict[str, str]:
        """Read the whole file. A missing file is an empty store."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageReadError(f"Failed to read {self._path}: {e}") from e

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageDecodeError(f"Store file {self._path} is not valid JSON: {e}") from e

        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise StorageDecodeError(
                f"Store file {self._path} must hold a JSON object of text values"
            )
        return data

    def _write_once(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=self._path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def _save(self, data: dict[str, str]) -> None:
        payload = json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True)

        if self._quota_bytes is not None:
            size = len(payload.encode("utf-8"))
            if size > self._quota_bytes:
                raise StorageQuotaExceededError(
                    f"Store would grow to {size} bytes, quota is {self._quota_bytes}"
                )

        # Transient failures (e.g. the file briefly held open by a scanner)
        # are retried before giving up.
        try:
            for attempt in Retrying(
                retry=retry_if_exception_type(OSError),
                stop=stop_after_attempt(self._write_retry_attempts),
                wait=wait_exponential(multiplier=0.05, max=1),
                reraise=True,
            ):
                with attempt:
                    self._write_once(payload)
        except OSError as e:
            raise StorageWriteError(f"Failed to write {self._path}: {e}") from e

    def _get_sync(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def _set_sync(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def _delete_sync(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

    def _cas_sync(self, key: str, expected: Optional[str], value: Optional[str]) -> bool:
        with self._lock:
            data = self._load()
            if data.get(key) != expected:
                return False
            if value is None:
                if key not in data:
                    return True
                del data[key]
            else:
                data[key] = value
            self._save(data)
            return True

    # -------------------------------------------------------------------------
    # KeyValueStore
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get_sync, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._set_sync, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete_sync, key)

    async def compare_and_set(
        self,
        key: str,
        expected: Optional[str],
        value: Optional[str],
    ) -> bool:
        return await asyncio.to_thread(self._cas_sync, key, expected, value)
