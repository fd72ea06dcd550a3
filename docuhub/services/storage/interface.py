"""
Abstract Storage Interface

DESIGN DECISION: Everything DocuHub persists lives in a flat key-value
medium holding text values (JSON). We define an abstract interface for it.
This allows us to:
1. Use in-memory storage for testing
2. Use a JSON file (or any embedded store) in production
3. Keep the repositories decoupled from the storage implementation

The medium has no transactions. To make read-modify-write safe anyway the
interface offers compare_and_set: a write that only happens if the value is
still what the caller read. Repositories build their transactions on it.
"""

from abc import ABC, abstractmethod
from typing import Optional

from docuhub.models.audit import AuditEvent


class KeyValueStore(ABC):
    """
    Abstract interface for the key-value medium.

    Values are text. A key that was never written reads as None, which is
    different from a key holding an empty collection.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Returns:
            The stored text, or None if the key was never written

        Raises:
            StorageReadError: If the medium cannot be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Unconditionally store a value.

        Raises:
            StorageWriteError: If the write fails
            StorageQuotaExceededError: If the value does not fit
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Removing a missing key is a no-op."""
        pass

    @abstractmethod
    async def compare_and_set(
        self,
        key: str,
        expected: Optional[str],
        value: Optional[str],
    ) -> bool:
        """
        Atomically replace the value if it still equals `expected`.

        Args:
            key: The key to write
            expected: The value the caller read (None = key absent)
            value: The new value (None = delete the key)

        Returns:
            True if the swap happened, False if someone else wrote first
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the store."""
        return None


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never modify them.
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
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


# =============================================================================
# EXCEPTIONS
# =============================================================================

class DocuHubError(Exception):
    """Base exception for everything DocuHub raises on purpose."""
    pass


class StorageError(DocuHubError):
    """Base exception for storage operations (read, write, decode)."""
    pass


class StorageReadError(StorageError):
    """The storage medium could not be read."""
    pass


class StorageWriteError(StorageError):
    """The storage medium could not be written."""
    pass


class StorageQuotaExceededError(StorageWriteError):
    """A write would exceed the configured storage quota."""
    pass


class StorageDecodeError(StorageError):
    """A stored value is not valid JSON or does not match its schema."""
    pass


class WriteConflictError(StorageError):
    """Another writer changed the value between our read and our write."""
    pass


class NotFoundError(DocuHubError):
    """Entity not found in storage."""
    pass


class DuplicateError(DocuHubError):
    """Attempted to insert a duplicate entity."""
    pass


class ProtectedAccountError(DocuHubError):
    """Attempted to delete the protected root administrator."""
    pass


class AccessDeniedError(DocuHubError):
    """The current account may not see the requested entity."""
    pass
