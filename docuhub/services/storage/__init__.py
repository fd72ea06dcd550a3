"""
Storage Services Package

Provides the abstract key-value interface, its exceptions, and concrete
implementations. The repositories only ever see KeyValueStore.
"""

from docuhub.services.storage.interface import (
    AccessDeniedError,
    AuditStorageInterface,
    DocuHubError,
    DuplicateError,
    KeyValueStore,
    NotFoundError,
    ProtectedAccountError,
    StorageDecodeError,
    StorageError,
    StorageQuotaExceededError,
    StorageReadError,
    StorageWriteError,
    WriteConflictError,
)
from docuhub.services.storage.memory import InMemoryKeyValueStore
from docuhub.services.storage.json_file import JsonFileKeyValueStore

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStore",
    # Exceptions
    "AccessDeniedError",
    "DocuHubError",
    "DuplicateError",
    "NotFoundError",
    "ProtectedAccountError",
    "StorageDecodeError",
    "StorageError",
    "StorageQuotaExceededError",
    "StorageReadError",
    "StorageWriteError",
    "WriteConflictError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
]
