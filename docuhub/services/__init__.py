"""Services package."""

from docuhub.services.passwords import hash_secret, verify_secret
from docuhub.services.storage import (
    AccessDeniedError,
    AuditStorageInterface,
    DocuHubError,
    DuplicateError,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
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

__all__ = [
    # Secrets
    "hash_secret",
    "verify_secret",
    # Storage services
    "AccessDeniedError",
    "AuditStorageInterface",
    "DocuHubError",
    "DuplicateError",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "NotFoundError",
    "ProtectedAccountError",
    "StorageDecodeError",
    "StorageError",
    "StorageQuotaExceededError",
    "StorageReadError",
    "StorageWriteError",
    "WriteConflictError",
]
