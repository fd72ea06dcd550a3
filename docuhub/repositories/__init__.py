"""
Repositories Package

Each repository owns one collection in the key-value store.
"""

from docuhub.repositories.accounts import AccountRepository
from docuhub.repositories.audit_log import KeyValueAuditStorage
from docuhub.repositories.base import JsonCollection
from docuhub.repositories.documents import DocumentRepository
from docuhub.repositories.preferences import PreferenceStore

__all__ = [
    "AccountRepository",
    "DocumentRepository",
    "JsonCollection",
    "KeyValueAuditStorage",
    "PreferenceStore",
]
