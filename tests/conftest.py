"""
DocuHub - Test Configuration and Fixtures

Every test gets a fresh in-memory store. Nothing touches the disk unless a
test asks for tmp_path itself.
"""

from typing import Optional

import pytest

from docuhub.audit import AuditLogger
from docuhub.config import IntakeSettings, SeedSettings
from docuhub.models.account import AccountCreate, AccountRole
from docuhub.models.document import DocumentDraft, ParsedFilename
from docuhub.orchestrator import AccountImportFlow, DocumentIntakeFlow
from docuhub.parsing import FilenameParser
from docuhub.queries import DocumentQueryExecutor
from docuhub.repositories import (
    AccountRepository,
    DocumentRepository,
    KeyValueAuditStorage,
)
from docuhub.services.storage import InMemoryKeyValueStore
from docuhub.session import SessionStore


PDF_BYTES = b"%PDF-1.4\n%test document\n%%EOF\n"


def make_draft(filename: str, content: bytes = PDF_BYTES, **kwargs) -> DocumentDraft:
    """Build a draft the way the intake flow does."""
    parsed: ParsedFilename = FilenameParser.parse(filename)
    return DocumentDraft.from_upload(filename, content, parsed, **kwargs)


def member(login_id: str, secret: str = "pw", department: str = "Finance") -> AccountCreate:
    return AccountCreate(
        login_id=login_id,
        secret=secret,
        department=department,
        role=AccountRole.MEMBER,
    )


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def audit_storage(store) -> KeyValueAuditStorage:
    return KeyValueAuditStorage(store, max_entries=100)


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def seed() -> SeedSettings:
    return SeedSettings(root_login_id="admin", root_secret="admin", root_department="IT")


@pytest.fixture
def documents(store, audit_logger) -> DocumentRepository:
    return DocumentRepository(store, audit_logger=audit_logger)


@pytest.fixture
def accounts(store, audit_logger) -> AccountRepository:
    return AccountRepository(store, root_login_id="admin", audit_logger=audit_logger)


@pytest.fixture
async def seeded_accounts(accounts, seed) -> AccountRepository:
    await accounts.bootstrap(seed)
    return accounts


@pytest.fixture
def session(store, accounts, audit_logger) -> SessionStore:
    return SessionStore(store, accounts, audit_logger=audit_logger)


@pytest.fixture
def intake_settings() -> IntakeSettings:
    return IntakeSettings(max_concurrency=2, max_upload_size_mb=1, item_delay_seconds=0.0)


@pytest.fixture
def intake_flow(documents, audit_logger, intake_settings) -> DocumentIntakeFlow:
    return DocumentIntakeFlow(documents, audit_logger=audit_logger, settings=intake_settings)


@pytest.fixture
def import_flow(accounts, audit_logger) -> AccountImportFlow:
    return AccountImportFlow(accounts, audit_logger=audit_logger)


@pytest.fixture
def queries(documents, accounts) -> DocumentQueryExecutor:
    return DocumentQueryExecutor(documents, accounts, recent_window_hours=24)


class ConflictingStore(InMemoryKeyValueStore):
    """
    In-memory store that loses the first `conflicts` compare_and_set races.

    Before failing, it applies `interloper` to the stored value, as if
    another tab had written in between.
    """

    def __init__(self, conflicts: int = 1, interloper=None, **kwargs):
        super().__init__(**kwargs)
        self.conflicts = conflicts
        self.interloper = interloper
        self.cas_calls = 0

    async def compare_and_set(self, key: str, expected: Optional[str], value: Optional[str]) -> bool:
        self.cas_calls += 1
        if self.conflicts > 0:
            self.conflicts -= 1
            if self.interloper is not None:
                await self.interloper(self, key)
            return False
        return await super().compare_and_set(key, expected, value)
