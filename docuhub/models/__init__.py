"""
Data Models Package

This package contains all Pydantic models used in DocuHub.
Everything that goes into or comes out of the store conforms to these schemas.
"""

from docuhub.models.account import (
    Account,
    AccountCreate,
    AccountImportPreview,
    AccountRole,
    AccountUpdate,
    AccountView,
    ImportIssue,
)
from docuhub.models.document import (
    Document,
    DocumentDraft,
    IntakeFile,
    IntakeItemResult,
    IntakeProgress,
    IntakeReport,
    IntakeStatus,
    ParsedFilename,
    ParseFailure,
)
from docuhub.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from docuhub.models.query import DocumentFacets, DocumentQuery, PortalStats

__all__ = [
    # Account models
    "Account",
    "AccountCreate",
    "AccountRole",
    "AccountUpdate",
    "AccountView",
    "AccountImportPreview",
    "ImportIssue",
    # Document models
    "Document",
    "DocumentDraft",
    "IntakeFile",
    "IntakeItemResult",
    "IntakeProgress",
    "IntakeReport",
    "IntakeStatus",
    "ParsedFilename",
    "ParseFailure",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Query models
    "DocumentFacets",
    "DocumentQuery",
    "PortalStats",
]
