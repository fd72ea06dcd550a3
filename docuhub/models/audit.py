"""
Audit Models for DocuHub

Every significant action in the portal is logged for audit purposes:
uploads, deletions, views, account changes and logins.

DESIGN DECISION: Audit events never carry secrets or document content.
Only ids, filenames and counts go into the details.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Documents
    DOCUMENTS_INGESTED = "documents_ingested"
    DOCUMENT_DUPLICATE_SKIPPED = "document_duplicate_skipped"
    FILENAME_REJECTED = "filename_rejected"
    DOCUMENT_REJECTED = "document_rejected"
    DOCUMENT_DELETED = "document_deleted"
    DOCUMENT_VIEWED = "document_viewed"
    INTAKE_COMPLETED = "intake_completed"
    INTAKE_CANCELLED = "intake_cancelled"

    # Accounts
    ACCOUNTS_SEEDED = "accounts_seeded"
    ACCOUNT_CREATED = "account_created"
    ACCOUNTS_UPSERTED = "accounts_upserted"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"
    ACCOUNT_DELETE_BLOCKED = "account_delete_blocked"
    ACCOUNT_IMPORT_VALIDATED = "account_import_validated"

    # Session
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    SESSION_INVALIDATED = "session_invalidated"

    # System events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'document', 'account', 'session')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Document id or login id this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one bulk intake)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    # Who did it, when known
    actor_id: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "actor_id": self.actor_id,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.documents_ingested(count, skipped, correlation_id)
        event = AuditEventBuilder.login_failed(login_id)
    """

    @staticmethod
    def documents_ingested(
        document_ids: list[str],
        skipped: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENTS_INGESTED,
            entity_type="document",
            correlation_id=correlation_id,
            description=f"{len(document_ids)} document(s) stored, {skipped} duplicate(s) skipped",
            details={
                "document_ids": document_ids,
                "stored": len(document_ids),
                "duplicates_skipped": skipped,
            },
        )

    @staticmethod
    def duplicate_skipped(
        owner_id: str,
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_DUPLICATE_SKIPPED,
            entity_type="document",
            correlation_id=correlation_id,
            description=f"Duplicate skipped: {filename}",
            details={
                "owner_id": owner_id,
                "filename": filename,
            },
        )

    @staticmethod
    def filename_rejected(
        filename: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FILENAME_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            correlation_id=correlation_id,
            description=f"Filename rejected: {filename}",
            details={
                "filename": filename,
                "reason": reason,
            },
        )

    @staticmethod
    def document_rejected(
        filename: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            correlation_id=correlation_id,
            description=f"Document rejected: {filename}",
            details={
                "filename": filename,
                "reason": reason,
            },
        )

    @staticmethod
    def document_deleted(document_id: str, actor_id: Optional[str] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_DELETED,
            entity_type="document",
            entity_id=document_id,
            description=f"Document deleted: {document_id}",
            actor_id=actor_id,
        )

    @staticmethod
    def document_viewed(
        document_id: str,
        view_count: int,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_VIEWED,
            severity=AuditSeverity.DEBUG,
            entity_type="document",
            entity_id=document_id,
            description=f"Document opened ({view_count} views)",
            details={"view_count": view_count},
            actor_id=actor_id,
        )

    @staticmethod
    def intake_finished(
        total: int,
        stored: int,
        failed: int,
        cancelled: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.INTAKE_CANCELLED
                if cancelled
                else AuditEventType.INTAKE_COMPLETED
            ),
            severity=AuditSeverity.WARNING if cancelled else AuditSeverity.INFO,
            entity_type="intake",
            correlation_id=correlation_id,
            description=f"Bulk intake {'cancelled' if cancelled else 'completed'}: {stored}/{total} stored",
            details={
                "total": total,
                "stored": stored,
                "failed": failed,
            },
        )

    @staticmethod
    def accounts_seeded(login_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNTS_SEEDED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=login_id,
            description=f"Seeded root administrator '{login_id}' into an empty store",
        )

    @staticmethod
    def account_created(login_id: str, role: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=login_id,
            description=f"Account created: {login_id}",
            details={"role": role},
        )

    @staticmethod
    def accounts_upserted(inserted: list[str], overwritten: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNTS_UPSERTED,
            entity_type="account",
            description=f"Bulk import: {len(inserted)} added, {len(overwritten)} overwritten",
            details={
                "inserted": inserted,
                "overwritten": overwritten,
            },
        )

    @staticmethod
    def account_updated(login_id: str, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            entity_type="account",
            entity_id=login_id,
            description=f"Account updated: {login_id}",
            # Field names only, never values
            details={"fields": fields},
        )

    @staticmethod
    def account_deleted(login_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            entity_type="account",
            entity_id=login_id,
            description=f"Account deleted: {login_id}",
        )

    @staticmethod
    def account_delete_blocked(login_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETE_BLOCKED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=login_id,
            description=f"Refused to delete protected account: {login_id}",
        )

    @staticmethod
    def account_import_validated(rows: int, valid: int, errors: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_IMPORT_VALIDATED,
            severity=AuditSeverity.WARNING if errors else AuditSeverity.INFO,
            entity_type="account",
            description=f"Account sheet checked: {valid}/{rows} rows valid",
            details={
                "rows": rows,
                "valid": valid,
                "errors": errors,
            },
        )

    @staticmethod
    def login_succeeded(login_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            entity_type="session",
            entity_id=login_id,
            description=f"Login: {login_id}",
            actor_id=login_id,
        )

    @staticmethod
    def login_failed(login_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            entity_id=login_id,
            description=f"Failed login attempt for: {login_id}",
        )

    @staticmethod
    def logout(login_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGOUT,
            entity_type="session",
            entity_id=login_id,
            description=f"Logout: {login_id or 'anonymous'}",
            actor_id=login_id,
        )

    @staticmethod
    def session_invalidated(login_id: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_INVALIDATED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            entity_id=login_id,
            description=f"Session for {login_id} invalidated: {reason}",
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )
