"""
Audit Logger

DESIGN DECISION: Every significant action in the portal is logged.
This provides:
1. Traceability of uploads, deletions and account changes
2. Debugging capability
3. A history the admin dashboard can show

The audit logger:
- Always logs locally through structlog (JSON lines)
- Optionally persists events through an AuditStorageInterface
- Never lets a failing audit store break the main flow
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from docuhub.models.audit import AuditEvent, AuditEventBuilder
from docuhub.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("docuhub.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()
        severity = event.severity.value

        if severity in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif severity == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif severity == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    async def log_documents_ingested(
        self,
        document_ids: list[str],
        skipped: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.documents_ingested(
            document_ids=document_ids,
            skipped=skipped,
            correlation_id=correlation_id,
        ))

    async def log_duplicate_skipped(
        self,
        owner_id: str,
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.duplicate_skipped(
            owner_id=owner_id,
            filename=filename,
            correlation_id=correlation_id,
        ))

    async def log_filename_rejected(
        self,
        filename: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.filename_rejected(
            filename=filename,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_document_rejected(
        self,
        filename: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.document_rejected(
            filename=filename,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_document_deleted(
        self,
        document_id: str,
        actor_id: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.document_deleted(document_id, actor_id=actor_id))

    async def log_document_viewed(
        self,
        document_id: str,
        view_count: int,
        actor_id: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.document_viewed(
            document_id=document_id,
            view_count=view_count,
            actor_id=actor_id,
        ))

    async def log_intake_finished(
        self,
        total: int,
        stored: int,
        failed: int,
        cancelled: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.intake_finished(
            total=total,
            stored=stored,
            failed=failed,
            cancelled=cancelled,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def log_accounts_seeded(self, login_id: str) -> None:
        await self.log(AuditEventBuilder.accounts_seeded(login_id))

    async def log_account_created(self, login_id: str, role: str) -> None:
        await self.log(AuditEventBuilder.account_created(login_id, role))

    async def log_accounts_upserted(
        self,
        inserted: list[str],
        overwritten: list[str],
    ) -> None:
        await self.log(AuditEventBuilder.accounts_upserted(inserted, overwritten))

    async def log_account_updated(self, login_id: str, fields: list[str]) -> None:
        await self.log(AuditEventBuilder.account_updated(login_id, fields))

    async def log_account_deleted(self, login_id: str) -> None:
        await self.log(AuditEventBuilder.account_deleted(login_id))

    async def log_account_delete_blocked(self, login_id: str) -> None:
        await self.log(AuditEventBuilder.account_delete_blocked(login_id))

    async def log_account_import_validated(
        self,
        rows: int,
        valid: int,
        errors: int,
    ) -> None:
        await self.log(AuditEventBuilder.account_import_validated(rows, valid, errors))

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def log_login_succeeded(self, login_id: str) -> None:
        await self.log(AuditEventBuilder.login_succeeded(login_id))

    async def log_login_failed(self, login_id: str) -> None:
        await self.log(AuditEventBuilder.login_failed(login_id))

    async def log_logout(self, login_id: Optional[str]) -> None:
        await self.log(AuditEventBuilder.logout(login_id))

    async def log_session_invalidated(self, login_id: str, reason: str) -> None:
        await self.log(AuditEventBuilder.session_invalidated(login_id, reason))

    # -------------------------------------------------------------------------
    # Errors
    # -------------------------------------------------------------------------

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage failure. The caller still re-raises it."""
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a bulk upload).
    Pass it through all subsequent operations.
    """
    return uuid4()
