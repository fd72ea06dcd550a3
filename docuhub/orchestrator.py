"""
Main Orchestrator for DocuHub

This module ties together all the components and defines the
end-to-end flows for:
1. Document Intake (files -> parse names -> size check -> store)
2. Account Import (sheet rows -> validate -> preview -> bulk upsert)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every submitted file gets exactly one status in the report
- Nothing is imported from a sheet without passing validation
- Every step is audited

There are no module-level singletons. create_portal_context() builds one
PortalContext that owns the store, the repositories, the session and the
flows; the presentation layer keeps that object for its lifetime.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Union
from uuid import UUID

from docuhub.audit import AuditLogger, create_correlation_id
from docuhub.config import IntakeSettings, Settings, get_settings
from docuhub.models.account import AccountImportPreview, AccountView
from docuhub.models.document import (
    DocumentDraft,
    IntakeFile,
    IntakeItemResult,
    IntakeProgress,
    IntakeReport,
    IntakeStatus,
    ParsedFilename,
    ParseFailure,
)
from docuhub.parsing import FilenameParser
from docuhub.queries import DocumentQueryExecutor
from docuhub.repositories import (
    AccountRepository,
    DocumentRepository,
    KeyValueAuditStorage,
    PreferenceStore,
)
from docuhub.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    StorageError,
)
from docuhub.session import SessionStore
from docuhub.validation import AccountRowValidator


ProgressCallback = Callable[[IntakeProgress], Union[None, Awaitable[None]]]


class DocumentIntakeFlow:
    """
    Orchestrates the bulk document intake.

    Flow per file:
    1. Size check -> REJECTED if larger than max_upload_size_mb
    2. Parse filename -> PARSE_FAILED if it breaks the naming convention
    3. Duplicate check within the batch -> DUPLICATE_SKIPPED
    4. Store -> STORED, DUPLICATE_SKIPPED (already stored) or FAILED

    Steps 1-3 run up front for the whole batch. Storing runs concurrently,
    bounded by max_concurrency. Setting cancel_event stops the batch: files
    not yet stored are reported as CANCELLED.
    """

    def __init__(
        self,
        documents: DocumentRepository,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[IntakeSettings] = None,
    ):
        self._documents = documents
        self._audit_logger = audit_logger
        self._settings = settings or IntakeSettings()

    def preview(
        self,
        filenames: Iterable[str],
    ) -> list[Union[ParsedFilename, ParseFailure]]:
        """Parse results for a selection of files, before anything is uploaded."""
        return [FilenameParser.try_parse(name) for name in filenames]

    async def _prepare(
        self,
        index: int,
        item: IntakeFile,
        claimed: set[tuple[str, str]],
        correlation_id: UUID,
    ) -> Union[IntakeItemResult, DocumentDraft]:
        """Steps 1-3. Returns a final result, or a draft still to be stored."""
        limit = self._settings.max_upload_size_bytes
        if len(item.raw_content) > limit:
            reason = (
                f"File is {len(item.raw_content)} bytes, "
                f"the limit is {self._settings.max_upload_size_mb} MB"
            )
            if self._audit_logger:
                await self._audit_logger.log_document_rejected(
                    filename=item.filename,
                    reason=reason,
                    correlation_id=correlation_id,
                )
            return IntakeItemResult(
                index=index,
                filename=item.filename,
                status=IntakeStatus.REJECTED,
                reason=reason,
            )

        parsed = FilenameParser.try_parse(item.filename)
        if isinstance(parsed, ParseFailure):
            if self._audit_logger:
                await self._audit_logger.log_filename_rejected(
                    filename=item.filename,
                    reason=parsed.reason,
                    correlation_id=correlation_id,
                )
            return IntakeItemResult(
                index=index,
                filename=item.filename,
                status=IntakeStatus.PARSE_FAILED,
                reason=parsed.reason,
            )

        draft = DocumentDraft.from_upload(item.filename, item.raw_content, parsed)
        if draft.dedupe_key in claimed:
            # An earlier file in this batch has the same owner and filename
            return await self._skipped(index, draft, correlation_id)
        claimed.add(draft.dedupe_key)
        return draft

    async def _skipped(
        self,
        index: int,
        draft: DocumentDraft,
        correlation_id: UUID,
    ) -> IntakeItemResult:
        if self._audit_logger:
            await self._audit_logger.log_duplicate_skipped(
                owner_id=draft.owner_id,
                filename=draft.original_filename,
                correlation_id=correlation_id,
            )
        return IntakeItemResult(
            index=index,
            filename=draft.original_filename,
            status=IntakeStatus.DUPLICATE_SKIPPED,
            reason="A document with this owner and filename already exists",
        )

    async def _store(
        self,
        index: int,
        draft: DocumentDraft,
        correlation_id: UUID,
    ) -> IntakeItemResult:
        """Step 4."""
        try:
            document = await self._documents.ingest_one(draft)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="intake",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return IntakeItemResult(
                index=index,
                filename=draft.original_filename,
                status=IntakeStatus.FAILED,
                reason=str(e),
            )

        if document is None:
            return await self._skipped(index, draft, correlation_id)

        return IntakeItemResult(
            index=index,
            filename=draft.original_filename,
            status=IntakeStatus.STORED,
            document=document,
        )

    async def run(
        self,
        files: Iterable[IntakeFile],
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        correlation_id: Optional[UUID] = None,
    ) -> IntakeReport:
        """
        Ingest a batch of uploaded files.

        Args:
            files: The selected files, in the order the user picked them
            progress: Called (sync or async) after each file is finished
            cancel_event: Set it to stop the batch early
            correlation_id: Ties the audit events of this batch together

        Returns:
            IntakeReport with one result per file, in submission order.
            Storage errors are reported per file (FAILED), not raised.
        """
        correlation_id = correlation_id or create_correlation_id()
        items = list(files)
        total = len(items)
        results: list[Optional[IntakeItemResult]] = [None] * total
        semaphore = asyncio.Semaphore(self._settings.max_concurrency)
        counters = {"completed": 0, "stored": 0}

        async def finish(result: IntakeItemResult) -> None:
            results[result.index] = result
            counters["completed"] += 1
            if result.status == IntakeStatus.STORED:
                counters["stored"] += 1
            if progress is not None:
                outcome = progress(IntakeProgress(
                    total=total,
                    completed=counters["completed"],
                    stored=counters["stored"],
                    last=result,
                ))
                if inspect.isawaitable(outcome):
                    await outcome

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        async def handle(index: int, draft: DocumentDraft) -> None:
            async with semaphore:
                if cancelled():
                    result = IntakeItemResult(
                        index=index,
                        filename=draft.original_filename,
                        status=IntakeStatus.CANCELLED,
                    )
                else:
                    result = await self._store(index, draft, correlation_id)
                    if self._settings.item_delay_seconds:
                        await asyncio.sleep(self._settings.item_delay_seconds)
                await finish(result)

        claimed: set[tuple[str, str]] = set()
        pending: list[tuple[int, DocumentDraft]] = []
        for index, item in enumerate(items):
            if cancelled():
                await finish(IntakeItemResult(
                    index=index,
                    filename=item.filename,
                    status=IntakeStatus.CANCELLED,
                ))
                continue
            prepared = await self._prepare(index, item, claimed, correlation_id)
            if isinstance(prepared, IntakeItemResult):
                await finish(prepared)
            else:
                pending.append((index, prepared))

        # CancelledError from the caller propagates through gather and
        # cancels the remaining store tasks.
        await asyncio.gather(*(handle(index, draft) for index, draft in pending))

        report = IntakeReport(
            items=[result for result in results if result is not None],
            cancelled=cancelled(),
        )

        if self._audit_logger:
            await self._audit_logger.log_intake_finished(
                total=total,
                stored=report.stored_count,
                failed=report.failed_count,
                cancelled=report.cancelled,
                correlation_id=correlation_id,
            )

        return report


class AccountImportFlow:
    """
    Orchestrates the tabular account import.

    Flow:
    1. Validate -> AccountImportPreview (accepted accounts plus issues)
    2. Review -> the administrator looks at the preview
    3. Commit -> bulk upsert of the accepted accounts (last write wins)
    """

    def __init__(
        self,
        accounts: AccountRepository,
        validator: Optional[AccountRowValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._accounts = accounts
        self._validator = validator or AccountRowValidator()
        self._audit_logger = audit_logger

    async def validate_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
    ) -> AccountImportPreview:
        preview = self._validator.validate(rows)
        if self._audit_logger:
            await self._audit_logger.log_account_import_validated(
                rows=preview.rows_total,
                valid=preview.valid_count,
                errors=preview.error_count,
            )
        return preview

    async def commit(self, preview: AccountImportPreview) -> list[AccountView]:
        """
        Upsert the accounts accepted by validation.

        Rows with errors were never added to the preview, so they are
        not imported; the remaining rows are.
        """
        if not preview.accounts:
            return []
        return await self._accounts.bulk_upsert(preview.accounts)

    async def import_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
    ) -> tuple[AccountImportPreview, list[AccountView]]:
        """Validate and commit in one step."""
        preview = await self.validate_rows(rows)
        return preview, await self.commit(preview)


class PortalContext:
    """
    Everything the presentation layer needs, wired to one store.

    Call initialize() once before use and close() when done.
    """

    def __init__(
        self,
        settings: Settings,
        store: KeyValueStore,
        audit_logger: AuditLogger,
        accounts: AccountRepository,
        documents: DocumentRepository,
        session: SessionStore,
        preferences: PreferenceStore,
        queries: DocumentQueryExecutor,
        intake_flow: DocumentIntakeFlow,
        import_flow: AccountImportFlow,
    ):
        self.settings = settings
        self.store = store
        self.audit_logger = audit_logger
        self.accounts = accounts
        self.documents = documents
        self.session = session
        self.preferences = preferences
        self.queries = queries
        self.intake_flow = intake_flow
        self.import_flow = import_flow
        self._initialized = False
        self._closed = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> bool:
        """
        Seed the root administrator on first-ever startup.

        Calling it again is a no-op.

        Returns:
            True if the administrator was seeded by this call
        """
        if self._initialized:
            return False
        seeded = await self.accounts.bootstrap(self.settings.seed)
        self._initialized = True
        return seeded

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.store.close()

    async def __aenter__(self) -> "PortalContext":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def _build_store(settings: Settings) -> KeyValueStore:
    storage = settings.storage
    if storage.backend == "memory":
        return InMemoryKeyValueStore(quota_bytes=storage.quota_bytes)
    return JsonFileKeyValueStore(
        storage.file_path,
        quota_bytes=storage.quota_bytes,
        write_retry_attempts=storage.write_retry_attempts,
    )


def create_portal_context(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
) -> PortalContext:
    """
    Factory function to create all portal components.

    Args:
        settings: Explicit settings. Defaults to the cached get_settings().
        store: Explicit key-value store. Defaults to the back-end named
               in StorageSettings.

    Returns:
        A PortalContext that still needs initialize()
    """
    settings = settings or get_settings()
    storage = settings.storage
    app = settings.app

    logging.basicConfig(level=app.effective_log_level, format="%(message)s")

    store = store or _build_store(settings)

    if app.persist_audit_log:
        audit_logger = AuditLogger(KeyValueAuditStorage(
            store,
            key=storage.audit_key,
            max_entries=app.audit_log_max_entries,
        ))
    else:
        audit_logger = AuditLogger()  # Local-only logging

    accounts = AccountRepository(
        store,
        key=storage.accounts_key,
        root_login_id=settings.seed.root_login_id,
        audit_logger=audit_logger,
    )
    documents = DocumentRepository(
        store,
        key=storage.documents_key,
        audit_logger=audit_logger,
    )

    return PortalContext(
        settings=settings,
        store=store,
        audit_logger=audit_logger,
        accounts=accounts,
        documents=documents,
        session=SessionStore(
            store,
            accounts,
            key=storage.session_key,
            audit_logger=audit_logger,
        ),
        preferences=PreferenceStore(
            store,
            language_key=storage.language_key,
            theme_key=storage.theme_key,
            default_language=app.default_language,
            default_theme=app.default_theme,
        ),
        queries=DocumentQueryExecutor(
            documents,
            accounts,
            recent_window_hours=app.recent_window_hours,
        ),
        intake_flow=DocumentIntakeFlow(
            documents,
            audit_logger=audit_logger,
            settings=settings.intake,
        ),
        import_flow=AccountImportFlow(
            accounts,
            audit_logger=audit_logger,
        ),
    )
