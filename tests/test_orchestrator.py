"""
Tests for the intake flows and the portal context.

The flows run against the in-memory store; the repository is wrapped where
a test needs to observe or slow down the storing step.
"""

import asyncio

import pytest

from docuhub.config import IntakeSettings, Settings
from docuhub.models.audit import AuditEventType
from docuhub.models.document import (
    IntakeFile,
    IntakeStatus,
    ParsedFilename,
    ParseFailure,
)
from docuhub.orchestrator import (
    AccountImportFlow,
    DocumentIntakeFlow,
    PortalContext,
    create_portal_context,
)
from docuhub.repositories import DocumentRepository
from docuhub.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    StorageWriteError,
)
from docuhub.validation import read_csv_rows

from tests.conftest import PDF_BYTES


def upload(filename: str, content: bytes = PDF_BYTES) -> IntakeFile:
    return IntakeFile(filename=filename, raw_content=content)


class TrackingRepository(DocumentRepository):
    """Records how many stores run at once; can fail chosen filenames."""

    def __init__(self, *args, delay: float = 0.01, fail_on: tuple = (), **kwargs):
        super().__init__(*args, **kwargs)
        self.delay = delay
        self.fail_on = fail_on
        self.active = 0
        self.max_active = 0

    async def ingest_one(self, draft):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if draft.original_filename in self.fail_on:
                raise StorageWriteError("disk full")
            return await super().ingest_one(draft)
        finally:
            self.active -= 1


class TestDocumentIntakeFlow:
    """Tests for DocumentIntakeFlow.run."""

    @pytest.mark.asyncio
    async def test_every_file_gets_a_status(self, intake_flow, documents):
        """Test a mixed batch reports one status per file, in order."""
        await intake_flow.run([upload("2048_Legal_May.pdf")])

        report = await intake_flow.run([
            upload("1023_Finance_January.pdf"),
            upload("invalidname.pdf"),
            upload("1023_Finance_January.pdf"),
            upload("1023_Finance_February.pdf", content=b"x" * (1024 * 1024 + 1)),
            upload("2048_Legal_May.pdf"),
            upload("1023_Human_Resources_March.PDF"),
        ])

        assert [item.status for item in report.items] == [
            IntakeStatus.STORED,
            IntakeStatus.PARSE_FAILED,
            IntakeStatus.DUPLICATE_SKIPPED,
            IntakeStatus.REJECTED,
            IntakeStatus.DUPLICATE_SKIPPED,
            IntakeStatus.STORED,
        ]
        assert [item.index for item in report.items] == list(range(6))
        assert "Invalid filename format" in report.items[1].reason
        assert "limit is 1 MB" in report.items[3].reason
        assert report.stored_count == 2
        assert report.failed_count == 2
        assert not report.cancelled
        assert await documents.count() == 3

    @pytest.mark.asyncio
    async def test_stored_document_fields(self, intake_flow):
        """Test the stored document carries the parsed fields and content."""
        report = await intake_flow.run([upload("1023_Human_Resources_March.pdf")])

        [doc] = report.stored
        assert (doc.owner_id, doc.category, doc.period) == ("1023", "Human_Resources", "March")
        assert doc.original_filename == "1023_Human_Resources_March.pdf"
        assert doc.decoded_content() == PDF_BYTES
        assert doc.view_count == 0

    @pytest.mark.asyncio
    async def test_empty_batch(self, intake_flow):
        """Test an empty selection gives an empty report."""
        report = await intake_flow.run([])
        assert report.items == []
        assert report.stored_count == 0

    @pytest.mark.asyncio
    async def test_storage_failure_is_per_item(self, store, audit_logger, intake_settings):
        """Test a storage error marks only that file FAILED."""
        repo = TrackingRepository(store, delay=0, fail_on=("1023_Finance_February.pdf",))
        flow = DocumentIntakeFlow(repo, audit_logger=audit_logger, settings=intake_settings)

        report = await flow.run([
            upload("1023_Finance_January.pdf"),
            upload("1023_Finance_February.pdf"),
            upload("1023_Finance_March.pdf"),
        ])

        assert [item.status for item in report.items] == [
            IntakeStatus.STORED,
            IntakeStatus.FAILED,
            IntakeStatus.STORED,
        ]
        assert report.items[1].reason == "disk full"

    @pytest.mark.asyncio
    async def test_honours_max_concurrency(self, store):
        """Test no more than max_concurrency files are stored at once."""
        repo = TrackingRepository(store, delay=0.02)
        flow = DocumentIntakeFlow(repo, settings=IntakeSettings(max_concurrency=3))

        report = await flow.run([upload(f"{i}_Finance_January.pdf") for i in range(10)])

        assert report.stored_count == 10
        assert repo.max_active == 3

    @pytest.mark.asyncio
    async def test_sequential_with_concurrency_one(self, store):
        """Test max_concurrency=1 stores one file at a time."""
        repo = TrackingRepository(store, delay=0.01)
        flow = DocumentIntakeFlow(repo, settings=IntakeSettings(max_concurrency=1))

        await flow.run([upload(f"{i}_Finance_January.pdf") for i in range(4)])
        assert repo.max_active == 1

    @pytest.mark.asyncio
    async def test_progress_callback(self, intake_flow):
        """Test progress is reported once per file, ending at the total."""
        snapshots = []

        report = await intake_flow.run(
            [upload("1023_Finance_January.pdf"), upload("bad.pdf"), upload("1_A_B.pdf")],
            progress=snapshots.append,
        )

        assert len(snapshots) == 3
        assert [s.completed for s in snapshots] == [1, 2, 3]
        assert snapshots[-1].total == 3
        assert snapshots[-1].stored == report.stored_count == 2
        assert snapshots[-1].fraction == 1.0

    @pytest.mark.asyncio
    async def test_async_progress_callback(self, intake_flow):
        """Test an async callback is awaited."""
        seen = []

        async def on_progress(snapshot):
            await asyncio.sleep(0)
            seen.append(snapshot.last.filename)

        await intake_flow.run([upload("1023_Finance_January.pdf")], progress=on_progress)
        assert seen == ["1023_Finance_January.pdf"]

    @pytest.mark.asyncio
    async def test_cancel_midway(self, store):
        """Test files not yet stored become CANCELLED."""
        repo = TrackingRepository(store, delay=0.01)
        flow = DocumentIntakeFlow(repo, settings=IntakeSettings(max_concurrency=1))
        cancel = asyncio.Event()

        def stop_after_first(snapshot):
            if snapshot.last.status == IntakeStatus.STORED:
                cancel.set()

        report = await flow.run(
            [upload(f"{i}_Finance_January.pdf") for i in range(4)],
            progress=stop_after_first,
            cancel_event=cancel,
        )

        assert report.cancelled
        assert [item.status for item in report.items] == [
            IntakeStatus.STORED,
            IntakeStatus.CANCELLED,
            IntakeStatus.CANCELLED,
            IntakeStatus.CANCELLED,
        ]
        assert await repo.count() == 1

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, intake_flow, documents):
        """Test a batch cancelled up front stores nothing."""
        cancel = asyncio.Event()
        cancel.set()

        report = await intake_flow.run(
            [upload("1023_Finance_January.pdf"), upload("bad.pdf")],
            cancel_event=cancel,
        )

        assert all(item.status == IntakeStatus.CANCELLED for item in report.items)
        assert len(report.items) == 2
        assert await documents.count() == 0

    @pytest.mark.asyncio
    async def test_task_cancellation_propagates(self, store):
        """Test cancelling the running task raises CancelledError."""
        repo = TrackingRepository(store, delay=1.0)
        flow = DocumentIntakeFlow(repo, settings=IntakeSettings(max_concurrency=2))

        task = asyncio.create_task(flow.run([upload(f"{i}_A_B.pdf") for i in range(4)]))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert await repo.count() == 0

    @pytest.mark.asyncio
    async def test_intake_is_audited(self, intake_flow, audit_storage):
        """Test the batch events share one correlation id."""
        await intake_flow.run([upload("1023_Finance_January.pdf"), upload("bad.pdf")])

        events = await audit_storage.get_recent_events()
        finished = events[0]
        rejected = [e for e in events if e.event_type == AuditEventType.FILENAME_REJECTED][0]
        assert finished.event_type == AuditEventType.INTAKE_COMPLETED
        assert finished.details == {"total": 2, "stored": 1, "failed": 1}
        assert rejected.correlation_id == finished.correlation_id


class TestIntakePreview:
    """Tests for DocumentIntakeFlow.preview."""

    def test_preview(self, intake_flow):
        """Test parse results are returned without storing anything."""
        results = intake_flow.preview(["1023_Finance_January.pdf", "invalidname.pdf"])

        assert results[0] == ParsedFilename(owner_id="1023", category="Finance", period="January")
        assert isinstance(results[1], ParseFailure)


class TestAccountImportFlow:
    """Tests for AccountImportFlow."""

    @pytest.mark.asyncio
    async def test_import_rows(self, import_flow, seeded_accounts):
        """Test valid rows are upserted and invalid rows are reported."""
        preview, views = await import_flow.import_rows([
            {"ID": "1023", "Password": "pw", "Department": "Finance", "Role": "member"},
            {"ID": "2048", "Password": "", "Department": "HR", "Role": "member"},
            {"ID": "admin", "Password": "newroot", "Department": "IT", "Role": "admin"},
        ])

        assert preview.rows_total == 3
        assert preview.error_count == 1
        assert preview.issues[0].row == 2
        assert [v.login_id for v in views] == ["1023", "admin"]
        assert await seeded_accounts.find_by_credentials("admin", "newroot") is not None
        assert await seeded_accounts.get("2048") is None

    @pytest.mark.asyncio
    async def test_validate_does_not_write(self, import_flow, accounts, store):
        """Test validate_rows alone stores nothing."""
        preview = await import_flow.validate_rows([
            {"ID": "1023", "Password": "pw", "Department": "Finance"},
        ])

        assert preview.valid_count == 1
        assert await store.get("docuhub_users_db") is None

        await import_flow.commit(preview)
        assert await accounts.get("1023") is not None

    @pytest.mark.asyncio
    async def test_commit_nothing_valid(self, import_flow, store):
        """Test a sheet with only bad rows writes nothing."""
        preview, views = await import_flow.import_rows([{"ID": "", "Password": "", "Department": ""}])

        assert views == []
        assert preview.has_errors
        assert await store.get("docuhub_users_db") is None

    @pytest.mark.asyncio
    async def test_csv_import(self, import_flow, accounts):
        """Test rows read from CSV text."""
        rows = read_csv_rows(
            "ID,Password,Department,Role\n"
            "1023,pw,Finance,user\n"
            "\n"
            "2048,pw2,HR,admin\n"
        )

        _, views = await import_flow.import_rows(rows)

        assert [(v.login_id, v.role.value) for v in views] == [("1023", "member"), ("2048", "admin")]

    @pytest.mark.asyncio
    async def test_import_is_audited(self, import_flow, audit_storage):
        """Test validation writes an account_import_validated event."""
        await import_flow.validate_rows([{"ID": "1", "Password": "p", "Department": "D"}])

        [event] = await audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.ACCOUNT_IMPORT_VALIDATED
        assert event.details == {"rows": 1, "valid": 1, "errors": 0}


class TestPortalContext:
    """Tests for create_portal_context and the context lifecycle."""

    @pytest.fixture
    def memory_settings(self, monkeypatch) -> Settings:
        monkeypatch.setenv("DOCUHUB_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("DOCUHUB_SEED_ROOT_LOGIN_ID", "root")
        monkeypatch.setenv("DOCUHUB_SEED_ROOT_SECRET", "toor")
        return Settings()

    @pytest.mark.asyncio
    async def test_memory_backend(self, memory_settings):
        """Test the memory back-end is chosen from settings."""
        context = create_portal_context(memory_settings)

        assert isinstance(context.store, InMemoryKeyValueStore)
        assert context.accounts.root_login_id == "root"

    @pytest.mark.asyncio
    async def test_initialize_seeds_once(self, memory_settings):
        """Test initialize bootstraps the root account only on the first call."""
        context = create_portal_context(memory_settings)

        assert await context.initialize() is True
        assert await context.initialize() is False
        assert context.initialized
        assert await context.session.login("root", "toor") is not None

    @pytest.mark.asyncio
    async def test_explicit_store(self, memory_settings):
        """Test a caller-provided store is used as is."""
        store = InMemoryKeyValueStore()
        context = create_portal_context(memory_settings, store=store)

        async with context as ctx:
            assert ctx.store is store
            assert await store.get("docuhub_users_db") is not None

        assert store.snapshot() == {}

    @pytest.mark.asyncio
    async def test_end_to_end(self, memory_settings):
        """Test login, intake and viewing through one context."""
        async with create_portal_context(memory_settings) as ctx:
            admin = await ctx.session.login("root", "toor")
            await ctx.import_flow.import_rows([
                {"id": "1023", "secret": "pw", "department": "Finance"},
            ])
            report = await ctx.intake_flow.run([upload("1023_Finance_January.pdf")])

            employee = await ctx.accounts.find_by_credentials("1023", "pw")
            [doc] = await ctx.queries.visible_documents(employee)
            opened = await ctx.queries.open_document(admin, doc.id)

            assert report.stored_count == 1
            assert opened.view_count == 1
            assert await ctx.preferences.get_language() == "English"

    @pytest.mark.asyncio
    async def test_file_backend(self, monkeypatch, tmp_path):
        """Test the file back-end is built from settings and persists."""
        path = tmp_path / "portal.json"
        monkeypatch.setenv("DOCUHUB_STORAGE_BACKEND", "file")
        monkeypatch.setenv("DOCUHUB_STORAGE_FILE_PATH", str(path))

        async with create_portal_context(Settings()) as ctx:
            assert isinstance(ctx.store, JsonFileKeyValueStore)
            await ctx.preferences.set_theme("dark")

        async with create_portal_context(Settings()) as ctx:
            assert await ctx.preferences.get_theme() == "dark"
            assert await ctx.initialize() is False

    @pytest.mark.asyncio
    async def test_audit_persistence_can_be_disabled(self, memory_settings, monkeypatch):
        """Test persist_audit_log=False keeps events out of the store."""
        monkeypatch.setenv("PERSIST_AUDIT_LOG", "false")
        context = create_portal_context(Settings())

        await context.initialize()
        assert context.audit_logger.storage is None
        assert await context.store.get("docuhub_audit_log") is None

    def test_context_type(self, memory_settings):
        """Test the factory returns a PortalContext with both flows."""
        context = create_portal_context(memory_settings)
        assert isinstance(context, PortalContext)
        assert isinstance(context.intake_flow, DocumentIntakeFlow)
        assert isinstance(context.import_flow, AccountImportFlow)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
