"""
Document Repository

Owns the persisted document collection.

DUPLICATE POLICY: a document is identified by (owner_id, original_filename).
Ingesting a pair that already exists - in the store or earlier in the same
batch - SKIPS the new copy. The stored document is never overwritten, so its
id and view count survive a re-upload. (Accounts use the opposite policy,
see AccountRepository.bulk_upsert.)

Owner ids are not checked against the account repository: documents may be
uploaded before the employee's account exists.
"""

from typing import Callable, Iterable, Optional

from docuhub.audit.logger import AuditLogger
from docuhub.models.document import Document, DocumentDraft, new_document_id
from docuhub.repositories.base import JsonCollection
from docuhub.services.storage.interface import KeyValueStore, StorageError


class DocumentRepository:
    """CRUD and queries over the document collection."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = "docuhub_pdfs_db",
        audit_logger: Optional[AuditLogger] = None,
        id_factory: Callable[[], str] = new_document_id,
    ):
        self._documents = JsonCollection(store, key, Document)
        self._audit_logger = audit_logger
        self._id_factory = id_factory

    async def _run(self, operation: str, mutate):
        try:
            return await self._documents.transaction(mutate)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(operation, str(e))
            raise

    async def _load(self, operation: str) -> list[Document]:
        try:
            return await self._documents.load()
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(operation, str(e))
            raise

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def ingest(self, batch: Iterable[DocumentDraft]) -> list[Document]:
        """
        Persist a batch of drafts, skipping duplicates.

        Args:
            batch: Drafts built from parsed uploads

        Returns:
            The documents actually persisted, in batch order.
            Duplicates are left out; they are not an error.

        Raises:
            StorageError: If the collection cannot be read or written
        """
        drafts = list(batch)
        if not drafts:
            return []

        # Ids are drawn once so a retried transaction stores the same ids.
        ids = [self._id_factory() for _ in drafts]

        def mutate(documents: list[Document]):
            seen = {doc.dedupe_key for doc in documents}
            persisted = []
            for draft, document_id in zip(drafts, ids):
                if draft.dedupe_key in seen:
                    continue  # skip policy, see module docstring
                seen.add(draft.dedupe_key)
                persisted.append(Document.from_draft(draft, document_id))
            if not persisted:
                return None, []
            return documents + persisted, persisted

        persisted = await self._run("ingest", mutate)

        if self._audit_logger:
            await self._audit_logger.log_documents_ingested(
                document_ids=[doc.id for doc in persisted],
                skipped=len(drafts) - len(persisted),
            )
        return persisted

    async def ingest_one(self, draft: DocumentDraft) -> Optional[Document]:
        """
        Persist a single draft.

        Returns:
            The stored document, or None if it was a duplicate and skipped
        """
        document_id = self._id_factory()

        def mutate(documents: list[Document]):
            if any(doc.dedupe_key == draft.dedupe_key for doc in documents):
                return None, None
            document = Document.from_draft(draft, document_id)
            return documents + [document], document

        document = await self._run("ingest", mutate)
        if document is not None and self._audit_logger:
            await self._audit_logger.log_documents_ingested(
                document_ids=[document.id],
                skipped=0,
            )
        return document

    async def delete(self, document_id: str, actor_id: Optional[str] = None) -> bool:
        """
        Remove a document.

        Returns:
            True if it was removed, False if there was nothing to remove
        """
        def mutate(documents: list[Document]):
            kept = [doc for doc in documents if doc.id != document_id]
            if len(kept) == len(documents):
                return None, False
            return kept, True

        removed = await self._run("delete_document", mutate)
        if removed and self._audit_logger:
            await self._audit_logger.log_document_deleted(document_id, actor_id=actor_id)
        return removed

    async def increment_view(
        self,
        document_id: str,
        actor_id: Optional[str] = None,
    ) -> Optional[Document]:
        """
        Add one to a document's view count.

        Returns:
            The updated document, or None if the id is unknown (no-op)
        """
        def mutate(documents: list[Document]):
            for index, doc in enumerate(documents):
                if doc.id == document_id:
                    updated = doc.model_copy(update={"view_count": doc.view_count + 1})
                    return documents[:index] + [updated] + documents[index + 1:], updated
            return None, None

        updated = await self._run("increment_view", mutate)
        if updated is not None and self._audit_logger:
            await self._audit_logger.log_document_viewed(
                document_id=updated.id,
                view_count=updated.view_count,
                actor_id=actor_id,
            )
        return updated

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_all(self) -> list[Document]:
        """
        All documents, newest upload first.

        Documents with the same upload time come back in reverse ingestion
        order, so the last one stored is always first.
        """
        documents = await self._load("list_documents")
        ordered = list(reversed(documents))
        # sort() is stable, so ties keep the reversed ingestion order
        ordered.sort(key=lambda doc: doc.uploaded_at, reverse=True)
        return ordered

    async def list_for_owner(self, owner_id: str) -> list[Document]:
        """Documents whose owner id matches exactly (case-sensitive)."""
        return [doc for doc in await self.list_all() if doc.owner_id == owner_id]

    async def get(self, document_id: str) -> Optional[Document]:
        for doc in await self._load("get_document"):
            if doc.id == document_id:
                return doc
        return None

    async def count(self) -> int:
        return len(await self._load("count_documents"))
