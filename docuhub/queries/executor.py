"""
Query Execution Engine

DESIGN DECISION: Query execution is DETERMINISTIC.
Every answer is computed from the documents and accounts actually stored.
Results come back newest upload first, the same order as
DocumentRepository.list_all().

Access control lives here too: administrators see every document,
members only their own.
"""

from datetime import datetime, timedelta
from typing import Optional

from docuhub.models.account import AccountRole, AccountView
from docuhub.models.document import Document, utc_now
from docuhub.models.query import DocumentFacets, DocumentQuery, PortalStats
from docuhub.repositories.accounts import AccountRepository
from docuhub.repositories.documents import DocumentRepository
from docuhub.services.storage.interface import AccessDeniedError


class DocumentQueryExecutor:
    """
    Executes document queries for the portal views.

    GUARANTEES:
    - Only returns real data from storage
    - A member never receives another owner's document
    """

    def __init__(
        self,
        documents: DocumentRepository,
        accounts: AccountRepository,
        recent_window_hours: int = 24,
    ):
        self._documents = documents
        self._accounts = accounts
        self._recent_window = timedelta(hours=recent_window_hours)

    @staticmethod
    def _matches(document: Document, query: DocumentQuery) -> bool:
        if query.owner_id is not None and document.owner_id != query.owner_id:
            return False
        if query.category is not None and document.category != query.category:
            return False
        if query.period is not None and document.period != query.period:
            return False
        if query.filename_contains:
            needle = query.filename_contains.lower()
            if needle not in document.original_filename.lower():
                return False
        return True

    async def search(self, query: DocumentQuery) -> list[Document]:
        """Documents matching every filter, newest first, paged."""
        matches = [
            doc for doc in await self._documents.list_all()
            if self._matches(doc, query)
        ]
        end = None if query.limit is None else query.offset + query.limit
        return matches[query.offset:end]

    async def facets(self, owner_id: Optional[str] = None) -> DocumentFacets:
        """Distinct categories and periods, in first-seen order."""
        documents = await self._documents.list_all()
        if owner_id is not None:
            documents = [doc for doc in documents if doc.owner_id == owner_id]
        return DocumentFacets(
            categories=list(dict.fromkeys(doc.category for doc in documents)),
            periods=list(dict.fromkeys(doc.period for doc in documents)),
        )

    async def stats(self, now: Optional[datetime] = None) -> PortalStats:
        """Dashboard numbers."""
        now = now or utc_now()
        cutoff = now - self._recent_window
        documents = await self._documents.list_all()
        accounts = await self._accounts.list_all()

        return PortalStats(
            total_documents=len(documents),
            member_count=sum(1 for acc in accounts if acc.role == AccountRole.MEMBER),
            recent_uploads=sum(1 for doc in documents if doc.uploaded_at >= cutoff),
            total_views=sum(doc.view_count for doc in documents),
        )

    async def visible_documents(self, viewer: AccountView) -> list[Document]:
        if viewer.is_admin:
            return await self._documents.list_all()
        return await self._documents.list_for_owner(viewer.login_id)

    async def open_document(self, viewer: AccountView, document_id: str) -> Optional[Document]:
        """
        Open a document for viewing and count the view.

        Returns:
            The document with its updated view count, or None if the id
            is unknown

        Raises:
            AccessDeniedError: If a member opens someone else's document
        """
        document = await self._documents.get(document_id)
        if document is None:
            return None
        if not viewer.is_admin and document.owner_id != viewer.login_id:
            raise AccessDeniedError(
                f"{viewer.login_id} may not open document {document_id}"
            )
        return await self._documents.increment_view(document_id, actor_id=viewer.login_id)
