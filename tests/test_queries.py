"""
Tests for document queries, access control and dashboard stats.
"""

from datetime import datetime, timedelta, timezone

import pytest

from docuhub.models.account import AccountRole, AccountView
from docuhub.models.query import DocumentQuery
from docuhub.services.storage import AccessDeniedError

from tests.conftest import make_draft, member


ADMIN = AccountView(login_id="admin", department="IT", role=AccountRole.ADMIN)
EMPLOYEE = AccountView(login_id="1023", department="Finance", role=AccountRole.MEMBER)

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
async def library(documents):
    """Four documents for two owners, uploaded an hour apart."""
    names = [
        "1023_Finance_January.pdf",
        "1023_Finance_February.pdf",
        "1023_Human_Resources_January.pdf",
        "2048_Legal_March.pdf",
    ]
    stored = []
    for hours_ago, name in zip((72, 30, 2, 1), names):
        stored += await documents.ingest([
            make_draft(name, uploaded_at=NOW - timedelta(hours=hours_ago)),
        ])
    return stored


class TestSearch:
    """Tests for DocumentQueryExecutor.search."""

    @pytest.mark.asyncio
    async def test_no_filters(self, queries, library):
        """Test an empty query returns everything, newest first."""
        results = await queries.search(DocumentQuery())
        assert [doc.original_filename for doc in results] == [
            "2048_Legal_March.pdf",
            "1023_Human_Resources_January.pdf",
            "1023_Finance_February.pdf",
            "1023_Finance_January.pdf",
        ]

    @pytest.mark.asyncio
    async def test_filters_combine(self, queries, library):
        """Test owner, category and period are ANDed."""
        results = await queries.search(DocumentQuery(owner_id="1023", period="January"))
        assert {doc.category for doc in results} == {"Finance", "Human_Resources"}

        results = await queries.search(
            DocumentQuery(owner_id="1023", category="Finance", period="January")
        )
        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_filename_search_is_case_insensitive(self, queries, library):
        """Test the filename filter ignores case."""
        results = await queries.search(DocumentQuery(filename_contains="LEGAL"))
        assert [doc.owner_id for doc in results] == ["2048"]

    @pytest.mark.asyncio
    async def test_paging(self, queries, library):
        """Test limit and offset."""
        page = await queries.search(DocumentQuery(limit=2, offset=1))
        assert [doc.original_filename for doc in page] == [
            "1023_Human_Resources_January.pdf",
            "1023_Finance_February.pdf",
        ]

    @pytest.mark.asyncio
    async def test_no_match(self, queries, library):
        """Test an unmatched query returns an empty list."""
        assert await queries.search(DocumentQuery(owner_id="9999")) == []

    def test_invalid_limit(self):
        """Test limit must be positive."""
        with pytest.raises(ValueError):
            DocumentQuery(limit=0)


class TestFacets:
    """Tests for DocumentQueryExecutor.facets."""

    @pytest.mark.asyncio
    async def test_all_facets(self, queries, library):
        """Test distinct values in first-seen (newest first) order."""
        facets = await queries.facets()
        assert facets.categories == ["Legal", "Human_Resources", "Finance"]
        assert facets.periods == ["March", "January", "February"]

    @pytest.mark.asyncio
    async def test_owner_facets(self, queries, library):
        """Test facets for one owner."""
        facets = await queries.facets(owner_id="2048")
        assert facets.categories == ["Legal"]
        assert facets.periods == ["March"]


class TestStats:
    """Tests for DocumentQueryExecutor.stats."""

    @pytest.mark.asyncio
    async def test_stats(self, queries, library, seeded_accounts, documents):
        """Test the dashboard numbers."""
        await seeded_accounts.create(member("1023"))
        await seeded_accounts.create(member("2048"))
        await documents.increment_view(library[0].id)
        await documents.increment_view(library[0].id)
        await documents.increment_view(library[3].id)

        stats = await queries.stats(now=NOW)

        assert stats.total_documents == 4
        assert stats.member_count == 2
        assert stats.recent_uploads == 2
        assert stats.total_views == 3

    @pytest.mark.asyncio
    async def test_stats_on_empty_store(self, queries):
        """Test an empty portal."""
        stats = await queries.stats(now=NOW)
        assert stats.total_documents == 0
        assert stats.member_count == 0


class TestAccess:
    """Tests for visible_documents and open_document."""

    @pytest.mark.asyncio
    async def test_admin_sees_everything(self, queries, library):
        """Test administrators see all documents."""
        assert len(await queries.visible_documents(ADMIN)) == 4

    @pytest.mark.asyncio
    async def test_member_sees_own(self, queries, library):
        """Test members only see their own documents."""
        visible = await queries.visible_documents(EMPLOYEE)
        assert len(visible) == 3
        assert all(doc.owner_id == "1023" for doc in visible)

    @pytest.mark.asyncio
    async def test_open_counts_view(self, queries, library, documents):
        """Test opening a document increments its view count."""
        opened = await queries.open_document(EMPLOYEE, library[0].id)
        opened = await queries.open_document(EMPLOYEE, library[0].id)

        assert opened.view_count == 2
        assert (await documents.get(library[0].id)).view_count == 2

    @pytest.mark.asyncio
    async def test_member_cannot_open_others(self, queries, library, documents):
        """Test a member opening someone else's document is denied and not counted."""
        with pytest.raises(AccessDeniedError):
            await queries.open_document(EMPLOYEE, library[3].id)

        assert (await documents.get(library[3].id)).view_count == 0

    @pytest.mark.asyncio
    async def test_open_unknown(self, queries, library):
        """Test an unknown id returns None."""
        assert await queries.open_document(ADMIN, "missing") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
