"""
Query Models

Filters and aggregates for the document list and the admin dashboard.
"""

from typing import Optional

from pydantic import BaseModel, Field


class DocumentQuery(BaseModel):
    """
    Filters for the document list.

    All filters are optional and combined with AND.
    """

    owner_id: Optional[str] = Field(
        default=None,
        description="Exact owner id (case-sensitive)"
    )
    filename_contains: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of the original filename"
    )
    category: Optional[str] = None
    period: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)


class DocumentFacets(BaseModel):
    """Distinct filter values, for the filter dropdowns."""

    categories: list[str] = Field(default_factory=list)
    periods: list[str] = Field(default_factory=list)


class PortalStats(BaseModel):
    """Numbers shown on the admin dashboard."""

    total_documents: int = 0
    member_count: int = 0
    recent_uploads: int = 0
    total_views: int = 0
