"""
Document Models

A document is an uploaded PDF assigned to an owner id. The owner, category
and period are not entered by hand - they come from the filename
(see docuhub.parsing).

DESIGN DECISION: Content is kept as base64 text. The store is a
text key-value medium, so the raw bytes are encoded once at intake and
decoded on download; the repository never looks inside.
"""

import base64
import binascii
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_document_id() -> str:
    return uuid4().hex


def _assume_utc(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC so every upload time compares.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


# =============================================================================
# FILENAME PARSING RESULTS
# =============================================================================

class ParsedFilename(BaseModel):
    """The three fields encoded in a document filename."""
    model_config = ConfigDict(frozen=True)

    owner_id: str
    category: str
    period: str


class ParseFailure(BaseModel):
    """A filename that does not follow the owner_category_period.pdf convention."""
    model_config = ConfigDict(frozen=True)

    filename: str
    reason: str


# =============================================================================
# DOCUMENT RECORDS
# =============================================================================

class DocumentDraft(BaseModel):
    """
    An ingest candidate.

    Has everything a Document has except the fields the repository assigns
    (id, view_count).
    """

    owner_id: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    period: str = Field(..., min_length=1)
    original_filename: str = Field(..., min_length=1)
    content: str = Field(
        default="",
        repr=False,
        description="Base64 encoded file bytes"
    )
    uploaded_at: UtcDatetime = Field(default_factory=utc_now)

    @classmethod
    def from_upload(
        cls,
        filename: str,
        raw_content: bytes,
        parsed: ParsedFilename,
        uploaded_at: Optional[datetime] = None,
    ) -> "DocumentDraft":
        """Build a draft from an uploaded file and its parsed name."""
        return cls(
            owner_id=parsed.owner_id,
            category=parsed.category,
            period=parsed.period,
            original_filename=filename,
            content=base64.b64encode(raw_content).decode("ascii"),
            uploaded_at=uploaded_at or utc_now(),
        )

    @property
    def dedupe_key(self) -> tuple[str, str]:
        return (self.owner_id, self.original_filename)


class Document(BaseModel):
    """A persisted document."""

    id: str = Field(default_factory=new_document_id)
    owner_id: str
    category: str
    period: str
    original_filename: str
    content: str = Field(default="", repr=False)
    uploaded_at: UtcDatetime = Field(default_factory=utc_now)
    # Older payloads were written without a counter.
    view_count: int = Field(default=0, ge=0)

    @classmethod
    def from_draft(cls, draft: DocumentDraft, document_id: str) -> "Document":
        return cls(
            id=document_id,
            view_count=0,
            **draft.model_dump(),
        )

    @property
    def dedupe_key(self) -> tuple[str, str]:
        return (self.owner_id, self.original_filename)

    @property
    def size_bytes(self) -> int:
        """Size of the decoded content, without decoding it."""
        if not self.content:
            return 0
        padding = self.content.count("=", -2)
        return len(self.content) * 3 // 4 - padding

    def decoded_content(self) -> bytes:
        """
        Decode the stored content back to the original file bytes.

        Raises:
            ValueError: If the stored content is not valid base64
        """
        try:
            return base64.b64decode(self.content, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Document {self.id} has corrupted content: {e}") from e


# =============================================================================
# INTAKE RESULTS
# =============================================================================

class IntakeStatus(str, Enum):
    """Outcome of one file in a bulk intake."""
    STORED = "stored"
    PARSE_FAILED = "parse_failed"
    DUPLICATE_SKIPPED = "duplicate_skipped"
    REJECTED = "rejected"    # e.g. file too large
    FAILED = "failed"        # storage error
    CANCELLED = "cancelled"


class IntakeFile(BaseModel):
    """A (filename, raw bytes) pair handed over by the file picker."""

    filename: str
    raw_content: bytes = Field(repr=False)


class IntakeItemResult(BaseModel):
    """Result for one file of a bulk intake."""

    index: int = Field(ge=0, description="Position in the submitted batch")
    filename: str
    status: IntakeStatus
    document: Optional[Document] = Field(default=None, repr=False)
    reason: Optional[str] = None


class IntakeProgress(BaseModel):
    """Progress snapshot passed to the progress callback."""

    total: int
    completed: int
    stored: int
    last: IntakeItemResult

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 1.0


class IntakeReport(BaseModel):
    """Per-item results of one bulk intake, in submission order."""

    items: list[IntakeItemResult] = Field(default_factory=list)
    cancelled: bool = False

    def with_status(self, status: IntakeStatus) -> list[IntakeItemResult]:
        return [item for item in self.items if item.status == status]

    @property
    def stored(self) -> list[Document]:
        return [
            item.document
            for item in self.items
            if item.status == IntakeStatus.STORED and item.document is not None
        ]

    @property
    def stored_count(self) -> int:
        return len(self.with_status(IntakeStatus.STORED))

    @property
    def failed_count(self) -> int:
        return sum(
            1 for item in self.items
            if item.status in (IntakeStatus.PARSE_FAILED, IntakeStatus.REJECTED, IntakeStatus.FAILED)
        )
