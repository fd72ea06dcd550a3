"""
Account Models

An account is keyed by its login id, which never changes after creation.

DESIGN DECISION: Secrets are never stored in cleartext. The persisted
Account only carries a salted hash; the cleartext secret exists only on the
way in (AccountCreate / AccountUpdate) and is hashed by the repository.
Anything handed to the presentation layer or the session is an AccountView,
which has no secret field at all.
"""

from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints


class AccountRole(str, Enum):
    """Account roles."""
    ADMIN = "admin"
    MEMBER = "member"


class AccountView(BaseModel):
    """
    Redacted projection of an account.

    This is what the session holds and what the presentation layer sees.
    """
    model_config = ConfigDict(frozen=True)

    login_id: str
    department: str
    role: AccountRole

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMIN


class Account(BaseModel):
    """A persisted account record (internal use - carries the secret hash)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    login_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Unique login identifier (primary key)"
    )
    secret_hash: str = Field(
        ...,
        min_length=1,
        description="Salted hash of the account secret"
    )
    department: str = Field(
        default="",
        max_length=200,
        description="Department, free text"
    )
    role: AccountRole = Field(
        default=AccountRole.MEMBER,
        description="Account role"
    )

    def to_view(self) -> AccountView:
        """Drop the secret hash."""
        return AccountView(
            login_id=self.login_id,
            department=self.department,
            role=self.role,
        )


# Login ids and departments are trimmed; secrets are taken verbatim.
StrippedStr = Annotated[str, StringConstraints(strip_whitespace=True)]


class AccountCreate(BaseModel):
    """Input for creating (or bulk upserting) an account."""

    login_id: StrippedStr = Field(..., min_length=1, max_length=100)
    secret: str = Field(..., min_length=1, repr=False)
    department: StrippedStr = Field(default="", max_length=200)
    role: AccountRole = AccountRole.MEMBER


class AccountUpdate(BaseModel):
    """
    Partial update of an account.

    Only the fields that are set are merged. The login id is immutable,
    so it is not a field here and unknown fields are rejected.
    """
    model_config = ConfigDict(extra="forbid")

    department: Optional[StrippedStr] = Field(default=None, max_length=200)
    role: Optional[AccountRole] = None
    secret: Optional[str] = Field(default=None, min_length=1, repr=False)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


# =============================================================================
# IMPORT VALIDATION MODELS
# =============================================================================

class ImportIssue(BaseModel):
    """A single problem found in an imported account row."""

    row: int = Field(..., ge=1, description="1-based row number in the sheet")
    field: Optional[str] = Field(
        default=None,
        description="Column with the issue, if it is about one column"
    )
    message: str
    severity: str = Field(
        ...,
        pattern="^(error|warning)$",
        description="Errors drop the row, warnings keep it"
    )


class AccountImportPreview(BaseModel):
    """
    Result of checking an account sheet before it is saved.

    Only `accounts` is written by the import; rows with errors are left out.
    """

    rows_total: int = Field(ge=0)
    accounts: list[AccountCreate] = Field(default_factory=list, repr=False)
    issues: list[ImportIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def valid_count(self) -> int:
        return len(self.accounts)
