"""
Account Import Validation

Administrators import accounts from a sheet with the columns
ID | Password | Department | Role.

Validation happens in two stages:

STAGE 1 - ROW VALIDATION:
- Required columns present and non-empty (id, secret, department)
- Role is admin or member (blank means member, legacy "user" means member)

STAGE 2 - SHEET VALIDATION:
- The same login id on several rows (warning - the last row wins, matching
  the last-write-wins bulk upsert)

IMPORTANT: Validation NEVER silently fixes issues. A row with an error is
dropped from the import and reported with its row number.
"""

import csv
import io
import zipfile
from typing import Any, Iterable, Mapping, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import ValidationError

from docuhub.models.account import (
    AccountCreate,
    AccountImportPreview,
    AccountRole,
    ImportIssue,
)


# Accepted spellings for each column, compared case-insensitively
COLUMN_ALIASES = {
    "login_id": ("id", "login_id", "loginid", "login"),
    "secret": ("password", "secret"),
    "department": ("department", "dept"),
    "role": ("role",),
}

ROLE_ALIASES = {
    "admin": AccountRole.ADMIN,
    "member": AccountRole.MEMBER,
    "user": AccountRole.MEMBER,
}

TEMPLATE_HEADER = ("ID", "Password", "Department", "Role")

TEMPLATE_ROWS = (
    ("1001", "pass123", "Finance", "member"),
    ("1002", "pass456", "Marketing", "member"),
    ("admin2", "adminpass", "IT", "admin"),
)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    # Spreadsheet readers hand over numeric ids as int/float
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


class AccountRowValidator:
    """Validates tabular account rows before they are bulk upserted."""

    def _pick(self, row: Mapping[str, Any], field: str) -> str:
        normalized = {str(k).strip().lower(): v for k, v in row.items() if k is not None}
        for alias in COLUMN_ALIASES[field]:
            if alias in normalized:
                return _cell_text(normalized[alias])
        return ""

    def validate_row(
        self,
        row: Mapping[str, Any],
        row_number: int,
    ) -> tuple[Optional[AccountCreate], list[ImportIssue]]:
        """
        Stage 1: check one row.

        Returns: (account_or_None, list_of_issues)
        """
        login_id = self._pick(row, "login_id")
        secret = self._pick(row, "secret")
        department = self._pick(row, "department")
        role_text = self._pick(row, "role").lower() or "member"

        missing = [
            name for name, value in (
                ("ID", login_id),
                ("Password", secret),
                ("Department", department),
            )
            if not value
        ]
        if missing:
            return None, [ImportIssue(
                row=row_number,
                message=f"Row {row_number}: Missing required fields ({', '.join(missing)})",
                severity="error",
            )]

        role = ROLE_ALIASES.get(role_text)
        if role is None:
            return None, [ImportIssue(
                row=row_number,
                field="role",
                message=f'Row {row_number}: Invalid role "{role_text}" (must be "member" or "admin")',
                severity="error",
            )]

        try:
            account = AccountCreate(
                login_id=login_id,
                secret=secret,
                department=department,
                role=role,
            )
        except ValidationError as e:
            return None, [ImportIssue(
                row=row_number,
                message=f"Row {row_number}: {e.errors()[0]['msg']}",
                severity="error",
            )]

        return account, []

    def _check_repeats(
        self,
        accepted: list[tuple[int, AccountCreate]],
    ) -> list[ImportIssue]:
        """Stage 2: flag login ids that appear on more than one row."""
        issues = []
        first_row: dict[str, int] = {}
        for row_number, account in accepted:
            if account.login_id in first_row:
                issues.append(ImportIssue(
                    row=row_number,
                    field="login_id",
                    message=(
                        f"Row {row_number}: ID {account.login_id} already appears on "
                        f"row {first_row[account.login_id]}; this row wins"
                    ),
                    severity="warning",
                ))
            else:
                first_row[account.login_id] = row_number
        return issues

    def validate(self, rows: Iterable[Mapping[str, Any]]) -> AccountImportPreview:
        """
        Run both stages over a sheet.

        Rows are numbered from 1 (the first data row, header not counted).
        """
        accepted: list[tuple[int, AccountCreate]] = []
        issues: list[ImportIssue] = []
        total = 0

        for row_number, row in enumerate(rows, start=1):
            total += 1
            account, row_issues = self.validate_row(row, row_number)
            issues.extend(row_issues)
            if account is not None:
                accepted.append((row_number, account))

        issues.extend(self._check_repeats(accepted))
        issues.sort(key=lambda issue: issue.row)

        return AccountImportPreview(
            rows_total=total,
            accounts=[account for _, account in accepted],
            issues=issues,
        )


def read_csv_rows(text: str) -> list[dict[str, str]]:
    """
    Read an account sheet exported as CSV.

    The first line is the header. Blank lines are skipped.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    return [
        row for row in reader
        if any(value and value.strip() for value in row.values() if isinstance(value, str))
    ]


def read_workbook_rows(data: bytes) -> list[dict[str, Any]]:
    """
    Read an account sheet from .xlsx workbook bytes.

    Only the first worksheet is read. Its first row is the header; columns
    with an empty header cell are ignored. Cells keep their spreadsheet
    types (numbers stay numbers), the validator turns them into text.

    Raises:
        ValueError: If the bytes are not an .xlsx workbook
    """
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError) as e:
        raise ValueError(f"Not a readable .xlsx workbook: {e}") from e

    try:
        rows = workbook.worksheets[0].iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        keys = ["" if cell is None else str(cell).strip() for cell in header]

        result = []
        for values in rows:
            if all(value is None or str(value).strip() == "" for value in values):
                continue
            result.append({key: value for key, value in zip(keys, values) if key})
        return result
    finally:
        workbook.close()


def build_import_template() -> bytes:
    """Sample workbook administrators fill in for a bulk import."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Template"
    sheet.append(list(TEMPLATE_HEADER))
    for row in TEMPLATE_ROWS:
        sheet.append(list(row))

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
