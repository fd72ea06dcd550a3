"""Account import validation package."""

from docuhub.validation.validator import (
    AccountRowValidator,
    build_import_template,
    read_csv_rows,
    read_workbook_rows,
)

__all__ = [
    "AccountRowValidator",
    "build_import_template",
    "read_csv_rows",
    "read_workbook_rows",
]
