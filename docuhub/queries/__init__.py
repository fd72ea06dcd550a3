"""Query execution package."""

from docuhub.queries.executor import DocumentQueryExecutor

__all__ = ["DocumentQueryExecutor"]
