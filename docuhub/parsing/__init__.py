"""Filename convention parsing package."""

from docuhub.parsing.filename_parser import (
    FilenameParseError,
    FilenameParser,
    parse_filename,
)

__all__ = ["FilenameParseError", "FilenameParser", "parse_filename"]
