"""
Filename Parser Module

Parses uploaded document filenames into owner id, category and period.

Expected format: <owner>_<category>_<period>.pdf
    1023_Finance_January.pdf          -> 1023 / Finance / January
    1023_Human_Resources_March.pdf    -> 1023 / Human_Resources / March

DESIGN DECISION: First segment is the owner, last segment is the period,
everything in between is the category. Categories may therefore contain
underscores; owner ids and periods may not. The uploading organization
controls the naming, so that ambiguity is accepted.
"""

from typing import Union

from docuhub.models.document import ParsedFilename, ParseFailure


class FilenameParseError(ValueError):
    """Raised by FilenameParser.parse when a filename breaks the convention."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Invalid filename format: {filename!r}. {reason}")


class FilenameParser:
    """
    Parses document filenames.

    Expected format: ID_Category_Month.pdf (extension is case-insensitive)
    """

    EXTENSION = ".pdf"
    SEPARATOR = "_"
    MIN_SEGMENTS = 3

    @classmethod
    def parse(cls, filename: str) -> ParsedFilename:
        """
        Parse owner id, category and period from a filename.

        Args:
            filename: The filename to parse (e.g., "1023_Finance_January.pdf")

        Returns:
            ParsedFilename with the three fields exactly as segmented

        Raises:
            FilenameParseError: If filename doesn't match expected format
        """
        if not isinstance(filename, str) or not filename.strip():
            raise FilenameParseError(str(filename), "Filename is empty")

        stem = filename
        if stem.lower().endswith(cls.EXTENSION):
            stem = stem[: -len(cls.EXTENSION)]

        segments = stem.split(cls.SEPARATOR)
        if len(segments) < cls.MIN_SEGMENTS:
            raise FilenameParseError(
                filename,
                "Expected format: ID_Category_Month.pdf",
            )

        owner_id = segments[0]
        period = segments[-1]
        category = cls.SEPARATOR.join(segments[1:-1])

        for name, value in (("owner id", owner_id), ("category", category), ("period", period)):
            if not value.strip():
                raise FilenameParseError(filename, f"The {name} part is empty")

        return ParsedFilename(owner_id=owner_id, category=category, period=period)

    @classmethod
    def try_parse(cls, filename: str) -> Union[ParsedFilename, ParseFailure]:
        """
        Parse a filename, returning a ParseFailure instead of raising.

        Args:
            filename: The filename to parse

        Returns:
            ParsedFilename on success, ParseFailure with a reason otherwise
        """
        try:
            return cls.parse(filename)
        except FilenameParseError as e:
            return ParseFailure(filename=e.filename, reason=str(e))


def parse_filename(filename: str) -> Union[ParsedFilename, ParseFailure]:
    """Shortcut for FilenameParser.try_parse."""
    return FilenameParser.try_parse(filename)
