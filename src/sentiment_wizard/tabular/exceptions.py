"""
Exceptions raised while reading tabular files.

Only header/preview reading signals these to its caller; column extraction
never fails.
"""


class TabularReadError(Exception):
    """Base exception for all tabular file errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class UnsupportedFormat(TabularReadError):
    """File extension is neither csv nor xlsx."""
    pass


class UnreadableEncoding(TabularReadError):
    """Delimited text could not be decoded as UTF-8."""
    pass


class UnreadableArchive(TabularReadError):
    """Spreadsheet archive could not be opened or has no worksheet."""
    pass


class EmptyFile(TabularReadError):
    """File contains zero rows."""
    pass
