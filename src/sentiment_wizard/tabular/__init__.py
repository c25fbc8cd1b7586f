"""
Tabular file ingestion (CSV / XLSX).

Components:
- TabularReader: header/preview reading and column extraction
- FileSelection: imported file, chosen column, preference restore
- csv_parser: quote-toggling comma splitter
- exceptions: file-parsing errors
"""

from sentiment_wizard.tabular.exceptions import (
    EmptyFile,
    TabularReadError,
    UnreadableArchive,
    UnreadableEncoding,
    UnsupportedFormat,
)
from sentiment_wizard.tabular.reader import TabularReader, detect_format
from sentiment_wizard.tabular.selection import FileSelection, choose_initial_column

__all__ = [
    "TabularReader",
    "detect_format",
    "FileSelection",
    "choose_initial_column",
    "TabularReadError",
    "UnsupportedFormat",
    "UnreadableEncoding",
    "UnreadableArchive",
    "EmptyFile",
]
