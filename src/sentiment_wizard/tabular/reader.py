"""
Tabular file ingestion.

Reads the header and a bounded preview of a CSV or XLSX file, and extracts
one column's non-empty values by re-reading the source. Nothing beyond the
preview is kept in memory between calls.
"""

import asyncio
import zipfile
from contextlib import closing
from datetime import date, datetime, time
from pathlib import Path
from typing import Iterator, Sequence

import structlog
from openpyxl import load_workbook
from openpyxl.cell.read_only import EmptyCell
from openpyxl.utils.exceptions import InvalidFileException

from sentiment_wizard.models.dataset_models import ColumnarDataset
from sentiment_wizard.tabular.csv_parser import iter_csv_lines, parse_csv_line
from sentiment_wizard.tabular.exceptions import (
    EmptyFile,
    TabularReadError,
    UnreadableArchive,
    UnreadableEncoding,
    UnsupportedFormat,
)


logger = structlog.get_logger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "xlsx")


def detect_format(path: Path) -> str:
    """Return 'csv' or 'xlsx' from the file extension (case-insensitive)."""
    extension = Path(path).suffix.lower().lstrip(".")
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormat(
            "Unsupported file format. Please use CSV or XLSX files.",
            details={"extension": extension, "path": str(path)},
        )
    return extension


def _cell_text(value: object) -> str:
    """Stringify a worksheet value the way it reads in a sheet."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value).strip()


class TabularReader:
    """
    Header/preview reading and column extraction for CSV and XLSX files.
    
    CSV: UTF-8 text, parsed with parse_csv_line (see csv_parser for the
    quoting limitation).
    
    XLSX: first worksheet only. Cells a row actually contains are ordered by
    column and then addressed positionally, so a gap in a row shifts the
    following cells left. Rows without any cell are ignored. Cell text comes
    from the shared-string table or the inline value; openpyxl resolves both
    and a workbook without a shared-string table is fine.
    """
    
    def __init__(self, preview_rows: int = 5):
        self.preview_rows = preview_rows
    
    # === Header & preview ===
    
    def read_header_and_preview(self, path: Path) -> ColumnarDataset:
        """
        Read the header row plus up to preview_rows rows (header included).
        
        Raises:
            UnsupportedFormat: Extension is not csv/xlsx
            UnreadableEncoding: CSV bytes are not valid UTF-8
            UnreadableArchive: XLSX cannot be opened
            EmptyFile: No rows at all
            TabularReadError: File cannot be read from disk
        """
        path = Path(path)
        file_format = detect_format(path)
        
        if file_format == "csv":
            rows = self._read_csv_preview(path)
        else:
            rows = self._read_xlsx_preview(path)
        
        if not rows:
            raise EmptyFile("File is empty.", details={"path": str(path)})
        
        columns = tuple(rows[0])
        width = len(columns)
        preview = tuple(tuple(row[:width]) for row in rows)
        
        logger.info(
            "Read file header",
            path=str(path),
            format=file_format,
            columns=len(columns),
            preview_rows=len(preview),
        )
        return ColumnarDataset(columns=columns, preview_rows=preview, source_path=path)
    
    def _read_csv_preview(self, path: Path) -> list[list[str]]:
        rows: list[list[str]] = []
        try:
            # Drain the whole file so an undecodable byte anywhere is
            # reported now rather than silently during extraction.
            for line in iter_csv_lines(path):
                if len(rows) < self.preview_rows:
                    rows.append([cell.strip() for cell in parse_csv_line(line)])
        except UnicodeDecodeError as e:
            raise UnreadableEncoding(
                "Could not read file as UTF-8 text.",
                details={"path": str(path), "position": e.start},
            )
        except OSError as e:
            raise TabularReadError(
                f"Could not read file: {e}",
                details={"path": str(path)},
            )
        return rows
    
    def _read_xlsx_preview(self, path: Path) -> list[list[str]]:
        rows: list[list[str]] = []
        with closing(self._iter_xlsx_rows(path)) as sheet_rows:
            for row in sheet_rows:
                rows.append(row)
                if len(rows) >= self.preview_rows:
                    break
        return rows
    
    def _iter_xlsx_rows(self, path: Path) -> Iterator[list[str]]:
        """Yield each non-empty row of the first worksheet as positional text cells."""
        try:
            workbook = load_workbook(path, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
            raise UnreadableArchive(
                "Could not open XLSX file.",
                details={"path": str(path), "error": str(e)},
            )
        
        try:
            if not workbook.worksheets:
                raise UnreadableArchive(
                    "XLSX file has no worksheet.",
                    details={"path": str(path)},
                )
            worksheet = workbook.worksheets[0]
            try:
                for row in worksheet.iter_rows():
                    cells = [cell for cell in row if not isinstance(cell, EmptyCell)]
                    if not cells:
                        continue
                    cells.sort(key=lambda cell: cell.column)
                    yield [_cell_text(cell.value) for cell in cells]
            except TabularReadError:
                raise
            except Exception as e:
                raise UnreadableArchive(
                    "Could not read XLSX worksheet.",
                    details={"path": str(path), "error": str(e)},
                )
        finally:
            workbook.close()
    
    # === Column extraction ===
    
    def extract_column(self, path: Path, column_index: int) -> list[str]:
        """
        Return every non-empty, trimmed cell at column_index below the header.
        
        Rows too short for the index are skipped. Never raises: unreadable
        files and out-of-range indexes give an empty list.
        """
        path = Path(path)
        if column_index < 0:
            return []
        
        try:
            file_format = detect_format(path)
            if file_format == "csv":
                rows: Iterator[Sequence[str]] = (
                    parse_csv_line(line) for line in iter_csv_lines(path)
                )
            else:
                rows = self._iter_xlsx_rows(path)
            values = self._collect_column(rows, column_index)
        except (TabularReadError, UnicodeDecodeError, OSError) as e:
            logger.warning(
                "Column extraction failed, returning no values",
                path=str(path),
                column_index=column_index,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []
        
        logger.info(
            "Extracted column",
            path=str(path),
            column_index=column_index,
            values=len(values),
        )
        return values
    
    @staticmethod
    def _collect_column(rows: Iterator[Sequence[str]], column_index: int) -> list[str]:
        values: list[str] = []
        header_seen = False
        for row in rows:
            if not header_seen:
                header_seen = True
                continue
            if column_index < len(row):
                value = row[column_index].strip()
                if value:
                    values.append(value)
        return values
    
    # === Event-loop friendly wrappers ===
    
    async def aread_header_and_preview(self, path: Path) -> ColumnarDataset:
        """read_header_and_preview in a worker thread."""
        return await asyncio.to_thread(self.read_header_and_preview, path)
    
    async def aextract_column(self, path: Path, column_index: int) -> list[str]:
        """extract_column in a worker thread."""
        return await asyncio.to_thread(self.extract_column, path, column_index)
