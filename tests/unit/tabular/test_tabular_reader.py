"""Unit tests for TabularReader (CSV and XLSX)."""

from datetime import date

import pytest

from sentiment_wizard.tabular.exceptions import (
    EmptyFile,
    TabularReadError,
    UnreadableArchive,
    UnreadableEncoding,
    UnsupportedFormat,
)
from sentiment_wizard.tabular.reader import TabularReader, detect_format


@pytest.fixture
def reader():
    return TabularReader(preview_rows=5)


class TestDetectFormat:
    
    def test_case_insensitive(self, tmp_path):
        assert detect_format(tmp_path / "a.CSV") == "csv"
        assert detect_format(tmp_path / "a.Xlsx") == "xlsx"
    
    def test_unsupported(self, tmp_path):
        with pytest.raises(UnsupportedFormat) as exc_info:
            detect_format(tmp_path / "a.txt")
        assert exc_info.value.message == "Unsupported file format. Please use CSV or XLSX files."


class TestCsvPreview:
    
    def test_header_and_preview(self, reader, write_csv):
        path = write_csv('Id,Comment\n1,"hello, world"\n2, fine \n')
        
        dataset = reader.read_header_and_preview(path)
        
        assert dataset.columns == ("Id", "Comment")
        assert dataset.preview_rows == (
            ("Id", "Comment"),
            ("1", "hello, world"),
            ("2", "fine"),
        )
        assert dataset.source_path == path
    
    def test_preview_is_bounded(self, write_csv):
        path = write_csv("C\n" + "".join(f"row {i}\n" for i in range(20)))
        
        dataset = TabularReader(preview_rows=3).read_header_and_preview(path)
        
        assert len(dataset.preview_rows) == 3
        assert dataset.preview_rows[0] == ("C",)
    
    def test_long_rows_truncated_to_header(self, reader, write_csv):
        path = write_csv("A,B\n1,2,3,4\n")
        
        dataset = reader.read_header_and_preview(path)
        
        assert dataset.preview_rows[1] == ("1", "2")
    
    def test_empty_file(self, reader, write_csv):
        with pytest.raises(EmptyFile):
            reader.read_header_and_preview(write_csv("\n\n"))
    
    def test_invalid_utf8(self, reader, tmp_path):
        path = tmp_path / "latin.csv"
        path.write_bytes("Comment\ncaf\xe9\n".encode("latin-1"))
        
        with pytest.raises(UnreadableEncoding):
            reader.read_header_and_preview(path)
    
    def test_missing_file(self, reader, tmp_path):
        with pytest.raises(TabularReadError):
            reader.read_header_and_preview(tmp_path / "missing.csv")


class TestCsvExtraction:
    
    def test_extract_skips_header_blank_and_short_rows(self, reader, write_csv):
        path = write_csv("Id,Comment\n1,Great\n2,  \n3\n4, Bad \n")
        
        assert reader.extract_column(path, 1) == ["Great", "Bad"]
    
    def test_extract_quoted_comma(self, reader, write_csv):
        path = write_csv('Comment\n"hello, world"\n')
        
        assert reader.extract_column(path, 0) == ["hello, world"]
    
    def test_extract_out_of_range(self, reader, write_csv):
        path = write_csv("A\nx\n")
        
        assert reader.extract_column(path, 5) == []
        assert reader.extract_column(path, -1) == []
    
    def test_extract_never_raises(self, reader, tmp_path):
        bad = tmp_path / "bad.csv"
        bad.write_bytes(b"A\n\xff\xfe\n")
        
        assert reader.extract_column(bad, 0) == []
        assert reader.extract_column(tmp_path / "missing.csv", 0) == []
        assert reader.extract_column(tmp_path / "notes.txt", 0) == []
    
    @pytest.mark.asyncio
    async def test_async_wrappers(self, reader, write_csv):
        path = write_csv("Comment\nnice\n")
        
        dataset = await reader.aread_header_and_preview(path)
        values = await reader.aextract_column(path, 0)
        
        assert dataset.columns == ("Comment",)
        assert values == ["nice"]


class TestXlsx:
    
    def test_header_and_preview(self, reader, write_xlsx):
        path = write_xlsx([
            ["Id", "Comment", "Date"],
            [1, " Loved it ", date(2024, 5, 1)],
            [2.0, "Meh", None],
        ])
        
        dataset = reader.read_header_and_preview(path)
        
        assert dataset.columns == ("Id", "Comment", "Date")
        assert dataset.preview_rows[1][0] == "1"
        assert dataset.preview_rows[1][1] == "Loved it"
        assert dataset.preview_rows[1][2].startswith("2024-05-01")
        assert dataset.preview_rows[2] == ("2", "Meh")
    
    def test_gap_shifts_cells_left(self, reader, write_xlsx):
        """Cells are addressed by their position among present cells."""
        path = write_xlsx([
            ["A", "B", "C"],
            ["x", None, "z"],
        ])
        
        assert reader.extract_column(path, 1) == ["z"]
        assert reader.extract_column(path, 2) == []
    
    def test_blank_rows_ignored(self, reader, write_xlsx):
        path = write_xlsx([
            ["Comment"],
            [None],
            ["first"],
            [None],
            ["second"],
        ])
        
        assert reader.extract_column(path, 0) == ["first", "second"]
    
    def test_booleans(self, reader, write_xlsx):
        path = write_xlsx([["Flag"], [True], [False]])
        
        assert reader.extract_column(path, 0) == ["TRUE", "FALSE"]
    
    def test_corrupt_archive(self, reader, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"this is not a zip archive")
        
        with pytest.raises(UnreadableArchive):
            reader.read_header_and_preview(path)
        assert reader.extract_column(path, 0) == []
    
    def test_empty_sheet(self, reader, write_xlsx):
        with pytest.raises(EmptyFile):
            reader.read_header_and_preview(write_xlsx([]))
