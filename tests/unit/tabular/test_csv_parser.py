"""Unit tests for the delimited-text line parser."""

from sentiment_wizard.tabular.csv_parser import iter_csv_lines, parse_csv_line


def test_plain_fields():
    assert parse_csv_line("a,b,c") == ["a", "b", "c"]


def test_quoted_comma_is_literal():
    assert parse_csv_line('"hello, world"') == ["hello, world"]
    assert parse_csv_line('1,"hello, world",3') == ["1", "hello, world", "3"]


def test_empty_fields_kept():
    assert parse_csv_line(",,") == ["", "", ""]
    assert parse_csv_line("a,") == ["a", ""]


def test_fields_not_trimmed():
    assert parse_csv_line(" a , b ") == [" a ", " b "]


def test_doubled_quotes_are_not_an_escape():
    """Each quote toggles quoted mode, so embedded quotes disappear."""
    assert parse_csv_line('"say ""hi"""') == ["say hi"]


def test_iter_lines_skips_empty_and_handles_newline_variants(write_csv):
    path = write_csv("h\r\na\rb\n\n\nc")
    
    assert list(iter_csv_lines(path)) == ["h", "a", "b", "c"]


def test_iter_lines_strips_bom(write_csv):
    path = write_csv("\ufeffComment\nok\n")
    
    assert list(iter_csv_lines(path)) == ["Comment", "ok"]
