"""
Minimal delimited-text parsing.

Rules:
- Lines split on any newline variant; empty lines are dropped
- Fields are comma-delimited
- A double quote toggles quoted mode, in which commas are literal
- Quote characters are never kept in the field value

Doubled quotes ("") inside a quoted field are NOT treated as an escaped
quote: each one toggles quoted mode, so embedded quotes are lost and a
following comma may split the field. Files relying on that escaping will
misparse.
"""

from pathlib import Path
from typing import Iterator


def parse_csv_line(line: str) -> list[str]:
    """
    Split one line into raw (untrimmed) fields.
    
    Example:
        >>> parse_csv_line('1,"hello, world",3')
        ['1', 'hello, world', '3']
    """
    fields: list[str] = []
    current: list[str] = []
    inside_quotes = False
    
    for char in line:
        if char == '"':
            inside_quotes = not inside_quotes
        elif char == ',' and not inside_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    
    fields.append("".join(current))
    return fields


def iter_csv_lines(path: Path) -> Iterator[str]:
    """
    Yield the non-empty lines of a UTF-8 text file, streaming.
    
    A leading byte order mark is stripped. Raises UnicodeDecodeError on
    undecodable bytes, at the point they are reached.
    """
    with open(path, "r", encoding="utf-8-sig", errors="strict", newline=None) as f:
        for raw_line in f:
            # Universal newlines only covers \r and \r\n; splitlines() handles
            # the remaining separators (\v, \f, \x85, \u2028, ...)
            for line in raw_line.splitlines():
                if line:
                    yield line
