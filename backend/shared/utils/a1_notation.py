"""
A1 notation helpers (0-based indexes in, spreadsheet notation out).
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

from shared.exceptions.context import InvalidRangeError

_CELL_RE = re.compile(r"^\$?([A-Za-z]+)\$?(\d+)$")
_COLUMN_RE = re.compile(r"^[A-Za-z]+$")


def column_letter_to_index(letter: str) -> int:
    """
    Convert a column letter to a 0-based index (A=0, B=1, ..., Z=25, AA=26, ...)

    Raises:
        InvalidRangeError: letter is empty or contains non A-Z characters
    """
    if not letter or not _COLUMN_RE.match(letter):
        raise InvalidRangeError(letter, "column letters must be A-Z")
    result = 0
    for char in letter.upper():
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result - 1


def index_to_column_letter(index: int) -> str:
    """Convert a 0-based column index to its letter."""
    if index < 0:
        raise InvalidRangeError(str(index), "column index must be >= 0")
    result = ""
    index += 1  # 1-based for calculation

    while index > 0:
        index -= 1
        result = chr(index % 26 + ord("A")) + result
        index //= 26

    return result


def is_column_letter(text: str) -> bool:
    return bool(text) and bool(_COLUMN_RE.match(text))


def cell_address(row: int, col: int) -> str:
    """(0-based row, 0-based col) -> "B3"."""
    return f"{index_to_column_letter(col)}{row + 1}"


def range_address(start_row: int, start_col: int, end_row: int, end_col: int) -> str:
    """Inclusive 0-based bounds -> "A1:C10" (single cell collapses to "A1")."""
    start = cell_address(start_row, start_col)
    end = cell_address(end_row, end_col)
    return start if start == end else f"{start}:{end}"


def parse_cell_address(address: str) -> Tuple[int, int]:
    """
    Parse "B3" into a 0-based (row, col) tuple.

    Raises:
        InvalidRangeError: not a single-cell A1 reference
    """
    match = _CELL_RE.match((address or "").strip())
    if not match:
        raise InvalidRangeError(address, "expected a cell reference like 'B3'")
    letters, digits = match.groups()
    row = int(digits) - 1
    if row < 0:
        raise InvalidRangeError(address, "row numbers start at 1")
    return row, column_letter_to_index(letters)


def parse_range_address(address: str) -> Tuple[int, int, int, int]:
    """
    Parse "A1:C10" (or a single cell, optionally sheet-qualified) into
    inclusive 0-based (start_row, start_col, end_row, end_col), normalized so
    start <= end on both axes.
    """
    text = (address or "").strip()
    if "!" in text:
        text = text.split("!", 1)[1]
    parts = text.split(":")
    if len(parts) > 2 or not parts[0]:
        raise InvalidRangeError(address, "expected 'A1' or 'A1:C10'")

    r1, c1 = parse_cell_address(parts[0])
    r2, c2 = parse_cell_address(parts[1]) if len(parts) == 2 else (r1, c1)
    return min(r1, r2), min(c1, c2), max(r1, r2), max(c1, c2)


def split_sheet_name(address: str) -> Tuple[Optional[str], str]:
    """ "Sheet1!A1:B2" -> ("Sheet1", "A1:B2") """
    if "!" in address:
        sheet, cells = address.split("!", 1)
        return sheet.strip("'"), cells
    return None, address
