"""
Sheet grid models.

Goal: represent a spreadsheet engine snapshot as a sparse, read-only grid
(row -> col -> Cell, 0-based) so the detection engine can operate on one
standard format regardless of which engine produced it.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from shared.utils.a1_notation import range_address


class Cell(BaseModel):
    """Single cell: computed value plus the formula text when present."""

    value: Any = Field(default=None, description="text | number | boolean | null")
    formula: Optional[str] = Field(default=None, description="Formula text including the leading '='")

    model_config = ConfigDict(extra="ignore")

    @property
    def is_empty(self) -> bool:
        if self.value is None:
            return True
        if isinstance(self.value, str):
            return not self.value.strip()
        return False

    @property
    def has_formula(self) -> bool:
        return bool(self.formula)

    @property
    def is_text(self) -> bool:
        """Non-blank string value."""
        return isinstance(self.value, str) and bool(self.value.strip())


class Grid(BaseModel):
    """Sparse 2D cell matrix. Missing rows/cells are empty."""

    sheet_name: Optional[str] = None
    cells: Dict[int, Dict[int, Cell]] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    def get(self, row: int, col: int) -> Optional[Cell]:
        row_cells = self.cells.get(row)
        if not row_cells:
            return None
        return row_cells.get(col)

    def value(self, row: int, col: int) -> Any:
        cell = self.get(row, col)
        return cell.value if cell is not None else None

    def is_empty(self, row: int, col: int) -> bool:
        cell = self.get(row, col)
        return cell is None or cell.is_empty

    def row_has_data(self, row: int, start_col: int, end_col: int) -> bool:
        """Any non-empty cell in row within [start_col, end_col]."""
        row_cells = self.cells.get(row)
        if not row_cells:
            return False
        for col, cell in row_cells.items():
            if start_col <= col <= end_col and not cell.is_empty:
                return True
        return False

    def column_has_data(self, col: int, start_row: int, end_row: int) -> bool:
        for row in range(start_row, end_row + 1):
            if not self.is_empty(row, col):
                return True
        return False

    def block_is_empty(self, start_row: int, start_col: int, end_row: int, end_col: int) -> bool:
        """True when no cell in the inclusive rectangle holds data."""
        return not any(self.row_has_data(row, start_col, end_col) for row in range(start_row, end_row + 1))

    def row_indexes(self) -> List[int]:
        return sorted(self.cells.keys())

    def iter_cells(self) -> Iterator[Tuple[int, int, Cell]]:
        """Yield (row, col, cell) in row-major order, including empty cells that were stored."""
        for row in sorted(self.cells.keys()):
            row_cells = self.cells[row]
            for col in sorted(row_cells.keys()):
                yield row, col, row_cells[col]

    def non_empty_count(self) -> int:
        return sum(1 for _, _, cell in self.iter_cells() if not cell.is_empty)


class GridBoundary(BaseModel):
    """Used rectangle of a grid (0-based, inclusive). All -1 when the grid is empty."""

    min_row: int = -1
    max_row: int = -1
    min_col: int = -1
    max_col: int = -1

    model_config = ConfigDict(extra="ignore")

    @property
    def is_empty(self) -> bool:
        return self.max_row < 0 or self.max_col < 0

    @property
    def used_range(self) -> Optional[str]:
        if self.is_empty:
            return None
        return range_address(self.min_row, self.min_col, self.max_row, self.max_col)
