"""
Boundary Scanner: used rectangle of a grid.
"""

from __future__ import annotations

from shared.models.sheet_grid import Grid, GridBoundary


class BoundaryScanner:
    @staticmethod
    def scan(grid: Grid) -> GridBoundary:
        """
        Min/max populated row and column. A cell counts only when its value is
        non-null and not a blank string; formula text alone does not count.
        """
        min_row = max_row = min_col = max_col = -1
        for row, col, cell in grid.iter_cells():
            if cell.is_empty:
                continue
            if min_row < 0 or row < min_row:
                min_row = row
            if row > max_row:
                max_row = row
            if min_col < 0 or col < min_col:
                min_col = col
            if col > max_col:
                max_col = col
        return GridBoundary(min_row=min_row, max_row=max_row, min_col=min_col, max_col=max_col)
