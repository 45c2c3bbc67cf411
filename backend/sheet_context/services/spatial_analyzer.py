"""
Spatial Analyzer

Free space around detected tables and ranked placement zones for new content
(totals, pivot outputs, charts) so nothing overwrites existing data.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from shared.config.settings import ContextSettings, get_settings
from shared.models.sheet_context import PlacementZone, SpatialInfo, SpatialMap, TableBounds, TableDescriptor
from shared.models.sheet_grid import Grid
from shared.utils.a1_notation import cell_address, index_to_column_letter


class SpatialAnalyzer:
    @staticmethod
    def _column_empty(grid: Grid, col: int, bounds: TableBounds) -> bool:
        return not grid.column_has_data(col, bounds.start_row, bounds.end_row)

    @staticmethod
    def _row_empty(grid: Grid, row: int, bounds: TableBounds) -> bool:
        return not grid.row_has_data(row, bounds.start_col, bounds.end_col)

    @classmethod
    def empty_space_right(cls, grid: Grid, bounds: TableBounds, *, lookahead: int) -> List[str]:
        """Contiguous empty column letters right of the table, within the table's rows."""
        letters: List[str] = []
        for col in range(bounds.end_col + 1, bounds.end_col + 1 + lookahead):
            if not cls._column_empty(grid, col, bounds):
                break
            letters.append(index_to_column_letter(col))
        return letters

    @classmethod
    def empty_space_below(cls, grid: Grid, bounds: TableBounds, *, lookahead: int) -> List[int]:
        """Contiguous empty 1-based row numbers below the table, within the table's columns."""
        rows: List[int] = []
        for row in range(bounds.end_row + 1, bounds.end_row + 1 + lookahead):
            if not cls._row_empty(grid, row, bounds):
                break
            rows.append(row + 1)
        return rows

    @classmethod
    def can_expand_right(cls, grid: Grid, bounds: TableBounds) -> bool:
        return cls._column_empty(grid, bounds.end_col + 1, bounds)

    @classmethod
    def can_expand_down(cls, grid: Grid, bounds: TableBounds) -> bool:
        return cls._row_empty(grid, bounds.end_row + 1, bounds)

    @classmethod
    def analyze_table(
        cls,
        grid: Grid,
        bounds: TableBounds,
        *,
        settings: Optional[ContextSettings] = None,
    ) -> SpatialInfo:
        opts = settings or get_settings().context
        return SpatialInfo(
            next_available_column=index_to_column_letter(bounds.end_col + 1),
            next_available_row=bounds.end_row + 2,
            empty_space_right=cls.empty_space_right(grid, bounds, lookahead=opts.empty_right_lookahead),
            empty_space_below=cls.empty_space_below(grid, bounds, lookahead=opts.empty_below_lookahead),
            can_expand_right=cls.can_expand_right(grid, bounds),
            can_expand_down=cls.can_expand_down(grid, bounds),
        )

    # ---------------------------
    # Sheet level
    # ---------------------------

    @staticmethod
    def largest_empty_area(tables: Sequence[TableDescriptor]) -> Optional[str]:
        """Cell two columns right of the rightmost table and three rows below the lowest one."""
        if not tables:
            return None
        rightmost_col = max(t.bounds.end_col for t in tables)
        bottommost_row = max(t.bounds.end_row for t in tables)
        return cell_address(bottommost_row + 2, rightmost_col + 2)

    @staticmethod
    def _bounded(count: int, lookahead: int) -> Optional[int]:
        # Hitting the lookahead means the space may extend further
        return count if count < lookahead else None

    @classmethod
    def placement_zones(
        cls,
        tables: Sequence[TableDescriptor],
        *,
        settings: Optional[ContextSettings] = None,
    ) -> List[PlacementZone]:
        """Right-of-table then below-table per table, in detection order."""
        opts = settings or get_settings().context
        zones: List[PlacementZone] = []
        for table in tables:
            bounds, spatial = table.bounds, table.spatial
            if spatial.can_expand_right:
                row, col = bounds.start_row, bounds.end_col + 1
                zones.append(
                    PlacementZone(
                        type="right_of_table",
                        table_id=table.id,
                        row=row,
                        col=col,
                        position=cell_address(row, col),
                        description=f"Right of {table.id}",
                        max_width=cls._bounded(len(spatial.empty_space_right), opts.empty_right_lookahead),
                    )
                )
            if spatial.can_expand_down:
                row, col = bounds.end_row + 1, bounds.start_col
                zones.append(
                    PlacementZone(
                        type="below_table",
                        table_id=table.id,
                        row=row,
                        col=col,
                        position=cell_address(row, col),
                        description=f"Below {table.id}",
                        max_height=cls._bounded(len(spatial.empty_space_below), opts.empty_below_lookahead),
                    )
                )
        return zones

    @classmethod
    def build_spatial_map(
        cls,
        tables: Sequence[TableDescriptor],
        *,
        settings: Optional[ContextSettings] = None,
    ) -> SpatialMap:
        return SpatialMap(
            used_regions=[t.range for t in tables],
            largest_empty_area=cls.largest_empty_area(tables),
            optimal_placement_zones=cls.placement_zones(tables, settings=settings),
        )
