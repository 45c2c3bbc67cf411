"""
🔥 THINK ULTRA! Table Detector

Goal: find rectangular tables (header row + data body) in a sparse, untyped grid.

Strategies run in order until one returns at least one region:
A) standard   - runs of >=2 consecutive text headers, walk down with sparse-gap tolerance
B) emergency  - same runs within the first rows, looser walk
C) desperate  - first row with >=2 filled cells, then the whole used rectangle

Any non-empty grid yields at least one region.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from shared.config.settings import ContextSettings, get_settings
from shared.models.sheet_grid import Cell, Grid, GridBoundary
from shared.utils.a1_notation import index_to_column_letter, range_address

from sheet_context.services.boundary_scanner import BoundaryScanner

logger = logging.getLogger(__name__)

_SUMMARY_WORD_RE = re.compile(r"\b(total|sum|subtotal|grand)\b", re.IGNORECASE)
_SUM_FORMULA_RE = re.compile(r"SUM\s*\(", re.IGNORECASE)


@dataclass(frozen=True)
class RawTableRegion:
    """Detected table rectangle before profiling (0-based, inclusive, header row included)."""

    start_row: int
    end_row: int
    start_col: int
    end_col: int
    headers: Tuple[str, ...]
    row_count: int
    has_header_row: bool = True
    strategy: str = "standard"

    @property
    def range(self) -> str:
        return range_address(self.start_row, self.start_col, self.end_row, self.end_col)

    @property
    def data_start_row(self) -> int:
        return self.start_row + 1 if self.has_header_row else self.start_row

    def covers_header(self, row: int, start_col: int, end_col: int) -> bool:
        """True when a header run at `row` would sit inside this table."""
        return (
            self.start_row <= row <= self.end_row
            and start_col <= self.end_col
            and end_col >= self.start_col
        )

    def is_label_above(self, row: int, start_col: int, end_col: int) -> bool:
        """
        True when a wider header run sits on this region's first data row.
        The region's own header was then a label row above the real header.
        """
        return (
            self.has_header_row
            and row == self.data_start_row
            and start_col <= self.start_col
            and end_col >= self.end_col
            and end_col - start_col > self.end_col - self.start_col
        )


@dataclass(frozen=True)
class _HeaderCell:
    col: int
    text: str


StrategyFn = Callable[[Grid, GridBoundary, ContextSettings], List[RawTableRegion]]


def _column_label(col: int) -> str:
    return f"Column {index_to_column_letter(col)}"


def _is_standard_header(cell: Cell) -> bool:
    return cell.is_text and not cell.has_formula


def _is_emergency_header(cell: Cell) -> bool:
    return cell.is_text


def _collect_header_rows(
    grid: Grid,
    *,
    predicate: Callable[[Cell], bool],
    max_row: int,
) -> Dict[int, List[_HeaderCell]]:
    by_row: Dict[int, List[_HeaderCell]] = {}
    for row, col, cell in grid.iter_cells():
        if row > max_row:
            break
        if predicate(cell):
            by_row.setdefault(row, []).append(_HeaderCell(col=col, text=str(cell.value).strip()))
    return by_row


def _consecutive_runs(cells: Sequence[_HeaderCell], *, min_length: int = 2) -> List[List[_HeaderCell]]:
    runs: List[List[_HeaderCell]] = []
    current: List[_HeaderCell] = []
    for cell in sorted(cells, key=lambda c: c.col):
        if current and cell.col == current[-1].col + 1:
            current.append(cell)
            continue
        if len(current) >= min_length:
            runs.append(current)
        current = [cell]
    if len(current) >= min_length:
        runs.append(current)
    return runs


def _is_summary_row(grid: Grid, row: int, start_col: int, end_col: int) -> bool:
    """Total/summary row: a label like "Total" or a SUM formula over a range."""
    for col in range(start_col, end_col + 1):
        cell = grid.get(row, col)
        if cell is None:
            continue
        if cell.has_formula and _SUM_FORMULA_RE.search(cell.formula) and ":" in cell.formula:
            return True
        if cell.is_text and _SUMMARY_WORD_RE.search(cell.value):
            return True
    return False


def _next_data_row(grid: Grid, row: int, start_col: int, end_col: int, *, lookahead: int, max_row: int) -> Optional[int]:
    for r in range(row + 1, min(row + lookahead, max_row) + 1):
        if grid.row_has_data(r, start_col, end_col):
            return r
    return None


def _walk_standard(
    grid: Grid,
    header_row: int,
    start_col: int,
    end_col: int,
    *,
    max_row: int,
    settings: ContextSettings,
) -> Tuple[int, int]:
    """Return (last_data_row, data_rows) below a header run."""
    data_rows = 0
    last_data_row = header_row
    row = header_row + 1
    while row <= max_row:
        if grid.row_has_data(row, start_col, end_col):
            if data_rows >= settings.summary_min_data_rows and _is_summary_row(grid, row, start_col, end_col):
                break
            data_rows += 1
            last_data_row = row
            row += 1
            continue

        # A header directly above an empty row does not start a table
        if data_rows == 0:
            break
        resumed = _next_data_row(
            grid, row, start_col, end_col,
            lookahead=settings.sparse_gap_lookahead,
            max_row=max_row,
        )
        if resumed is None:
            break
        row = resumed
    return last_data_row, data_rows


def _walk_emergency(
    grid: Grid,
    header_row: int,
    start_col: int,
    end_col: int,
    *,
    max_row: int,
    settings: ContextSettings,
) -> Tuple[int, int]:
    data_rows = 0
    last_data_row = header_row
    for row in range(header_row + 1, max_row + 1):
        if grid.row_has_data(row, start_col, end_col):
            data_rows += 1
            last_data_row = row
        elif data_rows > settings.emergency_min_data_rows:
            break
    return last_data_row, data_rows


def _detect_from_header_runs(
    grid: Grid,
    boundary: GridBoundary,
    settings: ContextSettings,
    *,
    strategy: str,
    predicate: Callable[[Cell], bool],
    header_scan_max_row: int,
    walk: Callable[..., Tuple[int, int]],
) -> List[RawTableRegion]:
    header_rows = _collect_header_rows(grid, predicate=predicate, max_row=header_scan_max_row)
    regions: List[RawTableRegion] = []

    for row in sorted(header_rows.keys()):
        for run in _consecutive_runs(header_rows[row]):
            start_col, end_col = run[0].col, run[-1].col
            covering = [r for r in regions if r.covers_header(row, start_col, end_col)]
            if not all(r.is_label_above(row, start_col, end_col) for r in covering):
                continue

            last_data_row, data_rows = walk(
                grid, row, start_col, end_col,
                max_row=boundary.max_row,
                settings=settings,
            )
            if data_rows == 0:
                continue

            if covering:
                logger.debug(f"Header run at row {row + 1} replaces label row region(s) {[r.range for r in covering]}")
                regions = [r for r in regions if r not in covering]
            regions.append(
                RawTableRegion(
                    start_row=row,
                    end_row=last_data_row,
                    start_col=start_col,
                    end_col=end_col,
                    headers=tuple(h.text for h in run),
                    row_count=data_rows,
                    strategy=strategy,
                )
            )
    return regions


def detect_standard(grid: Grid, boundary: GridBoundary, settings: ContextSettings) -> List[RawTableRegion]:
    if boundary.is_empty:
        return []
    return _detect_from_header_runs(
        grid, boundary, settings,
        strategy="standard",
        predicate=_is_standard_header,
        header_scan_max_row=boundary.max_row,
        walk=_walk_standard,
    )


def detect_emergency(grid: Grid, boundary: GridBoundary, settings: ContextSettings) -> List[RawTableRegion]:
    if boundary.is_empty:
        return []
    return _detect_from_header_runs(
        grid, boundary, settings,
        strategy="emergency",
        predicate=_is_emergency_header,
        header_scan_max_row=min(boundary.max_row, settings.emergency_scan_rows),
        walk=_walk_emergency,
    )


def _whole_range_region(boundary: GridBoundary) -> RawTableRegion:
    start_col, end_col = boundary.min_col, boundary.max_col
    return RawTableRegion(
        start_row=boundary.min_row,
        end_row=boundary.max_row,
        start_col=start_col,
        end_col=end_col,
        headers=tuple(_column_label(c) for c in range(start_col, end_col + 1)),
        row_count=boundary.max_row - boundary.min_row + 1,
        has_header_row=False,
        strategy="desperate",
    )


def detect_desperate(grid: Grid, boundary: GridBoundary, settings: ContextSettings) -> List[RawTableRegion]:
    if boundary.is_empty:
        return []

    last_scan_row = min(boundary.max_row, settings.fallback_header_scan_rows)
    for row in range(boundary.min_row, last_scan_row + 1):
        filled = [
            col
            for col in range(boundary.min_col, boundary.max_col + 1)
            if not grid.is_empty(row, col)
        ]
        if len(filled) < 2:
            continue

        data_rows = 0
        last_data_row = row
        for data_row in range(row + 1, boundary.max_row + 1):
            if any(not grid.is_empty(data_row, col) for col in filled):
                data_rows += 1
                last_data_row = data_row
        if data_rows == 0:
            continue

        start_col, end_col = filled[0], filled[-1]
        headers = []
        for col in range(start_col, end_col + 1):
            value = grid.value(row, col)
            text = "" if value is None else str(value).strip()
            headers.append(text or _column_label(col))

        return [
            RawTableRegion(
                start_row=row,
                end_row=last_data_row,
                start_col=start_col,
                end_col=end_col,
                headers=tuple(headers),
                row_count=data_rows,
                strategy="desperate",
            )
        ]

    return [_whole_range_region(boundary)]


DETECTION_STRATEGIES: Tuple[Tuple[str, StrategyFn], ...] = (
    ("standard", detect_standard),
    ("emergency", detect_emergency),
    ("desperate", detect_desperate),
)


class TableDetector:
    """Runs the detection strategies in order; the first non-empty result wins."""

    @classmethod
    def detect(
        cls,
        grid: Grid,
        boundary: Optional[GridBoundary] = None,
        *,
        settings: Optional[ContextSettings] = None,
        strategies: Optional[Sequence[Tuple[str, StrategyFn]]] = None,
    ) -> List[RawTableRegion]:
        opts = settings or get_settings().context
        if boundary is None:
            boundary = BoundaryScanner.scan(grid)
        if boundary.is_empty:
            logger.debug("Empty grid: no tables")
            return []

        for idx, (name, strategy) in enumerate(strategies or DETECTION_STRATEGIES):
            regions = strategy(grid, boundary, opts)
            if regions:
                if idx > 0:
                    logger.warning(
                        f"Table detection fell back to '{name}' strategy: "
                        f"{len(regions)} table(s) {[r.range for r in regions]}"
                    )
                else:
                    logger.debug(f"Detected {len(regions)} table(s) with '{name}' strategy")
                return regions
            logger.debug(f"Strategy '{name}' found no tables")

        # Custom strategy lists may all come back empty
        logger.warning(f"No strategy produced a table for used range {boundary.used_range}")
        return []
