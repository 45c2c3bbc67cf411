"""
Column Profiler

Per-column data type by bounded majority vote over sampled data rows, plus
secondary flags (formulas, numeric, currency, calculable).
"""

from __future__ import annotations

from datetime import date, datetime
import re
from typing import Any, List, Optional

from shared.config.settings import ContextSettings, get_settings
from shared.models.sheet_context import ColumnDescriptor
from shared.models.sheet_grid import Cell, Grid
from shared.utils.a1_notation import index_to_column_letter

from sheet_context.services.table_detector import RawTableRegion

CALCULABLE_KEYWORDS = ("price", "cost", "amount", "weight", "quantity", "total", "sum", "value")

# (threshold, data_type) in precedence order; ratios at exactly the threshold qualify
TYPE_THRESHOLDS = (
    (0.5, "formula"),
    (0.3, "currency"),
    (0.5, "date"),
    (0.5, "number"),
)

_DATE_PATTERNS = (
    re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"),
    re.compile(r"^\d{4}-\d{2}-\d{2}$"),
)
_CURRENCY_VALUE_RE = re.compile(r"^-?[£$€¥]\s*-?[\d,.]*\d[\d,.]*$")
_NUMERIC_STRING_RE = re.compile(r"^-?[\d,.]*\d[\d,.]*$")
_CURRENCY_SYMBOL_RE = re.compile(r"[£$€¥]")


class ColumnProfiler:
    """Builds ColumnDescriptors for a detected table region."""

    @staticmethod
    def classify_cell(cell: Cell) -> Optional[str]:
        """
        Vote of one non-empty cell: formula | number | date | currency, or None
        for plain text.
        """
        if cell.has_formula:
            return "formula"
        value = cell.value
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return "number"
        if isinstance(value, (date, datetime)):
            return "date"
        if isinstance(value, str):
            text = value.strip()
            if any(p.match(text) for p in _DATE_PATTERNS):
                return "date"
            if _CURRENCY_VALUE_RE.match(text):
                return "currency"
            if _NUMERIC_STRING_RE.match(text):
                return "number"
        return None

    @classmethod
    def infer_data_type(cls, cells: List[Cell]) -> str:
        """Majority vote over non-empty sampled cells."""
        samples = [c for c in cells if not c.is_empty]
        if not samples:
            return "empty"

        counts = {"formula": 0, "number": 0, "date": 0, "currency": 0}
        for cell in samples:
            vote = cls.classify_cell(cell)
            if vote:
                counts[vote] += 1

        total = len(samples)
        for threshold, data_type in TYPE_THRESHOLDS:
            if counts[data_type] / total >= threshold:
                return data_type
        return "text"

    @staticmethod
    def is_calculable_name(header: str) -> bool:
        lower = (header or "").lower()
        return any(keyword in lower for keyword in CALCULABLE_KEYWORDS)

    @staticmethod
    def _column_cells(grid: Grid, col: int, start_row: int, end_row: int) -> List[Cell]:
        cells: List[Cell] = []
        for row in range(start_row, end_row + 1):
            cell = grid.get(row, col)
            if cell is not None:
                cells.append(cell)
        return cells

    @classmethod
    def profile_column(
        cls,
        grid: Grid,
        *,
        name: str,
        col: int,
        data_start_row: int,
        data_end_row: int,
        settings: Optional[ContextSettings] = None,
    ) -> ColumnDescriptor:
        opts = settings or get_settings().context

        type_end = min(data_end_row, data_start_row + opts.type_sample_rows - 1)
        type_sample = cls._column_cells(grid, col, data_start_row, type_end)
        data_type = cls.infer_data_type(type_sample)

        formula_end = min(data_end_row, data_start_row + opts.formula_sample_rows - 1)
        has_formulas = any(c.has_formula for c in cls._column_cells(grid, col, data_start_row, formula_end))

        values: List[Any] = [c.value for c in type_sample if not c.is_empty]
        is_currency = any(isinstance(v, str) and _CURRENCY_SYMBOL_RE.search(v) for v in values)
        is_numeric = data_type in ("number", "currency")

        return ColumnDescriptor(
            name=name,
            letter=index_to_column_letter(col),
            index=col,
            data_type=data_type,
            sample_values=values[: opts.sample_value_limit],
            has_formulas=has_formulas,
            is_numeric=is_numeric,
            is_currency=is_currency,
            is_calculable=is_numeric or cls.is_calculable_name(name),
        )

    @classmethod
    def profile(
        cls,
        grid: Grid,
        region: RawTableRegion,
        *,
        settings: Optional[ContextSettings] = None,
    ) -> List[ColumnDescriptor]:
        """One descriptor per header, left to right."""
        return [
            cls.profile_column(
                grid,
                name=header,
                col=region.start_col + offset,
                data_start_row=region.data_start_row,
                data_end_row=region.end_row,
                settings=settings,
            )
            for offset, header in enumerate(region.headers)
        ]
