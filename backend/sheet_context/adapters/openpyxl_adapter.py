"""
openpyxl-backed spreadsheet engine.

Reads an .xlsx workbook twice, like the Excel grid parser does: once with
formulas (source of truth, and where writes go) and once with cached values
(`data_only=True`). A formula cell without a cached value falls back to its
formula text so it still counts as data.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Optional, Union

from openpyxl import Workbook, load_workbook
from openpyxl.styles import PatternFill
from openpyxl.worksheet.formula import ArrayFormula
from openpyxl.worksheet.worksheet import Worksheet

from shared.interfaces.spreadsheet_engine import SpreadsheetEngineAdapter
from shared.utils.a1_notation import parse_cell_address, parse_range_address


class WorkbookSpreadsheet(SpreadsheetEngineAdapter):
    def __init__(self, workbook: Workbook, *, cached_values: Optional[Workbook] = None):
        self.workbook = workbook
        self._cached_values = cached_values

    @classmethod
    def new(cls, sheet_name: str = "Sheet1") -> "WorkbookSpreadsheet":
        wb = Workbook()
        wb.active.title = sheet_name
        return cls(wb)

    @classmethod
    def from_bytes(cls, xlsx_bytes: bytes) -> "WorkbookSpreadsheet":
        formulas = load_workbook(filename=BytesIO(xlsx_bytes), data_only=False)
        values = load_workbook(filename=BytesIO(xlsx_bytes), data_only=True)
        return cls(formulas, cached_values=values)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "WorkbookSpreadsheet":
        return cls.from_bytes(Path(path).read_bytes())

    def save(self, path: Union[str, Path]) -> None:
        self.workbook.save(str(path))

    def switch_sheet(self, name: str) -> None:
        if name not in self.workbook.sheetnames:
            raise KeyError(f"Unknown sheet: {name}")
        self.workbook.active = self.workbook.sheetnames.index(name)

    @property
    def _sheet(self) -> Worksheet:
        return self.workbook.active

    def _cached_sheet(self) -> Optional[Worksheet]:
        if self._cached_values is None:
            return None
        title = self._sheet.title
        if title not in self._cached_values.sheetnames:
            return None
        return self._cached_values[title]

    @staticmethod
    def _formula_text(raw: Any) -> Optional[str]:
        if isinstance(raw, ArrayFormula):
            return raw.text
        if isinstance(raw, str) and raw.startswith("="):
            return raw
        return None

    # SpreadsheetEngineAdapter

    def active_sheet_name(self) -> Optional[str]:
        return self._sheet.title

    def get_snapshot(self) -> Dict[str, Any]:
        ws = self._sheet
        cached_ws = self._cached_sheet()
        cell_data: Dict[int, Dict[int, Dict[str, Any]]] = {}

        for row in ws.iter_rows():
            for cell in row:
                raw = cell.value
                if raw is None:
                    continue
                formula = self._formula_text(raw)
                if formula is None:
                    entry: Dict[str, Any] = {"v": raw}
                else:
                    cached = cached_ws.cell(row=cell.row, column=cell.column).value if cached_ws is not None else None
                    entry = {"v": cached if cached is not None else formula, "f": formula}
                # openpyxl is 1-based
                cell_data.setdefault(cell.row - 1, {})[cell.column - 1] = entry

        return {"name": ws.title, "cellData": cell_data}

    def _write(self, address: str, value: Any, *, cached: Any) -> None:
        row, col = parse_cell_address(address)
        self._sheet.cell(row=row + 1, column=col + 1).value = value
        cached_ws = self._cached_sheet()
        if cached_ws is not None:
            cached_ws.cell(row=row + 1, column=col + 1).value = cached

    def set_value(self, address: str, value: Any) -> None:
        self._write(address, value, cached=value)

    def set_formula(self, address: str, formula: str) -> None:
        text = formula if formula.startswith("=") else f"={formula}"
        # Cached value is unknown until a spreadsheet application recalculates
        self._write(address, text, cached=None)

    def set_background(self, address: str, color: str) -> None:
        hex_color = color.lstrip("#").upper()
        fill = PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")
        start_row, start_col, end_row, end_col = parse_range_address(address)
        for row in range(start_row + 1, end_row + 2):
            for col in range(start_col + 1, end_col + 2):
                self._sheet.cell(row=row, column=col).fill = fill
