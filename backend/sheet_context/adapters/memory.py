"""
In-memory spreadsheet engine.

Stores cells in the engine-native shape (`{"v": value, "f": formula}` keyed by
0-based row and column) for tests and offline tool runs.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional, Sequence, Tuple

from shared.interfaces.spreadsheet_engine import SpreadsheetEngineAdapter
from shared.utils.a1_notation import parse_cell_address, parse_range_address

SheetCells = Dict[int, Dict[int, Dict[str, Any]]]


class InMemorySpreadsheet(SpreadsheetEngineAdapter):
    def __init__(self, sheets: Optional[Dict[str, SheetCells]] = None, *, active: Optional[str] = None):
        self._sheets: Dict[str, SheetCells] = sheets if sheets is not None else {"Sheet1": {}}
        if not self._sheets:
            self._sheets["Sheet1"] = {}
        self._active = active or next(iter(self._sheets))
        if self._active not in self._sheets:
            raise KeyError(f"Unknown sheet: {self._active}")
        self._backgrounds: Dict[str, Dict[Tuple[int, int], str]] = {}
        self.snapshot_count = 0

    @staticmethod
    def _cells_from_rows(rows: Sequence[Sequence[Any]]) -> SheetCells:
        cells: SheetCells = {}
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                if value is None or value == "":
                    continue
                if isinstance(value, str) and value.startswith("="):
                    cells.setdefault(r, {})[c] = {"v": None, "f": value}
                else:
                    cells.setdefault(r, {})[c] = {"v": value}
        return cells

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Any]], *, sheet_name: str = "Sheet1") -> "InMemorySpreadsheet":
        """
        Dense rows starting at A1. Strings starting with '=' become formula
        cells without a computed value; use set_formula(value=...) to add one.
        """
        return cls({sheet_name: cls._cells_from_rows(rows)})

    def add_sheet(self, name: str, rows: Optional[Sequence[Sequence[Any]]] = None) -> None:
        self._sheets[name] = self._cells_from_rows(rows or [])

    def switch_sheet(self, name: str) -> None:
        if name not in self._sheets:
            raise KeyError(f"Unknown sheet: {name}")
        self._active = name

    @property
    def sheet_names(self) -> List[str]:
        return list(self._sheets.keys())

    # SpreadsheetEngineAdapter

    def active_sheet_name(self) -> Optional[str]:
        return self._active

    def get_snapshot(self) -> Dict[str, Any]:
        self.snapshot_count += 1
        return {
            "name": self._active,
            "cellData": copy.deepcopy(self._sheets[self._active]),
        }

    def set_value(self, address: str, value: Any) -> None:
        row, col = parse_cell_address(address)
        row_cells = self._sheets[self._active].setdefault(row, {})
        if value is None or value == "":
            row_cells.pop(col, None)
            return
        row_cells[col] = {"v": value}

    def set_formula(self, address: str, formula: str, value: Any = None) -> None:
        row, col = parse_cell_address(address)
        text = formula if formula.startswith("=") else f"={formula}"
        self._sheets[self._active].setdefault(row, {})[col] = {"v": value, "f": text}

    def set_background(self, address: str, color: str) -> None:
        start_row, start_col, end_row, end_col = parse_range_address(address)
        fills = self._backgrounds.setdefault(self._active, {})
        for row in range(start_row, end_row + 1):
            for col in range(start_col, end_col + 1):
                fills[(row, col)] = color.lstrip("#").upper()

    def background(self, address: str) -> Optional[str]:
        return self._backgrounds.get(self._active, {}).get(parse_cell_address(address))
