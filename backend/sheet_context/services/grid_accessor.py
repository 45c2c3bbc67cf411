"""
Grid Accessor

Normalizes a spreadsheet engine snapshot into a sparse `Grid`.

Accepted snapshot shapes:
- `Grid` (returned as-is)
- engine-native sheet dict with a `cellData` mapping (and optional `name`)
- sparse mapping row -> col -> cell, keys as int or numeric str (JSON)
- dense list of rows

A cell may be a `Cell`, a dict with `v`/`f` (engine-native) or `value`/`formula`
keys, or a bare scalar.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from shared.exceptions import GridUnavailableError
from shared.models.sheet_grid import Cell, Grid

logger = logging.getLogger(__name__)


class GridAccessor:
    """Snapshot -> Grid conversion. Never mutates the snapshot."""

    @staticmethod
    def _to_index(key: Any) -> Optional[int]:
        if isinstance(key, bool):
            return None
        if isinstance(key, int):
            return key if key >= 0 else None
        if isinstance(key, str) and key.strip().isdigit():
            return int(key.strip())
        return None

    @staticmethod
    def _normalize_formula(formula: Any) -> Optional[str]:
        if formula is None:
            return None
        text = str(formula).strip()
        if not text:
            return None
        return text if text.startswith("=") else f"={text}"

    @classmethod
    def to_cell(cls, raw: Any) -> Cell:
        if isinstance(raw, Cell):
            return raw
        if isinstance(raw, Mapping):
            if "v" in raw or "f" in raw:
                value, formula = raw.get("v"), raw.get("f")
            else:
                value, formula = raw.get("value"), raw.get("formula")
            return Cell(value=value, formula=cls._normalize_formula(formula))
        if isinstance(raw, str) and raw.startswith("="):
            # Bare formula text without a computed value
            return Cell(value=None, formula=raw)
        return Cell(value=raw)

    @classmethod
    def _row_cells(cls, raw_row: Any, row: int) -> Dict[int, Cell]:
        cells: Dict[int, Cell] = {}
        if isinstance(raw_row, Mapping):
            items = raw_row.items()
        elif isinstance(raw_row, (list, tuple)):
            items = enumerate(raw_row)
        else:
            logger.debug(f"Skipping row {row}: unsupported row type {type(raw_row).__name__}")
            return cells

        for key, raw in items:
            col = cls._to_index(key)
            if col is None:
                logger.debug(f"Skipping cell key {key!r} in row {row}")
                continue
            if raw is None:
                continue
            cells[col] = cls.to_cell(raw)
        return cells

    @classmethod
    def from_snapshot(cls, snapshot: Any, *, sheet_name: Optional[str] = None) -> Grid:
        """
        Build a Grid from an engine snapshot.

        Raises:
            GridUnavailableError: snapshot is missing or not a recognizable grid shape
        """
        if isinstance(snapshot, Grid):
            if sheet_name and snapshot.sheet_name != sheet_name:
                return snapshot.model_copy(update={"sheet_name": sheet_name})
            return snapshot

        if snapshot is None:
            raise GridUnavailableError("engine returned no snapshot", sheet_name=sheet_name)

        raw_rows: Any = snapshot
        if isinstance(snapshot, Mapping) and "cellData" in snapshot:
            raw_rows = snapshot.get("cellData") or {}
            sheet_name = sheet_name or snapshot.get("name")

        if isinstance(raw_rows, Mapping):
            row_items = raw_rows.items()
        elif isinstance(raw_rows, (list, tuple)):
            row_items = enumerate(raw_rows)
        else:
            raise GridUnavailableError(
                f"unsupported snapshot type {type(snapshot).__name__}",
                sheet_name=sheet_name,
            )

        cells: Dict[int, Dict[int, Cell]] = {}
        for key, raw_row in row_items:
            row = cls._to_index(key)
            if row is None:
                logger.debug(f"Skipping row key {key!r}")
                continue
            row_cells = cls._row_cells(raw_row, row)
            if row_cells:
                cells[row] = row_cells

        return Grid(sheet_name=sheet_name, cells=cells)
