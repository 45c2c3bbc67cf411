"""
🔥 THINK ULTRA! Spreadsheet Engine Interface
Narrow contract between the context engine and whatever spreadsheet engine holds the cells
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class SpreadsheetEngineAdapter(ABC):
    """
    Abstract interface for spreadsheet engines.

    The context engine only reads snapshots; tool handlers use the write
    methods. A snapshot must reflect every committed edit. Flushing pending
    writes before asking for one is the caller's job.
    """

    @abstractmethod
    def get_snapshot(self) -> Any:
        """
        Read-only snapshot of the active sheet.

        Returns:
            Any shape GridAccessor accepts: engine-native sheet dict with
            `cellData`, sparse row -> col -> cell mapping, or dense rows
        """
        raise NotImplementedError

    @abstractmethod
    def active_sheet_name(self) -> Optional[str]:
        """Name of the sheet get_snapshot() reads."""
        raise NotImplementedError

    @abstractmethod
    def set_value(self, address: str, value: Any) -> None:
        """Write a literal value into one A1 cell."""
        raise NotImplementedError

    @abstractmethod
    def set_formula(self, address: str, formula: str) -> None:
        """Write a formula (with leading '=') into one A1 cell."""
        raise NotImplementedError

    @abstractmethod
    def set_background(self, address: str, color: str) -> None:
        """
        Fill a cell or range with a background color.

        Args:
            address: A1 cell or range
            color: hex color, with or without '#'
        """
        raise NotImplementedError
