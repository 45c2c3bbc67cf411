"""
Spreadsheet engine adapters
"""

from shared.interfaces.spreadsheet_engine import SpreadsheetEngineAdapter

from .memory import InMemorySpreadsheet
from .openpyxl_adapter import WorkbookSpreadsheet

__all__ = [
    "SpreadsheetEngineAdapter",
    "InMemorySpreadsheet",
    "WorkbookSpreadsheet",
]
