"""
🔥 THINK ULTRA! Sheet Context Engine

Heuristic table detection and cached spatial context for spreadsheet tools.

    from sheet_context import configure_context_manager, build_sum_formula
    from sheet_context.adapters import InMemorySpreadsheet

    configure_context_manager(InMemorySpreadsheet.from_rows(rows))
    build_sum_formula("Revenue")  # "=SUM(C2:C3)"
"""

from sheet_context.services.context_manager import (
    SheetContext,
    SheetContextManager,
    build_sum_formula,
    configure_context_manager,
    find_column,
    find_optimal_placement,
    find_table,
    get_context,
    get_context_manager,
    invalidate_cache,
    reset_context_manager,
)
from sheet_context.services.session_state import SessionState
from sheet_context.services.sheet_analyzer import SheetAnalyzer

__all__ = [
    "SheetContext",
    "SheetContextManager",
    "SessionState",
    "SheetAnalyzer",
    "build_sum_formula",
    "configure_context_manager",
    "find_column",
    "find_optimal_placement",
    "find_table",
    "get_context",
    "get_context_manager",
    "invalidate_cache",
    "reset_context_manager",
]
