"""
Utility functions shared by the sheet context engine
"""

from .a1_notation import (
    cell_address,
    column_letter_to_index,
    index_to_column_letter,
    parse_cell_address,
    parse_range_address,
    range_address,
)

__all__ = [
    "cell_address",
    "column_letter_to_index",
    "index_to_column_letter",
    "parse_cell_address",
    "parse_range_address",
    "range_address",
]
