"""
Formula inventory: every formula cell in a grid with the A1 references it reads.
"""

from __future__ import annotations

import re
from typing import List

from shared.models.sheet_context import FormulaReference
from shared.models.sheet_grid import Grid
from shared.utils.a1_notation import cell_address

_STRING_LITERAL_RE = re.compile(r'"[^"]*"')
_REFERENCE_RE = re.compile(
    r"(?<![A-Za-z0-9_!$])\$?([A-Z]{1,3})\$?(\d+)(?::\$?([A-Z]{1,3})\$?(\d+))?(?![A-Za-z0-9_(])"
)


def extract_dependencies(formula: str) -> List[str]:
    """
    A1 references in a formula, in order of appearance, without duplicates.
    Ranges stay whole ("A1:B3"); `$` anchors are dropped; sheet-qualified
    references are skipped.
    """
    text = _STRING_LITERAL_RE.sub("", formula or "")
    found: List[str] = []
    for match in _REFERENCE_RE.finditer(text):
        col1, row1, col2, row2 = match.groups()
        ref = f"{col1}{row1}" if col2 is None else f"{col1}{row1}:{col2}{row2}"
        if ref not in found:
            found.append(ref)
    return found


class FormulaInventory:
    @staticmethod
    def collect(grid: Grid) -> List[FormulaReference]:
        return [
            FormulaReference(
                cell=cell_address(row, col),
                formula=cell.formula,
                dependencies=extract_dependencies(cell.formula),
            )
            for row, col, cell in grid.iter_cells()
            if cell.has_formula
        ]
