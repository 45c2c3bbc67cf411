from __future__ import annotations

from typing import Any, List, Sequence

import pytest

from shared.config.settings import ContextSettings
from shared.models.sheet_grid import Grid

from sheet_context.adapters.memory import InMemorySpreadsheet
from sheet_context.services.grid_accessor import GridAccessor


class FakeClock:
    """Manually advanced clock for cache TTL tests."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _grid_from_rows(rows: Sequence[Sequence[Any]]) -> Grid:
    return GridAccessor.from_snapshot([list(row) for row in rows])


@pytest.fixture
def make_grid():
    """Dense rows anchored at A1; strings starting with '=' become formula cells."""
    return _grid_from_rows


@pytest.fixture
def settings() -> ContextSettings:
    return ContextSettings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def revenue_rows() -> List[List[Any]]:
    return [
        ["Date", "Product", "Revenue"],
        ["2024-01-01", "Widget", 100],
        ["2024-01-02", "Gadget", 200],
    ]


@pytest.fixture
def revenue_engine(revenue_rows) -> InMemorySpreadsheet:
    return InMemorySpreadsheet.from_rows(revenue_rows)


@pytest.fixture
def inventory_rows() -> List[List[Any]]:
    # Title block, header at row 4, three items, then a total row
    return [
        ["Quarterly Inventory"],
        [],
        ["Prepared by finance"],
        [],
        ["Item", "Qty", "Price", "Amount"],
        ["Apples", 3, 1.5, 4.5],
        ["Pears", 2, 2.0, 4.0],
        ["Plums", 5, 1.0, 5.0],
        ["Total", None, None, {"v": 13.5, "f": "=SUM(D6:D8)"}],
    ]
