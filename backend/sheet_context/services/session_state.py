"""
Per-chat-session state owned by the orchestration layer.

Created when a chat session starts, passed by reference to tool handlers,
cleared when the session ends.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

# Column names that usually hold money when a total is not flagged as currency
CURRENCY_NAME_HINTS = ("price", "cost", "amount", "revenue", "value", "sales")


class ActionLogEntry(BaseModel):
    tool: str
    description: str = ""
    mutated: bool = Field(default=False, description="Whether the action wrote to the sheet")
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: float

    model_config = ConfigDict(extra="ignore")


class RecentTotal(BaseModel):
    """A total written by a tool, kept so later tools can format it."""

    cell: str = Field(..., description="A1 cell holding the total")
    column: str
    column_type: str = "number"
    is_currency: bool = False
    table_id: Optional[str] = None
    aggregation: str = "sum"
    timestamp: float

    model_config = ConfigDict(extra="ignore")

    def looks_like_currency(self) -> bool:
        lower = self.column.lower()
        return self.is_currency or any(hint in lower for hint in CURRENCY_NAME_HINTS)


class SessionState:
    """Action log and recent totals of one chat session."""

    def __init__(self, session_id: Optional[str] = None, *, clock: Callable[[], float] = time.time):
        self.session_id = session_id or uuid4().hex
        self._clock = clock
        self.action_log: List[ActionLogEntry] = []
        self.recent_totals: List[RecentTotal] = []

    def record_action(self, tool: str, description: str = "", *, mutated: bool = False, **details: Any) -> ActionLogEntry:
        entry = ActionLogEntry(
            tool=tool,
            description=description,
            mutated=mutated,
            details=details,
            timestamp=self._clock(),
        )
        self.action_log.append(entry)
        return entry

    def record_total(
        self,
        *,
        cell: str,
        column: str,
        column_type: str = "number",
        is_currency: bool = False,
        table_id: Optional[str] = None,
        aggregation: str = "sum",
    ) -> RecentTotal:
        total = RecentTotal(
            cell=cell,
            column=column,
            column_type=column_type,
            is_currency=is_currency,
            table_id=table_id,
            aggregation=aggregation,
            timestamp=self._clock(),
        )
        self.recent_totals.append(total)
        return total

    def find_recent_totals(
        self,
        *,
        max_age_seconds: float = 300.0,
        column_pattern: Optional[str] = None,
    ) -> List[RecentTotal]:
        """
        Totals younger than `max_age_seconds`. With a column pattern, totals
        whose column contains it; otherwise only currency-looking totals.
        """
        cutoff = self._clock() - max_age_seconds
        fresh = [t for t in self.recent_totals if t.timestamp > cutoff]
        if column_pattern:
            pattern = column_pattern.lower()
            return [t for t in fresh if pattern in t.column.lower()]
        return [t for t in fresh if t.looks_like_currency()]

    def clear(self) -> None:
        self.action_log.clear()
        self.recent_totals.clear()
