"""
Sheet context 관련 도메인 예외 정의

Only "analysis could not run at all" is modeled as an error. Heuristic
misdetections (wrong header row, a total row inside a table) are accepted
imprecision and never raise.
"""

from typing import Any, Dict, Optional

from .base import DomainException


class ContextUnavailableError(DomainException):
    """No sheet context can be built for the current tool call."""

    def __init__(self, message: str, code: str = "CONTEXT_UNAVAILABLE",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Sheet context unavailable: {message}",
            code=code,
            details=details or {},
        )


class GridUnavailableError(ContextUnavailableError):
    """The spreadsheet engine snapshot could not be read. Not retried."""

    def __init__(self, reason: str, sheet_name: Optional[str] = None):
        super().__init__(
            message=f"grid snapshot could not be read ({reason})",
            code="GRID_UNAVAILABLE",
            details={"reason": reason, "sheet_name": sheet_name} if sheet_name else {"reason": reason},
        )


class NoTableFoundError(DomainException):
    """Raised only when a caller requires a table and the grid holds no data."""

    def __init__(self, table_id: Optional[str] = None):
        message = (
            f"Table not found: {table_id}" if table_id else "No table found: the sheet is empty"
        )
        super().__init__(
            message=message,
            code="NO_TABLE_FOUND",
            details={"table_id": table_id} if table_id else {},
        )


class InvalidRangeError(DomainException):
    """Malformed A1 reference passed explicitly by a caller."""

    def __init__(self, reference: str, reason: str = ""):
        super().__init__(
            message=f"Invalid range '{reference}'" + (f": {reason}" if reason else ""),
            code="INVALID_RANGE",
            details={"reference": reference, "reason": reason},
        )
