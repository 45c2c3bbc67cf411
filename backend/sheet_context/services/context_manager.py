"""
🔥 THINK ULTRA! Sheet Context Manager

Single entry point for tool handlers. Builds the sheet analysis from an engine
snapshot, caches it, and hands out lookup helpers.

Cache lifecycle:
    Empty -> get_context() -> Valid
    Valid -> TTL elapsed | invalidate_cache() | on_mutation() | active sheet switched -> Invalid
    Invalid -> get_context() -> Valid (new SheetContext instance)

There is no locking. Callers run tool calls in sequence and a mutating tool
invalidates before the next tool runs.
"""

from __future__ import annotations

from functools import wraps
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from shared.config.settings import ContextSettings, get_settings
from shared.exceptions import ContextUnavailableError, DomainException, GridUnavailableError, NoTableFoundError
from shared.interfaces.spreadsheet_engine import SpreadsheetEngineAdapter
from shared.models.sheet_context import (
    ColumnDescriptor,
    Placement,
    SelectionInsight,
    SheetAnalysis,
    SpatialMap,
    TableDescriptor,
)
from shared.models.sheet_grid import Grid
from shared.utils.a1_notation import cell_address, is_column_letter, parse_range_address, range_address
from shared.utils.app_logger import get_context_logger

from sheet_context.services.grid_accessor import GridAccessor
from sheet_context.services.session_state import SessionState
from sheet_context.services.sheet_analyzer import SheetAnalyzer

logger = get_context_logger("manager", get_settings().context.log_level)


class SheetContext(BaseModel):
    """Analysis of one snapshot of the active sheet, plus lookup helpers."""

    sheet_name: Optional[str] = None
    grid: Grid
    analysis: SheetAnalysis
    tables: List[TableDescriptor] = Field(default_factory=list)
    primary_table: Optional[TableDescriptor] = None
    calculable_columns: List[str] = Field(default_factory=list)
    numeric_columns: List[str] = Field(default_factory=list)
    spatial_map: SpatialMap = Field(default_factory=SpatialMap)
    last_updated: float
    valid: bool = True
    default_placement: Tuple[int, int] = (0, 8)

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_analysis(
        cls,
        grid: Grid,
        analysis: SheetAnalysis,
        *,
        sheet_name: Optional[str],
        last_updated: float,
        default_placement: Tuple[int, int] = (0, 8),
    ) -> "SheetContext":
        tables = analysis.tables
        return cls(
            sheet_name=sheet_name,
            grid=grid,
            analysis=analysis,
            tables=tables,
            primary_table=tables[0] if tables else None,
            calculable_columns=[c.name for t in tables for c in t.columns if c.is_calculable],
            numeric_columns=[c.name for t in tables for c in t.columns if c.is_numeric],
            spatial_map=analysis.spatial_map,
            last_updated=last_updated,
            default_placement=default_placement,
        )

    # ---------------------------
    # Lookups
    # ---------------------------

    def find_table(self, table_id: Optional[str] = None) -> Optional[TableDescriptor]:
        """Table by id (its range); the primary table when no id is given."""
        if not table_id:
            return self.primary_table
        wanted = table_id.strip().upper()
        for table in self.tables:
            if table.id.upper() == wanted:
                return table
        return None

    def require_table(self, table_id: Optional[str] = None) -> TableDescriptor:
        table = self.find_table(table_id)
        if table is None:
            raise NoTableFoundError(table_id)
        return table

    def find_column(self, name: str, table_id: Optional[str] = None) -> Optional[ColumnDescriptor]:
        """
        Exact header name (case-insensitive), then exact column letter, then
        case-insensitive substring. None when nothing matches.
        """
        table = self.find_table(table_id)
        if table is None or not name or not name.strip():
            return None

        wanted = name.strip().lower()
        for column in table.columns:
            if column.name.strip().lower() == wanted:
                return column
        if is_column_letter(name.strip()):
            letter = name.strip().upper()
            for column in table.columns:
                if column.letter == letter:
                    return column
        for column in table.columns:
            if wanted in column.name.lower():
                return column
        return None

    def get_table_range(self, table_id: Optional[str] = None) -> str:
        table = self.find_table(table_id)
        return table.range if table else ""

    def get_column_range(
        self,
        column_name: str,
        include_header: bool = False,
        table_id: Optional[str] = None,
    ) -> str:
        table = self.find_table(table_id)
        column = self.find_column(column_name, table_id)
        if table is None or column is None:
            return ""
        start_row = table.bounds.start_row if include_header else table.data_start_row
        return range_address(start_row, column.index, table.bounds.end_row, column.index)

    def build_sum_formula(self, column_name: str, table_id: Optional[str] = None) -> str:
        """`=SUM(<data range>)` for a column, header excluded; "" when not found."""
        data_range = self.get_column_range(column_name, False, table_id)
        return f"=SUM({data_range})" if data_range else ""

    def find_optimal_placement(self, width: int = 1, height: int = 1) -> Placement:
        """
        Anchor for a width x height block whose cells are all empty: first
        ranked zone that fits, else right of the primary table with at least a
        one column gap, else the default cell.

        Zones only look at the rows or columns of their own table, so every
        candidate block is checked against the grid before it is returned.
        """
        width, height = max(1, int(width)), max(1, int(height))

        for zone in self.spatial_map.optimal_placement_zones:
            if zone.fits(width, height) and self._block_is_free(zone.row, zone.col, width, height):
                return self._placement(zone.row, zone.col, width, height, source="zone", table_id=zone.table_id)

        if self.primary_table is not None:
            bounds = self.primary_table.bounds
            row, col = bounds.start_row, bounds.end_col + 2
            # Columns past the used range are always empty, so this stops
            while not self._block_is_free(row, col, width, height):
                col += 1
            return self._placement(row, col, width, height, source="table_right", table_id=self.primary_table.id)

        row, col = self.default_placement
        return self._placement(row, col, width, height, source="default")

    def _block_is_free(self, row: int, col: int, width: int, height: int) -> bool:
        return self.grid.block_is_empty(row, col, row + height - 1, col + width - 1)

    @staticmethod
    def _placement(row: int, col: int, width: int, height: int, *, source: str, table_id: Optional[str] = None) -> Placement:
        return Placement(
            row=row,
            col=col,
            anchor=cell_address(row, col),
            range=range_address(row, col, row + height - 1, col + width - 1),
            source=source,
            table_id=table_id,
        )

    def locate_selection(self, selection: str) -> SelectionInsight:
        """
        Which table a selection touches and the likely intent, judged from the
        selection's top-left cell.

        Raises:
            InvalidRangeError: selection is not an A1 cell or range
        """
        row, col, _, _ = parse_range_address(selection)
        for table in self.tables:
            b = table.bounds
            if b.contains(row, col):
                intent = "modify_data"
            elif col == b.end_col + 1 and b.start_row <= row <= b.end_row:
                intent = "add_column"
            elif row == b.end_row + 1 and b.start_col <= col <= b.end_col:
                intent = "add_row"
            else:
                continue
            return SelectionInsight(
                selection=selection,
                table_id=table.id,
                intent=intent,
                columns=list(table.headers),
            )
        return SelectionInsight(selection=selection)

    def describe(self) -> Dict[str, Any]:
        """Compact summary for debugging and prompt context."""
        return {
            "sheet_name": self.sheet_name,
            "used_range": self.analysis.boundary.used_range,
            "detection_strategy": self.analysis.detection_strategy,
            "tables": [
                {
                    "id": t.id,
                    "headers": list(t.headers),
                    "row_count": t.row_count,
                    "table_type": t.semantics.table_type,
                    "calculable_columns": [c.name for c in t.columns if c.is_calculable],
                }
                for t in self.tables
            ],
            "primary_table": self.primary_table.id if self.primary_table else None,
            "calculable_columns": list(self.calculable_columns),
            "numeric_columns": list(self.numeric_columns),
            "placement_zones": [z.position for z in self.spatial_map.optimal_placement_zones],
            "formulas": len(self.analysis.formulas),
            "last_updated": self.last_updated,
            "valid": self.valid,
        }


class SheetContextManager:
    """Caches one SheetContext for the active sheet of one engine."""

    def __init__(
        self,
        adapter: SpreadsheetEngineAdapter,
        *,
        settings: Optional[ContextSettings] = None,
        clock: Callable[[], float] = time.time,
        session: Optional[SessionState] = None,
    ):
        self.adapter = adapter
        self.settings = settings or get_settings().context
        self.session = session
        self._clock = clock
        self._cache_ttl = float(self.settings.cache_ttl_seconds)
        self._cached: Optional[SheetContext] = None

    @property
    def cache_ttl_seconds(self) -> float:
        return self._cache_ttl

    def set_cache_ttl(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("cache TTL must be >= 0")
        self._cache_ttl = float(seconds)

    @property
    def cached_context(self) -> Optional[SheetContext]:
        return self._cached

    # ---------------------------
    # Cache
    # ---------------------------

    def _active_sheet_name(self) -> Optional[str]:
        try:
            return self.adapter.active_sheet_name()
        except DomainException:
            raise
        except Exception as e:
            raise GridUnavailableError(f"active sheet lookup failed: {e}") from e

    def _is_usable(self, context: SheetContext, sheet_name: Optional[str]) -> bool:
        if not context.valid:
            return False
        if sheet_name is not None and context.sheet_name != sheet_name:
            logger.info(f"Active sheet switched {context.sheet_name!r} -> {sheet_name!r}; rebuilding context")
            context.valid = False
            return False
        age = self._clock() - context.last_updated
        return age < self._cache_ttl

    def _build(self, sheet_name: Optional[str]) -> SheetContext:
        try:
            snapshot = self.adapter.get_snapshot()
        except DomainException:
            raise
        except Exception as e:
            raise GridUnavailableError(str(e) or type(e).__name__, sheet_name=sheet_name) from e

        grid = GridAccessor.from_snapshot(snapshot, sheet_name=sheet_name)
        analysis = SheetAnalyzer.analyze(grid, settings=self.settings)
        context = SheetContext.from_analysis(
            grid,
            analysis,
            sheet_name=sheet_name or grid.sheet_name,
            last_updated=self._clock(),
            default_placement=(self.settings.default_placement_row, self.settings.default_placement_col),
        )
        logger.debug(
            f"Built context for sheet {context.sheet_name!r}: "
            f"{len(context.tables)} table(s), strategy={analysis.detection_strategy}"
        )
        return context

    def get_context(self, force_refresh: bool = False) -> SheetContext:
        """
        Cached context when valid, fresh and for the current active sheet;
        otherwise a new one built from a fresh snapshot.

        Raises:
            GridUnavailableError: the engine snapshot could not be read
        """
        sheet_name = self._active_sheet_name()
        cached = self._cached
        if not force_refresh and cached is not None and self._is_usable(cached, sheet_name):
            return cached

        if cached is not None:
            cached.valid = False
        self._cached = self._build(sheet_name)
        return self._cached

    def invalidate_cache(self) -> None:
        if self._cached is not None:
            self._cached.valid = False
        logger.debug("Context cache invalidated")

    def on_mutation(self, reason: str = "") -> None:
        """A tool wrote to the sheet: the next get_context() rebuilds."""
        self.invalidate_cache()
        if self.session is not None:
            self.session.record_action(reason or "mutation", mutated=True)
        logger.info(f"Sheet mutated{f' ({reason})' if reason else ''}; context invalidated")

    # ---------------------------
    # Convenience lookups on the current context
    # ---------------------------

    def find_table(self, table_id: Optional[str] = None) -> Optional[TableDescriptor]:
        return self.get_context().find_table(table_id)

    def find_column(self, name: str, table_id: Optional[str] = None) -> Optional[ColumnDescriptor]:
        return self.get_context().find_column(name, table_id)

    def build_sum_formula(self, column_name: str, table_id: Optional[str] = None) -> str:
        return self.get_context().build_sum_formula(column_name, table_id)

    def find_optimal_placement(self, width: int = 1, height: int = 1) -> Placement:
        return self.get_context().find_optimal_placement(width, height)

    # ---------------------------
    # Tool decorators
    # ---------------------------

    def with_context(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Call `func(context, *args, **kwargs)` with the current context."""

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return func(self.get_context(), *args, **kwargs)

        return wrapper

    def mutating(self, func: Optional[Callable[..., Any]] = None, *, reason: Optional[str] = None):
        """
        Like with_context, for tools that write to the sheet. The cache is
        invalidated after the call, also when the call raised midway.
        """

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            @wraps(fn)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    return fn(self.get_context(), *args, **kwargs)
                finally:
                    self.on_mutation(reason or fn.__name__)

            return wrapper

        if func is not None:
            return decorator(func)
        return decorator


# ---------------------------
# Default manager
# ---------------------------

_default_manager: Optional[SheetContextManager] = None


def configure_context_manager(
    adapter: SpreadsheetEngineAdapter,
    *,
    settings: Optional[ContextSettings] = None,
    clock: Callable[[], float] = time.time,
    session: Optional[SessionState] = None,
) -> SheetContextManager:
    """Install the manager the module-level helpers use."""
    global _default_manager
    _default_manager = SheetContextManager(adapter, settings=settings, clock=clock, session=session)
    return _default_manager


def reset_context_manager() -> None:
    global _default_manager
    _default_manager = None


def get_context_manager() -> SheetContextManager:
    if _default_manager is None:
        raise ContextUnavailableError("no spreadsheet engine configured")
    return _default_manager


def get_context(force_refresh: bool = False) -> SheetContext:
    return get_context_manager().get_context(force_refresh)


def find_table(table_id: Optional[str] = None) -> Optional[TableDescriptor]:
    return get_context_manager().find_table(table_id)


def find_column(name: str, table_id: Optional[str] = None) -> Optional[ColumnDescriptor]:
    return get_context_manager().find_column(name, table_id)


def build_sum_formula(column_name: str, table_id: Optional[str] = None) -> str:
    return get_context_manager().build_sum_formula(column_name, table_id)


def find_optimal_placement(width: int = 1, height: int = 1) -> Placement:
    return get_context_manager().find_optimal_placement(width, height)


def invalidate_cache() -> None:
    """No-op when no manager is configured."""
    if _default_manager is not None:
        _default_manager.invalidate_cache()
