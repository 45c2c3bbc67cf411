"""
🔥 THINK ULTRA! Sheet context manager tests

Cache lifecycle (TTL, invalidation, sheet switch, mutation), lookup helpers
and the module-level default manager.
"""

import pytest

import sheet_context
from shared.config.settings import ContextSettings
from shared.exceptions import (
    ContextUnavailableError,
    DomainException,
    GridUnavailableError,
    InvalidRangeError,
    NoTableFoundError,
)

from sheet_context.adapters.memory import InMemorySpreadsheet
from sheet_context.services.context_manager import SheetContextManager
from sheet_context.services.session_state import SessionState


class BrokenSpreadsheet(InMemorySpreadsheet):
    def get_snapshot(self):
        raise RuntimeError("engine closed")


class NoActiveSheetSpreadsheet(InMemorySpreadsheet):
    def active_sheet_name(self):
        raise ConnectionError("bridge lost")


class RawSnapshotSpreadsheet(InMemorySpreadsheet):
    def __init__(self, snapshot):
        super().__init__()
        self._raw = snapshot

    def get_snapshot(self):
        return self._raw


@pytest.fixture
def manager(revenue_engine, clock):
    return SheetContextManager(revenue_engine, clock=clock)


@pytest.fixture(autouse=True)
def _reset_default_manager():
    sheet_context.reset_context_manager()
    yield
    sheet_context.reset_context_manager()


class TestCacheLifecycle:
    def test_context_is_reused_within_ttl(self, manager, revenue_engine, clock):
        first = manager.get_context()
        clock.advance(4.9)
        assert manager.get_context() is first
        assert revenue_engine.snapshot_count == 1

    def test_context_is_rebuilt_after_ttl(self, manager, revenue_engine, clock):
        first = manager.get_context()
        clock.advance(5.0)
        second = manager.get_context()
        assert second is not first
        assert first.valid is False
        assert second.valid is True
        assert revenue_engine.snapshot_count == 2

    def test_ttl_comes_from_settings(self, revenue_engine, clock):
        manager = SheetContextManager(revenue_engine, settings=ContextSettings(cache_ttl_seconds=1), clock=clock)
        assert manager.cache_ttl_seconds == 1.0
        first = manager.get_context()
        clock.advance(1.5)
        assert manager.get_context() is not first

    def test_zero_ttl_always_rebuilds(self, manager, revenue_engine):
        manager.set_cache_ttl(0)
        manager.get_context()
        manager.get_context()
        assert revenue_engine.snapshot_count == 2

    def test_negative_ttl_is_rejected(self, manager):
        with pytest.raises(ValueError):
            manager.set_cache_ttl(-1)

    def test_invalidate_forces_rebuild(self, manager, revenue_engine):
        first = manager.get_context()
        manager.invalidate_cache()
        assert first.valid is False
        assert manager.get_context() is not first
        assert revenue_engine.snapshot_count == 2

    def test_invalidate_without_context_is_noop(self, manager):
        manager.invalidate_cache()
        assert manager.cached_context is None

    def test_force_refresh(self, manager, revenue_engine):
        first = manager.get_context()
        second = manager.get_context(force_refresh=True)
        assert second is not first
        assert first.valid is False
        assert revenue_engine.snapshot_count == 2

    def test_sheet_switch_rebuilds(self, manager, revenue_engine):
        first = manager.get_context()
        revenue_engine.add_sheet("Stock", [["Name", "Qty"], ["Bolt", 4]])
        revenue_engine.switch_sheet("Stock")

        second = manager.get_context()
        assert second is not first
        assert first.valid is False
        assert second.sheet_name == "Stock"
        assert second.primary_table.range == "A1:B2"

    def test_cached_context_sees_no_writes_until_invalidated(self, manager, revenue_engine):
        """캐시된 컨텍스트는 무효화 전까지 이전 스냅샷을 유지한다"""
        first = manager.get_context()
        revenue_engine.set_value("C3", 999)
        assert manager.get_context() is first
        assert manager.get_context().grid.value(2, 2) == 200

        manager.on_mutation("edit")
        assert manager.get_context().grid.value(2, 2) == 999


class TestMutationHooks:
    def test_mutating_decorator_invalidates(self, manager, revenue_engine):
        @manager.mutating
        def write_total(ctx, column):
            revenue_engine.set_formula("E1", ctx.build_sum_formula(column), value=300)
            return ctx

        used = write_total("Revenue")
        assert used.valid is False
        fresh = manager.get_context()
        assert fresh is not used
        assert [f.cell for f in fresh.analysis.formulas] == ["E1"]
        assert fresh.analysis.formulas[0].dependencies == ["C2:C3"]

    def test_mutating_invalidates_when_tool_raises(self, manager):
        @manager.mutating(reason="broken tool")
        def fail_midway(ctx):
            raise ValueError("partial write")

        with pytest.raises(ValueError):
            fail_midway()
        assert manager.cached_context.valid is False

    def test_with_context_passes_current_context(self, manager):
        @manager.with_context
        def count_tables(ctx, extra=0):
            return len(ctx.tables) + extra

        assert count_tables(extra=1) == 2
        assert count_tables.__name__ == "count_tables"

    def test_mutation_is_recorded_in_session(self, revenue_engine, clock):
        session = SessionState("chat-1", clock=clock)
        manager = SheetContextManager(revenue_engine, clock=clock, session=session)

        @manager.mutating
        def highlight(ctx):
            revenue_engine.set_background(ctx.primary_table.range, "#ffff00")

        highlight()
        manager.on_mutation("write_total")

        assert [e.tool for e in session.action_log] == ["highlight", "write_total"]
        assert all(e.mutated for e in session.action_log)


class TestErrors:
    def test_snapshot_failure_is_wrapped(self, clock):
        manager = SheetContextManager(BrokenSpreadsheet(), clock=clock)
        with pytest.raises(GridUnavailableError) as exc_info:
            manager.get_context()
        err = exc_info.value
        assert err.code == "GRID_UNAVAILABLE"
        assert isinstance(err.__cause__, RuntimeError)
        assert "engine closed" in str(err)
        assert err.details["sheet_name"] == "Sheet1"

    def test_active_sheet_failure_is_wrapped(self, clock):
        manager = SheetContextManager(NoActiveSheetSpreadsheet(), clock=clock)
        with pytest.raises(GridUnavailableError) as exc_info:
            manager.get_context()
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.parametrize("snapshot", [None, 42, "not a grid"])
    def test_unreadable_snapshot(self, snapshot, clock):
        manager = SheetContextManager(RawSnapshotSpreadsheet(snapshot), clock=clock)
        with pytest.raises(GridUnavailableError):
            manager.get_context()

    def test_grid_errors_are_context_errors(self):
        err = GridUnavailableError("timeout")
        assert isinstance(err, ContextUnavailableError)
        assert isinstance(err, DomainException)
        assert err.to_dict()["code"] == "GRID_UNAVAILABLE"

    def test_failed_build_keeps_no_context(self, clock):
        manager = SheetContextManager(BrokenSpreadsheet(), clock=clock)
        with pytest.raises(GridUnavailableError):
            manager.get_context()
        assert manager.cached_context is None


class TestLookups:
    def test_primary_table(self, manager):
        ctx = manager.get_context()
        assert ctx.primary_table.id == "A1:C3"
        assert ctx.find_table() is ctx.primary_table
        assert ctx.find_table("a1:c3") is ctx.primary_table
        assert ctx.find_table("Z1:Z9") is None
        assert ctx.get_table_range() == "A1:C3"

    def test_require_table(self, manager, clock):
        ctx = manager.get_context()
        with pytest.raises(NoTableFoundError) as exc_info:
            ctx.require_table("Z1:Z9")
        assert exc_info.value.details == {"table_id": "Z1:Z9"}

        empty = SheetContextManager(InMemorySpreadsheet(), clock=clock).get_context()
        with pytest.raises(NoTableFoundError) as exc_info:
            empty.require_table()
        assert exc_info.value.code == "NO_TABLE_FOUND"

    def test_column_flags(self, manager):
        ctx = manager.get_context()
        revenue = ctx.find_column("Revenue")
        assert revenue.letter == "C"
        assert revenue.data_type == "number"
        assert revenue.is_numeric and revenue.is_calculable
        assert ctx.find_column("Date").data_type == "date"
        assert ctx.calculable_columns == ["Revenue"]
        assert ctx.numeric_columns == ["Revenue"]

    def test_find_column_lookup_order(self, clock):
        engine = InMemorySpreadsheet.from_rows([
            ["ID", "A", "Total"],
            ["x1", 1, 2],
            ["x2", 3, 4],
        ])
        ctx = SheetContextManager(engine, clock=clock).get_context()
        # Exact header beats column letter
        assert ctx.find_column("a").letter == "B"
        # Column letter beats substring
        assert ctx.find_column("C").name == "Total"
        assert ctx.find_column("tot").name == "Total"
        assert ctx.find_column("missing") is None
        assert ctx.find_column("") is None
        assert ctx.find_column("   ") is None

    def test_sum_formula(self, manager):
        ctx = manager.get_context()
        assert ctx.build_sum_formula("Revenue") == "=SUM(C2:C3)"
        assert ctx.build_sum_formula("revenue") == "=SUM(C2:C3)"
        assert ctx.build_sum_formula("C") == "=SUM(C2:C3)"
        assert ctx.build_sum_formula("Profit") == ""
        assert ctx.build_sum_formula("Revenue", table_id="Z1:Z9") == ""

    def test_column_range(self, manager):
        ctx = manager.get_context()
        assert ctx.get_column_range("Revenue") == "C2:C3"
        assert ctx.get_column_range("Revenue", include_header=True) == "C1:C3"
        assert ctx.get_column_range("Nope") == ""

    def test_sum_formula_on_headerless_table(self, clock):
        engine = InMemorySpreadsheet.from_rows([[5], [6], [7]])
        ctx = SheetContextManager(engine, clock=clock).get_context()
        assert ctx.primary_table.has_header_row is False
        assert ctx.build_sum_formula("A") == "=SUM(A1:A3)"
        assert ctx.build_sum_formula("Column A") == "=SUM(A1:A3)"

    def test_sum_formula_excludes_total_row(self, clock, inventory_rows):
        engine = InMemorySpreadsheet({"Sheet1": {}})
        for r, row in enumerate(inventory_rows):
            for c, value in enumerate(row):
                if isinstance(value, dict):
                    engine.set_formula(f"{'ABCD'[c]}{r + 1}", value["f"], value=value["v"])
                elif value is not None:
                    engine.set_value(f"{'ABCD'[c]}{r + 1}", value)
        ctx = SheetContextManager(engine, clock=clock).get_context()
        assert ctx.build_sum_formula("Amount") == "=SUM(D6:D8)"

    def test_columns_found_under_a_label_row(self, clock):
        engine = InMemorySpreadsheet.from_rows([
            ["Region", "North"],
            ["Date", "Product", "Revenue"],
            [45292, "Tea", 100],
            [45293, "Cake", 200],
        ])
        ctx = SheetContextManager(engine, clock=clock).get_context()
        assert ctx.primary_table.range == "A2:C4"
        assert ctx.find_column("Revenue").letter == "C"
        assert ctx.build_sum_formula("Revenue") == "=SUM(C3:C4)"


class TestPlacement:
    def test_first_zone_right_of_table(self, manager):
        placement = manager.find_optimal_placement()
        assert placement.anchor == "D1"
        assert placement.source == "zone"
        assert placement.table_id == "A1:C3"
        assert manager.find_optimal_placement(3, 2).range == "D1:F2"

    def test_zone_too_narrow_falls_to_next(self, clock):
        engine = InMemorySpreadsheet.from_rows([
            ["Name", "Qty"],
            ["a", 1, None, "x"],
            ["b", 2],
        ])
        manager = SheetContextManager(engine, clock=clock)
        assert manager.find_optimal_placement(1, 1).anchor == "C1"
        wide = manager.find_optimal_placement(2, 1)
        assert wide.anchor == "A4"
        assert wide.range == "A4:B4"

    def test_right_of_primary_table_without_zones(self, clock):
        engine = InMemorySpreadsheet.from_rows([
            ["Name", "Qty"],
            ["a", 1, 99],
            ["b", 2],
            ["c", 3],
            ["Total", 6],
        ])
        ctx = SheetContextManager(engine, clock=clock).get_context()
        assert ctx.spatial_map.optimal_placement_zones == []
        placement = ctx.find_optimal_placement()
        assert placement.anchor == "D1"
        assert placement.source == "table_right"

    def test_right_zone_skipped_when_block_hits_data_below_table_rows(self, clock):
        engine = InMemorySpreadsheet.from_rows([
            ["Name", "Qty"],
            ["a", 1],
            ["b", 2],
            [],
            [None, None, None, 5],
        ])
        ctx = SheetContextManager(engine, clock=clock).get_context()
        assert ctx.primary_table.range == "A1:B3"
        assert ctx.find_optimal_placement(2, 2).range == "C1:D2"

        placement = ctx.find_optimal_placement(2, 6)
        assert placement.range == "A4:B9"
        assert placement.source == "zone"

    def test_below_zone_skipped_when_block_hits_data_right_of_table(self, clock):
        engine = InMemorySpreadsheet.from_rows([
            ["Name", "Qty"],
            ["a", 1, 99],
            ["b", 2],
            [None, None, None, "note"],
        ])
        ctx = SheetContextManager(engine, clock=clock).get_context()
        assert [z.position for z in ctx.spatial_map.optimal_placement_zones] == ["A4"]
        assert ctx.find_optimal_placement(2, 1).range == "A4:B4"

        placement = ctx.find_optimal_placement(4, 1)
        assert placement.source == "table_right"
        assert placement.range == "D1:G1"

    def test_right_of_table_slides_past_occupied_cells(self, clock):
        engine = InMemorySpreadsheet.from_rows([
            ["Name", "Qty"],
            ["a", 1, 99],
            ["b", 2, None, "x"],
            ["c", 3],
            ["Total", 6],
        ])
        ctx = SheetContextManager(engine, clock=clock).get_context()
        assert ctx.find_optimal_placement(1, 1).anchor == "D1"

        placement = ctx.find_optimal_placement(1, 3)
        assert placement.source == "table_right"
        assert placement.range == "E1:E3"
        grid = ctx.grid
        assert grid.block_is_empty(placement.row, placement.col, placement.row + 2, placement.col)

    def test_default_placement_on_empty_sheet(self, clock):
        ctx = SheetContextManager(InMemorySpreadsheet(), clock=clock).get_context()
        placement = ctx.find_optimal_placement(0, -3)
        assert placement.anchor == "I1"
        assert placement.range == "I1"
        assert placement.source == "default"

    def test_default_placement_from_settings(self, clock):
        opts = ContextSettings(default_placement_row=2, default_placement_col=0)
        ctx = SheetContextManager(InMemorySpreadsheet(), settings=opts, clock=clock).get_context()
        assert ctx.find_optimal_placement().anchor == "A3"


class TestSelection:
    @pytest.mark.parametrize(
        "selection,intent,table_id",
        [
            ("B2", "modify_data", "A1:C3"),
            ("A1:B2", "modify_data", "A1:C3"),
            ("D2", "add_column", "A1:C3"),
            ("Sheet1!D1", "add_column", "A1:C3"),
            ("A4", "add_row", "A1:C3"),
            ("F10", "unknown", None),
        ],
    )
    def test_locate_selection(self, manager, selection, intent, table_id):
        insight = manager.get_context().locate_selection(selection)
        assert insight.intent == intent
        assert insight.table_id == table_id
        if table_id:
            assert insight.columns == ["Date", "Product", "Revenue"]

    def test_invalid_selection(self, manager):
        with pytest.raises(InvalidRangeError):
            manager.get_context().locate_selection("not a range")


class TestDescribe:
    def test_describe(self, manager):
        summary = manager.get_context().describe()
        assert summary["sheet_name"] == "Sheet1"
        assert summary["used_range"] == "A1:C3"
        assert summary["detection_strategy"] == "standard"
        assert summary["primary_table"] == "A1:C3"
        assert summary["tables"][0]["row_count"] == 2
        assert summary["placement_zones"] == ["D1", "A4"]
        assert summary["valid"] is True

    def test_describe_empty_sheet(self, clock):
        summary = SheetContextManager(InMemorySpreadsheet(), clock=clock).get_context().describe()
        assert summary["tables"] == []
        assert summary["primary_table"] is None
        assert summary["used_range"] is None
        assert summary["detection_strategy"] is None


class TestDefaultManager:
    def test_unconfigured(self):
        with pytest.raises(ContextUnavailableError) as exc_info:
            sheet_context.get_context()
        assert exc_info.value.code == "CONTEXT_UNAVAILABLE"
        # Invalidating with nothing configured is harmless
        sheet_context.invalidate_cache()

    def test_module_level_helpers(self, revenue_engine, clock):
        manager = sheet_context.configure_context_manager(revenue_engine, clock=clock)
        assert sheet_context.get_context_manager() is manager

        assert sheet_context.build_sum_formula("Revenue") == "=SUM(C2:C3)"
        assert sheet_context.find_table().range == "A1:C3"
        assert sheet_context.find_column("Product").letter == "B"
        assert sheet_context.find_optimal_placement().anchor == "D1"
        assert revenue_engine.snapshot_count == 1

        ctx = sheet_context.get_context()
        sheet_context.invalidate_cache()
        assert ctx.valid is False
        assert sheet_context.get_context() is not ctx
