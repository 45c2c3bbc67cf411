"""
🔥 THINK ULTRA! Sheet Analyzer

Pure pipeline: Grid -> SheetAnalysis.

    boundary -> table regions -> {columns, spatial, semantics} per table
             -> sheet-level spatial map, cross-table relationships, formulas

Running it twice on an unchanged grid yields equal results.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from shared.config.settings import ContextSettings, get_settings
from shared.models.sheet_context import SheetAnalysis, TableBounds, TableDescriptor
from shared.models.sheet_grid import Grid

from sheet_context.services.boundary_scanner import BoundaryScanner
from sheet_context.services.column_profiler import ColumnProfiler
from sheet_context.services.formula_inventory import FormulaInventory
from sheet_context.services.semantic_analyzer import SemanticAnalyzer
from sheet_context.services.spatial_analyzer import SpatialAnalyzer
from sheet_context.services.table_detector import RawTableRegion, TableDetector

logger = logging.getLogger(__name__)


class SheetAnalyzer:
    """Builds the full analysis the context manager caches."""

    @classmethod
    def describe_region(
        cls,
        grid: Grid,
        region: RawTableRegion,
        *,
        settings: Optional[ContextSettings] = None,
    ) -> TableDescriptor:
        opts = settings or get_settings().context
        bounds = TableBounds(
            start_row=region.start_row,
            end_row=region.end_row,
            start_col=region.start_col,
            end_col=region.end_col,
        )
        headers = list(region.headers)
        return TableDescriptor(
            id=region.range,
            range=region.range,
            bounds=bounds,
            headers=headers,
            row_count=region.row_count,
            columns=ColumnProfiler.profile(grid, region, settings=opts),
            spatial=SpatialAnalyzer.analyze_table(grid, bounds, settings=opts),
            semantics=SemanticAnalyzer.analyze(headers, start_col=region.start_col),
            has_header_row=region.has_header_row,
            detection_strategy=region.strategy,
        )

    @classmethod
    def analyze(cls, grid: Grid, *, settings: Optional[ContextSettings] = None) -> SheetAnalysis:
        opts = settings or get_settings().context

        boundary = BoundaryScanner.scan(grid)
        regions = TableDetector.detect(grid, boundary, settings=opts)
        tables: List[TableDescriptor] = [cls.describe_region(grid, r, settings=opts) for r in regions]

        analysis = SheetAnalysis(
            tables=tables,
            spatial_map=SpatialAnalyzer.build_spatial_map(tables, settings=opts),
            cross_table_relationships=SemanticAnalyzer.cross_table_relationships(tables),
            formulas=FormulaInventory.collect(grid),
            boundary=boundary,
            detection_strategy=regions[0].strategy if regions else None,
        )
        logger.debug(
            f"Analyzed sheet {grid.sheet_name!r}: used range {boundary.used_range}, "
            f"{len(tables)} table(s), {len(analysis.formulas)} formula(s)"
        )
        return analysis
