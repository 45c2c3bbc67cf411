"""
Sheet context models.

These models represent the output of the table-detection engine: detected
tables with column profiles, spatial hints and header-derived semantics,
plus the sheet-level spatial map that tools use to place new content.
All coordinates are 0-based unless a field says otherwise.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.models.sheet_grid import GridBoundary

ColumnDataType = Literal["text", "number", "date", "formula", "currency", "empty"]
DetectionStrategy = Literal["standard", "emergency", "desperate"]
PlacementZoneType = Literal["right_of_table", "below_table"]
PlacementSource = Literal["zone", "table_right", "default"]
SelectionIntent = Literal["modify_data", "add_column", "add_row", "unknown"]


class TableBounds(BaseModel):
    """0-based inclusive table rectangle (header row included)."""

    start_row: int = Field(..., ge=0)
    end_row: int = Field(..., ge=0)
    start_col: int = Field(..., ge=0)
    end_col: int = Field(..., ge=0)

    model_config = ConfigDict(extra="ignore")

    @property
    def width(self) -> int:
        return self.end_col - self.start_col + 1

    @property
    def height(self) -> int:
        return self.end_row - self.start_row + 1

    def contains(self, row: int, col: int) -> bool:
        return self.start_row <= row <= self.end_row and self.start_col <= col <= self.end_col

    def intersects_columns(self, start_col: int, end_col: int) -> bool:
        return start_col <= self.end_col and end_col >= self.start_col


class ColumnDescriptor(BaseModel):
    """Profile of one table column."""

    name: str
    letter: str = Field(..., description="Spreadsheet column letter (A, B, ..., AA)")
    index: int = Field(..., ge=0, description="0-based sheet column index")
    data_type: ColumnDataType = "empty"
    sample_values: List[Any] = Field(default_factory=list)
    has_formulas: bool = False
    is_numeric: bool = False
    is_currency: bool = False
    is_calculable: bool = False

    model_config = ConfigDict(extra="ignore")


class SpatialInfo(BaseModel):
    """Where a table can grow and where free space sits next to it."""

    next_available_column: str = Field(..., description="Letter of the column right of the table")
    next_available_row: int = Field(..., ge=1, description="1-based row number right below the table")
    empty_space_right: List[str] = Field(default_factory=list, description="Contiguous empty column letters")
    empty_space_below: List[int] = Field(default_factory=list, description="Contiguous empty 1-based row numbers")
    can_expand_right: bool = False
    can_expand_down: bool = False

    model_config = ConfigDict(extra="ignore")


class ColumnRelationship(BaseModel):
    """Header-derived relationship between columns of one table."""

    type: str = Field(..., description="profit_margin | per_unit_weight | line_total")
    columns: List[str] = Field(default_factory=list)
    description: str = ""

    model_config = ConfigDict(extra="ignore")


class CalculationSuggestion(BaseModel):
    """Row formula suggestion; `{row}` in the template is replaced by a 1-based row number."""

    name: str
    description: str = ""
    formula_template: str
    columns: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def formula_for_row(self, row_number: int) -> str:
        return self.formula_template.replace("{row}", str(row_number))


class SemanticInfo(BaseModel):
    table_type: str = "general"
    business_domain: str = "general"
    key_columns: List[str] = Field(default_factory=list)
    calculable_columns: List[str] = Field(default_factory=list)
    relationships: List[ColumnRelationship] = Field(default_factory=list)
    suggested_calculations: List[CalculationSuggestion] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class TableDescriptor(BaseModel):
    """A detected table with its column profiles, spatial hints and semantics."""

    id: str = Field(..., description="Table id (equals the range string)")
    range: str = Field(..., description="A1 range, e.g. A1:C10")
    bounds: TableBounds
    headers: List[str] = Field(default_factory=list)
    row_count: int = Field(..., ge=1, description="Data rows (header excluded)")
    columns: List[ColumnDescriptor] = Field(default_factory=list)
    spatial: SpatialInfo
    semantics: SemanticInfo = Field(default_factory=SemanticInfo)
    has_header_row: bool = True
    detection_strategy: DetectionStrategy = "standard"

    model_config = ConfigDict(extra="ignore")

    @property
    def data_start_row(self) -> int:
        """0-based first data row."""
        return self.bounds.start_row + 1 if self.has_header_row else self.bounds.start_row

    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


class PlacementZone(BaseModel):
    """Ranked free area next to a table. `max_width`/`max_height` of None means unbounded."""

    type: PlacementZoneType
    table_id: str
    row: int = Field(..., ge=0)
    col: int = Field(..., ge=0)
    position: str = Field(..., description="A1 anchor cell")
    description: str = ""
    max_width: Optional[int] = None
    max_height: Optional[int] = None

    model_config = ConfigDict(extra="ignore")

    def fits(self, width: int, height: int) -> bool:
        if self.max_width is not None and width > self.max_width:
            return False
        if self.max_height is not None and height > self.max_height:
            return False
        return True


class SpatialMap(BaseModel):
    used_regions: List[str] = Field(default_factory=list)
    largest_empty_area: Optional[str] = Field(
        default=None, description="A1 cell two columns right of / three rows below all tables"
    )
    optimal_placement_zones: List[PlacementZone] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class CrossTableRelationship(BaseModel):
    type: Literal["shared_columns"] = "shared_columns"
    table1: str
    table2: str
    common_columns: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class FormulaReference(BaseModel):
    """A formula cell and the A1 references it reads."""

    cell: str
    formula: str
    dependencies: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class SheetAnalysis(BaseModel):
    """Full analysis of one grid snapshot."""

    tables: List[TableDescriptor] = Field(default_factory=list)
    spatial_map: SpatialMap = Field(default_factory=SpatialMap)
    cross_table_relationships: List[CrossTableRelationship] = Field(default_factory=list)
    formulas: List[FormulaReference] = Field(default_factory=list)
    boundary: GridBoundary = Field(default_factory=GridBoundary)
    detection_strategy: Optional[DetectionStrategy] = Field(
        default=None, description="Strategy that produced the tables; None for an empty grid"
    )

    model_config = ConfigDict(extra="ignore")


class Placement(BaseModel):
    """Anchor for new content of a given width x height."""

    row: int = Field(..., ge=0)
    col: int = Field(..., ge=0)
    anchor: str = Field(..., description="A1 anchor cell")
    range: str = Field(..., description="A1 block covering width x height from the anchor")
    source: PlacementSource
    table_id: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class SelectionInsight(BaseModel):
    """Which table a selection touches and what the user most likely wants to do there."""

    selection: str
    table_id: Optional[str] = None
    intent: SelectionIntent = "unknown"
    columns: List[str] = Field(default_factory=list, description="Header names of touched table columns")

    model_config = ConfigDict(extra="ignore")
