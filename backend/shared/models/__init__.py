"""
Shared model definitions for the sheet context engine
"""

from .sheet_context import *
from .sheet_grid import *

__all__ = [
    # grid models
    "Cell",
    "Grid",
    "GridBoundary",
    # context models
    "TableBounds",
    "ColumnDescriptor",
    "SpatialInfo",
    "ColumnRelationship",
    "CalculationSuggestion",
    "SemanticInfo",
    "TableDescriptor",
    "PlacementZone",
    "SpatialMap",
    "CrossTableRelationship",
    "FormulaReference",
    "SheetAnalysis",
    "Placement",
    "SelectionInsight",
]
