"""
Semantic Analyzer

Header-only inference: table type, business domain, key and calculable
columns, column relationships, row-formula suggestions, and columns shared
between tables. Matching is case-insensitive substring matching.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from shared.models.sheet_context import (
    CalculationSuggestion,
    ColumnRelationship,
    CrossTableRelationship,
    SemanticInfo,
    TableDescriptor,
)
from shared.utils.a1_notation import index_to_column_letter

from sheet_context.services.column_profiler import ColumnProfiler

# First match wins
TABLE_TYPE_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("product", "item"), "inventory"),
    (("sales", "revenue"), "financial"),
    (("customer", "client"), "customer"),
    (("date", "time"), "temporal"),
)

BUSINESS_DOMAIN_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("price", "cost", "revenue"), "commerce"),
    (("weight", "size"), "physical"),
    (("rating", "score"), "evaluation"),
)

KEY_COLUMN_KEYWORDS = ("id", "name", "product")


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(k in text for k in keywords)


def _find_header(
    headers: Sequence[str],
    include: Sequence[str],
    exclude: Sequence[str] = (),
) -> Optional[int]:
    for idx, header in enumerate(headers):
        lower = header.lower()
        if _contains_any(lower, include) and not _contains_any(lower, exclude):
            return idx
    return None


class SemanticAnalyzer:
    @staticmethod
    def _match_rules(headers: Sequence[str], rules: Sequence[Tuple[Tuple[str, ...], str]]) -> str:
        lowered = [h.lower() for h in headers]
        for keywords, label in rules:
            if any(_contains_any(h, keywords) for h in lowered):
                return label
        return "general"

    @classmethod
    def infer_table_type(cls, headers: Sequence[str]) -> str:
        return cls._match_rules(headers, TABLE_TYPE_RULES)

    @classmethod
    def infer_business_domain(cls, headers: Sequence[str]) -> str:
        return cls._match_rules(headers, BUSINESS_DOMAIN_RULES)

    @staticmethod
    def key_columns(headers: Sequence[str]) -> List[str]:
        return [
            h for i, h in enumerate(headers)
            if i == 0 or _contains_any(h.lower(), KEY_COLUMN_KEYWORDS)
        ]

    @staticmethod
    def calculable_columns(headers: Sequence[str]) -> List[str]:
        return [h for h in headers if ColumnProfiler.is_calculable_name(h)]

    @staticmethod
    def relationships(headers: Sequence[str]) -> List[ColumnRelationship]:
        found: List[ColumnRelationship] = []
        price = _find_header(headers, ("price",))
        cost = _find_header(headers, ("cost",))
        qty = _find_header(headers, ("quantity", "qty"))
        weight = _find_header(headers, ("weight",))

        if price is not None and cost is not None:
            found.append(ColumnRelationship(
                type="profit_margin",
                columns=[headers[price], headers[cost]],
                description=f"{headers[price]} - {headers[cost]} gives the margin",
            ))
        if weight is not None and qty is not None:
            found.append(ColumnRelationship(
                type="per_unit_weight",
                columns=[headers[weight], headers[qty]],
                description=f"{headers[weight]} / {headers[qty]} gives weight per unit",
            ))
        if price is not None and qty is not None:
            found.append(ColumnRelationship(
                type="line_total",
                columns=[headers[price], headers[qty]],
                description=f"{headers[price]} * {headers[qty]} gives the line total",
            ))
        return found

    @staticmethod
    def suggested_calculations(headers: Sequence[str], *, start_col: int = 0) -> List[CalculationSuggestion]:
        """
        Row formulas built from the table's real column letters. `{row}` in
        each template is a 1-based row number.
        """
        def letter(idx: int) -> str:
            return index_to_column_letter(start_col + idx)

        lowered = [h.lower() for h in headers]
        has_price = any(_contains_any(h, ("price", "cost", "zł", "$", "€")) for h in lowered)
        has_weight = any(_contains_any(h, ("weight", "kg", "mass", "gram")) for h in lowered)
        has_quantity = any(_contains_any(h, ("quantity", "qty", "amount", "count")) for h in lowered)

        suggestions: List[CalculationSuggestion] = []

        if has_price and has_weight:
            price = _find_header(headers, ("price", "cost", "zł"))
            weight = _find_header(headers, ("weight", "kg"))
            if price is not None and weight is not None:
                p, w = letter(price), letter(weight)
                suggestions.append(CalculationSuggestion(
                    name="Price per kg",
                    description=f"Divide {headers[price]} by {headers[weight]} (blank when weight is 0)",
                    formula_template=f'=IF({w}{{row}}=0,"",{p}{{row}}/{w}{{row}})',
                    columns=[headers[price], headers[weight]],
                ))

        if has_price and has_quantity:
            price = _find_header(headers, ("price", "cost"))
            qty = _find_header(headers, ("quantity", "qty"))
            if price is not None and qty is not None:
                p, q = letter(price), letter(qty)
                suggestions.append(CalculationSuggestion(
                    name="Price per unit",
                    description=f"Divide {headers[price]} by {headers[qty]} (blank when quantity is 0)",
                    formula_template=f'=IF({q}{{row}}=0,"",{p}{{row}}/{q}{{row}})',
                    columns=[headers[price], headers[qty]],
                ))

            unit_price = _find_header(headers, ("price",), exclude=("total",))
            has_total = any("total" in h for h in lowered)
            if unit_price is not None and qty is not None and not has_total:
                p, q = letter(unit_price), letter(qty)
                suggestions.append(CalculationSuggestion(
                    name="Total Cost",
                    description=f"Multiply {headers[unit_price]} by {headers[qty]}",
                    formula_template=f"={p}{{row}}*{q}{{row}}",
                    columns=[headers[unit_price], headers[qty]],
                ))

        cost = _find_header(headers, ("cost",), exclude=("total",))
        sell_price = _find_header(headers, ("price",), exclude=("cost",))
        if cost is not None and sell_price is not None:
            c, p = letter(cost), letter(sell_price)
            suggestions.append(CalculationSuggestion(
                name="Profit Margin",
                description="Profit margin percentage",
                formula_template=f"=({p}{{row}}-{c}{{row}})/{p}{{row}}*100",
                columns=[headers[sell_price], headers[cost]],
            ))

        return suggestions

    @classmethod
    def analyze(cls, headers: Sequence[str], *, start_col: int = 0) -> SemanticInfo:
        headers = list(headers)
        return SemanticInfo(
            table_type=cls.infer_table_type(headers),
            business_domain=cls.infer_business_domain(headers),
            key_columns=cls.key_columns(headers),
            calculable_columns=cls.calculable_columns(headers),
            relationships=cls.relationships(headers),
            suggested_calculations=cls.suggested_calculations(headers, start_col=start_col),
        )

    @staticmethod
    def cross_table_relationships(tables: Sequence[TableDescriptor]) -> List[CrossTableRelationship]:
        """Pairs of tables sharing at least one header (case-insensitive)."""
        found: List[CrossTableRelationship] = []
        lowered: Dict[str, set] = {t.id: {h.lower() for h in t.headers} for t in tables}
        for i, first in enumerate(tables):
            for second in tables[i + 1:]:
                common = [h for h in first.headers if h.lower() in lowered[second.id]]
                if common:
                    found.append(CrossTableRelationship(
                        table1=first.id,
                        table2=second.id,
                        common_columns=common,
                    ))
        return found
