"""
Reporting Engine - Totals Aggregator

Footer totals over the rows currently on screen (filtered and sorted).
Ratio columns total as sum(numerator) / sum(denominator) * 100 rather than
the mean of the per-row ratios.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from reporting.schemas.report import ColumnDefinition, DateRange
from reporting.services.minimum_wage import round_half_up
from reporting.services.registry import FORMATTERS
from reporting.services.report_schema import bind_parameters
from reporting.utils.numbers import to_decimal

Row = Dict[str, Any]

TOTAL_LABEL = "Total"


def column_sum(rows: List[Row], field: str) -> Decimal:
    """Sum of the numeric values of a field; non-numeric cells count as zero."""
    total = Decimal("0")
    for row in rows:
        value = to_decimal(row.get(field))
        if value is not None:
            total += value
    return total


def weighted_ratio(rows: List[Row], numerator_id: str, denominator_id: str) -> Decimal:
    """(sum numerator / sum denominator) * 100, rounded to 2 places."""
    denominator = column_sum(rows, denominator_id)
    if denominator == 0:
        return Decimal("0.00")
    return round_half_up(column_sum(rows, numerator_id) / denominator * 100)


def total_value(column: ColumnDefinition, rows: List[Row]) -> Optional[Decimal]:
    """Raw numeric total of a column, or None for columns without one."""
    if not column.is_numeric or column.requires:
        return None
    if column.is_weighted:
        # Ratio columns only total as percentages
        if column.suffix != "%":
            return None
        return weighted_ratio(rows, column.numerator_id, column.denominator_id)
    return column_sum(rows, column.id)


def compute_total(
    column: ColumnDefinition,
    visible_rows: List[Row],
    is_first: bool = False,
    date_range: Optional[DateRange] = None,
) -> Any:
    """
    Footer display value of one column.
    
    Text and date columns show "Total" in the first visible column and
    nothing elsewhere.
    """
    if column.data_type in ("string", "date"):
        return TOTAL_LABEL if is_first else ""
    
    value = total_value(column, visible_rows)
    if value is None:
        return ""
    
    formatter = FORMATTERS.get(column.format)
    return formatter(float(value), **bind_parameters(column, date_range))


def compute_totals(
    structure: List[ColumnDefinition],
    visible_rows: List[Row],
    date_range: Optional[DateRange] = None,
) -> Dict[str, Any]:
    """Footer values for every visible column, keyed by column id."""
    totals = {}
    columns = [c for c in structure if c.visible]
    for index, column in enumerate(columns):
        totals[column.id] = compute_total(column, visible_rows, is_first=index == 0, date_range=date_range)
    return totals
