"""
Reporting Engine - Report View

Shapes fetched rows into what the table shows: filtered, then sorted, then
totalled, with display values and target classifications per cell.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from reporting.schemas.definition import ReportDefinition
from reporting.schemas.report import (
    Classification,
    DateRange,
    FilterDefinition,
    SortSpec,
    TargetDefinition,
)
from reporting.services.filter_engine import apply_filters
from reporting.services.report_schema import render_value, visible_columns
from reporting.services.sort_service import sort_rows
from reporting.services.target_service import classify, classify_row
from reporting.services.totals_service import compute_totals, total_value

Row = Dict[str, Any]


@dataclass
class DisplayCell:
    value: str
    classification: Optional[Classification] = None


@dataclass
class ReportView:
    rows: List[Row] = field(default_factory=list)
    display: List[Dict[str, DisplayCell]] = field(default_factory=list)
    row_classes: List[Optional[Classification]] = field(default_factory=list)
    totals: Dict[str, Any] = field(default_factory=dict)
    total_classes: Dict[str, Optional[Classification]] = field(default_factory=dict)


def build_view(
    report: ReportDefinition,
    rows: List[Row],
    filters: Optional[List[FilterDefinition]] = None,
    sort: Optional[SortSpec] = None,
    date_range: Optional[DateRange] = None,
    targets: Optional[List[TargetDefinition]] = None,
) -> ReportView:
    """Filter -> sort -> totals over the source rows, which stay untouched."""
    visible = apply_filters(rows, filters)
    if sort is not None:
        visible = sort_rows(visible, sort.key, sort.direction, report.structure)
    
    columns = visible_columns(report.structure)
    targets = targets or []
    use_targets = report.allow_targets and bool(targets)
    
    display = []
    for row in visible:
        display.append({
            column.id: DisplayCell(
                value=render_value(column, row, date_range),
                classification=classify(column, row, targets) if use_targets and column.allow_target else None,
            )
            for column in columns
            if not column.is_control
        })
    
    view = ReportView(
        rows=visible,
        display=display,
        row_classes=[classify_row(report.structure, row) for row in visible],
    )
    
    if report.show_totals:
        view.totals = compute_totals(report.structure, visible, date_range)
        if use_targets:
            for column in columns:
                value = total_value(column, visible)
                if column.allow_target and value is not None:
                    view.total_classes[column.id] = classify(column, {}, targets, value=value)
    return view
