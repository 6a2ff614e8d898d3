"""
Reporting Engine - Report Schema Service

Helpers that read a report definition: display-value rendering with bound
date-range parameters, ingestion-time row validation and default reporting
windows.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from reporting.schemas.definition import ReportDefinition
from reporting.schemas.report import ColumnDefinition, DateRange
from reporting.services import formatters  # noqa: F401  registers built-in formatters
from reporting.services.registry import FORMATTERS

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


@dataclass
class RowIssue:
    index: int
    missing_fields: List[str] = field(default_factory=list)


def bind_parameters(column: ColumnDefinition, date_range: Optional[DateRange]) -> Dict[str, Any]:
    """Resolve a column's parameters from the active date range."""
    bound = {}
    for name, binding in column.parameters.items():
        value = None
        if date_range is not None:
            value = date_range.start_date if binding.type == "startDate" else date_range.end_date
        bound[name] = value if value is not None else (binding.default or date.today())
    return bound


def format_value(column: ColumnDefinition, row: Row, date_range: Optional[DateRange] = None) -> Any:
    """Formatter output for one cell, without prefix/suffix."""
    formatter = FORMATTERS.get(column.format)
    values = [row.get(name) for name in column.source_fields]
    return formatter(*values, **bind_parameters(column, date_range))


def render_value(column: ColumnDefinition, row: Row, date_range: Optional[DateRange] = None) -> str:
    """On-screen display value of one cell."""
    value = format_value(column, row, date_range)
    return f"{column.prefix}{'' if value is None else value}{column.suffix}"


def data_columns(structure: List[ColumnDefinition]) -> List[ColumnDefinition]:
    return [c for c in structure if not c.is_control]


def visible_columns(structure: List[ColumnDefinition]) -> List[ColumnDefinition]:
    return [c for c in structure if c.visible]


def validate_rows(structure: List[ColumnDefinition], rows: List[Row]) -> Tuple[List[Row], List[RowIssue]]:
    """
    Split rows into accepted rows and issues for rows missing a field that
    a data column reads.
    """
    required = []
    for column in data_columns(structure):
        for name in column.source_fields:
            if name not in required:
                required.append(name)
    
    accepted: List[Row] = []
    issues: List[RowIssue] = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            issues.append(RowIssue(index=index, missing_fields=list(required)))
            continue
        missing = [name for name in required if name not in row]
        if missing:
            issues.append(RowIssue(index=index, missing_fields=missing))
        else:
            accepted.append(row)
    
    if issues:
        logger.warning(f"{len(issues)} of {len(rows)} rows rejected by schema validation")
    return accepted, issues


def default_date_range(report: ReportDefinition, today: Optional[date] = None) -> DateRange:
    """
    Initial window for a report.
    
    ``last_7_days`` spans the previous week up to today. ``pay_period``
    spans the 29th of one month to the 28th of the next, the window that
    contains today.
    """
    today = today or date.today()
    
    if report.default_range == "last_7_days":
        return DateRange(start_date=today - timedelta(days=7), end_date=today)
    
    if report.default_range == "pay_period":
        if today.day < 29:
            start = _day_or_next_first(today - relativedelta(months=1), 29)
        else:
            start = today.replace(day=29)
        if today.day > 28:
            end = (today + relativedelta(months=1)).replace(day=28)
        else:
            end = today.replace(day=28)
        return DateRange(start_date=start, end_date=end)
    
    return DateRange()


def _day_or_next_first(month_day: date, day: int) -> date:
    """``day`` of the month, or the 1st of the following month if it doesn't exist."""
    try:
        return month_day.replace(day=day)
    except ValueError:
        return month_day.replace(day=1) + relativedelta(months=1)
