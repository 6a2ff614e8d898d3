"""
Reporting Engine - Built-in Row Functions

Row classifiers, row predicates and computed fields referenced by id from
report and sheet definitions.
"""

from datetime import date
from typing import Any, Dict, Optional

from reporting.schemas.report import Classification, DateRange
from reporting.services.minimum_wage import age_on, get_rate_for_date
from reporting.services.registry import (
    register_field_compute,
    register_row_classifier,
    register_row_predicate,
)
from reporting.utils.numbers import to_number

Row = Dict[str, Any]


# ===========================================
# ROW CLASSIFIERS
# ===========================================

@register_row_classifier("below_minimum_wage")
def below_minimum_wage(row: Row, on: Optional[date] = None) -> Optional[Classification]:
    """Red when the row's hourly rate is under the minimum wage for the employee's age."""
    rate = to_number(row.get("hourly_rate"))
    dob = row.get("dob")
    if rate is None or not dob:
        return None
    on = on or date.today()
    minimum = get_rate_for_date(age_on(dob, on), on)
    if minimum is None:
        return None
    return "red" if rate < minimum else None


@register_row_classifier("has_adjustments")
def adjustments_classifier(row: Row) -> Optional[Classification]:
    return "yellow" if has_adjustments(row) else None


# ===========================================
# ROW PREDICATES
# ===========================================

@register_row_predicate("always")
def always(row: Row) -> bool:
    return True


@register_row_predicate("has_hours")
def has_hours(row: Row) -> bool:
    hours = to_number(row.get("hours"))
    return hours is not None and hours > 0


@register_row_predicate("has_adjustments")
def has_adjustments(row: Row) -> bool:
    """Rows carrying bonus or holiday pay, or a non-empty adjustments list."""
    if row.get("adjustments"):
        return True
    for field in ("bonus", "holiday_pay"):
        value = to_number(row.get(field))
        if value is not None and value > 0:
            return True
    return False


# ===========================================
# COMPUTED FIELDS
# ===========================================

@register_field_compute("employee_full_name")
def employee_full_name(row: Row, date_range: Optional[DateRange] = None) -> str:
    parts = [str(row.get(name) or "").strip() for name in ("firstname", "surname")]
    return " ".join(p for p in parts if p)


@register_field_compute("period_label")
def period_label(row: Row, date_range: Optional[DateRange] = None) -> str:
    if date_range is None or not date_range.is_complete:
        return ""
    return (
        f"{date_range.start_date.strftime('%d/%m/%Y')}"
        f" - {date_range.end_date.strftime('%d/%m/%Y')}"
    )
