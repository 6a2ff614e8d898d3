"""
Reporting Engine - Column Formatters

Display formatters referenced by ``ColumnDefinition.format``. A formatter is
called with the column's source values positionally (its own field, or the
fields listed in ``requires``) and the bound date-range parameters as
keyword arguments.
"""

from datetime import date, timedelta
from typing import Any, Optional

from dateutil.relativedelta import relativedelta

from reporting.services.minimum_wage import (
    age_on,
    get_minimum_wage_for_period_by_dob,
    to_date,
)
from reporting.services.registry import register_formatter
from reporting.utils.numbers import to_number


def _positive(value: Any) -> Optional[float]:
    number = to_number(value)
    if number is None or number <= 0:
        return None
    return number


@register_formatter("raw")
def format_raw(value: Any, *_: Any, **__: Any) -> Any:
    return "" if value is None else value


@register_formatter("two_decimals")
def format_two_decimals(value: Any, *_: Any, **__: Any) -> Any:
    """Numbers to two decimal places; anything else untouched."""
    number = to_number(value)
    if number is None:
        return "" if value is None else value
    return f"{number:.2f}"


@register_formatter("date_dmy")
def format_date_dmy(value: Any, *_: Any, **__: Any) -> str:
    if not value:
        return ""
    return to_date(value).strftime("%d/%m/%Y")


@register_formatter("age_at")
def format_age_at(dob: Any, *_: Any, reference_date: Optional[date] = None, **__: Any) -> Any:
    """Whole-year age on the reference date (today when unbound)."""
    if not dob:
        return ""
    return age_on(dob, reference_date or date.today())


@register_formatter("minimum_wage_rate")
def format_minimum_wage_rate(
    dob: Any,
    *_: Any,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    **__: Any,
) -> str:
    """Minimum wage for the period, averaged over days when it changes."""
    if not dob or not start_date or not end_date:
        return ""
    rates = get_minimum_wage_for_period_by_dob(dob, start_date, end_date)
    if isinstance(rates, list):
        daily = [r.rate for r in rates if r.rate is not None]
        if not daily:
            return ""
        return f"{sum(daily) / len(daily):.2f}"
    return f"{rates:.2f}" if rates else ""


@register_formatter("hours")
def format_hours(value: Any, *_: Any, **__: Any) -> str:
    number = _positive(value)
    return "0" if number is None else f"{number:.2f}"


@register_formatter("money")
def format_money(value: Any, *_: Any, **__: Any) -> str:
    number = _positive(value)
    return "0.00" if number is None else f"{number:.2f}"


@register_formatter("whole_or_two_decimals")
def format_whole_or_two_decimals(value: Any, *_: Any, **__: Any) -> str:
    number = _positive(value)
    if number is None:
        return "0"
    return str(int(number)) if number.is_integer() else f"{number:.2f}"


@register_formatter("length_of_service")
def format_length_of_service(days: Any, *_: Any, start_date: Optional[date] = None, **__: Any) -> str:
    """Service length in years and months, counted back from the period end."""
    number = to_number(days)
    if not number:
        return ""
    end = to_date(start_date) if start_date else date.today()
    duration = relativedelta(end, end - timedelta(days=int(number)))
    return f"{duration.years} years {duration.months} months"


@register_formatter("no_decimals")
def format_no_decimals(value: Any, *_: Any, **__: Any) -> Any:
    number = to_number(value)
    if number is None:
        return "" if value is None else value
    return f"{number:.0f}"
