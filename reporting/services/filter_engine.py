"""
Reporting Engine - Filter Engine

Evaluates filter definitions against report rows. Rows must satisfy every
filter definition; how a single definition is satisfied depends on its kind:

- default / include: any checked option matches (no checked option = pass).
  Include filters differ only in that clearing filters leaves them alone.
- exclude: no checked option matches (no checked option = pass).
- advanced: at least one option must be checked. A matching checked
  ``solo`` option passes the row outright; otherwise the row must match a
  checked ``and`` option and none of the unchecked options.

A non-advanced filter with no options passes everything, so a report can
ship a filter before its options have been calculated.
"""

import logging
from typing import Any, Dict, List, Optional

from reporting.schemas.report import FilterDefinition, FilterOption
from reporting.services.registry import (
    FILTER_EXPRESSIONS,
    OPTION_CALCULATORS,
    register_expression,
    register_option_calculator,
)
from reporting.utils.numbers import to_number

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


# ===========================================
# BUILT-IN EXPRESSIONS
# ===========================================

@register_expression("equals")
def expr_equals(row: Row, value: Any, field: Optional[str]) -> bool:
    return row.get(field) == value


@register_expression("not_equals")
def expr_not_equals(row: Row, value: Any, field: Optional[str]) -> bool:
    return row.get(field) != value


@register_expression("contains")
def expr_contains(row: Row, value: Any, field: Optional[str]) -> bool:
    cell = row.get(field)
    if cell is None or value is None:
        return False
    return str(value).casefold() in str(cell).casefold()


@register_expression("greater_than")
def expr_greater_than(row: Row, value: Any, field: Optional[str]) -> bool:
    cell, bound = to_number(row.get(field)), to_number(value)
    return cell is not None and bound is not None and cell > bound


@register_expression("less_than")
def expr_less_than(row: Row, value: Any, field: Optional[str]) -> bool:
    cell, bound = to_number(row.get(field)), to_number(value)
    return cell is not None and bound is not None and cell < bound


@register_expression("truthy")
def expr_truthy(row: Row, value: Any, field: Optional[str]) -> bool:
    return bool(row.get(field)) == bool(value)


@register_option_calculator("distinct_values")
def distinct_values(rows: List[Row], field: Optional[str]) -> List[Dict[str, Any]]:
    """One unchecked option per distinct non-empty value, sorted by label."""
    seen = {}
    for row in rows:
        value = row.get(field)
        if value is None or value == "":
            continue
        seen.setdefault(value, str(value))
    return [
        {"label": label, "value": value, "checked": False}
        for value, label in sorted(seen.items(), key=lambda item: item[1].casefold())
    ]


# ===========================================
# EVALUATION
# ===========================================

def _matches(definition: FilterDefinition, row: Row, option: FilterOption) -> bool:
    predicate = FILTER_EXPRESSIONS.get(definition.expression)
    return bool(predicate(row, option.value, definition.field or definition.id))


def _advanced_passes(definition: FilterDefinition, row: Row) -> bool:
    checked = [o for o in definition.options if o.checked]
    if not checked:
        return False
    
    if any(o.mode == "solo" and _matches(definition, row, o) for o in checked):
        return True
    
    and_options = [o for o in checked if o.mode != "solo"]
    if not any(_matches(definition, row, o) for o in and_options):
        return False
    unchecked = [o for o in definition.options if not o.checked]
    return not any(_matches(definition, row, o) for o in unchecked)


def row_passes(definition: FilterDefinition, row: Row) -> bool:
    """Whether one row satisfies one filter definition."""
    if definition.advanced:
        return _advanced_passes(definition, row)
    
    checked = [o for o in definition.options if o.checked]
    if not checked:
        return True
    
    if definition.kind == "exclude":
        return not any(_matches(definition, row, o) for o in checked)
    return any(_matches(definition, row, o) for o in checked)


def apply_filters(rows: List[Row], filters: Optional[List[FilterDefinition]] = None) -> List[Row]:
    """
    Rows satisfying every filter, in their original order.
    
    Neither ``rows`` nor ``filters`` is modified; the result is a new list.
    """
    if not filters:
        return list(rows)
    return [row for row in rows if all(row_passes(f, row) for f in filters)]


# ===========================================
# FILTER STATE UPDATES
# ===========================================

def refresh_filter_options(
    definitions: List[FilterDefinition],
    rows: List[Row],
    existing: Optional[List[FilterDefinition]] = None,
) -> List[FilterDefinition]:
    """
    Recalculate options from freshly fetched rows.
    
    The checked state of options that already existed is kept, and
    previously known options missing from the new set are appended so a
    user's selection survives a refresh.
    """
    current = {f.id: f for f in (existing or [])}
    refreshed = []
    
    for definition in definitions:
        if definition.calculate_options:
            calculator = OPTION_CALCULATORS.get(definition.calculate_options)
            new_options = [FilterOption(**o) for o in calculator(rows, definition.field or definition.id)]
        else:
            new_options = [o.model_copy() for o in definition.options]
        
        previous = current.get(definition.id)
        previous_options = {o.value: o for o in previous.options} if previous else {}
        
        merged = []
        for option in new_options:
            known = previous_options.get(option.value)
            merged.append(option.model_copy(update={"checked": known.checked if known else option.checked}))
        
        new_values = {o.value for o in new_options}
        stale = [o for value, o in previous_options.items() if value not in new_values]
        
        refreshed.append(definition.model_copy(update={"options": merged + stale}))
    
    return refreshed


def set_option_checked(
    filters: List[FilterDefinition],
    filter_id: str,
    value: Any,
    checked: bool,
) -> List[FilterDefinition]:
    updated = []
    for definition in filters:
        if definition.id != filter_id:
            updated.append(definition)
            continue
        options = [
            o.model_copy(update={"checked": checked}) if o.value == value else o
            for o in definition.options
        ]
        updated.append(definition.model_copy(update={"options": options}))
    return updated


def clear_filters(filters: List[FilterDefinition]) -> List[FilterDefinition]:
    """Uncheck every option except those of include filters."""
    return [
        f if f.kind == "include" else f.model_copy(
            update={"options": [o.model_copy(update={"checked": False}) for o in f.options]}
        )
        for f in filters
    ]
