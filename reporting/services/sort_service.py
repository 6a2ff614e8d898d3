"""
Reporting Engine - Sort Service

Stable, typed column sort. The comparison follows the column's data type:
numbers numerically, strings by a collation that ignores case and accents
(with accents breaking ties), dates chronologically.
Values that cannot be read as the column's type sort after every readable
value in ascending order (and before them in descending order), which keeps
the ordering total.
"""

import unicodedata
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from dateutil.parser import ParserError, parse as parse_datetime

from reporting.schemas.report import ColumnDefinition
from reporting.utils.numbers import to_number

Row = Dict[str, Any]


def _numeric_key(value: Any) -> Tuple[int, float]:
    number = to_number(value)
    if number is None:
        return (1, 0.0)
    return (0, number)


def collation_key(text: str) -> str:
    """Case and accent folded form: 'Émile' collates with 'emile'."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def _string_key(value: Any) -> Tuple[int, str, str, str]:
    if value is None:
        return (0, "", "", "")
    text = str(value)
    return (0, collation_key(text), text.casefold(), text)


def _date_key(value: Any) -> Tuple[int, datetime]:
    if isinstance(value, datetime):
        parsed = value.replace(tzinfo=None)
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = parse_datetime(str(value)).replace(tzinfo=None) if value else None
        except (ParserError, ValueError, OverflowError):
            parsed = None
    if parsed is None:
        return (1, datetime.min)
    return (0, parsed)


SORT_KEYS: Dict[str, Callable[[Any], Tuple]] = {
    "integer": _numeric_key,
    "float": _numeric_key,
    "string": _string_key,
    "date": _date_key,
}


def sort_rows(
    rows: List[Row],
    key: Optional[str],
    direction: str,
    structure: List[ColumnDefinition],
) -> List[Row]:
    """
    Return a sorted copy of ``rows``; ties keep their prior relative order.
    
    Unknown keys and control columns leave the order unchanged.
    """
    if not key:
        return list(rows)
    
    column = next((c for c in structure if c.id == key), None)
    if column is None or column.data_type not in SORT_KEYS:
        return list(rows)
    
    value_key = SORT_KEYS[column.data_type]
    # sorted() is stable, and reverse=True keeps equal elements in input order
    return sorted(rows, key=lambda row: value_key(row.get(key)), reverse=direction == "desc")


def next_sort_direction(current_key: Optional[str], current_direction: str, clicked_key: str) -> str:
    """Header click toggles asc/desc on the active column, else starts asc."""
    if current_key == clicked_key and current_direction == "asc":
        return "desc"
    return "asc"
