"""
Numeric coercion helpers shared by formatting, sorting and totals.
"""

import math
from decimal import Decimal
from typing import Any, Optional


def to_number(value: Any) -> Optional[float]:
    """Parse a cell value as a float; None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a cell value as a Decimal without binary float noise."""
    number = to_number(value)
    if number is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    return Decimal(str(value).strip() if isinstance(value, str) else repr(number))
