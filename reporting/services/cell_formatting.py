"""
Reporting Engine - Cell Formatting

Shared by both Excel export pathways: number/currency/percentage inference
from display text, the colour palette, and theme colour resolution.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional

from openpyxl.cell.cell import Cell
from openpyxl.styles import Font, PatternFill

from reporting.config import get_settings
from reporting.utils.numbers import to_number


@dataclass(frozen=True)
class CellColors:
    fill: str
    font: str


STATUS_COLORS: Dict[str, CellColors] = {
    "green": CellColors("C6EFCE", "006100"),
    "red": CellColors("FFC7CE", "9C0006"),
    "yellow": CellColors("FFEB9C", "9C6500"),
}
# Older tables mark the caution state as orange
STATUS_COLORS["orange"] = STATUS_COLORS["yellow"]

NAMED_COLORS: Dict[str, CellColors] = {
    **STATUS_COLORS,
    "header": CellColors("1F2937", "FFFFFF"),
    "subheader": CellColors("D6E4F0", "1F2937"),
    "grey": CellColors("F2F2F2", "000000"),
    "blue": CellColors("DDEBF7", "1F4E78"),
}

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")
_RGB_RE = re.compile(r"^(?:rgb\()?\s*(\d{1,3})[\s,]+(\d{1,3})[\s,]+(\d{1,3})\s*\)?$")


def parse_css_color(value: Optional[str]) -> Optional[str]:
    """``#rrggbb``, ``#rgb``, ``rgb(r, g, b)`` or ``r g b`` to ``RRGGBB``."""
    if not value:
        return None
    text = value.strip()
    
    match = _HEX_RE.match(text)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return digits.upper()
    
    match = _RGB_RE.match(text)
    if match:
        channels = [int(c) for c in match.groups()]
        if all(0 <= c <= 255 for c in channels):
            return "".join(f"{c:02X}" for c in channels)
    return None


def resolve_theme_colors(
    variables: Optional[Dict[str, str]] = None,
    fill_variable: str = "--theme-100",
    font_variable: str = "--theme-700",
) -> CellColors:
    """Theme colour pair from CSS variables, or the configured fallback pair."""
    settings = get_settings()
    variables = variables or {}
    fill = parse_css_color(variables.get(fill_variable))
    font = parse_css_color(variables.get(font_variable))
    if fill is None or font is None:
        return CellColors(settings.theme_fallback_fill, settings.theme_fallback_font)
    return CellColors(fill, font)


def apply_colors(cell: Cell, colors: CellColors) -> None:
    cell.fill = PatternFill(start_color=colors.fill, end_color=colors.fill, fill_type="solid")
    cell.font = Font(color=colors.font, bold=cell.font.bold)


# ===========================================
# NUMBER INFERENCE
# ===========================================

@dataclass(frozen=True)
class NumericCell:
    value: float
    number_format: str


def decimal_places(text: str) -> int:
    return len(text.split(".", 1)[1]) if "." in text else 0


def _fixed_format(places: int, value: float, suffix: str = "") -> str:
    if value == 0 or places == 0:
        return f"0{suffix}"
    return f"0.{'0' * places}{suffix}"


def infer_numeric_cell(text: str, currency_symbol: Optional[str] = None) -> Optional[NumericCell]:
    """
    Typed spreadsheet value for a display string.
    
    "12.50%" -> 0.125 with format 0.00%; "£1,234.50" -> 1234.5 with format
    £#,##0.00; "3.5" -> 3.5 with format 0.0. Zero values drop their
    decimals. Returns None for text that is not numeric.
    """
    if text is None:
        return None
    content = str(text).strip()
    if not content:
        return None
    symbol = currency_symbol or get_settings().currency_symbol
    
    if content.endswith("%"):
        body = content[:-1].strip()
        number = to_number(body)
        if number is None:
            return None
        value = number / 100
        return NumericCell(value, _fixed_format(decimal_places(body), value, "%"))
    
    if symbol in content:
        number = to_number(re.sub(r"[^0-9.\-]+", "", content))
        if number is None:
            return None
        return NumericCell(number, f"{symbol}#,##0" if number == 0 else f"{symbol}#,##0.00")
    
    number = to_number(content)
    if number is None:
        return None
    return NumericCell(number, _fixed_format(decimal_places(content), number))


def write_display_value(cell: Cell, value, currency_symbol: Optional[str] = None) -> None:
    """Write a display value, typed and number-formatted when numeric."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        cell.value = value
        return
    numeric = infer_numeric_cell(value, currency_symbol) if isinstance(value, str) else None
    if numeric is None:
        cell.value = value
        return
    cell.value = numeric.value
    cell.number_format = numeric.number_format
