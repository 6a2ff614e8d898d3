"""
Reporting Engine - Excel Export Service

Builds .xlsx workbooks entirely in memory through two pathways:

- Table pathway: converts rendered table markup (HTML) into a worksheet,
  dropping control columns and inferring colours from CSS class tokens and
  number formats from the cell text.
- Declarative pathway: one worksheet per sheet layout of a report, with
  merged header bands, fixed/computed/formatted cells, sub-row expansion
  and per-cell colour rules.

Both public entry points report failures through the notifier and return
None instead of raising.
"""

import io
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

from bs4 import BeautifulSoup, Tag
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from reporting.config import get_settings
from reporting.schemas.definition import ReportDefinition
from reporting.schemas.export import HeaderCell, SheetConfig, SheetField
from reporting.schemas.report import DateRange, TargetDefinition
from reporting.services import export_functions  # noqa: F401  registers built-in predicates
from reporting.services.cell_formatting import (
    NAMED_COLORS,
    STATUS_COLORS,
    CellColors,
    apply_colors,
    resolve_theme_colors,
    write_display_value,
)
from reporting.services.notification_service import Notifier
from reporting.services.registry import FIELD_COMPUTES, ROW_CLASSIFIERS, ROW_PREDICATES
from reporting.services.report_schema import render_value
from reporting.services.sort_service import sort_rows
from reporting.services.target_service import classify
from reporting.services.totals_service import compute_total
from reporting.utils.error_handling import ExportFailure

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

THIN_BORDER = Border(
    left=Side(style="thin"), right=Side(style="thin"),
    top=Side(style="thin"), bottom=Side(style="thin")
)
HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center", wrap_text=True)

COLOR_TOKENS = ("green", "red", "yellow", "orange", "theme")
ZEBRA_MARKERS = ("even:", "odd:", "striped", "zebra")


@dataclass
class ExportFile:
    content: bytes
    filename: str
    media_type: str = XLSX_MEDIA_TYPE


def build_export_filename(label: str, date_range: Optional[DateRange] = None) -> str:
    """``<label> - <start dd/mm/yyyy> - <end dd/mm/yyyy>.xlsx``"""
    if date_range is None or not date_range.is_complete:
        return f"{label}.xlsx"
    return (
        f"{label} - {date_range.start_date.strftime('%d/%m/%Y')}"
        f" - {date_range.end_date.strftime('%d/%m/%Y')}.xlsx"
    )


def color_from_classes(classes: List[str]) -> Optional[str]:
    """First colour token found in a list of CSS classes."""
    parts = set()
    for token in classes:
        parts.update(re.split(r"[-:/]", token))
    return next((name for name in COLOR_TOKENS if name in parts), None)


def is_zebra_row(classes: List[str]) -> bool:
    return any(marker in token for token in classes for marker in ZEBRA_MARKERS)


def _save(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    return buffer.read()


class ExcelExportService:
    """Service for building Excel exports of reports."""
    
    def __init__(self, notifier: Notifier):
        self.notifier = notifier
        self.settings = get_settings()
    
    # =========================================================================
    # TABLE PATHWAY
    # =========================================================================
    
    def export_table_to_excel(
        self,
        html: str,
        filename: str = "table.xlsx",
        theme_variables: Optional[Dict[str, str]] = None,
    ) -> Optional[ExportFile]:
        """Convert rendered table markup to a workbook; None on failure."""
        try:
            return self.build_table_workbook(html, filename, theme_variables)
        except Exception as e:
            logger.error(f"Error exporting table to Excel: {e}", exc_info=True)
            self.notifier.error(ExportFailure().message)
            return None
    
    def build_table_workbook(
        self,
        html: str,
        filename: str = "table.xlsx",
        theme_variables: Optional[Dict[str, str]] = None,
    ) -> ExportFile:
        soup = BeautifulSoup(html or "", "html.parser")
        table = soup.find("table")
        if not isinstance(table, Tag):
            raise ExportFailure("HTML table not found")
        
        rows = table.find_all("tr")
        if not rows:
            raise ExportFailure("HTML table has no rows")
        
        grid = [row.find_all(["th", "td"], recursive=False) for row in rows]
        excluded = self._control_column_indexes(grid[0])
        grid = [[cell for i, cell in enumerate(cells) if i not in excluded] for cells in grid]
        
        palette = dict(STATUS_COLORS)
        palette["theme"] = resolve_theme_colors(theme_variables)
        
        workbook = Workbook()
        ws = workbook.active
        ws.title = self.settings.default_sheet_name
        
        for r, (row, cells) in enumerate(zip(rows, grid), start=1):
            row_classes = row.get("class") or []
            row_color = None
            if r > 1 and not is_zebra_row(row_classes):
                row_color = color_from_classes(row_classes)
            
            for c, element in enumerate(cells, start=1):
                text = element.get_text(strip=True)
                cell = ws.cell(row=r, column=c)
                
                if r == 1:
                    cell.value = text
                    cell.font = Font(bold=True)
                    continue
                
                write_display_value(cell, text, self.settings.currency_symbol)
                color = color_from_classes(element.get("class") or []) or row_color
                if color:
                    apply_colors(cell, palette[color])
        
        logger.info(f"Exported table with {len(rows)} rows to {filename}")
        return ExportFile(content=_save(workbook), filename=filename)
    
    @staticmethod
    def _control_column_indexes(header_cells: List[Tag]) -> Set[int]:
        excluded = set()
        for index, cell in enumerate(header_cells):
            classes = cell.get("class") or []
            if "control" in classes or cell.get("data-export") == "false":
                excluded.add(index)
        return excluded
    
    # =========================================================================
    # DECLARATIVE PATHWAY
    # =========================================================================
    
    def export_report_to_excel(
        self,
        report: ReportDefinition,
        rows: List[Row],
        date_range: Optional[DateRange] = None,
        targets: Optional[List[TargetDefinition]] = None,
        filename: Optional[str] = None,
    ) -> Optional[ExportFile]:
        """Build the report's multi-sheet workbook; None on failure."""
        try:
            return self.build_report_workbook(report, rows, date_range, targets, filename)
        except Exception as e:
            logger.error(f"Error exporting report {report.id} to Excel: {e}", exc_info=True)
            self.notifier.error(ExportFailure().message)
            return None
    
    def build_report_workbook(
        self,
        report: ReportDefinition,
        rows: List[Row],
        date_range: Optional[DateRange] = None,
        targets: Optional[List[TargetDefinition]] = None,
        filename: Optional[str] = None,
    ) -> ExportFile:
        if not report.sheets:
            raise ExportFailure(f"Report '{report.id}' has no sheet layout")
        
        workbook = Workbook()
        workbook.remove(workbook.active)
        
        for sheet in report.sheets:
            ws = workbook.create_sheet(title=sheet.name)
            self._write_sheet(ws, sheet, report, rows, date_range, targets or [])
        
        return ExportFile(
            content=_save(workbook),
            filename=filename or build_export_filename(report.label, date_range),
        )
    
    def select_rows(self, sheet: SheetConfig, report: ReportDefinition, rows: List[Row]) -> List[Row]:
        """Rows of one sheet: filtered, sorted, then expanded into sub-rows."""
        selected = rows
        if sheet.row_filter:
            predicate = ROW_PREDICATES.get(sheet.row_filter)
            selected = [row for row in selected if predicate(row)]
        if sheet.sort:
            selected = sort_rows(selected, sheet.sort.key, sheet.sort.direction, report.structure)
        if sheet.sub_data:
            expanded = []
            for row in selected:
                for item in row.get(sheet.sub_data) or []:
                    expanded.append({**row, **item} if isinstance(item, dict) else {**row, sheet.sub_data: item})
            selected = expanded
        return selected
    
    def resolve_field(
        self,
        field: SheetField,
        sheet: SheetConfig,
        report: ReportDefinition,
        row: Row,
        date_range: Optional[DateRange],
    ) -> Any:
        if field.key in sheet.fixed:
            return sheet.fixed[field.key]
        if field.compute:
            return FIELD_COMPUTES.get(field.compute)(row, date_range)
        column = report.get_column(field.source_column)
        if column is not None:
            return render_value(column, row, date_range)
        value = row.get(field.key)
        return "" if value is None else value
    
    def _write_sheet(
        self,
        ws: Worksheet,
        sheet: SheetConfig,
        report: ReportDefinition,
        rows: List[Row],
        date_range: Optional[DateRange],
        targets: List[TargetDefinition],
    ) -> None:
        headers = sheet.headers or [[
            HeaderCell(label=(report.get_column(f.source_column).label if report.get_column(f.source_column) else f.key))
            for f in sheet.fields
        ]]
        header_rows = self._write_headers(ws, headers)
        
        output = self.select_rows(sheet, report, rows)
        row_classifier = ROW_CLASSIFIERS.get(sheet.row_color) if sheet.row_color else None
        
        r = header_rows
        for row in output:
            r += 1
            row_color = row_classifier(row) if row_classifier else None
            for c, field in enumerate(sheet.fields, start=1):
                cell = ws.cell(row=r, column=c)
                write_display_value(cell, self.resolve_field(field, sheet, report, row, date_range), self.settings.currency_symbol)
                cell.border = THIN_BORDER
                color = self._cell_color(field, report, row, targets) or row_color
                if color in NAMED_COLORS:
                    apply_colors(cell, NAMED_COLORS[color])
        
        if sheet.include_totals:
            r += 1
            self._write_totals(ws, r, sheet, report, output, date_range)
        
        for index, width in enumerate(sheet.column_widths, start=1):
            ws.column_dimensions[get_column_letter(index)].width = width
        for row_number, height in sheet.row_heights.items():
            ws.row_dimensions[row_number].height = height
        if sheet.freeze_header and header_rows:
            ws.freeze_panes = ws.cell(row=header_rows + 1, column=1)
        
        logger.debug(f"Sheet {sheet.name}: {len(output)} rows")
    
    def _cell_color(
        self,
        field: SheetField,
        report: ReportDefinition,
        row: Row,
        targets: List[TargetDefinition],
    ) -> Optional[str]:
        if field.color:
            return ROW_CLASSIFIERS.get(field.color)(row)
        if field.use_targets:
            column = report.get_column(field.source_column)
            if column is not None:
                return classify(column, row, targets)
        return None
    
    def _write_headers(self, ws: Worksheet, headers: List[List[HeaderCell]]) -> int:
        """Lay out header bands, merging spanned cells. Returns the header row count."""
        occupied: Set[Tuple[int, int]] = set()
        for r, header_row in enumerate(headers, start=1):
            c = 1
            for header in header_row:
                while (r, c) in occupied:
                    c += 1
                end_row = r + header.row_span - 1
                end_col = c + header.col_span - 1
                
                cell = ws.cell(row=r, column=c, value=header.label)
                cell.alignment = HEADER_ALIGNMENT
                cell.border = THIN_BORDER
                colors = NAMED_COLORS.get(header.style) if header.style else None
                if colors:
                    apply_colors(cell, colors)
                cell.font = Font(bold=header.bold, color=colors.font if colors else None)
                
                if end_row > r or end_col > c:
                    ws.merge_cells(start_row=r, start_column=c, end_row=end_row, end_column=end_col)
                for rr in range(r, end_row + 1):
                    for cc in range(c, end_col + 1):
                        occupied.add((rr, cc))
                c = end_col + 1
        return max((rr for rr, _ in occupied), default=0)
    
    def _write_totals(
        self,
        ws: Worksheet,
        r: int,
        sheet: SheetConfig,
        report: ReportDefinition,
        rows: List[Row],
        date_range: Optional[DateRange],
    ) -> None:
        for c, field in enumerate(sheet.fields, start=1):
            column = report.get_column(field.source_column)
            if column is None:
                value = "Total" if c == 1 else ""
            else:
                total = compute_total(column, rows, is_first=c == 1, date_range=date_range)
                value = f"{column.prefix}{total}{column.suffix}" if total not in ("", "Total") else total
            cell = ws.cell(row=r, column=c)
            write_display_value(cell, value, self.settings.currency_symbol)
            cell.font = Font(bold=True)
            cell.border = THIN_BORDER
