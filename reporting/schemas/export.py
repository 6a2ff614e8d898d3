"""
Reporting Engine - Export Layout Schemas

Sheet layouts for the declarative multi-sheet Excel export.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from reporting.schemas.report import DateRange, SortSpec, TargetDefinition


class HeaderCell(BaseModel):
    """A header band cell; spans merge the covered cells."""
    label: str = ""
    row_span: int = 1
    col_span: int = 1
    style: Optional[str] = "header"
    bold: bool = True
    
    @field_validator("row_span", "col_span")
    @classmethod
    def positive_span(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Spans must be at least 1")
        return v


class SheetField(BaseModel):
    """
    One output column of a sheet.
    
    Value resolution order: the sheet's ``fixed`` map, then ``compute``
    (registered function id), then the matching column definition's
    formatter, then the raw row value.
    """
    key: str
    column_id: Optional[str] = None
    compute: Optional[str] = None
    color: Optional[str] = None
    use_targets: bool = False
    
    @property
    def source_column(self) -> str:
        return self.column_id or self.key


class SheetConfig(BaseModel):
    name: str
    headers: List[List[HeaderCell]] = Field(default_factory=list)
    fields: List[SheetField] = Field(default_factory=list)
    column_widths: List[float] = Field(default_factory=list)
    row_heights: Dict[int, float] = Field(default_factory=dict)
    row_filter: Optional[str] = None
    sort: Optional[SortSpec] = None
    row_color: Optional[str] = None
    fixed: Dict[str, Any] = Field(default_factory=dict)
    sub_data: Optional[str] = None
    freeze_header: bool = True
    include_totals: bool = False
    
    @field_validator("name")
    @classmethod
    def valid_sheet_name(cls, v: str) -> str:
        # Excel limits sheet titles to 31 characters without []:*?/\
        if not v or len(v) > 31 or any(ch in v for ch in "[]:*?/\\"):
            raise ValueError(f"Invalid sheet name: {v!r}")
        return v


# ===========================================
# EXPORT REQUESTS
# ===========================================

class TableExportRequest(BaseModel):
    """Rendered table markup to convert."""
    html: str
    filename: str = "table.xlsx"
    theme_variables: Dict[str, str] = Field(default_factory=dict)


class ReportExportRequest(BaseModel):
    """Rows of a report, as currently fetched, to export."""
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    date_range: DateRange = Field(default_factory=DateRange)
    targets: List[TargetDefinition] = Field(default_factory=list)
    filename: Optional[str] = None
