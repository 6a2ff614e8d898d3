"""
Reporting Engine - Schemas Package

Pydantic models for report configuration, export layouts and payroll imports.
"""

from reporting.schemas.report import (
    Classification,
    ColumnDefinition,
    DateRange,
    FilterDefinition,
    FilterOption,
    KeyedThreshold,
    ParameterBinding,
    SortSpec,
    TargetDefinition,
    Threshold,
)
from reporting.schemas.export import (
    HeaderCell,
    ReportExportRequest,
    SheetConfig,
    SheetField,
    TableExportRequest,
)
from reporting.schemas.definition import ReportDefinition
from reporting.schemas.payroll import ImportBatch, ImportResult, PayrollRecord

__all__ = [
    "Classification",
    "ColumnDefinition",
    "DateRange",
    "FilterDefinition",
    "FilterOption",
    "KeyedThreshold",
    "ParameterBinding",
    "SortSpec",
    "TargetDefinition",
    "Threshold",
    "HeaderCell",
    "SheetConfig",
    "SheetField",
    "TableExportRequest",
    "ReportExportRequest",
    "ReportDefinition",
    "ImportBatch",
    "ImportResult",
    "PayrollRecord",
]
