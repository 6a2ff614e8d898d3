"""
Reporting Engine - Report Definition Schema
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from reporting.schemas.export import SheetConfig
from reporting.schemas.report import ColumnDefinition, FilterDefinition


DefaultRangeEnum = Literal["last_7_days", "pay_period"]


class ReportDefinition(BaseModel):
    """Static configuration of one report."""
    
    id: str
    label: str
    endpoint: str
    polling_seconds: Optional[int] = None
    default_range: Optional[DefaultRangeEnum] = None
    allow_targets: bool = False
    show_totals: bool = True
    structure: List[ColumnDefinition] = Field(default_factory=list)
    filters: List[FilterDefinition] = Field(default_factory=list)
    sheets: List[SheetConfig] = Field(default_factory=list)
    
    @model_validator(mode="after")
    def check_structure(self) -> "ReportDefinition":
        ids = [c.id for c in self.structure]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Report '{self.id}' has duplicate column ids")
        known = set(ids)
        for column in self.structure:
            for ref in (column.numerator_id, column.denominator_id):
                if ref is not None and ref not in known:
                    raise ValueError(
                        f"Column '{column.id}' references unknown column '{ref}'"
                    )
        return self
    
    def get_column(self, column_id: str) -> Optional[ColumnDefinition]:
        return next((c for c in self.structure if c.id == column_id), None)
