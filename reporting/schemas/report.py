"""
Reporting Engine - Report Schemas

Column, target and filter definitions. Every executable piece (formatters,
filter expressions, row classifiers) is referenced by a registered string id
so a schema stays plain, serializable data.
"""

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# ===========================================
# ENUMS AS LITERALS
# ===========================================

DataTypeEnum = Literal["string", "integer", "float", "date", "control"]

DirectionEnum = Literal["asc", "desc"]

Classification = Literal["green", "red", "yellow"]

ParameterTypeEnum = Literal["startDate", "endDate"]

FilterKindEnum = Literal["default", "include", "exclude", "advanced"]

FilterModeEnum = Literal["solo", "and"]


class DateRange(BaseModel):
    """Active reporting window."""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    
    @property
    def is_complete(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class SortSpec(BaseModel):
    key: str
    direction: DirectionEnum = "asc"


# ===========================================
# COLUMNS
# ===========================================

class ParameterBinding(BaseModel):
    """Binds a formatter keyword argument to the active date range."""
    type: ParameterTypeEnum
    label: str = ""
    default: Optional[date] = None
    description: str = ""


# Targets travel camelCase on the wire (targetDirection, keyedTargets, keyValue)
WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Threshold(BaseModel):
    model_config = WIRE_CONFIG
    
    high: Optional[float] = None
    low: Optional[float] = None


class KeyedThreshold(Threshold):
    """Threshold that applies when ``row[target.key] == key_value``."""
    key_value: Any


class ColumnDefinition(BaseModel):
    """One reportable field of a report."""
    
    id: str
    label: str = ""
    data_type: DataTypeEnum = "string"
    visible: bool = True
    exportable: Optional[bool] = None
    
    # Conditional formatting
    allow_target: bool = False
    target: Optional[Threshold] = None
    row_target: Optional[str] = None
    target_direction: DirectionEnum = "asc"
    
    # Display
    prefix: str = ""
    suffix: str = ""
    header_annotation: str = ""
    format: str = "raw"
    requires: List[str] = Field(default_factory=list)
    parameters: Dict[str, ParameterBinding] = Field(default_factory=dict)
    
    # Weighted ratio columns
    numerator_id: Optional[str] = None
    denominator_id: Optional[str] = None
    
    @model_validator(mode="after")
    def check_ratio_pair(self) -> "ColumnDefinition":
        if (self.numerator_id is None) != (self.denominator_id is None):
            raise ValueError(
                f"Column '{self.id}' must set both numerator_id and denominator_id or neither"
            )
        if self.exportable is None:
            self.exportable = self.data_type != "control"
        return self
    
    @property
    def is_control(self) -> bool:
        return self.data_type == "control"
    
    @property
    def is_numeric(self) -> bool:
        return self.data_type in ("integer", "float")
    
    @property
    def is_weighted(self) -> bool:
        return self.numerator_id is not None and self.denominator_id is not None
    
    @property
    def source_fields(self) -> List[str]:
        """Row fields passed positionally to the formatter."""
        return list(self.requires) if self.requires else [self.id]


# ===========================================
# TARGETS
# ===========================================

class TargetDefinition(BaseModel):
    """
    Threshold attached to a column.
    
    When ``key`` is set the flat ``target`` is ignored and the entry of
    ``keyed_targets`` whose ``key_value`` equals ``row[key]`` applies.
    """
    model_config = WIRE_CONFIG
    
    id: str
    target: Optional[Threshold] = None
    target_direction: DirectionEnum = "asc"
    key: Optional[str] = None
    keyed_targets: List[KeyedThreshold] = Field(default_factory=list)


# ===========================================
# FILTERS
# ===========================================

class FilterOption(BaseModel):
    label: str
    value: Any
    checked: bool = False
    mode: Optional[FilterModeEnum] = None


class FilterDefinition(BaseModel):
    """
    A named filter over report rows.
    
    ``expression`` is a registered predicate id called as
    ``predicate(row, option_value, field)``, where ``field`` defaults to the
    filter id; ``calculate_options`` is a
    registered calculator id deriving options from the fetched rows.
    """
    id: str
    name: str
    expression: str = "equals"
    field: Optional[str] = None
    kind: FilterKindEnum = "default"
    options: List[FilterOption] = Field(default_factory=list)
    calculate_options: Optional[str] = None
    
    @property
    def advanced(self) -> bool:
        return self.kind == "advanced"
