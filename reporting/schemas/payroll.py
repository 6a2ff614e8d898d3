"""
Reporting Engine - Payroll Import Schemas

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PayrollRecord(BaseModel):
    """One normalized line of a gross-pay CSV."""
    
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    
    emp_id: str
    payroll_date: str
    start_date: str = ""
    end_date: str = ""
    week: str = ""
    month: str = ""
    gross_pay_pre_sacrifice: str = ""
    gross_pay_post_sacrifice: str = ""
    gross_pay_taxible: str = ""
    paye_tax: str = ""
    paye_ni: str = ""
    employer_ni: str = ""
    paye_pension: str = ""
    employer_pension: str = ""
    student_loan: str = ""
    ssp: str = ""
    spp: str = ""
    net_pay: str = ""


# Positional order of a transformed line
PAYROLL_RECORD_FIELDS = list(PayrollRecord.model_fields.keys())


class ImportBatch(BaseModel):
    data: List[PayrollRecord] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    
    def to_payload(self) -> dict:
        return {
            "data": [r.model_dump(by_alias=True) for r in self.data],
            "errors": list(self.errors),
        }


class ImportResult(BaseModel):
    imported: int = 0
    updated: int = 0
    
    @property
    def total(self) -> int:
        return self.imported + self.updated
