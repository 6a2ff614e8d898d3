"""
Reporting Engine - Report Catalogue

Static report definitions, looked up by id.
"""

from typing import Dict, List

from reporting.schemas.definition import ReportDefinition
from reporting.reports.payroll_reports import PAYROLL_REPORTS
from reporting.reports.rota_reports import ROTA_REPORTS
from reporting.utils.error_handling import ReportNotFoundException


REPORTS: Dict[str, ReportDefinition] = {
    report.id: report for report in PAYROLL_REPORTS + ROTA_REPORTS
}


def get_report(report_id: str) -> ReportDefinition:
    try:
        return REPORTS[report_id]
    except KeyError:
        raise ReportNotFoundException(report_id)


def list_reports() -> List[ReportDefinition]:
    return list(REPORTS.values())
