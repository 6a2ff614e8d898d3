"""
Export and Download Router

Builds Excel workbooks from a rendered HTML table or from a report's rows
and sheet layouts, and returns them as attachments.
"""

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
import io
import logging

from reporting.reports import get_report
from reporting.schemas.export import ReportExportRequest, TableExportRequest
from reporting.services.excel_export_service import ExcelExportService, ExportFile
from reporting.services.notification_service import Notifier
from reporting.utils.error_handling import ExportFailure

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/exports",
    tags=["Export & Download"],
)


def _attachment(export: ExportFile) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(export.content),
        media_type=export.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{export.filename}"'
        }
    )


def _failure(notifier: Notifier) -> ExportFailure:
    messages = [n.message for n in notifier.notifications]
    return ExportFailure(messages[-1]) if messages else ExportFailure()


# ===========================================
# TABLE EXPORT
# ===========================================

@router.post(
    "/table",
    summary="Export HTML Table",
    description="Convert rendered table markup to an .xlsx download.",
)
async def export_table(request: TableExportRequest):
    """Export an on-screen table."""
    notifier = Notifier()
    service = ExcelExportService(notifier)
    
    export = service.export_table_to_excel(
        request.html,
        filename=request.filename,
        theme_variables=request.theme_variables,
    )
    if export is None:
        raise _failure(notifier)
    
    return _attachment(export)


# ===========================================
# REPORT EXPORT
# ===========================================

@router.post(
    "/{report_id}",
    summary="Export Report",
    description="Build the multi-sheet workbook of a report from its rows.",
)
async def export_report(report_id: str, request: ReportExportRequest):
    """Export a report through its sheet layouts."""
    report = get_report(report_id)
    notifier = Notifier()
    service = ExcelExportService(notifier)
    
    export = service.export_report_to_excel(
        report,
        request.rows,
        date_range=request.date_range,
        targets=request.targets,
        filename=request.filename,
    )
    if export is None:
        raise _failure(notifier)
    
    logger.info(f"Exported report {report_id} with {len(request.rows)} rows")
    return _attachment(export)
