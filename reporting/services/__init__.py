"""
Reporting Engine - Services Package

Importing the package registers the built-in formatters, filter
expressions and row functions.
"""

from reporting.services import formatters, export_functions, filter_engine
from reporting.services.notification_service import Notifier, Notification, NotificationType
from reporting.services.event_bus import EventBus, EventChannel, Event
from reporting.services.minimum_wage import MinimumWageResolver, calculate_base_pay
from reporting.services.target_service import TargetEditor, classify, reconcile_targets
from reporting.services.report_view import ReportView, build_view
from reporting.services.report_session import ReportSession, HttpReportFetcher
from reporting.services.excel_export_service import ExcelExportService, ExportFile, build_export_filename
from reporting.services.payroll_import_service import (
    PayrollImportService,
    ImportOutcome,
    ImportState,
    ImportProgress,
)

__all__ = [
    "formatters",
    "export_functions",
    "filter_engine",
    "Notifier",
    "Notification",
    "NotificationType",
    "EventBus",
    "EventChannel",
    "Event",
    "MinimumWageResolver",
    "calculate_base_pay",
    "TargetEditor",
    "classify",
    "reconcile_targets",
    "ReportView",
    "build_view",
    "ReportSession",
    "HttpReportFetcher",
    "ExcelExportService",
    "ExportFile",
    "build_export_filename",
    "PayrollImportService",
    "ImportOutcome",
    "ImportState",
    "ImportProgress",
]
