"""
Reporting Engine - Rota Report Definitions
"""

from typing import List

from reporting.schemas.definition import ReportDefinition
from reporting.schemas.export import SheetConfig, SheetField
from reporting.schemas.report import ColumnDefinition, FilterDefinition, FilterOption


ATTENDANCE_STATUSES = ["Absent", "Attended", "Awol", "Late", "Reduced", "Sick", "Surplus"]


def _percentage(column_id: str, label: str, numerator_id: str, denominator_id: str, fmt: str) -> ColumnDefinition:
    return ColumnDefinition(
        id=column_id,
        label=label,
        data_type="float",
        allow_target=True,
        suffix="%",
        header_annotation="(%)",
        format=fmt,
        numerator_id=numerator_id,
        denominator_id=denominator_id,
    )


ATTENDANCE_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition(id="agent", label="Agent", data_type="string"),
    ColumnDefinition(
        id="shift_duration_hours", label="Hours Scheduled To Work", data_type="float",
        allow_target=True, format="two_decimals",
    ),
    ColumnDefinition(
        id="worked_duration_hours", label="Hours Worked", data_type="float",
        allow_target=True, format="two_decimals",
    ),
    _percentage("worked_percentage", "Hours Worked", "worked_duration_hours", "shift_duration_hours", "two_decimals"),
    ColumnDefinition(id="shifts_scheduled", label="Shifts Scheduled", data_type="integer", allow_target=True),
    ColumnDefinition(id="shifts_sick", label="Shifts Sick", data_type="integer", allow_target=True),
    _percentage("sick_percentage", "Shifts Sick", "shifts_sick", "shifts_scheduled", "no_decimals"),
    ColumnDefinition(id="shifts_absent", label="Shifts Absent", data_type="integer", allow_target=True),
    _percentage("absent_percentage", "Shifts Absent", "shifts_absent", "shifts_scheduled", "no_decimals"),
    ColumnDefinition(id="shifts_awol", label="Shifts AWOL", data_type="integer", allow_target=True),
    _percentage("awol_percentage", "Shifts AWOL", "shifts_awol", "shifts_scheduled", "no_decimals"),
]

ATTENDANCE_FILTERS: List[FilterDefinition] = [
    FilterDefinition(id="agent", name="Agent", calculate_options="distinct_values"),
    FilterDefinition(
        id="status",
        name="Status",
        options=[FilterOption(label=status, value=status) for status in ATTENDANCE_STATUSES],
    ),
]

ATTENDANCE_SHEET = SheetConfig(
    name="Attendance",
    fields=[
        SheetField(key=column.id, use_targets=column.allow_target)
        for column in ATTENDANCE_COLUMNS
    ],
    column_widths=[28] + [16] * (len(ATTENDANCE_COLUMNS) - 1),
    include_totals=True,
)


ATTENDANCE_REPORT = ReportDefinition(
    id="attendance_report",
    label="Attendance Report",
    endpoint="/reporting/reports/attendance",
    default_range="last_7_days",
    allow_targets=True,
    structure=ATTENDANCE_COLUMNS,
    filters=ATTENDANCE_FILTERS,
    sheets=[ATTENDANCE_SHEET],
)

ROTA_REPORTS: List[ReportDefinition] = [ATTENDANCE_REPORT]
