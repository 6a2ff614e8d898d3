"""
Reporting Engine - Payroll Report Definitions

The payroll export lists every employee for a pay period (29th to 28th)
with their minimum-wage rate of pay, hours, bonus and holiday figures.
"""

from typing import List

from reporting.schemas.definition import ReportDefinition
from reporting.schemas.export import HeaderCell, SheetConfig, SheetField
from reporting.schemas.report import ColumnDefinition, ParameterBinding, SortSpec


# =============================================================================
# COLUMNS
# =============================================================================

PAYROLL_EXPORT_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition(id="sage_id", label="Sage ID", data_type="integer"),
    ColumnDefinition(id="hr_id", label="Employee Reference", data_type="integer"),
    ColumnDefinition(id="firstname", label="First Name", data_type="string", allow_target=True),
    ColumnDefinition(id="surname", label="Surname", data_type="string"),
    ColumnDefinition(id="dob", label="Date of Birth", data_type="date", allow_target=True, format="date_dmy"),
    ColumnDefinition(
        id="age",
        label="Age",
        data_type="integer",
        allow_target=True,
        format="age_at",
        requires=["dob"],
        parameters={
            "reference_date": ParameterBinding(
                type="endDate",
                label="Reference Date",
                description="The date to calculate the age against. Defaults to today.",
            ),
        },
    ),
    ColumnDefinition(id="start_date", label="Start Date", data_type="date", allow_target=True, format="date_dmy"),
    ColumnDefinition(
        id="rate_of_pay",
        label="Rate of Pay",
        data_type="float",
        allow_target=True,
        format="minimum_wage_rate",
        requires=["dob"],
        parameters={
            "start_date": ParameterBinding(type="startDate", label="Start Date"),
            "end_date": ParameterBinding(type="endDate", label="End Date"),
        },
    ),
    ColumnDefinition(id="hours", label="Hours", data_type="float", allow_target=True, format="hours"),
    ColumnDefinition(id="bonus", label="Bonus", data_type="float", allow_target=True, prefix="£", format="money"),
    ColumnDefinition(id="holiday", label="Holiday", data_type="float", allow_target=True, format="whole_or_two_decimals"),
    ColumnDefinition(id="holiday_pay", label="Holiday Pay", data_type="float", allow_target=True, prefix="£", format="money"),
    ColumnDefinition(
        id="length_of_service",
        label="Length of Service",
        data_type="integer",
        allow_target=True,
        format="length_of_service",
        parameters={
            "start_date": ParameterBinding(
                type="endDate",
                label="End Date",
                description="The date to calculate the length of service against.",
            ),
        },
    ),
    ColumnDefinition(id="days_of_week", label="Days Per Week", data_type="integer"),
]


# =============================================================================
# SHEETS
# =============================================================================

def _labels(*labels: str) -> List[HeaderCell]:
    return [HeaderCell(label=label, style="subheader") for label in labels]


PAYROLL_EXPORT_SHEET = SheetConfig(
    name="Payroll Export",
    headers=[
        [
            HeaderCell(label="EMPLOYEE INFORMATION", col_span=6),
            HeaderCell(label="PAY", col_span=5),
            HeaderCell(label="SERVICE", col_span=2),
        ],
        _labels(
            "Sage ID", "Employee Reference", "Name", "Date of Birth", "Age", "Start Date",
            "Rate of Pay", "Hours", "Bonus", "Holiday", "Holiday Pay",
            "Length of Service", "Days Per Week",
        ),
    ],
    fields=[
        SheetField(key="sage_id"),
        SheetField(key="hr_id"),
        SheetField(key="name", compute="employee_full_name"),
        SheetField(key="dob"),
        SheetField(key="age"),
        SheetField(key="start_date"),
        SheetField(key="rate_of_pay"),
        SheetField(key="hours"),
        SheetField(key="bonus"),
        SheetField(key="holiday"),
        SheetField(key="holiday_pay"),
        SheetField(key="length_of_service"),
        SheetField(key="days_of_week"),
    ],
    column_widths=[10, 20, 28, 14, 8, 14, 12, 10, 12, 10, 14, 20, 14],
    row_heights={1: 24},
    row_filter="always",
    sort=SortSpec(key="surname", direction="asc"),
    row_color="below_minimum_wage",
)

ADJUSTMENTS_SHEET = SheetConfig(
    name="Adjustments",
    headers=[
        _labels("Employee Reference", "Name", "Period", "Type", "Description", "Amount"),
    ],
    fields=[
        SheetField(key="hr_id"),
        SheetField(key="name", compute="employee_full_name"),
        SheetField(key="period", compute="period_label"),
        SheetField(key="type"),
        SheetField(key="description"),
        SheetField(key="amount"),
    ],
    column_widths=[20, 28, 26, 16, 40, 12],
    row_filter="has_adjustments",
    sort=SortSpec(key="surname", direction="asc"),
    sub_data="adjustments",
)


# =============================================================================
# REPORTS
# =============================================================================

PAYROLL_EXPORT = ReportDefinition(
    id="payroll_export",
    label="Payroll Export",
    endpoint="/payroll/exports/payroll-export",
    polling_seconds=60,
    default_range="pay_period",
    allow_targets=False,
    show_totals=False,
    structure=PAYROLL_EXPORT_COLUMNS,
    sheets=[PAYROLL_EXPORT_SHEET, ADJUSTMENTS_SHEET],
)

PAYROLL_REPORTS: List[ReportDefinition] = [PAYROLL_EXPORT]
