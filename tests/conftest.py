"""
Reporting Engine - Test Configuration

Pytest fixtures and configuration.
"""

from datetime import date
from typing import AsyncGenerator, Dict, List

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from reporting.schemas.definition import ReportDefinition
from reporting.schemas.report import ColumnDefinition, DateRange, FilterDefinition, FilterOption
from reporting.services.event_bus import EventBus
from reporting.services.notification_service import Notifier
from fixtures.backend_mock import MockBackendServer
from main import app


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def backend() -> MockBackendServer:
    """Fresh mock backend; activate it with ``with backend.activate():``."""
    return MockBackendServer()


@pytest_asyncio.fixture(scope="function")
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create a test client for the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ===========================================
# DATA FIXTURES
# ===========================================

@pytest.fixture
def march_2025() -> DateRange:
    return DateRange(start_date=date(2025, 3, 1), end_date=date(2025, 3, 28))


@pytest.fixture
def sales_report() -> ReportDefinition:
    """Small report touching every column kind."""
    return ReportDefinition(
        id="sales_report",
        label="Sales Report",
        endpoint="/reporting/reports/sales",
        allow_targets=True,
        structure=[
            ColumnDefinition(id="agent", label="Agent", data_type="string"),
            ColumnDefinition(id="team", label="Team", data_type="string"),
            ColumnDefinition(id="calls", label="Calls", data_type="integer", allow_target=True),
            ColumnDefinition(id="sales", label="Sales", data_type="integer", allow_target=True),
            ColumnDefinition(
                id="conversion",
                label="Conversion",
                data_type="float",
                allow_target=True,
                suffix="%",
                format="two_decimals",
                numerator_id="sales",
                denominator_id="calls",
            ),
            ColumnDefinition(id="revenue", label="Revenue", data_type="float", prefix="£", format="money"),
            ColumnDefinition(id="actions", label="", data_type="control"),
        ],
        filters=[
            FilterDefinition(id="agent", name="Agent", calculate_options="distinct_values"),
            FilterDefinition(
                id="team",
                name="Team",
                options=[
                    FilterOption(label="North", value="North"),
                    FilterOption(label="South", value="South"),
                ],
            ),
        ],
    )


@pytest.fixture
def sales_rows() -> List[Dict]:
    return [
        {"agent": "Cara", "team": "North", "calls": 100, "sales": 10, "conversion": 10.0, "revenue": 250.5},
        {"agent": "ari", "team": "South", "calls": 50, "sales": 20, "conversion": 40.0, "revenue": 400},
        {"agent": "Ben", "team": "North", "calls": 80, "sales": 8, "conversion": 10.0, "revenue": 0},
    ]


@pytest.fixture
def payroll_rows() -> List[Dict]:
    return [
        {
            "sage_id": 101, "hr_id": 5001, "firstname": "Amy", "surname": "Zane",
            "dob": "1990-06-15", "start_date": "2020-01-06", "hours": "120.5",
            "bonus": "50", "holiday": "2", "holiday_pay": "97.68",
            "length_of_service": 1880, "days_of_week": 5, "hourly_rate": 12.50,
            "adjustments": [
                {"type": "Bonus", "description": "Quarterly target", "amount": 50},
                {"type": "Holiday", "description": "Two days", "amount": 97.68},
            ],
        },
        {
            "sage_id": 102, "hr_id": 5002, "firstname": "Bob", "surname": "Adams",
            "dob": "2007-05-10", "start_date": "2024-09-02", "hours": "0",
            "bonus": "", "holiday": "0", "holiday_pay": "0",
            "length_of_service": 200, "days_of_week": 3, "hourly_rate": 7.00,
            "adjustments": [],
        },
    ]
