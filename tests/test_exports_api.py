"""
Reporting Engine - Export API Tests

Integration tests for the export endpoints.
"""

import io

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook


class TestHealthAPI:
    """Test health check endpoint."""
    
    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        """Test health check returns 200."""
        response = await client.get("/health")
        
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"


class TestReportCatalogueAPI:
    
    @pytest.mark.asyncio
    async def test_lists_reports(self, client: AsyncClient):
        response = await client.get("/api/v1/reports")
        
        assert response.status_code == 200
        reports = {r["id"]: r for r in response.json()}
        assert reports["payroll_export"]["sheets"] == ["Payroll Export", "Adjustments"]
        assert "attendance_report" in reports


class TestTableExportAPI:
    """Test HTML table export."""
    
    @pytest.mark.asyncio
    async def test_export_table(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/exports/table",
            json={
                "html": "<table><tr><th>Agent</th><th>Rate</th></tr><tr><td>Cara</td><td>50%</td></tr></table>",
                "filename": "agents.xlsx",
            },
        )
        
        assert response.status_code == 200
        assert response.headers["content-disposition"] == 'attachment; filename="agents.xlsx"'
        ws = load_workbook(io.BytesIO(response.content)).active
        assert ws["B2"].value == 0.5
    
    @pytest.mark.asyncio
    async def test_export_without_table_fails(self, client: AsyncClient):
        response = await client.post("/api/v1/exports/table", json={"html": "<p>nothing</p>"})
        
        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["code"] == "EXPORT_FAILED"
        assert detail["message"] == "Failed to export this report to Excel. Please try again."
    
    @pytest.mark.asyncio
    async def test_missing_html_is_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/exports/table", json={})
        
        assert response.status_code == 422


class TestReportExportAPI:
    """Test declarative report export."""
    
    @pytest.mark.asyncio
    async def test_export_payroll(self, client: AsyncClient, payroll_rows):
        response = await client.post(
            "/api/v1/exports/payroll_export",
            json={
                "rows": payroll_rows,
                "date_range": {"start_date": "2025-03-01", "end_date": "2025-03-28"},
            },
        )
        
        assert response.status_code == 200
        assert "Payroll Export - 01/03/2025 - 28/03/2025.xlsx" in response.headers["content-disposition"]
        wb = load_workbook(io.BytesIO(response.content))
        assert wb.sheetnames == ["Payroll Export", "Adjustments"]
    
    @pytest.mark.asyncio
    async def test_export_with_filename(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/exports/attendance_report",
            json={"rows": [], "filename": "attendance.xlsx"},
        )
        
        assert response.status_code == 200
        assert response.headers["content-disposition"] == 'attachment; filename="attendance.xlsx"'
    
    @pytest.mark.asyncio
    async def test_unknown_report(self, client: AsyncClient):
        response = await client.post("/api/v1/exports/no_such_report", json={"rows": []})
        
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"
