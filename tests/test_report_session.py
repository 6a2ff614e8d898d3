"""
Reporting Engine - Report Session Tests

Generation lifecycle: supersession, in-flight guard, failures, polling and
the HTTP fetcher.
"""

import asyncio
from typing import Any, Dict, List

import pytest

from reporting.schemas.report import SortSpec
from reporting.services.event_bus import EventChannel
from reporting.services.notification_service import NotificationType
from reporting.services.report_session import (
    IN_PROGRESS_MESSAGE,
    HttpReportFetcher,
    ReportSession,
)


class ScriptedFetcher:
    """Returns one scripted payload per call after the scripted delay."""
    
    def __init__(self, payloads: List[Any], delays: List[float] = None):
        self.payloads = payloads
        self.delays = delays or [0.0] * len(payloads)
        self.calls = 0
        self.last_payload = None
    
    async def fetch(self, report, date_range) -> Dict[str, Any]:
        index = min(self.calls, len(self.payloads) - 1)
        self.calls += 1
        await asyncio.sleep(self.delays[index])
        payload = self.payloads[index]
        if isinstance(payload, Exception):
            raise payload
        self.last_payload = payload
        return payload


class TestGeneration:
    """Fetching and applying rows."""
    
    @pytest.mark.asyncio
    async def test_generate_applies_rows(self, sales_report, sales_rows, notifier, event_bus):
        fetcher = ScriptedFetcher([{"data": sales_rows, "targets": []}])
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        assert await session.generate()
        
        assert session.rows == sales_rows
        assert session.last_updated is not None
        assert not session.error
        agent = next(f for f in session.filters if f.id == "agent")
        assert [o.value for o in agent.options] == ["ari", "Ben", "Cara"]
    
    @pytest.mark.asyncio
    async def test_rows_missing_fields_rejected(self, sales_report, sales_rows, notifier, event_bus):
        broken = {k: v for k, v in sales_rows[0].items() if k != "revenue"}
        fetcher = ScriptedFetcher([{"data": [broken] + sales_rows[1:]}])
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        await session.generate()
        
        assert len(session.rows) == 2
        assert session.issues[0].index == 0
        assert session.issues[0].missing_fields == ["revenue"]
    
    @pytest.mark.asyncio
    async def test_server_targets_synced(self, sales_report, sales_rows, notifier, event_bus):
        targets = [{"id": "calls", "target": {"high": 90, "low": 60}, "target_direction": "asc"}]
        fetcher = ScriptedFetcher([{"data": sales_rows, "targets": targets}])
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        await session.generate()
        view = session.view()
        
        assert next(t for t in session.targets if t.id == "calls").target.high == 90
        assert [d["calls"].classification for d in view.display] == ["green", "red", "yellow"]
    
    @pytest.mark.asyncio
    async def test_camel_case_targets_synced(self, sales_report, sales_rows, notifier, event_bus):
        targets = [{"id": "calls", "target": {"high": 90, "low": 60}, "targetDirection": "desc"}]
        fetcher = ScriptedFetcher([{"data": sales_rows, "targets": targets}])
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        await session.generate()
        view = session.view()
        
        assert next(t for t in session.targets if t.id == "calls").target_direction == "desc"
        assert [d["calls"].classification for d in view.display] == ["red", "green", "yellow"]
    
    @pytest.mark.asyncio
    async def test_malformed_target_skipped(self, sales_report, sales_rows, notifier, event_bus):
        targets = [
            {"id": "calls", "target": 0},
            {"id": "sales", "target": {"high": 15}, "targetDirection": "desc"},
        ]
        fetcher = ScriptedFetcher([{"data": sales_rows, "targets": targets}])
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        assert await session.generate()
        
        assert session.rows == sales_rows
        assert next(t for t in session.targets if t.id == "calls").target.high is None
        assert next(t for t in session.targets if t.id == "sales").target_direction == "desc"
        assert notifier.notifications == []
    
    @pytest.mark.asyncio
    async def test_malformed_payload_notifies(self, sales_report, notifier, event_bus):
        fetcher = ScriptedFetcher(["<html>maintenance</html>"])
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        assert not await session.generate()
        
        assert session.error
        assert session.rows == []
        errors = notifier.of_type(NotificationType.ERROR)
        assert errors[0].message == "Failed to generate Sales Report. Please try again."
    
    @pytest.mark.asyncio
    async def test_failure_keeps_previous_rows(self, sales_report, sales_rows, notifier, event_bus):
        fetcher = ScriptedFetcher([{"data": sales_rows}, RuntimeError("backend down")])
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        await session.generate()
        assert not await session.generate()
        
        assert session.rows == sales_rows
        assert session.error
        errors = notifier.of_type(NotificationType.ERROR)
        assert errors[0].message == "Failed to generate Sales Report. Please try again."


class TestCancellation:
    """Only the latest generation may change state."""
    
    @pytest.mark.asyncio
    async def test_second_call_wins_silently(self, sales_report, sales_rows, notifier, event_bus):
        fetcher = ScriptedFetcher(
            [{"data": sales_rows[:1]}, {"data": sales_rows[1:]}],
            delays=[0.05, 0.0],
        )
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        first, second = await asyncio.gather(session.generate(), session.generate())
        
        assert (first, second) == (False, True)
        assert session.rows == fetcher.last_payload["data"]
        assert len(event_bus.published(EventChannel.REPORT_UPDATED)) == 1
        assert notifier.notifications == []
    
    @pytest.mark.asyncio
    async def test_in_flight_fetch_superseded(self, sales_report, sales_rows, notifier, event_bus):
        fetcher = ScriptedFetcher(
            [{"data": sales_rows[:1]}, {"data": sales_rows}],
            delays=[0.2, 0.0],
        )
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        slow = asyncio.create_task(session.generate())
        await asyncio.sleep(0.01)
        assert await session.generate()
        
        assert await slow is False
        assert session.rows == sales_rows
        assert notifier.notifications == []
    
    @pytest.mark.asyncio
    async def test_regenerate_rejected_while_in_flight(self, sales_report, sales_rows, notifier, event_bus):
        fetcher = ScriptedFetcher([{"data": sales_rows}], delays=[0.05])
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        running = asyncio.create_task(session.generate())
        await asyncio.sleep(0)
        
        assert session.generating
        assert await session.regenerate() is False
        assert await running
        assert fetcher.calls == 1
        assert notifier.of_type(NotificationType.INFO)[0].message == IN_PROGRESS_MESSAGE
    
    @pytest.mark.asyncio
    async def test_close_cancels_generation(self, sales_report, sales_rows, notifier, event_bus):
        fetcher = ScriptedFetcher([{"data": sales_rows}], delays=[1.0])
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        running = asyncio.create_task(session.generate())
        await asyncio.sleep(0.01)
        session.close()
        
        with pytest.raises(asyncio.CancelledError):
            await running
        assert session.rows == []


class TestPollingAndEvents:
    """Periodic and event-driven regeneration."""
    
    @pytest.mark.asyncio
    async def test_polling_generates(self, sales_report, sales_rows, notifier, event_bus):
        fetcher = ScriptedFetcher([{"data": sales_rows}])
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        session.start_polling(0.01)
        await asyncio.sleep(0.05)
        session.close()
        
        assert fetcher.calls >= 1
        assert session.rows == sales_rows
    
    @pytest.mark.asyncio
    async def test_no_polling_without_interval(self, sales_report, notifier, event_bus):
        session = ReportSession(sales_report, notifier, event_bus, fetcher=ScriptedFetcher([{}]))
        assert session.start_polling() is None
    
    @pytest.mark.asyncio
    async def test_regenerate_event(self, sales_report, sales_rows, notifier, event_bus):
        fetcher = ScriptedFetcher([{"data": sales_rows}])
        session = ReportSession(sales_report, notifier, event_bus, fetcher=fetcher)
        
        await event_bus.publish(EventChannel.REPORT_REGENERATE, {"report_id": "other_report"})
        assert fetcher.calls == 0
        
        await event_bus.publish(EventChannel.REPORT_REGENERATE, {"report_id": "sales_report"})
        assert fetcher.calls == 1
        
        session.close()
        await event_bus.publish(EventChannel.REPORT_REGENERATE, {})
        assert fetcher.calls == 1


class TestInteraction:
    """Sort toggling and filter state."""
    
    @pytest.mark.asyncio
    async def test_sort_and_filters(self, sales_report, sales_rows, notifier, event_bus):
        session = ReportSession(
            sales_report, notifier, event_bus,
            fetcher=ScriptedFetcher([{"data": sales_rows}]),
        )
        await session.generate()
        
        assert session.toggle_sort("calls") == SortSpec(key="calls", direction="asc")
        assert session.toggle_sort("calls") == SortSpec(key="calls", direction="desc")
        session.check_option("team", "North", True)
        
        assert [r["agent"] for r in session.view().rows] == ["Cara", "Ben"]
        
        session.clear_filters()
        assert len(session.view().rows) == 3


class TestHttpReportFetcher:
    """Fetching over HTTP from the backend."""
    
    @pytest.mark.asyncio
    async def test_fetch_with_date_range(self, sales_report, sales_rows, march_2025, backend):
        backend.set_report_rows(sales_report.endpoint, sales_rows)
        
        with backend.activate():
            payload = await HttpReportFetcher().fetch(sales_report, march_2025)
        
        assert payload == {"data": sales_rows, "targets": []}
        params = backend.report_requests[0].url.params
        assert params["startDate"] == "2025-03-01"
        assert params["endDate"] == "2025-03-28"
    
    @pytest.mark.asyncio
    async def test_http_failure_notifies(self, sales_report, march_2025, notifier, event_bus, backend):
        backend.set_report_failure(sales_report.endpoint, 503)
        session = ReportSession(sales_report, notifier, event_bus, date_range=march_2025)
        
        with backend.activate():
            assert not await session.generate()
        
        assert session.error
        assert len(notifier.of_type(NotificationType.ERROR)) == 1
