"""
Reporting Engine - Report Session

Live state of one report: fetched rows, targets, filters and sort, plus the
generation lifecycle. Only the most recent generation may change state;
an older one still in flight is cancelled and leaves no trace.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

import httpx

from reporting.config import get_settings
from reporting.schemas.definition import ReportDefinition
from reporting.schemas.report import DateRange, FilterDefinition, SortSpec, TargetDefinition
from reporting.services.event_bus import Event, EventBus, EventChannel
from reporting.services.filter_engine import clear_filters, refresh_filter_options, set_option_checked
from reporting.services.notification_service import Notifier
from reporting.services.report_schema import RowIssue, default_date_range, validate_rows
from reporting.services.report_view import ReportView, build_view
from reporting.services.sort_service import next_sort_direction
from reporting.services.target_service import TargetEditor, parse_targets
from reporting.utils.error_handling import AppException, ReportGenerationError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

IN_PROGRESS_MESSAGE = "Report generation is already in progress. Please wait..."


class ReportFetcher(Protocol):
    async def fetch(self, report: ReportDefinition, date_range: DateRange) -> Dict[str, Any]:
        """Return ``{"data": [...], "targets": [...]}`` for the report."""
        ...


class HttpReportFetcher:
    """Fetches report rows from the backend API."""
    
    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client
        self.settings = get_settings()
    
    async def fetch(self, report: ReportDefinition, date_range: DateRange) -> Dict[str, Any]:
        params = {}
        if date_range.start_date:
            params["startDate"] = date_range.start_date.isoformat()
        if date_range.end_date:
            params["endDate"] = date_range.end_date.isoformat()
        
        client = self.client or httpx.AsyncClient(
            base_url=self.settings.api_base_url, timeout=self.settings.http_timeout_seconds
        )
        try:
            response = await client.get(report.endpoint, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ReportGenerationError(report.id, f"Failed to fetch report data: {e}", original_error=e)
        finally:
            if self.client is None:
                await client.aclose()
        
        body = response.json()
        if isinstance(body, list):
            return {"data": body, "targets": []}
        return {"data": body.get("data") or [], "targets": body.get("targets") or []}


class ReportSession:
    """Owns the on-screen state of one report."""
    
    def __init__(
        self,
        report: ReportDefinition,
        notifier: Notifier,
        event_bus: EventBus,
        fetcher: Optional[ReportFetcher] = None,
        client: Optional[httpx.AsyncClient] = None,
        date_range: Optional[DateRange] = None,
    ):
        self.report = report
        self.notifier = notifier
        self.event_bus = event_bus
        self.fetcher = fetcher or HttpReportFetcher(client)
        self.date_range = date_range or default_date_range(report)
        
        self.rows: List[Row] = []
        self.issues: List[RowIssue] = []
        self.filters: List[FilterDefinition] = [f.model_copy(deep=True) for f in report.filters]
        self.sort: Optional[SortSpec] = None
        self.editor = TargetEditor(report, notifier, client=client)
        self.last_updated: Optional[datetime] = None
        self.error = False
        
        self._task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._unsubscribe = event_bus.subscribe(EventChannel.REPORT_REGENERATE, self._on_regenerate)
    
    @property
    def generating(self) -> bool:
        return self._task is not None and not self._task.done()
    
    @property
    def targets(self) -> List[TargetDefinition]:
        return self.editor.targets
    
    # ===========================================
    # GENERATION
    # ===========================================
    
    async def generate(self) -> bool:
        """
        Fetch and apply fresh rows, superseding any generation in flight.
        
        Returns True when this call updated the state, False when it failed
        or was superseded.
        """
        if self.generating:
            logger.debug(f"Superseding in-flight generation of {self.report.id}")
            self._task.cancel()
        
        task = asyncio.create_task(self._run())
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            if task is not self._task:
                return False
            raise
    
    async def regenerate(self) -> bool:
        """Manual refresh; rejected while a generation is in flight."""
        if self.generating:
            self.notifier.info(IN_PROGRESS_MESSAGE)
            return False
        return await self.generate()
    
    async def _run(self) -> bool:
        try:
            payload = await self.fetcher.fetch(self.report, self.date_range)
        except asyncio.CancelledError:
            raise
        except AppException as e:
            return self._fail(e)
        except Exception as e:
            return self._fail(ReportGenerationError(self.report.id, str(e), original_error=e))
        
        try:
            accepted, issues = validate_rows(self.report.structure, payload.get("data") or [])
            server_targets = parse_targets(payload.get("targets") or [])
        except Exception as e:
            return self._fail(ReportGenerationError(self.report.id, f"Malformed report payload: {e}", original_error=e))
        
        self.rows = accepted
        self.issues = issues
        self.editor.sync(server_targets)
        self.filters = refresh_filter_options(self.report.filters, accepted, self.filters)
        self.last_updated = datetime.utcnow()
        self.error = False
        
        await self.event_bus.publish(
            EventChannel.REPORT_UPDATED,
            {"report_id": self.report.id, "rows": len(accepted), "rejected": len(issues)},
        )
        return True
    
    def _fail(self, error: AppException) -> bool:
        logger.error(f"Error generating report {self.report.id}: {error.message}", exc_info=error.original_error)
        self.error = True
        self.notifier.error(f"Failed to generate {self.report.label}. Please try again.")
        return False
    
    async def _on_regenerate(self, event: Event) -> None:
        if event.data.get("report_id") in (None, self.report.id):
            await self.regenerate()
    
    # ===========================================
    # POLLING
    # ===========================================
    
    def start_polling(self, seconds: Optional[float] = None) -> Optional[asyncio.Task]:
        interval = seconds or self.report.polling_seconds
        if not interval:
            return None
        self.stop_polling()
        self._poll_task = asyncio.create_task(self._poll(interval))
        return self._poll_task
    
    def stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
    
    async def _poll(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            # A poll never supersedes a generation already running
            if not self.generating:
                await self.generate()
    
    def close(self) -> None:
        self.stop_polling()
        self._unsubscribe()
        if self.generating:
            self._task.cancel()
    
    # ===========================================
    # INTERACTION
    # ===========================================
    
    def set_date_range(self, date_range: DateRange) -> None:
        self.date_range = date_range
    
    def toggle_sort(self, key: str) -> SortSpec:
        current_key = self.sort.key if self.sort else None
        current_direction = self.sort.direction if self.sort else "asc"
        self.sort = SortSpec(key=key, direction=next_sort_direction(current_key, current_direction, key))
        return self.sort
    
    def check_option(self, filter_id: str, value: Any, checked: bool) -> None:
        self.filters = set_option_checked(self.filters, filter_id, value, checked)
    
    def clear_filters(self) -> None:
        self.filters = clear_filters(self.filters)
    
    def view(self) -> ReportView:
        return build_view(self.report, self.rows, self.filters, self.sort, self.date_range, self.targets)
