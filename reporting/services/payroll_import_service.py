"""
Reporting Engine - Payroll Gross-Pay Import Service

Reads a gross-pay CSV export, validates its layout against the first line,
normalizes every line into a ``PayrollRecord`` and uploads the batch.

State machine:

    Idle -> Reading -> StructureValidating -> Transforming -> Uploading -> Done

Any phase can end in Failed.

A newer import cancels the one in flight. Cancellation is silent: no
notification, no progress update and no state change.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum
from pathlib import Path
from typing import IO, Callable, List, Optional, Tuple, Union

import httpx
from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from reporting.config import get_settings
from reporting.schemas.payroll import (
    PAYROLL_RECORD_FIELDS,
    ImportBatch,
    ImportResult,
    PayrollRecord,
)
from reporting.services.event_bus import EventBus, EventChannel
from reporting.services.notification_service import Notifier
from reporting.utils.error_handling import (
    AppException,
    EmptyInputError,
    ErrorCode,
    StructureError,
    UploadFailure,
)

logger = logging.getLogger(__name__)

ImportSource = Union[str, Path, bytes, IO]

PAYROLL_DATE_FORMAT = "%d/%m/%Y"
LEGACY_TRAILING_COLUMNS = 12
GENERIC_UPLOAD_ERROR = "The server rejected the import."


class ImportState(str, Enum):
    IDLE = "Idle"
    READING = "Reading"
    STRUCTURE_VALIDATING = "StructureValidating"
    TRANSFORMING = "Transforming"
    UPLOADING = "Uploading"
    DONE = "Done"
    FAILED = "Failed"


class ImportProgress(IntEnum):
    """Progress percentages reported at each phase."""
    READ = 5
    STRUCTURE_CHECKED = 12
    TRANSFORMED = 22
    UPLOAD_STARTED = 28
    UPLOAD_CAP = 90
    DONE = 100


@dataclass
class ImportOutcome:
    state: ImportState
    imported: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)
    message: str = ""
    
    @property
    def succeeded(self) -> bool:
        return self.state == ImportState.DONE


def pluralize(count: int, word: str) -> str:
    """``1 error``, ``2 errors``"""
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


# ===========================================
# LINE HELPERS
# ===========================================

def clean_employee_id(raw: str) -> str:
    """Digits of the id before any ``-suffix``."""
    return re.sub(r"\D", "", (raw or "").split("-")[0])


def parse_payroll_date(value: str) -> Optional[date]:
    """``dd/mm/YYYY`` of exactly 10 characters, else None."""
    if not value or len(value) != 10:
        return None
    try:
        return datetime.strptime(value, PAYROLL_DATE_FORMAT).date()
    except ValueError:
        return None


def pay_period(payroll_date: date) -> Tuple[date, date]:
    """
    Pay period a payroll date settles: the 29th two months back to the 28th
    one month back. Where the 29th doesn't exist the period starts on the
    1st of the next month.
    """
    start_month = payroll_date.replace(day=1) - relativedelta(months=2)
    try:
        start = start_month.replace(day=29)
    except ValueError:
        start = start_month + relativedelta(months=1)
    end = payroll_date.replace(day=28) - relativedelta(months=1)
    return start, end


def read_source(source: ImportSource) -> str:
    """
    Text of the CSV; raises OSError when it can't be read.
    
    Bytes that are not UTF-8 (a cp1252 pound sign, say) become U+FFFD
    instead of failing the whole file.
    """
    if isinstance(source, (str, Path)):
        source = Path(source).read_bytes()
    content = source if isinstance(source, bytes) else source.read()
    if isinstance(content, bytes):
        return content.decode("utf-8-sig", errors="replace")
    return content


def split_lines(text: str) -> List[str]:
    return [line for line in re.split(r"\r?\n", text) if line.strip()]


# Decimal text as a spreadsheet export writes it; blank reads as zero
NUMERIC_TEXT_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def is_numeric_text(value: str) -> bool:
    text = (value or "").strip()
    return not text or NUMERIC_TEXT_RE.fullmatch(text) is not None


def validate_structure(first_line: str) -> None:
    """Layout checks against the first line only."""
    columns = first_line.split(",")
    
    if not clean_employee_id(columns[0] if columns else ""):
        raise StructureError("Employee ID", 1, "is missing or invalid")
    
    if parse_payroll_date(columns[1] if len(columns) > 1 else "") is None:
        raise StructureError("Payroll Date", 2, "is missing or invalid")
    
    if not is_numeric_text(columns[6] if len(columns) > 6 else ""):
        raise StructureError("Gross Pay Pre Sacrifice", 7, "is not numeric")


def transform_lines(lines: List[str]) -> ImportBatch:
    """Deduplicate, derive the pay period and map every line to a record."""
    seen = set()
    batch = ImportBatch()
    
    for number, line in enumerate(lines, start=1):
        columns = line.split(",")
        emp_id = clean_employee_id(columns[0])
        payroll_date = columns[1] if len(columns) > 1 else ""
        key = f"{emp_id}|{payroll_date}"
        if key in seen:
            continue
        seen.add(key)
        
        columns[0] = emp_id
        start_date = end_date = ""
        parsed = parse_payroll_date(payroll_date)
        if parsed is not None:
            start, end = pay_period(parsed)
            start_date = start.strftime(PAYROLL_DATE_FORMAT)
            end_date = end.strftime(PAYROLL_DATE_FORMAT)
        elif number > 1:
            batch.errors.append(f"Line {number}: Payroll Date '{payroll_date}' is missing or invalid.")
        
        columns[2:2] = [start_date, end_date]
        if len(columns) > LEGACY_TRAILING_COLUMNS:
            columns = columns[:-LEGACY_TRAILING_COLUMNS]
        
        values = dict(zip(PAYROLL_RECORD_FIELDS, columns))
        batch.data.append(PayrollRecord(**values))
    
    return batch


def success_message(result: ImportResult, error_count: int) -> str:
    message = (
        f"CSV has been imported successfully. "
        f"{pluralize(result.imported, 'record')} created and {result.updated} updated"
    )
    if error_count:
        return f"{message} with {pluralize(error_count, 'error')}."
    return f"{message}."


# ===========================================
# SERVICE
# ===========================================

class PayrollImportService:
    """Runs gross-pay imports, one at a time."""
    
    def __init__(
        self,
        notifier: Notifier,
        event_bus: EventBus,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.notifier = notifier
        self.event_bus = event_bus
        self.client = client
        self.settings = get_settings()
        self.state = ImportState.IDLE
        self._task: Optional[asyncio.Task] = None
    
    def start_import(
        self,
        source: ImportSource,
        on_progress: Callable[[int], None] = lambda _: None,
        set_dialog_open: Callable[[bool], None] = lambda _: None,
    ) -> asyncio.Task:
        """Run an import in the background, cancelling any import in flight."""
        if self._task is not None and not self._task.done():
            logger.info("Cancelling in-flight payroll import")
            self._task.cancel()
        self._task = asyncio.create_task(self.import_gross_pay(source, on_progress, set_dialog_open))
        return self._task
    
    async def import_gross_pay(
        self,
        source: ImportSource,
        on_progress: Callable[[int], None] = lambda _: None,
        set_dialog_open: Callable[[bool], None] = lambda _: None,
    ) -> ImportOutcome:
        """
        Import one gross-pay CSV.
        
        Failures are reported through the notifier and returned as a
        ``Failed`` outcome. Cancellation propagates.
        """
        try:
            self.state = ImportState.READING
            try:
                text = read_source(source)
            except OSError as e:
                raise AppException(
                    code=ErrorCode.INVALID_INPUT,
                    message="Unable to read file.",
                    status_code=400,
                    original_error=e,
                )
            on_progress(ImportProgress.READ)
            
            lines = split_lines(text)
            if not lines:
                raise EmptyInputError()
            
            self.state = ImportState.STRUCTURE_VALIDATING
            validate_structure(lines[0])
            on_progress(ImportProgress.STRUCTURE_CHECKED)
            
            self.state = ImportState.TRANSFORMING
            batch = transform_lines(lines)
            on_progress(ImportProgress.TRANSFORMED)
            
            self.state = ImportState.UPLOADING
            result = await self._upload_with_progress(batch, on_progress)
        except asyncio.CancelledError:
            set_dialog_open(False)
            raise
        except AppException as e:
            self.state = ImportState.FAILED
            set_dialog_open(False)
            logger.error(f"Error importing CSV: {e.message}", exc_info=e.original_error)
            message = f"Error importing CSV file. {e.message}"
            self.notifier.error(message)
            return ImportOutcome(state=self.state, message=message)
        
        message = success_message(result, len(batch.errors))
        self.notifier.success(message)
        await self.event_bus.publish(
            EventChannel.IMPORTS_COMPLETED,
            {"imported": result.imported, "updated": result.updated, "errors": len(batch.errors)},
        )
        on_progress(ImportProgress.DONE)
        self.state = ImportState.DONE
        logger.info(f"Payroll import done: {result.imported} created, {result.updated} updated")
        
        return ImportOutcome(
            state=self.state,
            imported=result.imported,
            updated=result.updated,
            errors=list(batch.errors),
            message=message,
        )
    
    async def _upload_with_progress(
        self,
        batch: ImportBatch,
        on_progress: Callable[[int], None],
    ) -> ImportResult:
        on_progress(ImportProgress.UPLOAD_STARTED)
        trickle = asyncio.create_task(self._trickle(on_progress))
        try:
            return await self._upload(batch)
        finally:
            trickle.cancel()
    
    async def _trickle(self, on_progress: Callable[[int], None]) -> None:
        """Creep towards the cap while the upload is pending."""
        progress = int(ImportProgress.UPLOAD_STARTED)
        interval = self.settings.import_progress_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            progress += 1
            if progress < ImportProgress.UPLOAD_CAP:
                on_progress(progress)
    
    async def _upload(self, batch: ImportBatch) -> ImportResult:
        client = self.client or httpx.AsyncClient(
            base_url=self.settings.api_base_url, timeout=self.settings.http_timeout_seconds
        )
        try:
            response = await client.post(self.settings.payroll_import_path, json=batch.to_payload())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UploadFailure(_server_message(e.response), original_error=e)
        except httpx.HTTPError as e:
            raise UploadFailure(GENERIC_UPLOAD_ERROR, original_error=e)
        finally:
            if self.client is None:
                await client.aclose()
        
        try:
            return ImportResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise UploadFailure(GENERIC_UPLOAD_ERROR, original_error=e)


def _server_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return GENERIC_UPLOAD_ERROR
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or GENERIC_UPLOAD_ERROR
    return GENERIC_UPLOAD_ERROR
