"""
Reporting Engine - Target (Conditional Formatting) Service

Classifies cell values against high/low thresholds and manages the editable
target list of a report.

Classification for a value against ``high``/``low``:

    direction asc:  value >= high -> green, value <= low -> red
    direction desc: value >= high -> red,   value <= low -> green

Any other value is yellow when at least one bound is set; with no bound
set there is no classification.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from reporting.config import get_settings
from reporting.schemas.definition import ReportDefinition
from reporting.schemas.report import (
    Classification,
    ColumnDefinition,
    TargetDefinition,
    Threshold,
)
from reporting.services import export_functions  # noqa: F401  registers built-in row classifiers
from reporting.services.notification_service import Notifier
from reporting.services.registry import ROW_CLASSIFIERS
from reporting.utils.error_handling import TargetPersistFailure
from reporting.utils.numbers import to_number

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


# ===========================================
# CLASSIFICATION
# ===========================================

def classify_value(
    value: Any,
    threshold: Optional[Threshold],
    direction: str = "asc",
) -> Optional[Classification]:
    """Classify a numeric value against a threshold."""
    if threshold is None:
        return None
    high, low = threshold.high, threshold.low
    if high is None and low is None:
        return None
    
    number = to_number(value)
    if number is None:
        return None
    
    favourable, unfavourable = ("green", "red") if direction == "asc" else ("red", "green")
    if high is not None and number >= high:
        return favourable
    if low is not None and number <= low:
        return unfavourable
    return "yellow"


def resolve_threshold(target: TargetDefinition, row: Row) -> Optional[Threshold]:
    """Flat threshold, or the keyed threshold matching the row's dimension value."""
    if target.key:
        row_value = row.get(target.key)
        return next((t for t in target.keyed_targets if t.key_value == row_value), None)
    return target.target


def find_target(targets: List[TargetDefinition], column_id: str) -> Optional[TargetDefinition]:
    return next((t for t in targets if t.id == column_id), None)


def classify(
    column: ColumnDefinition,
    row: Row,
    targets: List[TargetDefinition],
    value: Any = None,
) -> Optional[Classification]:
    """
    Colour classification of one cell.
    
    ``value`` overrides the row value, e.g. for a weighted total cell.
    """
    target = find_target(targets, column.id)
    if target is None:
        return None
    threshold = resolve_threshold(target, row)
    if threshold is None:
        return None
    cell_value = row.get(column.id) if value is None else value
    return classify_value(cell_value, threshold, target.target_direction)


def classify_row(structure: List[ColumnDefinition], row: Row) -> Optional[Classification]:
    """First classification produced by a column's row-level classifier."""
    for column in structure:
        if column.row_target:
            result = ROW_CLASSIFIERS.get(column.row_target)(row)
            if result:
                return result
    return None


# ===========================================
# TARGET LIST LIFECYCLE
# ===========================================

def initial_targets(structure: List[ColumnDefinition]) -> List[TargetDefinition]:
    """Targets seeded from column defaults when a report is first generated."""
    return [
        TargetDefinition(
            id=column.id,
            target=column.target.model_copy() if column.target else Threshold(),
            target_direction=column.target_direction,
        )
        for column in structure
        if not column.is_control
    ]


def parse_targets(raw: List[Any]) -> List[TargetDefinition]:
    """Targets as sent by the server; malformed entries are skipped."""
    targets = []
    for entry in raw:
        try:
            targets.append(TargetDefinition.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Ignoring malformed target {entry!r}: {e.error_count()} validation errors")
    return targets


def reconcile_targets(

    structure: List[ColumnDefinition],
    previous: Optional[List[TargetDefinition]],
    server: Optional[List[TargetDefinition]],
) -> List[TargetDefinition]:
    """
    Target list for freshly arrived report data, matched by column id.
    
    Server state wins, then the previous local entry, then the column
    default. Columns no longer in the schema are dropped.
    """
    server_by_id = {t.id: t for t in (server or [])}
    previous_by_id = {t.id: t for t in (previous or [])}
    
    reconciled = []
    for default in initial_targets(structure):
        chosen = server_by_id.get(default.id) or previous_by_id.get(default.id) or default
        reconciled.append(chosen.model_copy(deep=True))
    return reconciled


class TargetEditor:
    """
    Interactive editing of a report's targets.
    
    Every effective change sets ``dirty``; leaving edit mode while dirty
    persists the list once. ``dirty`` is cleared only after a confirmed
    successful write so a failed save is retried next time.
    """
    
    def __init__(
        self,
        report: ReportDefinition,
        notifier: Notifier,
        client: Optional[httpx.AsyncClient] = None,
        targets: Optional[List[TargetDefinition]] = None,
    ):
        self.report = report
        self.notifier = notifier
        self.client = client
        self.targets: List[TargetDefinition] = targets if targets is not None else initial_targets(report.structure)
        self.dirty = False
        self.editing = False
    
    def sync(self, server_targets: Optional[List[TargetDefinition]]) -> None:
        self.targets = reconcile_targets(self.report.structure, self.targets, server_targets)
    
    def change(self, column_id: str, key: str, value: Any) -> bool:
        """
        Update ``targetDirection``, ``high`` or ``low`` of one target.
        
        Returns whether anything changed.
        """
        updated = []
        changed = False
        for target in self.targets:
            if target.id != column_id:
                updated.append(target)
                continue
            if key == "targetDirection":
                new_target = target.model_copy(update={"target_direction": value})
            elif key in ("high", "low"):
                threshold = target.target or Threshold()
                new_value = None if value is None or value == "" else float(value)
                new_target = target.model_copy(
                    update={"target": threshold.model_copy(update={key: new_value})}
                )
            else:
                raise ValueError(f"Unknown target key '{key}'")
            changed = changed or new_target != target
            updated.append(new_target)
        
        self.targets = updated
        if changed:
            self.dirty = True
        return changed
    
    async def toggle_editing(self) -> bool:
        """Enter or leave edit mode; leaving saves pending changes."""
        if self.editing and self.dirty:
            await self.save()
        self.editing = not self.editing
        return self.editing
    
    async def save(self) -> bool:
        try:
            await self._persist()
        except TargetPersistFailure as e:
            logger.error(f"Error updating targets: {e.message}", exc_info=e.original_error)
            self.notifier.error(e.message)
            return False
        
        self.dirty = False
        self.notifier.success("Targets updated successfully!")
        return True
    
    async def _persist(self) -> None:
        settings = get_settings()
        payload = {
            "targets": [t.model_dump(mode="json", by_alias=True) for t in self.targets],
            "report": {"id": self.report.id, "label": self.report.label},
        }
        client = self.client or httpx.AsyncClient(
            base_url=settings.api_base_url, timeout=settings.http_timeout_seconds
        )
        try:
            response = await client.post(settings.targets_path, json=payload)
        except httpx.HTTPError as e:
            raise TargetPersistFailure(original_error=e)
        finally:
            if self.client is None:
                await client.aclose()
        
        if response.status_code != 200:
            raise TargetPersistFailure("Failed to update targets. Please try again.")
