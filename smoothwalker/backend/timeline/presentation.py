"""
timeline/presentation.py

PresentationStore — the three result lists the screen renders.
TableDataSource   — section/row accessors a table view shell calls.

Invariants:
  - Always exactly three slots (daily, weekly, monthly), even when empty.
  - apply() replaces a slot wholesale and leaves it sorted by bucket_start
    descending; equal starts keep their incoming order.

Thread safety: NOT thread-safe. Written only by TimelineCoordinator's
consumer task and read by the UI shell on the same event loop.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..display.formatters import display_name, format_date, formatted_value
from ..models import MetricKind
from .models import (
    SLOT_COUNT,
    HealthDataTypeValue,
    PresentationState,
    Timeline,
    TimelineSlot,
)

logger = logging.getLogger(__name__)

EMPTY_DATA_MESSAGE = "No Data"


class PresentationStore:
    """Holds one sorted TimelineSlot per timeline."""

    def __init__(self) -> None:
        self._slots: list[TimelineSlot] = [() for _ in range(SLOT_COUNT)]

    def apply(self, slot_index: int, values: Iterable[HealthDataTypeValue]) -> None:
        """Replace slot *slot_index* with *values*, sorted newest bucket first."""
        if not 0 <= slot_index < SLOT_COUNT:
            raise IndexError(f"slot index must be in 0..{SLOT_COUNT - 1} — got {slot_index}")
        # sorted() is stable with reverse=True, so ties keep incoming order
        self._slots[slot_index] = tuple(
            sorted(values, key=lambda v: v.bucket_start, reverse=True)
        )
        logger.debug("Slot %d replaced — rows=%d", slot_index, len(self._slots[slot_index]))

    def slot(self, slot_index: int) -> TimelineSlot:
        return self._slots[slot_index]

    def snapshot(self) -> PresentationState:
        return tuple(self._slots)  # type: ignore[return-value]

    def is_empty(self) -> bool:
        """True iff every slot is empty."""
        return all(not slot for slot in self._slots)

    def __repr__(self) -> str:
        return f"PresentationStore(rows={[len(s) for s in self._slots]})"


class TableDataSource:
    """
    Section/row view of a PresentationStore for one metric.

    Sections follow slot order: 0 = Daily, 1 = Weekly, 2 = Monthly.
    """

    def __init__(
        self,
        store: PresentationStore,
        metric_kind: MetricKind | str,
        unit_system: str | None = None,
    ) -> None:
        self._store = store
        self._kind = MetricKind(metric_kind)
        self._unit_system = unit_system

    @property
    def title(self) -> str:
        return display_name(self._kind)

    @property
    def empty_message(self) -> str | None:
        """Background message for the empty state, or None when there is data."""
        return EMPTY_DATA_MESSAGE if self._store.is_empty() else None

    def number_of_sections(self) -> int:
        return SLOT_COUNT

    def row_count(self, section: int) -> int:
        return len(self._store.slot(section))

    def row_data(self, section: int, row: int) -> HealthDataTypeValue:
        return self._store.slot(section)[row]

    def section_title(self, section: int) -> str:
        return Timeline.for_slot(section).section_title

    def cell_text(self, section: int, row: int) -> tuple[str, str]:
        """
        (value text, detail text) for one cell.

        Daily rows show the bucket's date; weekly and monthly rows show the
        bucket's date range.
        """
        data = self.row_data(section, row)
        text = formatted_value(data.value, self._kind, self._unit_system)
        if Timeline.for_slot(section) is Timeline.DAILY:
            detail = format_date(data.bucket_start)
        else:
            detail = f"{format_date(data.bucket_start)} - {format_date(data.bucket_end)}"
        return text, detail
