"""
timeline/models.py

Data models for the three-timeline statistics screen.

Timeline            — closed enum of the three aggregation timelines
WindowSpec          — query window parameters derived from a timeline and "now"
HealthDataTypeValue — one aggregated bucket as shown in a table row
SlotUpdate          — message carrying a replacement list for one slot
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Tuple

if TYPE_CHECKING:
    from .query_engine import CancellationToken


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

class Timeline(str, Enum):
    DAILY   = "daily"
    WEEKLY  = "weekly"
    MONTHLY = "monthly"

    @property
    def slot_index(self) -> int:
        return SLOT_INDEX[self]

    @property
    def section_title(self) -> str:
        return SECTION_TITLES[self]

    @classmethod
    def for_slot(cls, index: int) -> "Timeline":
        for timeline, slot in SLOT_INDEX.items():
            if slot == index:
                return timeline
        raise IndexError(f"no timeline for slot {index}")


SLOT_INDEX: dict[Timeline, int] = {
    Timeline.DAILY:   0,
    Timeline.WEEKLY:  1,
    Timeline.MONTHLY: 2,
}

SECTION_TITLES: dict[Timeline, str] = {
    Timeline.DAILY:   "Daily",
    Timeline.WEEKLY:  "Weekly",
    Timeline.MONTHLY: "Monthly",
}

SLOT_COUNT = len(Timeline)

assert set(SLOT_INDEX) == set(Timeline), "every Timeline needs a slot"
assert sorted(SLOT_INDEX.values()) == list(range(SLOT_COUNT)), (
    f"slot indexes must be distinct and cover 0..{SLOT_COUNT - 1} — got {SLOT_INDEX}"
)


# ---------------------------------------------------------------------------
# WindowSpec
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class WindowSpec:
    """
    Parameters of one statistics query.

    Derived purely from (timeline, now); never cached across query runs.
    """

    timeline: Timeline
    predicate_start: datetime
    """Samples older than this are excluded from the query."""

    predicate_end: datetime
    """Samples newer than this are excluded from the query (== now)."""

    anchor_date: datetime
    """One bucket starts exactly here; all buckets align to it."""

    bucket_interval: timedelta
    window_start: datetime
    """First instant enumerated when the result list is built."""

    @property
    def slot_index(self) -> int:
        return self.timeline.slot_index

    def __repr__(self) -> str:
        return (
            f"WindowSpec({self.timeline.value} "
            f"predicate={self.predicate_start.isoformat()}..{self.predicate_end.isoformat()} "
            f"anchor={self.anchor_date.isoformat()} "
            f"interval={self.bucket_interval} "
            f"window_start={self.window_start.isoformat()})"
        )


# ---------------------------------------------------------------------------
# HealthDataTypeValue
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class HealthDataTypeValue:
    """
    Aggregate of one bucket.

    Buckets without samples carry value 0.0, the same as a measured zero.
    """

    bucket_start: datetime
    bucket_end: datetime
    value: float = 0.0


TimelineSlot = Tuple[HealthDataTypeValue, ...]
PresentationState = Tuple[TimelineSlot, TimelineSlot, TimelineSlot]


# ---------------------------------------------------------------------------
# SlotUpdate — posted on the update channel
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SlotUpdate:
    timeline: Timeline
    values: TimelineSlot
    token: "CancellationToken"

    def __repr__(self) -> str:
        return f"SlotUpdate({self.timeline.value} rows={len(self.values)})"
