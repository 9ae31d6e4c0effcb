"""
backend/models.py

Shared records used by every layer of the statistics pipeline.
Defining them here keeps the contract between the sample store, the
query engine and the presentation side in one place.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


# ---------------------------------------------------------------------------
# Metric kinds
# ---------------------------------------------------------------------------

class MetricKind(str, Enum):
    """Quantity types the screen knows how to aggregate and format."""

    WALKING_SPEED                 = "walking_speed"
    WALKING_STEP_LENGTH           = "walking_step_length"
    STEP_COUNT                    = "step_count"
    DISTANCE_WALKING_RUNNING      = "distance_walking_running"
    SIX_MINUTE_WALK_TEST_DISTANCE = "six_minute_walk_test_distance"
    HEART_RATE                    = "heart_rate"
    RESTING_HEART_RATE            = "resting_heart_rate"
    VO2_MAX                       = "vo2_max"


# ---------------------------------------------------------------------------
# Aggregation modes
# ---------------------------------------------------------------------------

class AggregationMode(str, Enum):
    """Reduction applied to the samples that fall inside one bucket."""

    SUM     = "sum"
    AVERAGE = "average"
    MIN     = "min"
    MAX     = "max"


# ---------------------------------------------------------------------------
# Raw samples — produced by the sample store, consumed read-only
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class QuantitySample:
    """A single timestamped measurement."""

    timestamp: datetime
    """Timezone-aware instant the measurement was taken."""

    value: float
    """Measured value in the metric's canonical unit (e.g. m/s for walking speed)."""

    metric_kind: MetricKind
    """The quantity type this sample belongs to."""

    sample_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    """Stable identifier; saving a sample with an existing id replaces it."""
