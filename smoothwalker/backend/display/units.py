"""
display/units.py

Units and quantities for the metrics the screen can show.

Every metric kind stores its samples in one canonical unit; the display side
converts to the user's preferred unit (metric or imperial). Conversion is a
single linear factor to the dimension's base unit, so a unit only converts
to another unit of the same dimension.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..config import settings
from ..models import MetricKind


class UnitConversionError(ValueError):
    """Raised when a quantity is converted to a unit of another dimension."""


@dataclass(frozen=True, slots=True)
class Unit:
    symbol: str
    dimension: str
    factor: float = 1.0
    """Multiplier from this unit to the dimension's base unit."""

    def __str__(self) -> str:
        return self.symbol


@dataclass(frozen=True, slots=True)
class Quantity:
    value: float
    unit: Unit

    def value_in(self, unit: Unit) -> float:
        """Return this quantity's value expressed in *unit*."""
        if unit.dimension != self.unit.dimension:
            raise UnitConversionError(
                f"cannot convert {self.unit.symbol} ({self.unit.dimension}) "
                f"to {unit.symbol} ({unit.dimension})"
            )
        if unit == self.unit:
            return self.value
        return self.value * self.unit.factor / unit.factor


# ---------------------------------------------------------------------------
# Unit catalogue
# ---------------------------------------------------------------------------

METERS_PER_SECOND = Unit("m/s", "speed")
KILOMETERS_PER_HOUR = Unit("km/hr", "speed", 1000.0 / 3600.0)
MILES_PER_HOUR = Unit("mph", "speed", 1609.344 / 3600.0)

METER = Unit("m", "length")
CENTIMETER = Unit("cm", "length", 0.01)
KILOMETER = Unit("km", "length", 1000.0)
INCH = Unit("in", "length", 0.0254)
FOOT = Unit("ft", "length", 0.3048)
MILE = Unit("mi", "length", 1609.344)

COUNT = Unit("steps", "count")
BEATS_PER_MINUTE = Unit("bpm", "frequency")
ML_PER_KG_MIN = Unit("mL/kg·min", "vo2")


_CANONICAL_UNITS: dict[MetricKind, Unit] = {
    MetricKind.WALKING_SPEED:                 METERS_PER_SECOND,
    MetricKind.WALKING_STEP_LENGTH:           METER,
    MetricKind.STEP_COUNT:                    COUNT,
    MetricKind.DISTANCE_WALKING_RUNNING:      METER,
    MetricKind.SIX_MINUTE_WALK_TEST_DISTANCE: METER,
    MetricKind.HEART_RATE:                    BEATS_PER_MINUTE,
    MetricKind.RESTING_HEART_RATE:            BEATS_PER_MINUTE,
    MetricKind.VO2_MAX:                       ML_PER_KG_MIN,
}

# (metric, imperial) preference per kind
_PREFERRED_UNITS: dict[MetricKind, tuple[Unit, Unit]] = {
    MetricKind.WALKING_SPEED:                 (METERS_PER_SECOND, MILES_PER_HOUR),
    MetricKind.WALKING_STEP_LENGTH:           (CENTIMETER, INCH),
    MetricKind.STEP_COUNT:                    (COUNT, COUNT),
    MetricKind.DISTANCE_WALKING_RUNNING:      (KILOMETER, MILE),
    MetricKind.SIX_MINUTE_WALK_TEST_DISTANCE: (METER, FOOT),
    MetricKind.HEART_RATE:                    (BEATS_PER_MINUTE, BEATS_PER_MINUTE),
    MetricKind.RESTING_HEART_RATE:            (BEATS_PER_MINUTE, BEATS_PER_MINUTE),
    MetricKind.VO2_MAX:                       (ML_PER_KG_MIN, ML_PER_KG_MIN),
}

assert set(_CANONICAL_UNITS) == set(MetricKind) == set(_PREFERRED_UNITS), (
    "every MetricKind needs a canonical and a preferred unit"
)


def canonical_unit(kind: MetricKind | str) -> Unit:
    """Unit in which samples of *kind* are stored."""
    return _CANONICAL_UNITS[MetricKind(kind)]


def preferred_unit(kind: MetricKind | str, unit_system: str | None = None) -> Unit:
    """
    Unit in which values of *kind* are displayed.

    Args:
        kind:        Metric kind (enum member or its string value).
        unit_system: "metric" or "imperial"; defaults to Settings.UNIT_SYSTEM.
    """
    if unit_system is None:
        unit_system = settings.UNIT_SYSTEM
    metric, imperial = _PREFERRED_UNITS[MetricKind(kind)]
    return imperial if unit_system == "imperial" else metric
