"""
display/__init__.py

Public API for the display-formatting sub-package.
"""

from .formatters import display_name, format_date, formatted_value, statistics_options
from .units import Quantity, Unit, UnitConversionError, canonical_unit, preferred_unit

__all__ = [
    "Quantity",
    "Unit",
    "UnitConversionError",
    "canonical_unit",
    "preferred_unit",
    "display_name",
    "format_date",
    "formatted_value",
    "statistics_options",
]
