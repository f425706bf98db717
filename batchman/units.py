"""
Mass unit conversion.

The single place where grams, kilograms, ounces and pounds are converted.
Factors come from ``BATCHMAN["MASS_UNITS"]`` (grams per unit), so a bakery
can add units without touching call sites.

Usage:
    to_grams(12, "oz")            # 340.194
    convert(1, "lb", "oz")        # 16.0
    format_mass(1200)             # "1200 g (1.20 kg)"
    format_mass(1200, unit="oz")  # "42 oz (2.6 lb)"
"""

from batchman.conf import get_setting
from batchman.exceptions import BatchValidationError

# Secondary unit shown when the primary amount crosses one of it
_SECONDARY = {"g": "kg", "oz": "lb"}


def _factor(unit: str) -> float:
    units = get_setting("MASS_UNITS")
    try:
        return float(units[unit.lower()])
    except (KeyError, AttributeError):
        raise BatchValidationError("UNKNOWN_UNIT", unit=unit, known=sorted(units))


def to_grams(value, unit: str) -> float:
    """Convert value expressed in unit to grams."""
    return float(value) * _factor(unit)


def from_grams(grams, unit: str) -> float:
    """Convert grams to unit."""
    return float(grams) / _factor(unit)


def convert(value, from_unit: str, to_unit: str) -> float:
    """Convert between two configured mass units."""
    if from_unit.lower() == to_unit.lower():
        return float(value)
    return from_grams(to_grams(value, from_unit), to_unit)


def format_mass(grams, unit: str | None = None, show_secondary: bool = True) -> str:
    """
    Format a mass in grams for display.

    Shows the secondary unit (kg for grams, lb for ounces) once the amount
    reaches one of it.
    """
    unit = (unit or get_setting("DISPLAY_MASS_UNIT")).lower()
    amount = from_grams(grams, unit)
    text = f"{round(amount)} {unit}"

    secondary = _SECONDARY.get(unit)
    if show_secondary and secondary and secondary in get_setting("MASS_UNITS"):
        secondary_amount = convert(amount, unit, secondary)
        if secondary_amount >= 1:
            precision = 2 if secondary == "kg" else 1
            text += f" ({secondary_amount:.{precision}f} {secondary})"

    return text
