"""
Quantity model - tier yield and sizing numbers.

Pure functions turning a tier's physical description into production
numbers: servings, frostable surface area, frosting mass and labor hours.
Every function is total: missing inputs degrade to zero (read as
"unknown") instead of raising.

Dimensions are in the configured length unit (inches by default) and
masses in grams.
"""

import logging
import math
import re
from decimal import ROUND_HALF_UP, Decimal

from batchman.conf import get_setting
from batchman.units import to_grams

logger = logging.getLogger(__name__)

ROUND_SHAPES = ("round", "circle")
RECTANGULAR_SHAPES = ("square", "sheet", "rectangle", "rectangular")

MIN_LABOR_HOURS = 2

_SIZE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:inch|in\b|\"|cm)", re.IGNORECASE)


def _positive(value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if value > 0 else 0.0


def parse_size_dimension(size_name: str) -> float:
    """
    Parse the leading dimension from a size name ("8 inch round" -> 8).

    Returns 0 when nothing can be parsed; the caller treats that as unknown.
    """
    match = _SIZE_PATTERN.search(size_name or "")
    if not match:
        return 0.0
    return float(match.group(1))


def _dimensions(tier) -> tuple[float, float, float, float]:
    """Return (diameter, length, width, height), filling gaps from the size name."""
    diameter = _positive(tier.diameter)
    length = _positive(tier.length)
    width = _positive(tier.width)
    height = _positive(tier.height)

    if not (diameter or length or width):
        diameter = parse_size_dimension(tier.size_name)
        if not diameter:
            logger.warning(
                f"Tier {tier.tier_id}: no dimensions for size '{tier.size_name}'",
                extra={"tier": tier.tier_id, "size": tier.size_name},
            )

    return diameter, length, width, height


def servings(tier) -> int:
    """Servings as stored on the tier size; non-positive values count as 0."""
    try:
        value = int(tier.servings or 0)
    except (TypeError, ValueError):
        return 0
    return value if value > 0 else 0


def surface_area(tier) -> float:
    """
    Frostable outside area (top + side).

    Round:        pi * r^2 + pi * d * h
    Rectangular:  l * w + 2 * (l + w) * h   (square: l = w = side)

    Returns 0 when a required dimension is missing.
    """
    diameter, length, width, height = _dimensions(tier)
    shape = (tier.shape or "round").lower()

    if shape in RECTANGULAR_SHAPES:
        if shape == "square":
            side = length or width or diameter
            length = length or side
            width = width or side
        if not (length and width and height):
            return 0.0
        return length * width + 2 * (length + width) * height

    if not (diameter and height):
        return 0.0
    radius = diameter / 2
    return math.pi * radius * radius + math.pi * diameter * height


def thickness_factor(complexity: str) -> float:
    """Grams of frosting per unit of area for a complexity level (medium is the baseline)."""
    factors = get_setting("FROSTING_COMPLEXITY_FACTORS")
    base = float(get_setting("FROSTING_GRAMS_PER_AREA"))
    factor = factors.get((complexity or "medium").lower(), factors.get("medium", 1.0))
    return base * float(factor)


def frosting_mass(tier) -> float:
    """Frosting/buttercream mass in grams."""
    return surface_area(tier) * thickness_factor(tier.complexity)


def finish_bonus(finish_type: str) -> float:
    """Extra hours for a finish, matched by substring (fondant wins over buttercream)."""
    finish = (finish_type or "").lower()
    for keyword, hours in get_setting("FINISH_BONUS_HOURS").items():
        if keyword.lower() in finish:
            return float(hours)
    return 0.0


def estimated_labor_hours(tiers) -> float:
    """
    Estimated labor for a set of tiers.

    max(2, round_half_up(sum(servings / 10 + finish_bonus) * 2) / 2)
    """
    per_hour = Decimal(str(get_setting("LABOR_SERVINGS_PER_HOUR")))
    total = Decimal("0")
    for tier in tiers:
        total += Decimal(servings(tier)) / per_hour
        total += Decimal(str(finish_bonus(tier.finish_type)))

    halves = (total * 2).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(max(Decimal(MIN_LABOR_HOURS), halves / 2))


def stock_task_mass(task) -> float:
    """Recipe mass in grams needed for a stock task (quantity x per-unit weight)."""
    quantity = _positive(task.target_quantity)
    return quantity * _positive(task.unit_weight_grams)


def unit_weight_grams(weight, unit: str) -> float:
    """Per-unit stock weight converted to grams; missing weights count as 0."""
    if weight is None:
        return 0.0
    return to_grams(weight, unit)
