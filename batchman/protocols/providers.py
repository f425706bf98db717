"""
Provider Protocols.

Defines the read-side interfaces Batchman uses to reach its collaborators:
cake tiers (with their orders' due dates), stock production tasks and the
batch type configuration.

The default implementations in ``batchman.adapters.orm`` read Batchman's
own minimal models. Hosts with their own order system point the settings
at their adapters instead:

    BATCHMAN = {
        "TIER_PROVIDER": "orders.adapters.BatchmanTierProvider",
    }
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable


# ══════════════════════════════════════════════════════════════
# DATA TYPES
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class RecipeRef:
    """Reference to a recipe, or a free-text fallback when id is None."""

    name: str
    id: int | None = None
    kind: str = ""


@dataclass(frozen=True)
class TierSnapshot:
    """
    One cake tier as seen by the scheduling core.

    Dimensions are in the configured length unit; any of them may be None
    when the size does not define it. ``batched`` maps batch type code to
    the id of the batch the tier already belongs to for that type.
    """

    tier_id: int
    order_id: int
    due_date: date
    tier_index: int = 1
    size_name: str = ""
    shape: str = "round"
    servings: int = 0
    diameter: float | None = None
    length: float | None = None
    width: float | None = None
    height: float | None = None
    complexity: str = "medium"
    finish_type: str = ""
    batter_recipe: RecipeRef | None = None
    flavor: str = ""
    filling_recipe: RecipeRef | None = None
    filling: str = ""
    frosting_recipe: RecipeRef | None = None
    fulfillment: str = "pickup"
    customer_name: str = ""
    batched: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class StockTaskSnapshot:
    """A stock production task (non-custom inventory)."""

    task_id: int
    item_name: str
    recipe: RecipeRef
    target_quantity: Decimal
    unit_weight_grams: float = 0.0
    due_date: date | None = None
    status: str = "pending"
    batch_id: int | None = None

    @property
    def batch_type(self) -> str:
        """Batter recipes are baked; everything else is prepped."""
        return "BAKE" if self.recipe.kind == "batter" else "PREP"


@dataclass(frozen=True)
class BatchTypeInfo:
    """Batch type configuration (read-only reference data)."""

    code: str
    name: str = ""
    lead_time_days: int = 1
    depends_on: tuple[str, ...] = ()
    is_batchable: bool = True
    color: str = ""
    sort_order: int = 0
    description: str = ""


@dataclass(frozen=True)
class BatchSnapshot:
    """A persisted batch as seen by the scheduler."""

    batch_id: int
    batch_type: str
    recipe_name: str
    recipe_key: str
    scheduled_date: date | None
    status: str
    due_date: date | None
    tier_ids: tuple[int, ...] = ()
    stock_task_ids: tuple[int, ...] = ()
    recipe_id: int | None = None


# ══════════════════════════════════════════════════════════════
# PROTOCOLS
# ══════════════════════════════════════════════════════════════


@runtime_checkable
class TierProvider(Protocol):
    """Source of cake tiers for batch planning."""

    def tiers(self, start: date | None = None, end: date | None = None) -> list[TierSnapshot]:
        """
        Return tiers of active orders due within [start, end].

        Open bounds (None) mean no limit on that side.
        """
        ...


@runtime_checkable
class StockTaskProvider(Protocol):
    """Source of stock production tasks."""

    def stock_tasks(
        self, start: date | None = None, end: date | None = None
    ) -> list[StockTaskSnapshot]:
        """Return open stock tasks scheduled within [start, end]."""
        ...


@runtime_checkable
class BatchTypeProvider(Protocol):
    """Source of batch type configuration."""

    def batch_types(self) -> list[BatchTypeInfo]:
        """Return active batch types ordered by sort order."""
        ...
