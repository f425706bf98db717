"""
Batch grouping engine.

Groups a flat collection of tiers and stock tasks into candidate batches,
one per (batch type, recipe identity), independent of any date.

A tier contributes to two groups at once:
- BAKE, keyed by its batter recipe (or free-text flavor)
- PREP, keyed by its frosting recipe (or filling recipe, or free-text filling)

Stock tasks join the BAKE or PREP group of their recipe and are listed
separately for traceability.

Pure module: no database access, deterministic output.
"""

from dataclasses import dataclass, field
from datetime import date

from batchman import quantities
from batchman.conf import get_recipe_identity, get_setting
from batchman.protocols.providers import RecipeRef, StockTaskSnapshot, TierSnapshot

BAKE = "BAKE"
PREP = "PREP"

UNKNOWN_RECIPE = "Unknown"


@dataclass
class CandidateGroup:
    """A suggested batch: members sharing a batch type and recipe identity."""

    batch_type: str
    recipe_key: str
    recipe_name: str
    recipe_id: int | None = None
    recipe_kind: str = ""
    tiers: list[TierSnapshot] = field(default_factory=list)
    stock_tasks: list[StockTaskSnapshot] = field(default_factory=list)
    total_tiers: int = 0
    total_servings: int = 0
    total_surface_area: float = 0.0
    total_frosting_grams: float = 0.0
    total_stock_grams: float = 0.0
    earliest_due_date: date | None = None

    @property
    def key(self) -> str:
        return f"{self.batch_type}-{self.recipe_key}"

    @property
    def tier_ids(self) -> list[int]:
        return [t.tier_id for t in self.tiers]

    @property
    def stock_task_ids(self) -> list[int]:
        return [t.task_id for t in self.stock_tasks]

    @property
    def estimated_labor_hours(self) -> float:
        return quantities.estimated_labor_hours(self.tiers)

    def add_tier(self, tier: TierSnapshot) -> None:
        self.tiers.append(tier)
        self.total_tiers += 1
        self.total_servings += quantities.servings(tier)
        self.total_surface_area += quantities.surface_area(tier)
        self.total_frosting_grams += quantities.frosting_mass(tier)
        self._track_due(tier.due_date)

    def add_stock_task(self, task: StockTaskSnapshot) -> None:
        self.stock_tasks.append(task)
        self.total_stock_grams += quantities.stock_task_mass(task)
        self._track_due(task.due_date)

    def _track_due(self, due: date | None) -> None:
        if due is not None and (self.earliest_due_date is None or due < self.earliest_due_date):
            self.earliest_due_date = due


# ══════════════════════════════════════════════════════════════
# RECIPE RESOLUTION
# ══════════════════════════════════════════════════════════════


def resolve_bake_recipe(tier: TierSnapshot) -> RecipeRef:
    """Batter recipe if referenced, else the free-text flavor."""
    if tier.batter_recipe and tier.batter_recipe.name:
        return tier.batter_recipe
    return RecipeRef(name=tier.flavor or UNKNOWN_RECIPE, kind="batter")


def resolve_prep_recipe(tier: TierSnapshot) -> RecipeRef | None:
    """
    What must be made for the tier's frosting and filling.

    Frosting recipe first, then filling recipe, then free-text filling.
    Purchased products (fondant, by default) are not prepped.
    """
    ref = None
    if tier.frosting_recipe and tier.frosting_recipe.name:
        ref = tier.frosting_recipe
    elif tier.filling_recipe and tier.filling_recipe.name:
        ref = tier.filling_recipe
    elif tier.filling:
        ref = RecipeRef(name=tier.filling, kind="filling")

    if ref is None:
        return None

    lowered = ref.name.lower()
    for keyword in get_setting("PREP_EXCLUDED_KEYWORDS"):
        if keyword.lower() in lowered:
            return None
    return ref


# ══════════════════════════════════════════════════════════════
# GROUPING
# ══════════════════════════════════════════════════════════════


def type_priority(batch_type: str) -> int:
    """Position of a batch type in the fixed priority order (unknown types last)."""
    order = get_setting("BATCH_TYPE_PRIORITY")
    try:
        return order.index(batch_type)
    except ValueError:
        return len(order)


def sort_key(group: CandidateGroup):
    return (
        group.earliest_due_date or date.max,
        type_priority(group.batch_type),
        group.recipe_name,
    )


def group_candidates(
    tiers: list[TierSnapshot],
    stock_tasks: list[StockTaskSnapshot] = (),
    identity=None,
    include_batched: bool = False,
) -> list[CandidateGroup]:
    """
    Build candidate groups from tiers and stock tasks.

    Args:
        tiers: Tier snapshots
        stock_tasks: Stock task snapshots
        identity: RecipeIdentity strategy (defaults to the configured one)
        include_batched: If False, members already in a batch of a type
            do not enter that type's candidates

    Returns:
        Groups sorted by earliest due date, then batch type priority
    """
    identity = identity or get_recipe_identity()
    groups: dict[tuple[str, str], CandidateGroup] = {}

    def group_for(batch_type: str, ref: RecipeRef) -> CandidateGroup:
        key = (batch_type, identity.key(ref))
        if key not in groups:
            groups[key] = CandidateGroup(
                batch_type=batch_type,
                recipe_key=key[1],
                recipe_name=ref.name,
                recipe_id=ref.id,
                recipe_kind=ref.kind,
            )
        return groups[key]

    for tier in sorted(tiers, key=lambda t: (t.due_date, t.order_id, t.tier_index, t.tier_id)):
        if include_batched or BAKE not in tier.batched:
            group_for(BAKE, resolve_bake_recipe(tier)).add_tier(tier)

        prep_ref = resolve_prep_recipe(tier)
        if prep_ref and (include_batched or PREP not in tier.batched):
            group_for(PREP, prep_ref).add_tier(tier)

    for task in sorted(stock_tasks, key=lambda t: (t.due_date or date.max, t.task_id)):
        if task.batch_id is not None and not include_batched:
            continue
        group_for(task.batch_type, task.recipe).add_stock_task(task)

    return sorted(
        (g for g in groups.values() if g.tiers or g.stock_tasks),
        key=sort_key,
    )
