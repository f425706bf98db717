"""
Batch reconciliation planning.

Finds persisted batches that share a slot (batch type, recipe identity,
scheduled date) and should be one batch. That happens with undated drafts,
which the database does not deduplicate, with data written before the
unique constraint, and after switching the recipe identity strategy.

Pure: takes snapshots, returns actions. Running the actions and planning
again yields no actions.
"""

from dataclasses import dataclass
from datetime import date

from batchman.conf import get_recipe_identity
from batchman.protocols.providers import BatchSnapshot, RecipeRef

CLOSED_STATUSES = ("completed",)


@dataclass(frozen=True)
class MergeAction:
    """Merge ``source_id`` into ``target_id``; both share the slot."""

    source_id: int
    target_id: int
    batch_type: str
    recipe_key: str
    scheduled_date: date | None


@dataclass(frozen=True)
class RekeyAction:
    """Store a new recipe key on a surviving batch."""

    batch_id: int
    recipe_key: str


def plan_reconciliation(
    batches: list[BatchSnapshot], identity=None
) -> tuple[list[MergeAction], list[RekeyAction]]:
    """
    Plan merges for batches sharing a slot.

    The oldest batch (lowest id) of a slot survives. Completed batches are
    never touched.

    Returns:
        (merges, rekeys) where rekeys update stale recipe keys on survivors
    """
    identity = identity or get_recipe_identity()
    slots: dict[tuple, list[BatchSnapshot]] = {}

    for batch in sorted(batches, key=lambda b: b.batch_id):
        if batch.status in CLOSED_STATUSES:
            continue
        key = identity.key(RecipeRef(name=batch.recipe_name, id=batch.recipe_id))
        slots.setdefault((batch.batch_type, key, batch.scheduled_date), []).append(batch)

    merges = []
    rekeys = []
    for (batch_type, key, scheduled_date), members in slots.items():
        target = members[0]
        for source in members[1:]:
            merges.append(
                MergeAction(
                    source_id=source.batch_id,
                    target_id=target.batch_id,
                    batch_type=batch_type,
                    recipe_key=key,
                    scheduled_date=scheduled_date,
                )
            )
        if target.recipe_key != key:
            rekeys.append(RekeyAction(batch_id=target.batch_id, recipe_key=key))

    return merges, rekeys
