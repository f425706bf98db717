"""
Batchman Service - thin facade over the query and mutation mixins.

Usage:
    from batchman import planner, BatchError

    groups = planner.list_candidate_groups(start, end)
    suggestions = planner.suggest_schedule(start, end)
    result = planner.apply_suggestions(suggestions)

    batch = planner.create_batch("BAKE", "Vanilla Sponge", date(2026, 5, 1), tier_ids=[1, 2])
    planner.reschedule_batch(batch.pk, date(2026, 5, 2))
"""

from batchman.services.mutations import BatchMutations
from batchman.services.queries import BatchQueries


class Planner(BatchQueries, BatchMutations):
    """
    Batch planning API.

    All methods are classmethods; no instance is needed.
    """


planner = Planner
