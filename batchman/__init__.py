"""
Django Batchman - Production batch scheduling for custom cake bakeries.

Groups cake tiers and stock tasks into shared production batches
(bake, prep, stack...), suggests lead-time-aware production dates and
keeps persisted batches unique per (type, recipe, date).

Usage:
    from batchman import planner, BatchError

    # Read paths
    groups = planner.list_candidate_groups(date(2025, 6, 1), date(2025, 6, 7))
    suggestions = planner.suggest_schedule(date(2025, 6, 1), date(2025, 6, 7))

    # Write paths
    batch = planner.create_batch("BAKE", "Vanilla", date(2025, 5, 29), tier_ids=[1, 2])
    result = planner.reschedule_batch(batch.pk, date(2025, 5, 30))
    if result.merged:
        print(f"Merged into {result.merged_into_id}")

    # Bulk apply (partial failures are reported, never rolled back)
    outcome = planner.apply_suggestions(suggestions)
    for failure in outcome.failed:
        print(f"{failure.ref}: {failure.error['code']}")
"""

from batchman.exceptions import BatchError


def __getattr__(name):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name in ("planner", "Planner"):
        from batchman.service import Planner

        return Planner
    if name == "CandidateGroup":
        from batchman.grouping import CandidateGroup

        return CandidateGroup
    if name == "ScheduleSuggestion":
        from batchman.scheduling import ScheduleSuggestion

        return ScheduleSuggestion
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["planner", "Planner", "BatchError", "CandidateGroup", "ScheduleSuggestion"]
__version__ = "0.1.0"
