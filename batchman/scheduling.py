"""
Lead-time scheduler.

Proposes a production date for every candidate group and every open
persisted batch:

    suggested = earliest member due date - lead_time(batch type)

clamped to today (with a warning) and annotated with advisory warnings for
dependency batch types that have nothing scheduled or suggested yet.

Stateless and greedy: suggestions are independent per group, there is no
cross-group optimisation. Accepting a suggestion means creating a batch
through the mutation service; rejecting it means ignoring it.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from batchman.conf import get_setting
from batchman.grouping import CandidateGroup, sort_key, type_priority
from batchman.protocols.providers import BatchSnapshot, BatchTypeInfo

logger = logging.getLogger(__name__)

OPEN_BATCH_STATUSES = ("draft", "scheduled", "in_progress")


@dataclass(frozen=True)
class MissingDependency:
    """A dependency batch type with no batch covering the same members."""

    batch_type: str
    suggested_date: date
    lead_time_days: int


@dataclass
class ScheduleSuggestion:
    """
    Suggested production date for one group or batch.

    Ephemeral: created fresh on every request and never stored.
    ``batch_id`` is set when the suggestion concerns a persisted batch.
    """

    ref: str
    batch_type: str
    recipe_name: str
    recipe_key: str
    suggested_date: date
    lead_time_days: int
    reason: str
    earliest_due_date: date
    batch_id: int | None = None
    recipe_id: int | None = None
    current_date: date | None = None
    dependencies: list[str] = field(default_factory=list)
    missing_dependencies: list[MissingDependency] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    tier_ids: list[int] = field(default_factory=list)
    stock_task_ids: list[int] = field(default_factory=list)

    @property
    def is_persisted(self) -> bool:
        return self.batch_id is not None

    @property
    def needs_change(self) -> bool:
        """True when the batch is unscheduled or scheduled on another date."""
        return self.current_date != self.suggested_date


class _Coverage:
    """Which batch types already cover which tiers or recipe keys."""

    def __init__(self, groups: list[CandidateGroup], batches: list[BatchSnapshot]):
        self.tiers: dict[str, set[int]] = {}
        self.recipes: dict[str, set[str]] = {}

        for group in groups:
            self._add(group.batch_type, group.tier_ids, group.recipe_key)
        for batch in batches:
            self._add(batch.batch_type, batch.tier_ids, batch.recipe_key)

    def _add(self, batch_type, tier_ids, recipe_key):
        self.tiers.setdefault(batch_type, set()).update(tier_ids)
        self.recipes.setdefault(batch_type, set()).add(recipe_key)

    def covers(self, batch_type: str, tier_ids, recipe_key: str) -> bool:
        if tier_ids:
            return bool(self.tiers.get(batch_type, set()) & set(tier_ids))
        return recipe_key in self.recipes.get(batch_type, set())


def lead_time_for(batch_type: str, types: dict[str, BatchTypeInfo]) -> int:
    info = types.get(batch_type)
    if info is None:
        return int(get_setting("DEFAULT_LEAD_TIME_DAYS"))
    return int(info.lead_time_days)


def suggest(
    groups: list[CandidateGroup],
    batch_types: list[BatchTypeInfo],
    batches: list[BatchSnapshot] = (),
    today: date | None = None,
) -> list[ScheduleSuggestion]:
    """
    Compute schedule suggestions.

    Args:
        groups: Candidate groups (unbatched members)
        batch_types: Batch type configuration
        batches: Persisted batches in the window
        today: Reference date for clamping (defaults to date.today())

    Returns:
        Suggestions for groups first (grouping order), then open batches
        ordered by due date and type priority
    """
    today = today or date.today()
    types = {info.code: info for info in batch_types}
    coverage = _Coverage(groups, batches)

    suggestions = [
        _suggest_one(
            ref=group.key,
            batch_type=group.batch_type,
            recipe_name=group.recipe_name,
            recipe_key=group.recipe_key,
            recipe_id=group.recipe_id,
            due=group.earliest_due_date or today,
            tier_ids=group.tier_ids,
            stock_task_ids=group.stock_task_ids,
            current_date=None,
            batch_id=None,
            types=types,
            coverage=coverage,
            today=today,
        )
        for group in sorted(groups, key=sort_key)
    ]

    open_batches = sorted(
        (b for b in batches if b.status in OPEN_BATCH_STATUSES and b.due_date is not None),
        key=lambda b: (b.due_date, type_priority(b.batch_type), b.recipe_name, b.batch_id),
    )
    for batch in open_batches:
        suggestions.append(
            _suggest_one(
                ref=f"batch:{batch.batch_id}",
                batch_type=batch.batch_type,
                recipe_name=batch.recipe_name,
                recipe_key=batch.recipe_key,
                recipe_id=batch.recipe_id,
                due=batch.due_date,
                tier_ids=list(batch.tier_ids),
                stock_task_ids=list(batch.stock_task_ids),
                current_date=batch.scheduled_date,
                batch_id=batch.batch_id,
                types=types,
                coverage=coverage,
                today=today,
            )
        )

    return suggestions


def _suggest_one(
    *,
    ref,
    batch_type,
    recipe_name,
    recipe_key,
    recipe_id,
    due,
    tier_ids,
    stock_task_ids,
    current_date,
    batch_id,
    types,
    coverage,
    today,
) -> ScheduleSuggestion:
    lead_time = lead_time_for(batch_type, types)
    suggested = due - timedelta(days=lead_time)
    warnings = []

    if suggested < today:
        warnings.append(
            f"Ideal date {suggested.isoformat()} has passed; suggesting today instead"
        )
        logger.warning(
            f"Suggestion for {batch_type} {recipe_name} clamped to {today}",
            extra={
                "batch_type": batch_type,
                "recipe": recipe_name,
                "ideal_date": str(suggested),
                "due_date": str(due),
            },
        )
        suggested = today

    info = types.get(batch_type)
    dependencies = list(info.depends_on) if info else []
    missing = []
    for dep_type in dependencies:
        if coverage.covers(dep_type, tier_ids, recipe_key):
            continue
        dep_lead = lead_time_for(dep_type, types)
        missing.append(
            MissingDependency(
                batch_type=dep_type,
                suggested_date=suggested - timedelta(days=dep_lead),
                lead_time_days=dep_lead,
            )
        )

    return ScheduleSuggestion(
        ref=ref,
        batch_id=batch_id,
        batch_type=batch_type,
        recipe_name=recipe_name,
        recipe_key=recipe_key,
        recipe_id=recipe_id,
        current_date=current_date,
        suggested_date=suggested,
        lead_time_days=lead_time,
        reason=f"{lead_time} day(s) before earliest due date ({due.isoformat()})",
        earliest_due_date=due,
        dependencies=dependencies,
        missing_dependencies=missing,
        warnings=warnings,
        tier_ids=list(tier_ids),
        stock_task_ids=list(stock_task_ids),
    )
