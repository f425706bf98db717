"""
Query service -- candidate groups, schedule suggestions, batch lookups.

Read-only. All methods are @classmethod so the mixin can be composed into
Planner without instantiation.
"""

import logging
from datetime import date

from django.db.models import Q

from batchman import grouping, scheduling
from batchman.conf import get_batch_type_provider, get_stock_task_provider, get_tier_provider
from batchman.exceptions import BatchNotFoundError
from batchman.models import BatchStatus, ProductionBatch
from batchman.protocols.providers import BatchTypeInfo
from batchman.services.storage import storage_guard

logger = logging.getLogger(__name__)


class BatchQueries:
    """Read side of batch planning."""

    @classmethod
    @storage_guard("batch_types")
    def batch_types(cls) -> list[BatchTypeInfo]:
        """Active batch types ordered by sort order."""
        return get_batch_type_provider().batch_types()

    @classmethod
    def batch_type_codes(cls) -> set[str]:
        return {info.code for info in cls.batch_types()}

    @classmethod
    @storage_guard("list_candidate_groups")
    def list_candidate_groups(
        cls, start: date | None = None, end: date | None = None
    ) -> list[grouping.CandidateGroup]:
        """
        Group unbatched tiers and stock tasks due within [start, end].

        Members already in a batch of a type do not appear in that type's
        candidates.
        """
        tiers = get_tier_provider().tiers(start, end)
        tasks = get_stock_task_provider().stock_tasks(start, end)
        groups = grouping.group_candidates(tiers, tasks)

        logger.debug(
            f"Grouped {len(tiers)} tiers and {len(tasks)} stock tasks into {len(groups)} candidates",
            extra={"start": str(start), "end": str(end)},
        )
        return groups

    @classmethod
    @storage_guard("suggest_schedule")
    def suggest_schedule(
        cls,
        start: date | None = None,
        end: date | None = None,
        today: date | None = None,
    ) -> list[scheduling.ScheduleSuggestion]:
        """
        Suggest production dates for candidate groups and open batches.

        Suggestions are advisory; apply them with apply_suggestions().
        """
        groups = cls.list_candidate_groups(start, end)
        batches = [
            batch.to_snapshot()
            for batch in cls._batches_for_members_due(start, end)
        ]
        return scheduling.suggest(groups, cls.batch_types(), batches, today=today)

    @classmethod
    def _batches_for_members_due(cls, start, end):
        """Open batches with at least one member due within [start, end]."""
        tier_q = Q(memberships__isnull=False)
        task_q = Q(stock_tasks__isnull=False)
        if start is not None:
            tier_q &= Q(memberships__tier__order__event_date__gte=start)
            task_q &= Q(stock_tasks__scheduled_date__gte=start)
        if end is not None:
            tier_q &= Q(memberships__tier__order__event_date__lte=end)
            task_q &= Q(stock_tasks__scheduled_date__lte=end)

        return (
            ProductionBatch.objects.exclude(status=BatchStatus.COMPLETED)
            .filter(tier_q | task_q)
            .distinct()
            .order_by("pk")
        )

    @classmethod
    @storage_guard("get_batch")
    def get_batch(cls, batch_id: int) -> ProductionBatch:
        """Get a batch by id; raises BatchNotFoundError."""
        try:
            return ProductionBatch.objects.get(pk=batch_id)
        except ProductionBatch.DoesNotExist:
            raise BatchNotFoundError("BATCH_NOT_FOUND", batch_id=batch_id)

    @classmethod
    @storage_guard("list_batches")
    def list_batches(
        cls,
        start: date | None = None,
        end: date | None = None,
        batch_type: str | None = None,
        status: str | None = None,
        include_drafts: bool = True,
    ) -> list[ProductionBatch]:
        """
        Batches scheduled within [start, end].

        Undated drafts are included unless include_drafts=False.
        """
        dated = Q(scheduled_date__isnull=False)
        if start is not None:
            dated &= Q(scheduled_date__gte=start)
        if end is not None:
            dated &= Q(scheduled_date__lte=end)
        window = dated | Q(scheduled_date__isnull=True) if include_drafts else dated

        qs = ProductionBatch.objects.filter(window).select_related("assigned_to")
        if batch_type:
            qs = qs.filter(batch_type=batch_type)
        if status:
            qs = qs.filter(status=status)

        return list(qs.order_by("scheduled_date", "batch_type", "recipe_name", "pk"))
