"""
ORM providers.

Read tiers, stock tasks and batch types from Batchman's models and turn
them into the frozen snapshots the scheduling core works on.
"""

import logging
from datetime import date

from batchman.conf import get_setting
from batchman.protocols.providers import BatchTypeInfo, StockTaskSnapshot, TierSnapshot

logger = logging.getLogger(__name__)


class OrmTierProvider:
    """
    Tiers of active orders, filtered by due date.

    Rush orders are left out unless INCLUDE_RUSH_ORDERS is set. Each
    snapshot carries the batches the tier already belongs to.
    """

    def tiers(self, start: date | None = None, end: date | None = None) -> list[TierSnapshot]:
        from batchman.models import BatchTier, CakeTier

        qs = CakeTier.objects.select_related(
            "order", "size", "batter_recipe", "filling_recipe", "frosting_recipe"
        ).filter(order__status__in=get_setting("ACTIVE_ORDER_STATUSES"))

        if not get_setting("INCLUDE_RUSH_ORDERS"):
            qs = qs.filter(order__is_rush=False)
        if start is not None:
            qs = qs.filter(order__event_date__gte=start)
        if end is not None:
            qs = qs.filter(order__event_date__lte=end)

        tiers = list(qs.order_by("order__event_date", "order_id", "tier_index", "pk"))

        batched: dict[int, dict[str, int]] = {}
        memberships = BatchTier.objects.filter(tier__in=[t.pk for t in tiers]).values_list(
            "tier_id", "batch_type", "batch_id"
        )
        for tier_id, batch_type, batch_id in memberships:
            batched.setdefault(tier_id, {})[batch_type] = batch_id

        return [tier.to_snapshot(batched.get(tier.pk)) for tier in tiers]


class OrmStockTaskProvider:
    """Stock tasks that are not completed, filtered by scheduled date."""

    def stock_tasks(
        self, start: date | None = None, end: date | None = None
    ) -> list[StockTaskSnapshot]:
        from batchman.models import StockTask, StockTaskStatus

        qs = (
            StockTask.objects.select_related("item", "recipe")
            .exclude(status=StockTaskStatus.COMPLETED)
        )
        if start is not None:
            qs = qs.filter(scheduled_date__gte=start)
        if end is not None:
            qs = qs.filter(scheduled_date__lte=end)

        return [task.to_snapshot() for task in qs.order_by("scheduled_date", "pk")]


class OrmBatchTypeProvider:
    """
    Active BatchTypeConfig rows.

    Falls back to the BATCH_TYPES setting when the table is empty.
    """

    def batch_types(self) -> list[BatchTypeInfo]:
        from batchman.models import BatchTypeConfig

        rows = list(BatchTypeConfig.objects.filter(is_active=True).order_by("sort_order", "code"))
        if rows:
            return [row.to_info() for row in rows]

        logger.debug("No batch types configured, using defaults")
        return default_batch_types()


def default_batch_types() -> list[BatchTypeInfo]:
    """Batch types from the BATCH_TYPES setting."""
    types = [
        BatchTypeInfo(
            code=entry["code"],
            name=entry.get("name", entry["code"]),
            lead_time_days=int(entry.get("lead_time_days", get_setting("DEFAULT_LEAD_TIME_DAYS"))),
            depends_on=tuple(entry.get("depends_on", ())),
            is_batchable=entry.get("is_batchable", True),
            color=entry.get("color", ""),
            sort_order=entry.get("sort_order", 0),
            description=entry.get("description", ""),
        )
        for entry in get_setting("BATCH_TYPES")
    ]
    return sorted(types, key=lambda t: (t.sort_order, t.code))
