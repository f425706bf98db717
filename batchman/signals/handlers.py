"""
Batchman Signal Handlers.

Keeps batches consistent when their members disappear outside the
mutation service: deleting an order cascades to its tiers and their
memberships, deleting a stock task detaches it. Batches left empty are
deleted; the others get their aggregates recomputed.

This module is imported in apps.py to register handlers.
"""

import logging

from django.db import transaction
from django.db.models.signals import post_delete, pre_delete
from django.dispatch import receiver

from batchman.models import BatchTier, CakeTier, StockTask

logger = logging.getLogger(__name__)


@receiver(pre_delete, sender=CakeTier)
def remember_tier_batches(sender, instance, **kwargs):
    """Memberships are gone by post_delete; note the batches now."""
    instance._batchman_batch_ids = list(
        BatchTier.objects.filter(tier=instance).values_list("batch_id", flat=True)
    )


@receiver(post_delete, sender=CakeTier)
def prune_after_tier_delete(sender, instance, **kwargs):
    batch_ids = getattr(instance, "_batchman_batch_ids", [])
    if not batch_ids:
        return

    logger.info(
        f"Tier {instance.pk} deleted, checking {len(batch_ids)} batch(es)",
        extra={"tier": instance.pk, "batches": batch_ids},
    )
    _schedule_prune(batch_ids)


@receiver(post_delete, sender=StockTask)
def prune_after_stock_task_delete(sender, instance, **kwargs):
    if instance.batch_id is None:
        return
    _schedule_prune([instance.batch_id])


def _schedule_prune(batch_ids):
    from batchman.service import Planner

    ids = sorted(set(batch_ids))
    transaction.on_commit(lambda: Planner.prune_batches(ids))
