"""
Mutation service -- create, add, reschedule, merge, remove, delete.

Every mutation runs in one transaction and leaves storage satisfying:
- at most one batch per (batch type, recipe key, scheduled date)
- at most one batch per tier per batch type
- no batch without members

Concurrent writers on the same slot are serialised by an in-process lock,
SELECT FOR UPDATE on the slot row and the unique constraint; a writer that
loses the race on create retries once and merges into the winner.

All methods are @classmethod so the mixin can be composed into Planner
without instantiation.
"""

import logging
from datetime import date

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from batchman.conf import get_recipe_identity
from batchman.exceptions import (
    BatchConflictError,
    BatchError,
    BatchNotFoundError,
    BatchValidationError,
)
from batchman.locks import hold_slots
from batchman.models import BatchStatus, BatchTier, CakeTier, ProductionBatch, StockTask
from batchman.models.batch import STATUS_ORDER
from batchman.protocols.providers import RecipeRef
from batchman.reconciliation import plan_reconciliation
from batchman.results import (
    BulkApplyResult,
    FailedSuggestion,
    ReconcileResult,
    RemovalResult,
    RescheduleResult,
)
from batchman.services.storage import storage_guard

logger = logging.getLogger(__name__)

_unset = object()


def _actor(user) -> str:
    return f"user:{user.get_username()}" if user else "system"


def _recipe_ref(recipe) -> RecipeRef:
    """Accept a RecipeRef, a Recipe model or a plain name."""
    if isinstance(recipe, RecipeRef):
        return recipe
    if hasattr(recipe, "as_ref"):
        return recipe.as_ref()
    if isinstance(recipe, str) and recipe.strip():
        return RecipeRef(name=recipe)
    raise BatchValidationError("INVALID_RECIPE", recipe=str(recipe))


def _slot(when) -> tuple[date | None, int | None]:
    """
    Normalise a schedule target.

    Accepts None (unscheduled), a date, or a (start, end) pair. Returns
    (start, duration_days); duration is None when the target is a single
    date and the batch keeps its current duration.
    """
    if when is None:
        return None, None
    if isinstance(when, (tuple, list)):
        start, end = when
        if start is None or end is None:
            raise BatchValidationError("INVALID_DATE_RANGE", start=str(start), end=str(end))
        if end < start:
            raise BatchValidationError("INVALID_DATE_RANGE", start=str(start), end=str(end))
        return start, (end - start).days + 1
    if isinstance(when, date):
        return when, None
    raise BatchValidationError("INVALID_DATE", value=str(when))


def _send_on_commit(signal, **kwargs):
    from batchman.service import Planner

    transaction.on_commit(lambda: signal.send(sender=Planner, **kwargs))


class BatchMutations:
    """Write side of batch planning."""

    # ══════════════════════════════════════════════════════════════
    # CREATE / ADD
    # ══════════════════════════════════════════════════════════════

    @classmethod
    @storage_guard("create_batch")
    def create_batch(
        cls,
        batch_type: str,
        recipe,
        scheduled_date=None,
        tier_ids=(),
        stock_task_ids=(),
        name: str = "",
        notes: str = "",
        user=None,
    ) -> ProductionBatch:
        """
        Create a batch, or merge into the batch already holding the slot.

        Args:
            batch_type: Batch type code (BAKE, PREP, ...)
            recipe: RecipeRef, Recipe or recipe name
            scheduled_date: None (draft), a date, or a (start, end) pair
            tier_ids: Tiers to include
            stock_task_ids: Stock tasks to include

        Returns:
            The new batch, or the existing batch with identical
            (type, recipe key, date) the members were added to

        Raises:
            BatchValidationError: no members, unknown type, bad dates
            BatchConflictError: a member already sits in another batch
            BatchNotFoundError: a tier or stock task does not exist
        """
        tier_ids = sorted(set(tier_ids or ()))
        stock_task_ids = sorted(set(stock_task_ids or ()))
        if not tier_ids and not stock_task_ids:
            raise BatchValidationError("EMPTY_MEMBERS", batch_type=batch_type)

        info = cls._batch_type_info(batch_type)
        ref = _recipe_ref(recipe)
        recipe_key = get_recipe_identity().key(ref)
        start, duration = _slot(scheduled_date)

        with hold_slots((batch_type, recipe_key)):
            for attempt in (1, 2):
                try:
                    with transaction.atomic():
                        batch, created = cls._create_or_merge(
                            info=info,
                            ref=ref,
                            recipe_key=recipe_key,
                            scheduled_date=start,
                            duration_days=duration or 1,
                            tier_ids=tier_ids,
                            stock_task_ids=stock_task_ids,
                            name=name,
                            notes=notes,
                            user=user,
                        )
                    break
                except IntegrityError:
                    # Another writer took the slot between lookup and insert.
                    if attempt == 2:
                        raise BatchConflictError(
                            "SLOT_TAKEN",
                            batch_type=batch_type,
                            recipe_key=recipe_key,
                            scheduled_date=str(start),
                        )
                    logger.warning(
                        f"Slot {batch_type}/{recipe_key}/{start} taken concurrently, retrying",
                        extra={"batch_type": batch_type, "recipe_key": recipe_key},
                    )

        from batchman.signals import batch_created

        _send_on_commit(batch_created, batch=batch, created=created)
        return batch

    @classmethod
    def _create_or_merge(
        cls,
        *,
        info,
        ref,
        recipe_key,
        scheduled_date,
        duration_days,
        tier_ids,
        stock_task_ids,
        name,
        notes,
        user,
    ) -> tuple[ProductionBatch, bool]:
        tiers = cls._load_tiers(tier_ids)
        tasks = cls._load_stock_tasks(stock_task_ids)
        existing = cls._find_slot(info.code, recipe_key, scheduled_date)
        cls._check_slot_open(existing)

        cls._check_members_free(info.code, tiers, tasks, into=existing)
        cls._check_batchable(info, tiers, existing)

        if existing is not None:
            cls._attach(existing, tiers, tasks, user)
            logger.info(
                f"Merged {len(tiers)} tier(s) and {len(tasks)} stock task(s) into {existing.code}",
                extra={
                    "batch": existing.code,
                    "batch_type": existing.batch_type,
                    "recipe": existing.recipe_name,
                    "date": str(scheduled_date),
                },
            )
            return existing, False

        batch = ProductionBatch.objects.create(
            batch_type=info.code,
            recipe_name=ref.name,
            recipe_ref=ref.id,
            recipe_key=recipe_key,
            scheduled_date=scheduled_date,
            duration_days=duration_days,
            status=BatchStatus.SCHEDULED if scheduled_date else BatchStatus.DRAFT,
            name=name,
            notes=notes,
            created_by=_actor(user),
        )
        cls._attach(batch, tiers, tasks, user)

        logger.info(
            f"Created batch {batch.code}: {info.code} {ref.name} on {scheduled_date}",
            extra={
                "batch": batch.code,
                "batch_type": info.code,
                "recipe": ref.name,
                "date": str(scheduled_date),
                "tiers": len(tiers),
                "stock_tasks": len(tasks),
            },
        )
        return batch, True

    @classmethod
    @storage_guard("add_members")
    def add_members(
        cls, batch_id: int, tier_ids=(), stock_task_ids=(), user=None
    ) -> ProductionBatch:
        """
        Add tiers and stock tasks to an existing batch.

        Members already in this batch are ignored.
        """
        tier_ids = sorted(set(tier_ids or ()))
        stock_task_ids = sorted(set(stock_task_ids or ()))
        if not tier_ids and not stock_task_ids:
            raise BatchValidationError("EMPTY_MEMBERS", batch_id=batch_id)

        batch = cls._get_batch(batch_id)
        info = cls._batch_type_info(batch.batch_type)

        with hold_slots((batch.batch_type, batch.recipe_key)), transaction.atomic():
            batch = cls._lock_batch(batch_id)
            if not batch.is_open:
                raise BatchValidationError(
                    "INVALID_STATUS", batch_id=batch_id, current=batch.status
                )
            tiers = cls._load_tiers(tier_ids)
            tasks = cls._load_stock_tasks(stock_task_ids)
            cls._check_members_free(batch.batch_type, tiers, tasks, into=batch)
            cls._check_batchable(info, tiers, batch)
            cls._attach(batch, tiers, tasks, user)

        logger.info(
            f"Added {len(tier_ids)} tier(s) and {len(stock_task_ids)} stock task(s) to {batch.code}",
            extra={"batch": batch.code, "tiers": tier_ids, "stock_tasks": stock_task_ids},
        )
        return batch

    # ══════════════════════════════════════════════════════════════
    # RESCHEDULE / MERGE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    @storage_guard("reschedule_batch")
    def reschedule_batch(cls, batch_id: int, when, user=None) -> RescheduleResult:
        """
        Move a batch to another date, date range, or back to draft (None).

        If another batch of the same type and recipe already holds the
        target date, this batch is merged into it and deleted.
        """
        start, duration = _slot(when)
        batch = cls._get_batch(batch_id)

        with hold_slots((batch.batch_type, batch.recipe_key)), transaction.atomic():
            batch = cls._lock_batch(batch_id)
            if batch.status == BatchStatus.COMPLETED:
                raise BatchValidationError(
                    "INVALID_STATUS", batch_id=batch_id, current=batch.status
                )
            if start is None and batch.status == BatchStatus.IN_PROGRESS:
                # An in-progress batch keeps its date.
                raise BatchValidationError(
                    "INVALID_STATUS",
                    batch_id=batch_id,
                    current=batch.status,
                    requested=BatchStatus.DRAFT,
                )

            previous = batch.scheduled_date
            target = None
            if start != previous:
                target = cls._find_slot(
                    batch.batch_type, batch.recipe_key, start, exclude=batch.pk
                )

            if target is not None:
                cls._check_slot_open(target)
                cls._check_merge_batchable(batch, target)
                if duration:
                    target.duration_days = max(target.duration_days, duration)
                    target.save(update_fields=["duration_days", "updated_at"])
                merged = cls._absorb(batch, target)
                logger.info(
                    f"Rescheduled {batch.code} onto occupied slot, merged into {merged.code}",
                    extra={
                        "batch": batch.code,
                        "target": merged.code,
                        "from_date": str(previous),
                        "to_date": str(start),
                    },
                )
                return RescheduleResult(batch=merged, merged=True, merged_into_id=merged.pk)

            batch.scheduled_date = start
            if duration:
                batch.duration_days = duration
            if start is None and batch.status == BatchStatus.SCHEDULED:
                batch.status = BatchStatus.DRAFT
            elif start is not None and batch.status == BatchStatus.DRAFT:
                batch.status = BatchStatus.SCHEDULED
            batch.save(update_fields=["scheduled_date", "duration_days", "status", "updated_at"])

        if previous != start:
            from batchman.signals import batch_rescheduled

            _send_on_commit(batch_rescheduled, batch=batch, previous_date=previous)

        logger.info(
            f"Rescheduled {batch.code} from {previous} to {start}",
            extra={"batch": batch.code, "from_date": str(previous), "to_date": str(start)},
        )
        return RescheduleResult(batch=batch)

    @classmethod
    @storage_guard("merge_batches")
    def merge_batches(cls, source_id: int, target_id: int, user=None) -> ProductionBatch:
        """
        Merge source into target; source is deleted.

        Batch types must match. Different recipes are allowed (logged).
        """
        if source_id == target_id:
            raise BatchValidationError("SAME_BATCH", batch_id=source_id)

        source = cls._get_batch(source_id)
        target = cls._get_batch(target_id)
        if source.batch_type != target.batch_type:
            raise BatchConflictError(
                "BATCH_TYPE_MISMATCH",
                source_type=source.batch_type,
                target_type=target.batch_type,
                batch_id=target_id,
            )

        slots = [(source.batch_type, source.recipe_key), (target.batch_type, target.recipe_key)]
        with hold_slots(*slots), transaction.atomic():
            source = cls._lock_batch(source_id)
            target = cls._lock_batch(target_id)
            for batch in (source, target):
                if not batch.is_open:
                    raise BatchValidationError(
                        "INVALID_STATUS", batch_id=batch.pk, current=batch.status
                    )
            cls._check_merge_batchable(source, target)

            if source.recipe_key != target.recipe_key:
                logger.warning(
                    f"Merging {source.code} ({source.recipe_name}) into "
                    f"{target.code} ({target.recipe_name}) with different recipes",
                    extra={"source": source.code, "target": target.code},
                )
            target = cls._absorb(source, target)

        return target

    @classmethod
    def _absorb(cls, source: ProductionBatch, target: ProductionBatch) -> ProductionBatch:
        """Move all members of source to target and delete source."""
        source_id, source_code = source.pk, source.code

        BatchTier.objects.filter(batch=source).update(batch=target)
        StockTask.objects.filter(batch=source).update(batch=target)
        source.delete()
        target.recalculate_totals()

        logger.info(
            f"Merged batch {source_code} into {target.code}",
            extra={"source": source_code, "target": target.code, "batch_type": target.batch_type},
        )

        from batchman.signals import batch_merged

        _send_on_commit(batch_merged, source_id=source_id, source_code=source_code, target=target)
        return target

    # ══════════════════════════════════════════════════════════════
    # REMOVE / DELETE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    @storage_guard("remove_members")
    def remove_members(
        cls, batch_id: int, tier_ids=(), stock_task_ids=(), user=None
    ) -> RemovalResult:
        """
        Remove tiers and stock tasks from a batch.

        A missing batch is not an error (nothing to remove). A batch left
        without members is deleted.
        """
        try:
            batch = ProductionBatch.objects.get(pk=batch_id)
        except ProductionBatch.DoesNotExist:
            logger.info(f"Batch {batch_id} not found, nothing to remove")
            return RemovalResult(batch=None)

        with hold_slots((batch.batch_type, batch.recipe_key)), transaction.atomic():
            try:
                batch = ProductionBatch.objects.select_for_update().get(pk=batch_id)
            except ProductionBatch.DoesNotExist:
                return RemovalResult(batch=None)

            removed, _details = BatchTier.objects.filter(
                batch=batch, tier_id__in=list(tier_ids or ())
            ).delete()
            removed += StockTask.objects.filter(
                batch=batch, pk__in=list(stock_task_ids or ())
            ).update(batch=None)

            if batch.member_count == 0:
                cls._delete(batch, reason="empty")
                return RemovalResult(batch=None, removed=removed, deleted=True)

            batch.recalculate_totals()

        logger.info(
            f"Removed {removed} member(s) from {batch.code}",
            extra={"batch": batch.code, "removed": removed},
        )
        return RemovalResult(batch=batch, removed=removed)

    @classmethod
    @storage_guard("delete_batch")
    def delete_batch(cls, batch_id: int, user=None) -> bool:
        """
        Delete a batch; its members return to the unscheduled pool.

        Returns False when the batch did not exist.
        """
        try:
            batch = ProductionBatch.objects.get(pk=batch_id)
        except ProductionBatch.DoesNotExist:
            return False

        with hold_slots((batch.batch_type, batch.recipe_key)), transaction.atomic():
            try:
                batch = ProductionBatch.objects.select_for_update().get(pk=batch_id)
            except ProductionBatch.DoesNotExist:
                return False
            cls._delete(batch, reason="deleted")
        return True

    @classmethod
    def _delete(cls, batch: ProductionBatch, reason: str) -> None:
        batch_id, code = batch.pk, batch.code
        StockTask.objects.filter(batch=batch).update(batch=None)
        batch.delete()

        logger.info(
            f"Deleted batch {code} ({reason})",
            extra={"batch": code, "batch_id": batch_id, "reason": reason},
        )

        from batchman.signals import batch_deleted

        _send_on_commit(batch_deleted, batch_id=batch_id, code=code, reason=reason)

    @classmethod
    @storage_guard("prune_batches")
    def prune_batches(cls, batch_ids) -> list[int]:
        """
        Delete the given batches if they have no members left; recompute
        the aggregates of the others. Returns the ids of deleted batches.
        """
        deleted = []
        for batch_id in batch_ids:
            with transaction.atomic():
                batch = ProductionBatch.objects.select_for_update().filter(pk=batch_id).first()
                if batch is None:
                    continue
                if batch.member_count == 0:
                    cls._delete(batch, reason="empty")
                    deleted.append(batch_id)
                else:
                    batch.recalculate_totals()
        return deleted

    # ══════════════════════════════════════════════════════════════
    # ATTRIBUTES / STATUS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    @storage_guard("update_batch_attributes")
    def update_batch_attributes(
        cls,
        batch_id: int,
        duration_days=_unset,
        notes=_unset,
        assigned_to=_unset,
        name=_unset,
        user=None,
    ) -> ProductionBatch:
        """
        Update descriptive attributes. Only the arguments given change.

        assigned_to accepts a user, a user id, or None to unassign.
        """
        update_fields = ["updated_at"]

        with transaction.atomic():
            batch = cls._lock_batch(batch_id)

            if duration_days is not _unset:
                try:
                    duration = int(duration_days)
                except (TypeError, ValueError):
                    raise BatchValidationError("INVALID_DURATION", value=str(duration_days))
                if duration < 1:
                    raise BatchValidationError("INVALID_DURATION", value=duration)
                batch.duration_days = duration
                update_fields.append("duration_days")

            if notes is not _unset:
                batch.notes = notes or ""
                update_fields.append("notes")

            if name is not _unset:
                batch.name = name or f"{batch.recipe_name} ({batch.batch_type})"
                update_fields.append("name")

            if assigned_to is not _unset:
                batch.assigned_to = cls._resolve_user(assigned_to)
                update_fields.append("assigned_to")

            batch.save(update_fields=update_fields)

        logger.info(
            f"Updated batch {batch.code}",
            extra={"batch": batch.code, "fields": update_fields[1:]},
        )
        return batch

    @classmethod
    def _resolve_user(cls, value):
        if value is None or hasattr(value, "pk"):
            return value
        User = get_user_model()
        try:
            return User.objects.get(pk=value)
        except (User.DoesNotExist, ValueError, TypeError):
            raise BatchNotFoundError("USER_NOT_FOUND", user_id=value)

    @classmethod
    @storage_guard("set_status")
    def set_status(cls, batch_id: int, status: str, user=None) -> ProductionBatch:
        """
        Move a batch forward in its lifecycle.

        draft -> scheduled -> in_progress -> completed. Scheduling requires a
        date; moving backwards is rejected.
        """
        if status not in STATUS_ORDER:
            raise BatchValidationError("INVALID_STATUS", status=status)

        with transaction.atomic():
            batch = cls._lock_batch(batch_id)
            if not batch.can_transition_to(status):
                raise BatchValidationError(
                    "INVALID_STATUS", batch_id=batch_id, current=batch.status, requested=status
                )
            if status != BatchStatus.DRAFT and batch.scheduled_date is None:
                raise BatchValidationError("NOT_SCHEDULED", batch_id=batch_id, requested=status)

            previous = batch.status
            batch.status = status
            batch.save(update_fields=["status", "updated_at"])

        logger.info(
            f"Batch {batch.code}: {previous} -> {status}",
            extra={"batch": batch.code, "from": previous, "to": status, "user": _actor(user)},
        )
        return batch

    # ══════════════════════════════════════════════════════════════
    # BULK / RECONCILE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def apply_suggestions(cls, suggestions, user=None) -> BulkApplyResult:
        """
        Apply schedule suggestions, each in its own transaction.

        Group suggestions create batches (merging into existing slots);
        suggestions for persisted batches reschedule them. A failing
        suggestion is reported and does not affect the others.
        """
        result = BulkApplyResult()

        for suggestion in suggestions:
            try:
                if suggestion.batch_id is not None:
                    outcome = cls.reschedule_batch(
                        suggestion.batch_id, suggestion.suggested_date, user=user
                    )
                    batch = outcome.batch
                else:
                    batch = cls.create_batch(
                        batch_type=suggestion.batch_type,
                        recipe=RecipeRef(name=suggestion.recipe_name, id=suggestion.recipe_id),
                        scheduled_date=suggestion.suggested_date,
                        tier_ids=suggestion.tier_ids,
                        stock_task_ids=suggestion.stock_task_ids,
                        user=user,
                    )
            except BatchError as exc:
                logger.warning(
                    f"Suggestion {suggestion.ref} not applied: {exc}",
                    extra={"ref": suggestion.ref, "code": exc.code},
                )
                result.failed.append(FailedSuggestion(ref=suggestion.ref, error=exc.as_dict()))
                continue
            result.created.append(batch)

        logger.info(
            f"Applied {len(result.created)} suggestion(s), {len(result.failed)} failed",
            extra={"created": len(result.created), "failed": len(result.failed)},
        )
        return result

    @classmethod
    @storage_guard("reconcile")
    def reconcile(cls) -> ReconcileResult:
        """
        Merge open batches that share a slot and refresh stale recipe keys.

        Each merge and each rekey runs in its own transaction. One that
        cannot be applied (a completed batch holds the slot, a merge would
        mix orders in a non-batchable type) is reported in ``conflicts``
        and the pass goes on. Idempotent: a second run changes nothing.
        """
        batches = [
            b.to_snapshot()
            for b in ProductionBatch.objects.exclude(status=BatchStatus.COMPLETED).order_by("pk")
        ]
        merges, rekeys = plan_reconciliation(batches)
        result = ReconcileResult()
        absorbed = set()

        for action in merges:
            try:
                cls.merge_batches(action.source_id, action.target_id)
            except BatchError as exc:
                cls._reconcile_conflict(result, exc, action.source_id)
                continue
            absorbed.add(action.source_id)
            result.survivors.append(action.target_id)
            result.merged += 1

        for action in rekeys:
            try:
                cls._rekey(action.batch_id, action.recipe_key)
            except BatchError as exc:
                cls._reconcile_conflict(result, exc, action.batch_id)
                continue
            result.rekeyed += 1

        result.survivors = sorted(set(result.survivors) - absorbed)
        logger.info(
            f"Reconciled batches: {result.merged} merged, {result.rekeyed} rekeyed, "
            f"{len(result.conflicts)} conflict(s)",
            extra={
                "merged": result.merged,
                "rekeyed": result.rekeyed,
                "conflicts": len(result.conflicts),
            },
        )
        return result

    @classmethod
    def _reconcile_conflict(cls, result: ReconcileResult, exc: BatchError, batch_id: int) -> None:
        logger.warning(
            f"Reconcile skipped batch {batch_id}: {exc}",
            extra={"batch_id": batch_id, "code": exc.code},
        )
        result.conflicts.append({"batch": batch_id, **exc.as_dict()})

    @classmethod
    def _rekey(cls, batch_id: int, recipe_key: str) -> None:
        """Store a new recipe key; a slot held under that key is a conflict."""
        try:
            with transaction.atomic():
                batch = cls._lock_batch(batch_id)
                batch.recipe_key = recipe_key
                batch.save(update_fields=["recipe_key", "updated_at"])
        except IntegrityError:
            holder = (
                ProductionBatch.objects.filter(
                    batch_type=batch.batch_type,
                    recipe_key=recipe_key,
                    scheduled_date=batch.scheduled_date,
                )
                .exclude(pk=batch_id)
                .values_list("pk", flat=True)
                .first()
            )
            raise BatchConflictError(
                "SLOT_TAKEN",
                batch_id=holder,
                batch_type=batch.batch_type,
                recipe_key=recipe_key,
                scheduled_date=str(batch.scheduled_date),
            )

    # ══════════════════════════════════════════════════════════════
    # HELPERS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _batch_type_info(cls, batch_type: str):
        for info in cls.batch_types():
            if info.code == batch_type:
                return info
        raise BatchValidationError("UNKNOWN_BATCH_TYPE", batch_type=batch_type)

    @classmethod
    def _get_batch(cls, batch_id: int) -> ProductionBatch:
        try:
            return ProductionBatch.objects.get(pk=batch_id)
        except ProductionBatch.DoesNotExist:
            raise BatchNotFoundError("BATCH_NOT_FOUND", batch_id=batch_id)

    @classmethod
    def _lock_batch(cls, batch_id: int) -> ProductionBatch:
        try:
            return ProductionBatch.objects.select_for_update().get(pk=batch_id)
        except ProductionBatch.DoesNotExist:
            raise BatchNotFoundError("BATCH_NOT_FOUND", batch_id=batch_id)

    @classmethod
    def _find_slot(cls, batch_type, recipe_key, scheduled_date, exclude=None):
        """The batch holding (type, recipe key, date), locked; None if free."""
        qs = ProductionBatch.objects.select_for_update().filter(
            batch_type=batch_type, recipe_key=recipe_key
        )
        if scheduled_date is None:
            qs = qs.filter(scheduled_date__isnull=True)
        else:
            qs = qs.filter(scheduled_date=scheduled_date)
        if exclude is not None:
            qs = qs.exclude(pk=exclude)
        return qs.order_by("pk").first()

    @classmethod
    def _load_tiers(cls, tier_ids) -> list[CakeTier]:
        if not tier_ids:
            return []
        tiers = list(CakeTier.objects.select_related("order").filter(pk__in=tier_ids))
        missing = sorted(set(tier_ids) - {t.pk for t in tiers})
        if missing:
            raise BatchNotFoundError("TIER_NOT_FOUND", tier_ids=missing)
        return tiers

    @classmethod
    def _load_stock_tasks(cls, stock_task_ids) -> list[StockTask]:
        if not stock_task_ids:
            return []
        tasks = list(StockTask.objects.select_for_update().filter(pk__in=stock_task_ids))
        missing = sorted(set(stock_task_ids) - {t.pk for t in tasks})
        if missing:
            raise BatchNotFoundError("STOCK_TASK_NOT_FOUND", stock_task_ids=missing)
        return tasks

    @classmethod
    def _check_members_free(cls, batch_type, tiers, tasks, into=None) -> None:
        """Members may only sit in ``into`` (or nowhere) for this type."""
        taken = BatchTier.objects.filter(
            tier_id__in=[t.pk for t in tiers], batch_type=batch_type
        )
        if into is not None:
            taken = taken.exclude(batch=into)
        taken = list(taken.values_list("tier_id", "batch_id"))
        if taken:
            raise BatchConflictError(
                "TIER_ALREADY_BATCHED",
                batch_type=batch_type,
                tier_ids=sorted(tier_id for tier_id, _ in taken),
                batch_id=taken[0][1],
            )

        busy = [t for t in tasks if t.batch_id is not None and (into is None or t.batch_id != into.pk)]
        if busy:
            raise BatchConflictError(
                "STOCK_TASK_ALREADY_BATCHED",
                stock_task_ids=sorted(t.pk for t in busy),
                batch_id=busy[0].batch_id,
            )

    @classmethod
    def _check_batchable(cls, info, tiers, batch=None) -> None:
        """Non-batchable types hold the tiers of a single order."""
        if info.is_batchable:
            return
        orders = {t.order_id for t in tiers}
        if batch is not None:
            orders |= set(
                batch.memberships.values_list("tier__order_id", flat=True)
            )
        if len(orders) > 1:
            details = {"batch_type": info.code, "order_ids": sorted(orders)}
            if batch is not None:
                details["batch_id"] = batch.pk
            raise BatchValidationError("TYPE_NOT_BATCHABLE", **details)

    @classmethod
    def _check_merge_batchable(cls, source: ProductionBatch, target: ProductionBatch) -> None:
        info = cls._batch_type_info(target.batch_type)
        tiers = [m.tier for m in source.memberships.select_related("tier")]
        cls._check_batchable(info, tiers, target)

    @classmethod
    def _check_slot_open(cls, existing) -> None:
        """A completed batch keeps its slot; nothing new is produced in it."""
        if existing is not None and not existing.is_open:
            raise BatchConflictError(
                "SLOT_COMPLETED",
                batch_id=existing.pk,
                batch_type=existing.batch_type,
                recipe_key=existing.recipe_key,
                scheduled_date=str(existing.scheduled_date),
            )

    @classmethod
    def _attach(cls, batch: ProductionBatch, tiers, tasks, user) -> None:
        added_by = _actor(user)
        for tier in tiers:
            BatchTier.objects.get_or_create(
                batch=batch,
                tier=tier,
                defaults={"batch_type": batch.batch_type, "added_by": added_by},
            )
        if tasks:
            StockTask.objects.filter(pk__in=[t.pk for t in tasks]).update(batch=batch)
        batch.recalculate_totals()
