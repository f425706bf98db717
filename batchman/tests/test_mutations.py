"""
Tests for the batch mutation service.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from unittest import mock

import pytest
from django.db import OperationalError

from batchman import quantities
from batchman.exceptions import (
    BatchConflictError,
    BatchNotFoundError,
    BatchValidationError,
    TransientStorageError,
)
from batchman.identity import RecipeIdIdentity
from batchman.models import BatchStatus, BatchTier, ProductionBatch, StockTask
from batchman.protocols.providers import BatchSnapshot, RecipeRef
from batchman.reconciliation import plan_reconciliation
from batchman.scheduling import ScheduleSuggestion
from batchman.service import Planner

D1 = date(2026, 5, 7)
D2 = date(2026, 5, 8)


def _bake(tiers, when=D1, recipe="Vanilla Sponge", **kwargs):
    return Planner.create_batch("BAKE", recipe, when, tier_ids=[t.pk for t in tiers], **kwargs)


def _decorate(tier, when):
    return Planner.create_batch("DECORATE", "Wedding", when, tier_ids=[tier.pk])


def _suggestion(batch_type="BAKE", recipe="Vanilla Sponge", when=D1, tier_ids=(), batch_id=None):
    return ScheduleSuggestion(
        ref=f"batch:{batch_id}" if batch_id else f"{batch_type}-{recipe}",
        batch_type=batch_type,
        recipe_name=recipe,
        recipe_key=recipe,
        suggested_date=when,
        lead_time_days=3,
        reason="",
        earliest_due_date=when + timedelta(days=3),
        batch_id=batch_id,
        tier_ids=list(tier_ids),
    )


@pytest.mark.django_db
class TestCreateBatch:
    def test_create(self, make_tier, size_6, user):
        tiers = [make_tier(), make_tier(size=size_6)]
        batch = _bake(tiers, user=user)

        assert batch.status == BatchStatus.SCHEDULED
        assert batch.scheduled_date == D1
        assert batch.tier_ids == sorted(t.pk for t in tiers)
        assert batch.total_tiers == 2
        assert batch.total_servings == 36
        assert batch.total_surface_area == Decimal("254.47")
        assert batch.created_by == "user:baker"
        assert batch.code.startswith("BT-")

    def test_recipe_model_is_referenced(self, make_tier, vanilla):
        batch = _bake([make_tier()], recipe=vanilla)
        assert batch.recipe_ref == vanilla.pk
        assert batch.recipe_key == "Vanilla Sponge"

    def test_without_date_is_draft(self, make_tier):
        batch = _bake([make_tier()], when=None)
        assert batch.status == BatchStatus.DRAFT
        assert batch.scheduled_date is None

    def test_date_range(self, make_tier):
        batch = _bake([make_tier()], when=(D1, D1 + timedelta(days=2)))
        assert batch.duration_days == 3
        assert batch.end_date == date(2026, 5, 9)

    def test_inverted_range(self, make_tier):
        with pytest.raises(BatchValidationError) as exc:
            _bake([make_tier()], when=(D2, D1))
        assert exc.value.code == "INVALID_DATE_RANGE"

    def test_empty_members(self):
        with pytest.raises(BatchValidationError) as exc:
            Planner.create_batch("BAKE", "Vanilla Sponge", D1)
        assert exc.value.code == "EMPTY_MEMBERS"

    def test_unknown_batch_type(self, make_tier):
        with pytest.raises(BatchValidationError) as exc:
            Planner.create_batch("FRY", "Donuts", D1, tier_ids=[make_tier().pk])
        assert exc.value.code == "UNKNOWN_BATCH_TYPE"

    def test_missing_tier(self):
        with pytest.raises(BatchNotFoundError) as exc:
            Planner.create_batch("BAKE", "Vanilla Sponge", D1, tier_ids=[999])
        assert exc.value.details["tier_ids"] == [999]
        assert exc.value.kind == "not_found"

    def test_tier_already_in_batch_of_same_type(self, make_tier):
        tier = make_tier()
        first = _bake([tier])
        with pytest.raises(BatchConflictError) as exc:
            _bake([tier], when=D2)
        assert exc.value.code == "TIER_ALREADY_BATCHED"
        assert exc.value.details["batch_id"] == first.pk
        assert ProductionBatch.objects.count() == 1

    def test_tier_in_bake_and_prep(self, make_tier):
        tier = make_tier()
        _bake([tier])
        Planner.create_batch("PREP", "Vanilla Buttercream", D1, tier_ids=[tier.pk])
        assert set(BatchTier.objects.filter(tier=tier).values_list("batch_type", flat=True)) == {
            "BAKE",
            "PREP",
        }

    def test_same_slot_merges(self, make_tier):
        first = _bake([make_tier()])
        second = _bake([make_tier()])

        assert second.pk == first.pk
        assert second.total_tiers == 2
        assert ProductionBatch.objects.count() == 1

    def test_undated_drafts_merge(self, make_tier):
        first = _bake([make_tier()], when=None)
        second = _bake([make_tier()], when=None)
        assert second.pk == first.pk

    def test_stock_tasks(self, make_tier, make_stock_task):
        task = make_stock_task(quantity=24)
        batch = Planner.create_batch(
            "BAKE", "Vanilla Sponge", D1, tier_ids=[make_tier().pk], stock_task_ids=[task.pk]
        )
        task.refresh_from_db()
        assert task.batch_id == batch.pk
        assert batch.stock_task_ids == [task.pk]
        assert batch.total_stock_grams == Decimal("1360.78")

    def test_stock_task_only(self, make_stock_task):
        batch = Planner.create_batch(
            "BAKE", "Vanilla Sponge", D1, stock_task_ids=[make_stock_task().pk]
        )
        assert batch.total_tiers == 0
        assert batch.member_count == 1

    def test_stock_task_already_batched(self, make_stock_task):
        task = make_stock_task()
        first = Planner.create_batch("BAKE", "Vanilla Sponge", D1, stock_task_ids=[task.pk])
        with pytest.raises(BatchConflictError) as exc:
            Planner.create_batch("BAKE", "Vanilla Sponge", D2, stock_task_ids=[task.pk])
        assert exc.value.code == "STOCK_TASK_ALREADY_BATCHED"
        assert exc.value.details["batch_id"] == first.pk

    def test_non_batchable_type_keeps_one_order(self, make_tier, make_order):
        order = make_order()
        tiers = [make_tier(order=order, tier_index=1), make_tier(order=order, tier_index=2)]
        batch = Planner.create_batch("DECORATE", "Wedding", D1, tier_ids=[t.pk for t in tiers])
        assert batch.total_tiers == 2

        with pytest.raises(BatchValidationError) as exc:
            Planner.create_batch("DECORATE", "Wedding", D1, tier_ids=[make_tier().pk])
        assert exc.value.code == "TYPE_NOT_BATCHABLE"

    def test_completed_slot_is_not_reused(self, make_tier):
        done = _bake([make_tier()])
        Planner.set_status(done.pk, BatchStatus.COMPLETED)
        tier = make_tier()

        with pytest.raises(BatchConflictError) as exc:
            _bake([tier])

        assert exc.value.code == "SLOT_COMPLETED"
        assert exc.value.details["batch_id"] == done.pk
        assert ProductionBatch.objects.get(pk=done.pk).total_tiers == 1
        assert not BatchTier.objects.filter(tier=tier).exists()

    def test_storage_failure_is_transient(self, make_tier):
        tier = make_tier()
        with mock.patch.object(Planner, "_find_slot", side_effect=OperationalError("database is locked")):
            with pytest.raises(TransientStorageError) as exc:
                _bake([tier])
        assert exc.value.details["operation"] == "create_batch"
        assert not ProductionBatch.objects.exists()


@pytest.mark.django_db
class TestConcurrentCreate:
    def test_loser_merges_into_winner(self, make_tier, caplog):
        """A writer that missed the winner on lookup hits the constraint and merges on retry."""
        winner = _bake([make_tier()])
        real_find_slot = Planner._find_slot
        calls = []

        def find_slot(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                return None
            return real_find_slot(*args, **kwargs)

        with caplog.at_level(logging.WARNING, logger="batchman.services.mutations"):
            with mock.patch.object(Planner, "_find_slot", side_effect=find_slot):
                batch = _bake([make_tier()])

        assert batch.pk == winner.pk
        assert batch.total_tiers == 2
        assert ProductionBatch.objects.count() == 1
        assert len(calls) == 2
        assert "taken concurrently" in caplog.text

    def test_gives_up_after_second_collision(self, make_tier):
        _bake([make_tier()])
        tier = make_tier()
        with mock.patch.object(Planner, "_find_slot", return_value=None):
            with pytest.raises(BatchConflictError) as exc:
                _bake([tier])
        assert exc.value.code == "SLOT_TAKEN"
        assert not BatchTier.objects.filter(tier=tier).exists()


@pytest.mark.django_db
class TestAddMembers:
    def test_add(self, make_tier):
        batch = _bake([make_tier()])
        tier = make_tier()
        batch = Planner.add_members(batch.pk, tier_ids=[tier.pk])
        assert batch.total_tiers == 2

    def test_adding_existing_member_is_ignored(self, make_tier):
        tier = make_tier()
        batch = _bake([tier])
        batch = Planner.add_members(batch.pk, tier_ids=[tier.pk])
        assert batch.total_tiers == 1

    def test_completed_batch_takes_no_members(self, make_tier):
        batch = _bake([make_tier()])
        Planner.set_status(batch.pk, BatchStatus.COMPLETED)
        with pytest.raises(BatchValidationError) as exc:
            Planner.add_members(batch.pk, tier_ids=[make_tier().pk])
        assert exc.value.code == "INVALID_STATUS"
        assert ProductionBatch.objects.get(pk=batch.pk).total_tiers == 1

    def test_missing_batch(self, make_tier):
        with pytest.raises(BatchNotFoundError):
            Planner.add_members(999, tier_ids=[make_tier().pk])


@pytest.mark.django_db
class TestRescheduleBatch:
    def test_move(self, make_tier):
        batch = _bake([make_tier()])
        result = Planner.reschedule_batch(batch.pk, D2)
        assert not result.merged
        assert result.batch.scheduled_date == D2
        assert result.batch.status == BatchStatus.SCHEDULED

    def test_onto_occupied_slot_merges(self, make_tier):
        moving = _bake([make_tier()], when=D1)
        staying = _bake([make_tier(), make_tier()], when=D2)

        result = Planner.reschedule_batch(moving.pk, D2)

        assert result.merged
        assert result.merged_into_id == staying.pk
        assert result.batch.total_tiers == 3
        assert not ProductionBatch.objects.filter(pk=moving.pk).exists()
        assert list(ProductionBatch.objects.values_list("scheduled_date", flat=True)) == [D2]

    def test_other_recipe_on_target_date_does_not_merge(self, make_tier, chocolate):
        moving = _bake([make_tier()], when=D1)
        _bake([make_tier(batter_recipe=chocolate)], when=D2, recipe=chocolate)
        result = Planner.reschedule_batch(moving.pk, D2)
        assert not result.merged
        assert ProductionBatch.objects.filter(scheduled_date=D2).count() == 2

    def test_unschedule(self, make_tier):
        batch = _bake([make_tier()])
        result = Planner.reschedule_batch(batch.pk, None)
        assert result.batch.scheduled_date is None
        assert result.batch.status == BatchStatus.DRAFT

    def test_schedule_draft(self, make_tier):
        batch = _bake([make_tier()], when=None)
        result = Planner.reschedule_batch(batch.pk, D1)
        assert result.batch.status == BatchStatus.SCHEDULED

    def test_range(self, make_tier):
        batch = _bake([make_tier()])
        result = Planner.reschedule_batch(batch.pk, (D2, D2 + timedelta(days=1)))
        assert result.batch.duration_days == 2

    def test_completed_batch(self, make_tier):
        batch = _bake([make_tier()])
        ProductionBatch.objects.filter(pk=batch.pk).update(status=BatchStatus.COMPLETED)
        with pytest.raises(BatchValidationError) as exc:
            Planner.reschedule_batch(batch.pk, D2)
        assert exc.value.code == "INVALID_STATUS"

    def test_missing_batch(self):
        with pytest.raises(BatchNotFoundError) as exc:
            Planner.reschedule_batch(999, D2)
        assert exc.value.code == "BATCH_NOT_FOUND"

    def test_onto_completed_slot_is_refused(self, make_tier):
        done = _bake([make_tier()], when=D2)
        Planner.set_status(done.pk, BatchStatus.COMPLETED)
        moving = _bake([make_tier()], when=D1)

        with pytest.raises(BatchConflictError) as exc:
            Planner.reschedule_batch(moving.pk, D2)

        assert exc.value.code == "SLOT_COMPLETED"
        assert exc.value.details["batch_id"] == done.pk
        assert ProductionBatch.objects.get(pk=moving.pk).scheduled_date == D1
        assert ProductionBatch.objects.get(pk=done.pk).total_tiers == 1

    def test_non_batchable_slot_keeps_one_order(self, make_tier):
        held = _decorate(make_tier(), D1)
        moving = _decorate(make_tier(), D2)

        with pytest.raises(BatchValidationError) as exc:
            Planner.reschedule_batch(moving.pk, D1)

        assert exc.value.code == "TYPE_NOT_BATCHABLE"
        assert exc.value.details["batch_id"] == held.pk
        assert ProductionBatch.objects.get(pk=moving.pk).scheduled_date == D2
        assert ProductionBatch.objects.get(pk=held.pk).total_tiers == 1

    def test_unschedule_in_progress(self, make_tier):
        batch = _bake([make_tier()])
        Planner.set_status(batch.pk, BatchStatus.IN_PROGRESS)

        with pytest.raises(BatchValidationError) as exc:
            Planner.reschedule_batch(batch.pk, None)

        assert exc.value.code == "INVALID_STATUS"
        batch.refresh_from_db()
        assert batch.scheduled_date == D1
        assert batch.status == BatchStatus.IN_PROGRESS


@pytest.mark.django_db
class TestMergeBatches:
    def test_merge(self, make_tier):
        source = _bake([make_tier()], when=D1)
        target = _bake([make_tier()], when=D2)
        merged = Planner.merge_batches(source.pk, target.pk)
        assert merged.pk == target.pk
        assert merged.total_tiers == 2
        assert not ProductionBatch.objects.filter(pk=source.pk).exists()

    def test_merge_moves_stock_tasks(self, make_tier, make_stock_task):
        task = make_stock_task()
        source = Planner.create_batch("BAKE", "Vanilla Sponge", D1, stock_task_ids=[task.pk])
        target = _bake([make_tier()], when=D2)
        Planner.merge_batches(source.pk, target.pk)
        task.refresh_from_db()
        assert task.batch_id == target.pk

    def test_different_recipes_are_logged(self, make_tier, chocolate, caplog):
        source = _bake([make_tier(batter_recipe=chocolate)], recipe=chocolate)
        target = _bake([make_tier()])
        with caplog.at_level(logging.WARNING, logger="batchman.services.mutations"):
            Planner.merge_batches(source.pk, target.pk)
        assert "different recipes" in caplog.text

    def test_same_batch(self, make_tier):
        batch = _bake([make_tier()])
        with pytest.raises(BatchValidationError) as exc:
            Planner.merge_batches(batch.pk, batch.pk)
        assert exc.value.code == "SAME_BATCH"

    def test_type_mismatch(self, make_tier):
        tier = make_tier()
        bake = _bake([tier])
        prep = Planner.create_batch("PREP", "Vanilla Buttercream", D1, tier_ids=[tier.pk])
        with pytest.raises(BatchConflictError) as exc:
            Planner.merge_batches(bake.pk, prep.pk)
        assert exc.value.code == "BATCH_TYPE_MISMATCH"
        assert ProductionBatch.objects.count() == 2

    def test_non_batchable_type_keeps_one_order(self, make_tier):
        target = _decorate(make_tier(), D1)
        source = _decorate(make_tier(), D2)

        with pytest.raises(BatchValidationError) as exc:
            Planner.merge_batches(source.pk, target.pk)

        assert exc.value.code == "TYPE_NOT_BATCHABLE"
        assert len(exc.value.details["order_ids"]) == 2
        assert ProductionBatch.objects.filter(batch_type="DECORATE").count() == 2

    def test_completed_target(self, make_tier):
        source = _bake([make_tier()], when=D1)
        target = _bake([make_tier()], when=D2)
        Planner.set_status(target.pk, BatchStatus.COMPLETED)

        with pytest.raises(BatchValidationError) as exc:
            Planner.merge_batches(source.pk, target.pk)

        assert exc.value.code == "INVALID_STATUS"
        assert exc.value.details["batch_id"] == target.pk
        assert ProductionBatch.objects.get(pk=target.pk).total_tiers == 1


@pytest.mark.django_db
class TestRemoveAndDelete:
    def test_remove_some(self, make_tier):
        keep, drop = make_tier(), make_tier()
        batch = _bake([keep, drop])
        result = Planner.remove_members(batch.pk, tier_ids=[drop.pk])
        assert result.removed == 1
        assert not result.deleted
        assert result.batch.tier_ids == [keep.pk]
        assert result.batch.total_tiers == 1

    def test_remove_last_deletes_batch(self, make_tier):
        tier = make_tier()
        batch = _bake([tier])
        result = Planner.remove_members(batch.pk, tier_ids=[tier.pk])
        assert result.deleted
        assert result.batch is None
        assert not ProductionBatch.objects.filter(pk=batch.pk).exists()

    def test_remove_stock_task(self, make_tier, make_stock_task):
        task = make_stock_task()
        batch = Planner.create_batch(
            "BAKE", "Vanilla Sponge", D1, tier_ids=[make_tier().pk], stock_task_ids=[task.pk]
        )
        result = Planner.remove_members(batch.pk, stock_task_ids=[task.pk])
        task.refresh_from_db()
        assert task.batch_id is None
        assert result.batch.total_stock_grams == Decimal("0")

    def test_remove_from_missing_batch(self):
        result = Planner.remove_members(999, tier_ids=[1])
        assert result.batch is None
        assert result.removed == 0

    def test_delete_returns_members_to_pool(self, make_tier, make_stock_task):
        tier = make_tier()
        task = make_stock_task()
        batch = Planner.create_batch(
            "BAKE", "Vanilla Sponge", D1, tier_ids=[tier.pk], stock_task_ids=[task.pk]
        )
        assert Planner.delete_batch(batch.pk)

        bake = [g for g in Planner.list_candidate_groups() if g.batch_type == "BAKE"]
        assert bake[0].tier_ids == [tier.pk]
        assert bake[0].stock_task_ids == [task.pk]
        assert StockTask.objects.get(pk=task.pk).batch_id is None

    def test_delete_missing(self):
        assert Planner.delete_batch(999) is False


@pytest.mark.django_db
class TestAttributesAndStatus:
    def test_update_attributes(self, make_tier, user):
        batch = _bake([make_tier()], notes="keep")
        batch = Planner.update_batch_attributes(batch.pk, duration_days=2, assigned_to=user.pk)
        assert batch.duration_days == 2
        assert batch.assigned_to == user
        assert batch.notes == "keep"

    def test_unassign(self, make_tier, user):
        batch = _bake([make_tier()])
        Planner.update_batch_attributes(batch.pk, assigned_to=user)
        batch = Planner.update_batch_attributes(batch.pk, assigned_to=None)
        assert batch.assigned_to is None

    def test_invalid_duration(self, make_tier):
        batch = _bake([make_tier()])
        with pytest.raises(BatchValidationError) as exc:
            Planner.update_batch_attributes(batch.pk, duration_days=0)
        assert exc.value.code == "INVALID_DURATION"

    def test_unknown_user(self, make_tier):
        batch = _bake([make_tier()])
        with pytest.raises(BatchNotFoundError) as exc:
            Planner.update_batch_attributes(batch.pk, assigned_to=999)
        assert exc.value.code == "USER_NOT_FOUND"

    def test_status_forward(self, make_tier):
        batch = _bake([make_tier()])
        batch = Planner.set_status(batch.pk, BatchStatus.IN_PROGRESS)
        assert batch.status == BatchStatus.IN_PROGRESS

    def test_status_backwards(self, make_tier):
        batch = _bake([make_tier()])
        Planner.set_status(batch.pk, BatchStatus.COMPLETED)
        with pytest.raises(BatchValidationError) as exc:
            Planner.set_status(batch.pk, BatchStatus.SCHEDULED)
        assert exc.value.code == "INVALID_STATUS"

    def test_schedule_needs_date(self, make_tier):
        batch = _bake([make_tier()], when=None)
        with pytest.raises(BatchValidationError) as exc:
            Planner.set_status(batch.pk, BatchStatus.SCHEDULED)
        assert exc.value.code == "NOT_SCHEDULED"

    def test_unknown_status(self, make_tier):
        batch = _bake([make_tier()])
        with pytest.raises(BatchValidationError):
            Planner.set_status(batch.pk, "baking")


@pytest.mark.django_db
class TestApplySuggestions:
    def test_apply_all(self, make_tier, due):
        tiers = [make_tier(), make_tier()]
        suggestions = Planner.suggest_schedule()
        assert {s.batch_type for s in suggestions} == {"BAKE", "PREP"}

        result = Planner.apply_suggestions(suggestions)

        assert not result.has_failures
        assert len(result.created) == 2
        bake = ProductionBatch.objects.get(batch_type="BAKE")
        assert bake.scheduled_date == due - timedelta(days=3)
        assert bake.tier_ids == sorted(t.pk for t in tiers)

        again = Planner.suggest_schedule()
        assert {s.ref for s in again} == {f"batch:{b.pk}" for b in result.created}
        assert not any(s.needs_change for s in again)

    def test_partial_failure(self, make_tier):
        taken = make_tier()
        free = make_tier()
        existing = _bake([taken])

        result = Planner.apply_suggestions(
            [
                _suggestion(recipe="Chocolate Fudge", tier_ids=[taken.pk]),
                _suggestion(recipe="Vanilla Sponge", when=D2, tier_ids=[free.pk]),
            ]
        )

        assert result.has_failures
        assert [b.tier_ids for b in result.created] == [[free.pk]]
        [failure] = result.failed
        assert failure.ref == "BAKE-Chocolate Fudge"
        assert failure.error["code"] == "TIER_ALREADY_BATCHED"
        assert failure.error["kind"] == "conflict"
        assert failure.error["batch_id"] == existing.pk

    def test_transient_failure_is_reported(self, make_tier):
        tier = make_tier()
        with mock.patch.object(Planner, "_find_slot", side_effect=OperationalError("disk I/O error")):
            result = Planner.apply_suggestions([_suggestion(tier_ids=[tier.pk])])
        assert result.created == []
        assert result.failed[0].error["kind"] == "transient"
        assert not ProductionBatch.objects.exists()

    def test_failure_in_the_middle_keeps_the_others(self, make_tier):
        tiers = [make_tier(), make_tier(), make_tier()]
        real_find_slot = Planner._find_slot
        calls = []

        def find_slot(*args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise OperationalError("database is locked")
            return real_find_slot(*args, **kwargs)

        suggestions = [
            _suggestion(recipe="Vanilla Sponge", tier_ids=[tiers[0].pk]),
            _suggestion(recipe="Chocolate Fudge", tier_ids=[tiers[1].pk]),
            _suggestion(recipe="Lemon Drizzle", tier_ids=[tiers[2].pk]),
        ]
        with mock.patch.object(Planner, "_find_slot", side_effect=find_slot):
            result = Planner.apply_suggestions(suggestions)

        assert len(calls) == 3
        assert [b.recipe_name for b in result.created] == ["Vanilla Sponge", "Lemon Drizzle"]
        [failure] = result.failed
        assert failure.ref == "BAKE-Chocolate Fudge"
        assert failure.error["kind"] == "transient"
        assert set(ProductionBatch.objects.values_list("recipe_name", flat=True)) == {
            "Vanilla Sponge",
            "Lemon Drizzle",
        }
        assert not BatchTier.objects.filter(tier=tiers[1]).exists()

    def test_completed_slot_is_reported(self, make_tier):
        done = _bake([make_tier()])
        Planner.set_status(done.pk, BatchStatus.COMPLETED)

        result = Planner.apply_suggestions([_suggestion(tier_ids=[make_tier().pk])])

        assert result.created == []
        assert result.failed[0].error["code"] == "SLOT_COMPLETED"
        assert result.failed[0].error["batch_id"] == done.pk

    def test_batch_suggestion_reschedules(self, make_tier):
        batch = _bake([make_tier()], when=None)
        result = Planner.apply_suggestions([_suggestion(batch_id=batch.pk, when=D2)])
        assert result.created[0].pk == batch.pk
        assert result.created[0].scheduled_date == D2


@pytest.mark.django_db
class TestReconcile:
    def _draft(self, **kwargs):
        values = {"batch_type": "BAKE", "recipe_name": "Vanilla Sponge", "recipe_key": "Vanilla Sponge"}
        values.update(kwargs)
        return ProductionBatch.objects.create(**values)

    def test_merges_undated_duplicates(self, make_tier):
        first = self._draft()
        second = self._draft()
        tier = make_tier()
        BatchTier.objects.create(batch=second, tier=tier)

        result = Planner.reconcile()

        assert result.merged == 1
        assert result.survivors == [first.pk]
        assert list(ProductionBatch.objects.values_list("pk", flat=True)) == [first.pk]
        assert ProductionBatch.objects.get(pk=first.pk).tier_ids == [tier.pk]

    def test_rekeys_stale_keys(self):
        stale = self._draft(recipe_key="vanilla-old", scheduled_date=D1)
        self._draft(scheduled_date=D1)

        result = Planner.reconcile()

        assert result.merged == 1
        assert result.rekeyed == 1
        assert ProductionBatch.objects.get().pk == stale.pk
        assert ProductionBatch.objects.get().recipe_key == "Vanilla Sponge"

    def test_idempotent(self):
        self._draft()
        self._draft()
        Planner.reconcile()
        second = Planner.reconcile()
        assert (second.merged, second.rekeyed) == (0, 0)

    def test_completed_batches_are_left_alone(self):
        self._draft(status=BatchStatus.COMPLETED)
        self._draft()
        assert Planner.reconcile().merged == 0
        assert ProductionBatch.objects.count() == 2

    def test_rekey_onto_completed_slot_is_reported(self):
        done = self._draft(scheduled_date=D1, status=BatchStatus.COMPLETED)
        stale = self._draft(recipe_key="vanilla-old", scheduled_date=D1)

        result = Planner.reconcile()

        assert result.rekeyed == 0
        [conflict] = result.conflicts
        assert conflict["code"] == "SLOT_TAKEN"
        assert conflict["batch"] == stale.pk
        assert conflict["batch_id"] == done.pk
        assert ProductionBatch.objects.get(pk=stale.pk).recipe_key == "vanilla-old"

    def test_non_batchable_duplicates_are_reported(self, make_tier):
        first = self._draft(batch_type="DECORATE", recipe_name="Wedding", recipe_key="Wedding")
        second = self._draft(batch_type="DECORATE", recipe_name="Wedding", recipe_key="Wedding")
        BatchTier.objects.create(batch=first, tier=make_tier())
        BatchTier.objects.create(batch=second, tier=make_tier())

        result = Planner.reconcile()

        assert result.merged == 0
        assert [c["code"] for c in result.conflicts] == ["TYPE_NOT_BATCHABLE"]
        assert result.conflicts[0]["batch"] == second.pk
        assert ProductionBatch.objects.count() == 2


@pytest.mark.django_db
class TestServingsConservation:
    """Servings in BAKE batches plus unbatched servings add up to all tiers."""

    def _assert_conserved(self, tiers):
        batched = set(
            BatchTier.objects.filter(batch_type="BAKE").values_list("tier_id", flat=True)
        )
        in_batches = sum(
            ProductionBatch.objects.filter(batch_type="BAKE").values_list("total_servings", flat=True)
        )
        loose = sum(quantities.servings(t.to_snapshot()) for t in tiers if t.pk not in batched)
        assert in_batches + loose == sum(quantities.servings(t.to_snapshot()) for t in tiers)

    def test_across_create_merge_and_remove(self, make_tier, size_6):
        tiers = [
            make_tier(),
            make_tier(size=size_6),
            make_tier(),
            make_tier(size=size_6),
            make_tier(),
        ]
        self._assert_conserved(tiers)

        kept = _bake(tiers[:2], when=D1)
        self._assert_conserved(tiers)

        other = _bake(tiers[2:3], when=D2)
        self._assert_conserved(tiers)

        Planner.merge_batches(other.pk, kept.pk)
        self._assert_conserved(tiers)

        moving = _bake(tiers[3:4], when=D2)
        self._assert_conserved(tiers)

        result = Planner.reschedule_batch(moving.pk, D1)
        assert result.merged_into_id == kept.pk
        self._assert_conserved(tiers)

        Planner.remove_members(kept.pk, tier_ids=[tiers[0].pk])
        self._assert_conserved(tiers)

        kept.refresh_from_db()
        assert kept.total_servings == 48
        assert kept.total_tiers == 3


def test_plan_with_id_identity_rekeys_names():
    batches = [
        BatchSnapshot(
            batch_id=1,
            batch_type="BAKE",
            recipe_name="Vanilla Sponge",
            recipe_key="Vanilla Sponge",
            scheduled_date=D1,
            status="scheduled",
            due_date=None,
            recipe_id=3,
        ),
        BatchSnapshot(
            batch_id=2,
            batch_type="BAKE",
            recipe_name="Vanilla Sponge",
            recipe_key="Vanilla Sponge x",
            scheduled_date=D1,
            status="scheduled",
            due_date=None,
            recipe_id=4,
        ),
    ]
    merges, rekeys = plan_reconciliation(batches, identity=RecipeIdIdentity())
    assert merges == []
    assert [(r.batch_id, r.recipe_key) for r in rekeys] == [(1, "recipe:3"), (2, "recipe:4")]


def test_recipe_ref_passthrough():
    from batchman.services.mutations import _recipe_ref

    ref = RecipeRef(name="Lemon Curd")
    assert _recipe_ref(ref) is ref
    assert _recipe_ref("Lemon Curd") == ref
    with pytest.raises(BatchValidationError):
        _recipe_ref("  ")
