"""
Batch models.

ProductionBatch = shared preparation run (bake, prep, ...) for many tiers
of many orders with the same recipe, on one production date.

Invariants kept here and in the mutation service:
- at most one batch per (batch type, recipe key, scheduled date)
- a tier sits in at most one batch per batch type (BatchTier)
- a batch with no members does not survive a mutation
"""

import logging
import uuid
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

from batchman import quantities
from batchman.models.sequence import BatchCodeCounter
from batchman.protocols.providers import BatchSnapshot, BatchTypeInfo

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


class BatchStatus(models.TextChoices):
    """Batch lifecycle status (forward only)."""

    DRAFT = "draft", _("Draft")
    SCHEDULED = "scheduled", _("Scheduled")
    IN_PROGRESS = "in_progress", _("In Progress")
    COMPLETED = "completed", _("Completed")


STATUS_ORDER = [
    BatchStatus.DRAFT,
    BatchStatus.SCHEDULED,
    BatchStatus.IN_PROGRESS,
    BatchStatus.COMPLETED,
]


class BatchTypeConfig(models.Model):
    """
    Production step type (BAKE, PREP, STACK, ...).

    Lead time is how many days before the earliest due date the step runs.
    """

    code = models.CharField(
        max_length=20,
        unique=True,
        verbose_name=_("Code"),
    )
    name = models.CharField(
        max_length=100,
        verbose_name=_("Name"),
    )
    description = models.TextField(
        blank=True,
        verbose_name=_("Description"),
    )
    lead_time_days = models.PositiveSmallIntegerField(
        default=1,
        verbose_name=_("Lead Time (days)"),
    )
    depends_on = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_("Depends On"),
        help_text=_('Batch type codes that must run first, e.g. ["BAKE", "PREP"]'),
    )
    is_batchable = models.BooleanField(
        default=True,
        verbose_name=_("Batchable"),
        help_text=_("Whether tiers of different orders can share this step"),
    )
    color = models.CharField(
        max_length=20,
        blank=True,
        verbose_name=_("Color"),
    )
    sort_order = models.PositiveSmallIntegerField(
        default=0,
        verbose_name=_("Order"),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_("Active"),
    )

    class Meta:
        db_table = "batchman_batch_type"
        verbose_name = _("Batch Type")
        verbose_name_plural = _("Batch Types")
        ordering = ["sort_order", "code"]

    def __str__(self) -> str:
        return f"{self.code} - {self.name}"

    def to_info(self) -> BatchTypeInfo:
        return BatchTypeInfo(
            code=self.code,
            name=self.name,
            lead_time_days=self.lead_time_days,
            depends_on=tuple(self.depends_on or ()),
            is_batchable=self.is_batchable,
            color=self.color,
            sort_order=self.sort_order,
            description=self.description,
        )


class ProductionBatch(models.Model):
    """
    Shared production run for one batch type and recipe.

    A date range is stored as scheduled_date + duration_days. A batch with
    no scheduled date is a draft waiting for a slot.

    Aggregates (total_*) are denormalised from the members and refreshed by
    recalculate_totals() after every membership change.
    """

    uuid = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        verbose_name=_("UUID"),
    )
    code = models.CharField(
        unique=True,
        max_length=50,
        blank=True,
        verbose_name=_("Code"),
        help_text=_("Unique identifier (generated when empty)"),
    )
    name = models.CharField(
        max_length=200,
        blank=True,
        verbose_name=_("Name"),
    )

    batch_type = models.CharField(
        max_length=20,
        db_index=True,
        verbose_name=_("Batch Type"),
    )
    recipe_name = models.CharField(
        max_length=200,
        verbose_name=_("Recipe"),
    )
    recipe_ref = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_("Recipe ID"),
        help_text=_("Referenced recipe, empty for free-text recipes"),
    )
    recipe_key = models.CharField(
        max_length=255,
        verbose_name=_("Recipe Key"),
        help_text=_("Identity key used for grouping and uniqueness"),
    )

    status = models.CharField(
        max_length=20,
        choices=BatchStatus.choices,
        default=BatchStatus.DRAFT,
        db_index=True,
        verbose_name=_("Status"),
    )
    scheduled_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_("Scheduled Date"),
    )
    duration_days = models.PositiveSmallIntegerField(
        default=1,
        verbose_name=_("Duration (days)"),
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="production_batches",
        verbose_name=_("Assigned To"),
    )

    tiers = models.ManyToManyField(
        "batchman.CakeTier",
        through="batchman.BatchTier",
        related_name="production_batches",
        blank=True,
        verbose_name=_("Tiers"),
    )

    # Aggregates
    total_tiers = models.PositiveIntegerField(default=0, verbose_name=_("Tiers"))
    total_servings = models.PositiveIntegerField(default=0, verbose_name=_("Servings"))
    total_surface_area = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0"), verbose_name=_("Surface Area")
    )
    total_frosting_grams = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0"), verbose_name=_("Frosting (g)")
    )
    total_stock_grams = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0"), verbose_name=_("Stock Mass (g)")
    )

    notes = models.TextField(
        blank=True,
        verbose_name=_("Notes"),
    )
    created_by = models.CharField(
        max_length=255,
        blank=True,
        verbose_name=_("Created by"),
        help_text=_("e.g. 'user:jane', 'system:suggestions'"),
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name=_("Created at"),
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name=_("Updated at"),
    )

    history = HistoricalRecords()

    class Meta:
        db_table = "batchman_production_batch"
        verbose_name = _("Production Batch")
        verbose_name_plural = _("Production Batches")
        ordering = ["scheduled_date", "batch_type", "recipe_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["batch_type", "recipe_key", "scheduled_date"],
                name="batchman_unique_batch_slot",
            ),
        ]
        indexes = [
            models.Index(fields=["batch_type", "recipe_key"]),
            models.Index(fields=["status", "scheduled_date"]),
        ]

    def __str__(self) -> str:
        label = self.name or f"{self.batch_type} {self.recipe_name}"
        if self.code:
            return f"{self.code} - {label}"
        return label

    def save(self, *args, **kwargs):
        if not self.code:
            self.code = self._generate_code()
        if not self.name:
            self.name = f"{self.recipe_name} ({self.batch_type})"
        super().save(*args, **kwargs)

    def _generate_code(self) -> str:
        """Generate unique batch code in format BT-YYYY-NNNNN."""
        return BatchCodeCounter.next_code(timezone.now().year)

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def end_date(self):
        """Last production day (inclusive)."""
        if self.scheduled_date is None:
            return None
        return self.scheduled_date + timedelta(days=max(self.duration_days, 1) - 1)

    @property
    def is_open(self) -> bool:
        return self.status != BatchStatus.COMPLETED

    @property
    def tier_ids(self) -> list[int]:
        return list(
            self.memberships.order_by("tier_id").values_list("tier_id", flat=True)
        )

    @property
    def stock_task_ids(self) -> list[int]:
        return list(self.stock_tasks.order_by("pk").values_list("pk", flat=True))

    @property
    def member_count(self) -> int:
        return self.memberships.count() + self.stock_tasks.count()

    @property
    def due_date(self):
        """Earliest due date among members (None for an empty batch)."""
        dates = [
            d
            for d in self.memberships.values_list("tier__order__event_date", flat=True)
            if d is not None
        ]
        dates += [
            d for d in self.stock_tasks.values_list("scheduled_date", flat=True) if d is not None
        ]
        return min(dates) if dates else None

    def can_transition_to(self, status: str) -> bool:
        """Status only moves forward (or stays)."""
        if status not in STATUS_ORDER:
            return False
        return STATUS_ORDER.index(status) >= STATUS_ORDER.index(self.status)

    # ══════════════════════════════════════════════════════════════
    # AGGREGATES
    # ══════════════════════════════════════════════════════════════

    def member_tier_snapshots(self) -> list:
        memberships = self.memberships.select_related(
            "tier__order",
            "tier__size",
            "tier__batter_recipe",
            "tier__filling_recipe",
            "tier__frosting_recipe",
        ).order_by("tier_id")
        return [m.tier.to_snapshot() for m in memberships]

    def member_stock_snapshots(self) -> list:
        tasks = self.stock_tasks.select_related("item", "recipe").order_by("pk")
        return [task.to_snapshot() for task in tasks]

    def recalculate_totals(self, save: bool = True) -> None:
        """Recompute aggregates from the current members."""
        tiers = self.member_tier_snapshots()
        tasks = self.member_stock_snapshots()

        self.total_tiers = len(tiers)
        self.total_servings = sum(quantities.servings(t) for t in tiers)
        self.total_surface_area = _decimal(sum(quantities.surface_area(t) for t in tiers))
        self.total_frosting_grams = _decimal(sum(quantities.frosting_mass(t) for t in tiers))
        self.total_stock_grams = _decimal(sum(quantities.stock_task_mass(t) for t in tasks))

        if save:
            self.save(
                update_fields=[
                    "total_tiers",
                    "total_servings",
                    "total_surface_area",
                    "total_frosting_grams",
                    "total_stock_grams",
                    "updated_at",
                ]
            )

    def estimated_labor_hours(self) -> float:
        return quantities.estimated_labor_hours(self.member_tier_snapshots())

    def to_snapshot(self) -> BatchSnapshot:
        return BatchSnapshot(
            batch_id=self.pk,
            batch_type=self.batch_type,
            recipe_name=self.recipe_name,
            recipe_key=self.recipe_key,
            scheduled_date=self.scheduled_date,
            status=self.status,
            due_date=self.due_date,
            tier_ids=tuple(self.tier_ids),
            stock_task_ids=tuple(self.stock_task_ids),
            recipe_id=self.recipe_ref,
        )


class BatchTier(models.Model):
    """
    Membership of a tier in a batch.

    batch_type is copied from the batch so the database can enforce one
    batch per tier per type.
    """

    batch = models.ForeignKey(
        ProductionBatch,
        on_delete=models.CASCADE,
        related_name="memberships",
        verbose_name=_("Batch"),
    )
    tier = models.ForeignKey(
        "batchman.CakeTier",
        on_delete=models.CASCADE,
        related_name="batch_memberships",
        verbose_name=_("Tier"),
    )
    batch_type = models.CharField(
        max_length=20,
        verbose_name=_("Batch Type"),
    )
    added_by = models.CharField(
        max_length=255,
        blank=True,
        verbose_name=_("Added by"),
    )
    added_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name=_("Added at"),
    )

    class Meta:
        db_table = "batchman_batch_tier"
        verbose_name = _("Batch Tier")
        verbose_name_plural = _("Batch Tiers")
        ordering = ["batch", "tier"]
        constraints = [
            models.UniqueConstraint(
                fields=["tier", "batch_type"],
                name="batchman_unique_tier_per_type",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.batch} <- {self.tier}"

    def save(self, *args, **kwargs):
        if not self.batch_type:
            self.batch_type = self.batch.batch_type
        super().save(*args, **kwargs)


def _decimal(value: float) -> Decimal:
    return Decimal(str(value)).quantize(TWO_PLACES)
