"""
Stock item and stock task models.

Stock tasks produce non-custom inventory (cupcakes, cookies...) and are
batched with cake tiers that share the same recipe.
"""

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from batchman.protocols.providers import StockTaskSnapshot
from batchman.quantities import unit_weight_grams


class StockTaskStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    IN_PROGRESS = "in_progress", _("In Progress")
    COMPLETED = "completed", _("Completed")


class StockItem(models.Model):
    """Stocked product with the recipe weight one unit needs."""

    code = models.SlugField(
        unique=True,
        max_length=50,
        verbose_name=_("Code"),
    )
    name = models.CharField(
        max_length=200,
        verbose_name=_("Name"),
    )
    unit_weight = models.DecimalField(
        max_digits=10,
        decimal_places=3,
        default=Decimal("0"),
        verbose_name=_("Recipe per Unit"),
        help_text=_("Recipe weight one unit consumes"),
    )
    unit_weight_unit = models.CharField(
        max_length=10,
        default="oz",
        verbose_name=_("Weight Unit"),
        help_text=_("g, kg, oz, lb"),
    )

    class Meta:
        db_table = "batchman_stock_item"
        verbose_name = _("Stock Item")
        verbose_name_plural = _("Stock Items")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class StockTask(models.Model):
    """Production task for a stock item. Its scheduled date is its due date."""

    item = models.ForeignKey(
        StockItem,
        on_delete=models.CASCADE,
        related_name="tasks",
        verbose_name=_("Item"),
    )
    recipe = models.ForeignKey(
        "batchman.Recipe",
        on_delete=models.PROTECT,
        related_name="stock_tasks",
        verbose_name=_("Recipe"),
    )
    target_quantity = models.DecimalField(
        max_digits=10,
        decimal_places=0,
        verbose_name=_("Target Quantity"),
    )
    scheduled_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_("Scheduled Date"),
    )
    status = models.CharField(
        max_length=20,
        choices=StockTaskStatus.choices,
        default=StockTaskStatus.PENDING,
        verbose_name=_("Status"),
    )
    batch = models.ForeignKey(
        "batchman.ProductionBatch",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_tasks",
        verbose_name=_("Batch"),
    )

    class Meta:
        db_table = "batchman_stock_task"
        verbose_name = _("Stock Task")
        verbose_name_plural = _("Stock Tasks")
        ordering = ["scheduled_date", "id"]

    def __str__(self) -> str:
        return f"{self.item.name} x{self.target_quantity}"

    def clean(self):
        super().clean()
        if self.target_quantity is not None and self.target_quantity <= 0:
            raise ValidationError({"target_quantity": _("Must be greater than zero.")})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def batch_type(self) -> str:
        return self.to_snapshot().batch_type

    def to_snapshot(self) -> StockTaskSnapshot:
        return StockTaskSnapshot(
            task_id=self.pk,
            item_name=self.item.name,
            recipe=self.recipe.as_ref(),
            target_quantity=self.target_quantity,
            unit_weight_grams=unit_weight_grams(self.item.unit_weight, self.item.unit_weight_unit),
            due_date=self.scheduled_date,
            status=self.status,
            batch_id=self.batch_id,
        )
