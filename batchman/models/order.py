"""
Order, tier and tier size models.

Minimal standalone versions of the order-side collaborators. Hosts with
their own order system plug in a TierProvider instead of using these for
reads.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from batchman.protocols.providers import TierSnapshot


class TierShape(models.TextChoices):
    ROUND = "round", _("Round")
    SQUARE = "square", _("Square")
    SHEET = "sheet", _("Sheet")


class FrostingComplexity(models.TextChoices):
    LIGHT = "light", _("Light (smooth)")
    MEDIUM = "medium", _("Medium (textured)")
    HEAVY = "heavy", _("Heavy (elaborate piping)")


class Fulfillment(models.TextChoices):
    DELIVERY = "delivery", _("Delivery")
    PICKUP = "pickup", _("Pickup")


class OrderStatus(models.TextChoices):
    DRAFT = "draft", _("Draft")
    CONFIRMED = "confirmed", _("Confirmed")
    IN_PROGRESS = "in_progress", _("In Progress")
    COMPLETED = "completed", _("Completed")
    CANCELLED = "cancelled", _("Cancelled")


class TierSize(models.Model):
    """
    Size descriptor for a tier.

    Dimensions are in the configured length unit; leave them blank to have
    the diameter parsed from the name ("8 inch round").
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name=_("Name"),
    )
    shape = models.CharField(
        max_length=20,
        choices=TierShape.choices,
        default=TierShape.ROUND,
        verbose_name=_("Shape"),
    )
    servings = models.PositiveIntegerField(
        default=0,
        verbose_name=_("Servings"),
    )
    diameter = models.DecimalField(
        max_digits=6, decimal_places=2, null=True, blank=True, verbose_name=_("Diameter")
    )
    length = models.DecimalField(
        max_digits=6, decimal_places=2, null=True, blank=True, verbose_name=_("Length")
    )
    width = models.DecimalField(
        max_digits=6, decimal_places=2, null=True, blank=True, verbose_name=_("Width")
    )
    height = models.DecimalField(
        max_digits=6, decimal_places=2, null=True, blank=True, verbose_name=_("Height")
    )

    class Meta:
        db_table = "batchman_tier_size"
        verbose_name = _("Tier Size")
        verbose_name_plural = _("Tier Sizes")
        ordering = ["shape", "servings"]

    def __str__(self) -> str:
        return self.name


class CakeOrder(models.Model):
    """Customer cake order. Its event date is the due date of every tier."""

    customer_name = models.CharField(
        max_length=200,
        verbose_name=_("Customer"),
    )
    event_date = models.DateField(
        db_index=True,
        verbose_name=_("Event Date"),
    )
    fulfillment = models.CharField(
        max_length=20,
        choices=Fulfillment.choices,
        default=Fulfillment.PICKUP,
        verbose_name=_("Fulfillment"),
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.CONFIRMED,
        db_index=True,
        verbose_name=_("Status"),
    )
    is_rush = models.BooleanField(
        default=False,
        verbose_name=_("Rush"),
        help_text=_("Rush orders skip the batch workflow"),
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("created at"))

    class Meta:
        db_table = "batchman_cake_order"
        verbose_name = _("Cake Order")
        verbose_name_plural = _("Cake Orders")
        ordering = ["event_date", "id"]

    def __str__(self) -> str:
        return f"#{self.pk} {self.customer_name} ({self.event_date})"


class CakeTier(models.Model):
    """
    One layer of a custom cake.

    Recipes are either referenced (batter/filling/frosting_recipe) or given
    as free text (flavor/filling); a reference wins over the text.
    """

    order = models.ForeignKey(
        CakeOrder,
        on_delete=models.CASCADE,
        related_name="tiers",
        verbose_name=_("Order"),
    )
    tier_index = models.PositiveSmallIntegerField(
        default=1,
        verbose_name=_("Position"),
        help_text=_("1 = bottom tier"),
    )
    size = models.ForeignKey(
        TierSize,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="tiers",
        verbose_name=_("Size"),
    )

    batter_recipe = models.ForeignKey(
        "batchman.Recipe",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name=_("Batter Recipe"),
    )
    filling_recipe = models.ForeignKey(
        "batchman.Recipe",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name=_("Filling Recipe"),
    )
    frosting_recipe = models.ForeignKey(
        "batchman.Recipe",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name=_("Frosting Recipe"),
    )

    flavor = models.CharField(max_length=100, blank=True, verbose_name=_("Flavor"))
    filling = models.CharField(max_length=100, blank=True, verbose_name=_("Filling"))
    finish_type = models.CharField(
        max_length=100,
        blank=True,
        verbose_name=_("Finish"),
        help_text=_("e.g. 'Buttercream - Textured', 'Fondant'"),
    )
    frosting_complexity = models.CharField(
        max_length=10,
        choices=FrostingComplexity.choices,
        default=FrostingComplexity.MEDIUM,
        verbose_name=_("Frosting Complexity"),
    )

    class Meta:
        db_table = "batchman_cake_tier"
        verbose_name = _("Cake Tier")
        verbose_name_plural = _("Cake Tiers")
        ordering = ["order", "tier_index"]
        unique_together = [["order", "tier_index"]]

    def __str__(self) -> str:
        return f"Order #{self.order_id} tier {self.tier_index}"

    @property
    def due_date(self):
        return self.order.event_date

    def to_snapshot(self, batched: dict[str, int] | None = None) -> TierSnapshot:
        """Read model for the scheduling core."""
        size = self.size

        def dim(value):
            return float(value) if value is not None else None

        return TierSnapshot(
            tier_id=self.pk,
            order_id=self.order_id,
            due_date=self.order.event_date,
            tier_index=self.tier_index,
            size_name=size.name if size else "",
            shape=size.shape if size else TierShape.ROUND,
            servings=size.servings if size else 0,
            diameter=dim(size.diameter) if size else None,
            length=dim(size.length) if size else None,
            width=dim(size.width) if size else None,
            height=dim(size.height) if size else None,
            complexity=self.frosting_complexity,
            finish_type=self.finish_type,
            batter_recipe=self.batter_recipe.as_ref() if self.batter_recipe else None,
            flavor=self.flavor,
            filling_recipe=self.filling_recipe.as_ref() if self.filling_recipe else None,
            filling=self.filling,
            frosting_recipe=self.frosting_recipe.as_ref() if self.frosting_recipe else None,
            fulfillment=self.order.fulfillment,
            customer_name=self.order.customer_name,
            batched=dict(batched or {}),
        )
