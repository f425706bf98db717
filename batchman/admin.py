"""
Batchman Admin.

Plain Django admin for batches, batch types and the collaborator models.
Batch history comes from simple_history.
"""

from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _
from simple_history.admin import SimpleHistoryAdmin

from batchman.models import (
    BatchTier,
    BatchTypeConfig,
    CakeOrder,
    CakeTier,
    ProductionBatch,
    Recipe,
    StockItem,
    StockTask,
    TierSize,
)
from batchman.units import format_mass

# ── Batches ──


class BatchTierInline(admin.TabularInline):
    model = BatchTier
    extra = 0
    fields = ("tier", "batch_type", "added_by", "added_at")
    readonly_fields = ("batch_type", "added_by", "added_at")
    raw_id_fields = ("tier",)


@admin.register(ProductionBatch)
class ProductionBatchAdmin(SimpleHistoryAdmin):
    list_display = (
        "code",
        "batch_type",
        "recipe_name",
        "scheduled_date",
        "status",
        "total_tiers",
        "total_servings",
        "frosting",
    )
    list_filter = ("batch_type", "status", "scheduled_date")
    search_fields = ("code", "name", "recipe_name")
    date_hierarchy = "scheduled_date"
    readonly_fields = (
        "uuid",
        "code",
        "recipe_key",
        "total_tiers",
        "total_servings",
        "total_surface_area",
        "total_frosting_grams",
        "total_stock_grams",
        "created_by",
        "created_at",
        "updated_at",
    )
    raw_id_fields = ("assigned_to",)
    inlines = [BatchTierInline]
    actions = ["recalculate"]

    @admin.display(description=_("Frosting"))
    def frosting(self, obj):
        return format_mass(obj.total_frosting_grams)

    @admin.action(description=_("Recalculate totals"))
    def recalculate(self, request, queryset):
        for batch in queryset:
            batch.recalculate_totals()
        self.message_user(request, _("Totals recalculated."), messages.SUCCESS)


@admin.register(BatchTypeConfig)
class BatchTypeConfigAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "lead_time_days", "depends_on", "is_batchable", "sort_order", "is_active")
    list_filter = ("is_active", "is_batchable")
    list_editable = ("lead_time_days", "sort_order")
    ordering = ("sort_order",)


# ── Collaborators ──


@admin.register(Recipe)
class RecipeAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "kind", "is_active")
    list_filter = ("kind", "is_active")
    search_fields = ("code", "name")


@admin.register(TierSize)
class TierSizeAdmin(admin.ModelAdmin):
    list_display = ("name", "shape", "servings", "diameter", "length", "width", "height")
    list_filter = ("shape",)


class CakeTierInline(admin.TabularInline):
    model = CakeTier
    extra = 1
    fields = (
        "tier_index",
        "size",
        "batter_recipe",
        "flavor",
        "filling_recipe",
        "filling",
        "frosting_recipe",
        "finish_type",
        "frosting_complexity",
    )


@admin.register(CakeOrder)
class CakeOrderAdmin(admin.ModelAdmin):
    list_display = ("id", "customer_name", "event_date", "fulfillment", "status", "is_rush")
    list_filter = ("status", "fulfillment", "is_rush")
    search_fields = ("customer_name",)
    date_hierarchy = "event_date"
    inlines = [CakeTierInline]


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "unit_weight", "unit_weight_unit")
    search_fields = ("code", "name")


@admin.register(StockTask)
class StockTaskAdmin(admin.ModelAdmin):
    list_display = ("item", "recipe", "target_quantity", "scheduled_date", "status", "batch")
    list_filter = ("status", "scheduled_date")
    raw_id_fields = ("item", "recipe", "batch")
