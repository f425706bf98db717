"""
Initial Batchman schema.

- Collaborator models: Recipe, TierSize, CakeOrder, CakeTier, StockItem, StockTask
- Scheduling models: BatchTypeConfig, ProductionBatch (with history), BatchTier
- BatchCodeCounter for batch codes
"""

import uuid
from decimal import Decimal

import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Recipe",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.SlugField(help_text="Unique identifier (e.g. vanilla-sponge)", unique=True, verbose_name="Code")),
                ("name", models.CharField(max_length=200, verbose_name="Name")),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("batter", "Batter"),
                            ("filling", "Filling"),
                            ("frosting", "Frosting"),
                            ("finish", "Finish"),
                        ],
                        default="batter",
                        max_length=20,
                        verbose_name="Kind",
                    ),
                ),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
            ],
            options={
                "verbose_name": "Recipe",
                "verbose_name_plural": "Recipes",
                "db_table": "batchman_recipe",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="TierSize",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True, verbose_name="Name")),
                (
                    "shape",
                    models.CharField(
                        choices=[("round", "Round"), ("square", "Square"), ("sheet", "Sheet")],
                        default="round",
                        max_length=20,
                        verbose_name="Shape",
                    ),
                ),
                ("servings", models.PositiveIntegerField(default=0, verbose_name="Servings")),
                ("diameter", models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True, verbose_name="Diameter")),
                ("length", models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True, verbose_name="Length")),
                ("width", models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True, verbose_name="Width")),
                ("height", models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True, verbose_name="Height")),
            ],
            options={
                "verbose_name": "Tier Size",
                "verbose_name_plural": "Tier Sizes",
                "db_table": "batchman_tier_size",
                "ordering": ["shape", "servings"],
            },
        ),
        migrations.CreateModel(
            name="CakeOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_name", models.CharField(max_length=200, verbose_name="Customer")),
                ("event_date", models.DateField(db_index=True, verbose_name="Event Date")),
                (
                    "fulfillment",
                    models.CharField(
                        choices=[("delivery", "Delivery"), ("pickup", "Pickup")],
                        default="pickup",
                        max_length=20,
                        verbose_name="Fulfillment",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("confirmed", "Confirmed"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="confirmed",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("is_rush", models.BooleanField(default=False, help_text="Rush orders skip the batch workflow", verbose_name="Rush")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
            ],
            options={
                "verbose_name": "Cake Order",
                "verbose_name_plural": "Cake Orders",
                "db_table": "batchman_cake_order",
                "ordering": ["event_date", "id"],
            },
        ),
        migrations.CreateModel(
            name="CakeTier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("tier_index", models.PositiveSmallIntegerField(default=1, help_text="1 = bottom tier", verbose_name="Position")),
                ("flavor", models.CharField(blank=True, max_length=100, verbose_name="Flavor")),
                ("filling", models.CharField(blank=True, max_length=100, verbose_name="Filling")),
                (
                    "finish_type",
                    models.CharField(
                        blank=True,
                        help_text="e.g. 'Buttercream - Textured', 'Fondant'",
                        max_length=100,
                        verbose_name="Finish",
                    ),
                ),
                (
                    "frosting_complexity",
                    models.CharField(
                        choices=[
                            ("light", "Light (smooth)"),
                            ("medium", "Medium (textured)"),
                            ("heavy", "Heavy (elaborate piping)"),
                        ],
                        default="medium",
                        max_length=10,
                        verbose_name="Frosting Complexity",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tiers",
                        to="batchman.cakeorder",
                        verbose_name="Order",
                    ),
                ),
                (
                    "size",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tiers",
                        to="batchman.tiersize",
                        verbose_name="Size",
                    ),
                ),
                (
                    "batter_recipe",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="batchman.recipe",
                        verbose_name="Batter Recipe",
                    ),
                ),
                (
                    "filling_recipe",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="batchman.recipe",
                        verbose_name="Filling Recipe",
                    ),
                ),
                (
                    "frosting_recipe",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="batchman.recipe",
                        verbose_name="Frosting Recipe",
                    ),
                ),
            ],
            options={
                "verbose_name": "Cake Tier",
                "verbose_name_plural": "Cake Tiers",
                "db_table": "batchman_cake_tier",
                "ordering": ["order", "tier_index"],
                "unique_together": {("order", "tier_index")},
            },
        ),
        migrations.CreateModel(
            name="StockItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.SlugField(unique=True, verbose_name="Code")),
                ("name", models.CharField(max_length=200, verbose_name="Name")),
                (
                    "unit_weight",
                    models.DecimalField(
                        decimal_places=3,
                        default=Decimal("0"),
                        help_text="Recipe weight one unit consumes",
                        max_digits=10,
                        verbose_name="Recipe per Unit",
                    ),
                ),
                ("unit_weight_unit", models.CharField(default="oz", help_text="g, kg, oz, lb", max_length=10, verbose_name="Weight Unit")),
            ],
            options={
                "verbose_name": "Stock Item",
                "verbose_name_plural": "Stock Items",
                "db_table": "batchman_stock_item",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="BatchCodeCounter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("year", models.PositiveSmallIntegerField(unique=True, verbose_name="Year")),
                ("last_number", models.PositiveIntegerField(default=0, verbose_name="Last number")),
            ],
            options={
                "verbose_name": "Batch Code Counter",
                "verbose_name_plural": "Batch Code Counters",
                "db_table": "batchman_batch_code_counter",
            },
        ),
        migrations.CreateModel(
            name="BatchTypeConfig",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=20, unique=True, verbose_name="Code")),
                ("name", models.CharField(max_length=100, verbose_name="Name")),
                ("description", models.TextField(blank=True, verbose_name="Description")),
                ("lead_time_days", models.PositiveSmallIntegerField(default=1, verbose_name="Lead Time (days)")),
                (
                    "depends_on",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text='Batch type codes that must run first, e.g. ["BAKE", "PREP"]',
                        verbose_name="Depends On",
                    ),
                ),
                (
                    "is_batchable",
                    models.BooleanField(
                        default=True,
                        help_text="Whether tiers of different orders can share this step",
                        verbose_name="Batchable",
                    ),
                ),
                ("color", models.CharField(blank=True, max_length=20, verbose_name="Color")),
                ("sort_order", models.PositiveSmallIntegerField(default=0, verbose_name="Order")),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
            ],
            options={
                "verbose_name": "Batch Type",
                "verbose_name_plural": "Batch Types",
                "db_table": "batchman_batch_type",
                "ordering": ["sort_order", "code"],
            },
        ),
        migrations.CreateModel(
            name="ProductionBatch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID")),
                (
                    "code",
                    models.CharField(
                        blank=True,
                        help_text="Unique identifier (generated when empty)",
                        max_length=50,
                        unique=True,
                        verbose_name="Code",
                    ),
                ),
                ("name", models.CharField(blank=True, max_length=200, verbose_name="Name")),
                ("batch_type", models.CharField(db_index=True, max_length=20, verbose_name="Batch Type")),
                ("recipe_name", models.CharField(max_length=200, verbose_name="Recipe")),
                (
                    "recipe_ref",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Referenced recipe, empty for free-text recipes",
                        null=True,
                        verbose_name="Recipe ID",
                    ),
                ),
                (
                    "recipe_key",
                    models.CharField(
                        help_text="Identity key used for grouping and uniqueness",
                        max_length=255,
                        verbose_name="Recipe Key",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("scheduled", "Scheduled"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("scheduled_date", models.DateField(blank=True, db_index=True, null=True, verbose_name="Scheduled Date")),
                ("duration_days", models.PositiveSmallIntegerField(default=1, verbose_name="Duration (days)")),
                ("total_tiers", models.PositiveIntegerField(default=0, verbose_name="Tiers")),
                ("total_servings", models.PositiveIntegerField(default=0, verbose_name="Servings")),
                ("total_surface_area", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12, verbose_name="Surface Area")),
                ("total_frosting_grams", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12, verbose_name="Frosting (g)")),
                ("total_stock_grams", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12, verbose_name="Stock Mass (g)")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                (
                    "created_by",
                    models.CharField(
                        blank=True,
                        help_text="e.g. 'user:jane', 'system:suggestions'",
                        max_length=255,
                        verbose_name="Created by",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                (
                    "assigned_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="production_batches",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Assigned To",
                    ),
                ),
            ],
            options={
                "verbose_name": "Production Batch",
                "verbose_name_plural": "Production Batches",
                "db_table": "batchman_production_batch",
                "ordering": ["scheduled_date", "batch_type", "recipe_name"],
                "indexes": [
                    models.Index(fields=["batch_type", "recipe_key"], name="batchman_pr_batch_t_5c1f0e_idx"),
                    models.Index(fields=["status", "scheduled_date"], name="batchman_pr_status_8d2a41_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("batch_type", "recipe_key", "scheduled_date"),
                        name="batchman_unique_batch_slot",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BatchTier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("batch_type", models.CharField(max_length=20, verbose_name="Batch Type")),
                ("added_by", models.CharField(blank=True, max_length=255, verbose_name="Added by")),
                ("added_at", models.DateTimeField(auto_now_add=True, verbose_name="Added at")),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="batchman.productionbatch",
                        verbose_name="Batch",
                    ),
                ),
                (
                    "tier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="batch_memberships",
                        to="batchman.caketier",
                        verbose_name="Tier",
                    ),
                ),
            ],
            options={
                "verbose_name": "Batch Tier",
                "verbose_name_plural": "Batch Tiers",
                "db_table": "batchman_batch_tier",
                "ordering": ["batch", "tier"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tier", "batch_type"),
                        name="batchman_unique_tier_per_type",
                    ),
                ],
            },
        ),
        migrations.AddField(
            model_name="productionbatch",
            name="tiers",
            field=models.ManyToManyField(
                blank=True,
                related_name="production_batches",
                through="batchman.BatchTier",
                to="batchman.caketier",
                verbose_name="Tiers",
            ),
        ),
        migrations.CreateModel(
            name="StockTask",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("target_quantity", models.DecimalField(decimal_places=0, max_digits=10, verbose_name="Target Quantity")),
                ("scheduled_date", models.DateField(blank=True, db_index=True, null=True, verbose_name="Scheduled Date")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                        ],
                        default="pending",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tasks",
                        to="batchman.stockitem",
                        verbose_name="Item",
                    ),
                ),
                (
                    "recipe",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_tasks",
                        to="batchman.recipe",
                        verbose_name="Recipe",
                    ),
                ),
                (
                    "batch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_tasks",
                        to="batchman.productionbatch",
                        verbose_name="Batch",
                    ),
                ),
            ],
            options={
                "verbose_name": "Stock Task",
                "verbose_name_plural": "Stock Tasks",
                "db_table": "batchman_stock_task",
                "ordering": ["scheduled_date", "id"],
            },
        ),
        migrations.CreateModel(
            name="HistoricalProductionBatch",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("uuid", models.UUIDField(db_index=True, default=uuid.uuid4, editable=False, verbose_name="UUID")),
                (
                    "code",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Unique identifier (generated when empty)",
                        max_length=50,
                        verbose_name="Code",
                    ),
                ),
                ("name", models.CharField(blank=True, max_length=200, verbose_name="Name")),
                ("batch_type", models.CharField(db_index=True, max_length=20, verbose_name="Batch Type")),
                ("recipe_name", models.CharField(max_length=200, verbose_name="Recipe")),
                (
                    "recipe_ref",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Referenced recipe, empty for free-text recipes",
                        null=True,
                        verbose_name="Recipe ID",
                    ),
                ),
                (
                    "recipe_key",
                    models.CharField(
                        help_text="Identity key used for grouping and uniqueness",
                        max_length=255,
                        verbose_name="Recipe Key",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("scheduled", "Scheduled"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("scheduled_date", models.DateField(blank=True, db_index=True, null=True, verbose_name="Scheduled Date")),
                ("duration_days", models.PositiveSmallIntegerField(default=1, verbose_name="Duration (days)")),
                ("total_tiers", models.PositiveIntegerField(default=0, verbose_name="Tiers")),
                ("total_servings", models.PositiveIntegerField(default=0, verbose_name="Servings")),
                ("total_surface_area", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12, verbose_name="Surface Area")),
                ("total_frosting_grams", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12, verbose_name="Frosting (g)")),
                ("total_stock_grams", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12, verbose_name="Stock Mass (g)")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                (
                    "created_by",
                    models.CharField(
                        blank=True,
                        help_text="e.g. 'user:jane', 'system:suggestions'",
                        max_length=255,
                        verbose_name="Created by",
                    ),
                ),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="Created at")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="Updated at")),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                (
                    "history_type",
                    models.CharField(
                        choices=[("+", "Created"), ("~", "Changed"), ("-", "Deleted")],
                        max_length=1,
                    ),
                ),
                (
                    "assigned_to",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Assigned To",
                    ),
                ),
                (
                    "history_user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "historical Production Batch",
                "verbose_name_plural": "historical Production Batches",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
