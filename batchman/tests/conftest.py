"""
Shared fixtures: recipes, sizes and factories for orders, tiers and
stock tasks.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from batchman.conf import reset_providers
from batchman.protocols.providers import RecipeRef, TierSnapshot


@pytest.fixture(autouse=True)
def _fresh_providers():
    reset_providers()
    yield
    reset_providers()


@pytest.fixture
def due():
    """A due date far enough ahead that no suggestion gets clamped."""
    return date.today() + timedelta(days=30)


# ═══════════════════════════════════════════════════════════════════
# Snapshots (no database)
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture
def snapshot():
    """Factory for TierSnapshot with an 8 inch round default."""

    def make(tier_id=1, order_id=None, due_date=date(2026, 5, 10), **overrides):
        values = {
            "tier_id": tier_id,
            "order_id": order_id if order_id is not None else tier_id,
            "due_date": due_date,
            "size_name": "8 inch round",
            "shape": "round",
            "servings": 24,
            "diameter": 8.0,
            "height": 4.0,
            "batter_recipe": RecipeRef(name="Vanilla Sponge", id=1, kind="batter"),
            "frosting_recipe": RecipeRef(name="Vanilla Buttercream", id=2, kind="frosting"),
        }
        values.update(overrides)
        return TierSnapshot(**values)

    return make


# ═══════════════════════════════════════════════════════════════════
# Models
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture
def vanilla(db):
    from batchman.models import Recipe, RecipeKind

    return Recipe.objects.create(code="vanilla-sponge", name="Vanilla Sponge", kind=RecipeKind.BATTER)


@pytest.fixture
def chocolate(db):
    from batchman.models import Recipe, RecipeKind

    return Recipe.objects.create(code="chocolate-fudge", name="Chocolate Fudge", kind=RecipeKind.BATTER)


@pytest.fixture
def buttercream(db):
    from batchman.models import Recipe, RecipeKind

    return Recipe.objects.create(
        code="vanilla-buttercream", name="Vanilla Buttercream", kind=RecipeKind.FROSTING
    )


@pytest.fixture
def size_8(db):
    from batchman.models import TierSize

    return TierSize.objects.create(
        name="8 inch round", shape="round", servings=24, diameter=Decimal("8"), height=Decimal("4")
    )


@pytest.fixture
def size_6(db):
    from batchman.models import TierSize

    return TierSize.objects.create(
        name="6 inch round", shape="round", servings=12, diameter=Decimal("6"), height=Decimal("4")
    )


@pytest.fixture
def make_order(db, due):
    from batchman.models import CakeOrder

    counter = {"n": 0}

    def make(event_date=None, **kwargs):
        counter["n"] += 1
        kwargs.setdefault("customer_name", f"Customer {counter['n']}")
        return CakeOrder.objects.create(event_date=event_date or due, **kwargs)

    return make


@pytest.fixture
def make_tier(db, make_order, size_8, vanilla, buttercream):
    """Factory: a vanilla/buttercream 8 inch tier on a new (or given) order."""
    from batchman.models import CakeTier

    def make(order=None, tier_index=1, **kwargs):
        order = order or make_order()
        kwargs.setdefault("size", size_8)
        kwargs.setdefault("batter_recipe", vanilla)
        kwargs.setdefault("frosting_recipe", buttercream)
        kwargs.setdefault("finish_type", "Buttercream - Smooth")
        return CakeTier.objects.create(order=order, tier_index=tier_index, **kwargs)

    return make


@pytest.fixture
def cupcakes(db):
    from batchman.models import StockItem

    return StockItem.objects.create(
        code="vanilla-cupcake", name="Vanilla Cupcake", unit_weight=Decimal("2"), unit_weight_unit="oz"
    )


@pytest.fixture
def make_stock_task(db, cupcakes, vanilla, due):
    from batchman.models import StockTask

    def make(quantity=24, scheduled_date=None, recipe=None, **kwargs):
        return StockTask.objects.create(
            item=cupcakes,
            recipe=recipe or vanilla,
            target_quantity=Decimal(quantity),
            scheduled_date=scheduled_date or due,
            **kwargs,
        )

    return make


@pytest.fixture
def user(db):
    from django.contrib.auth import get_user_model

    return get_user_model().objects.create_user(username="baker", password="test123")


@pytest.fixture
def api_client(user):
    from rest_framework.test import APIClient

    client = APIClient()
    client.force_authenticate(user=user)
    return client
