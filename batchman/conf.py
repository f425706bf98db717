"""
Batchman Settings.

Supports two formats (dict takes priority):

    # Option 1: Dict
    BATCHMAN = {
        "RECIPE_IDENTITY": "batchman.identity.RecipeIdIdentity",
        "DISPLAY_MASS_UNIT": "oz",
    }

    # Option 2: Flat
    BATCHMAN_RECIPE_IDENTITY = "batchman.identity.RecipeIdIdentity"
    BATCHMAN_DISPLAY_MASS_UNIT = "oz"

All settings have defaults; no configuration is required.
"""

import threading

from django.conf import settings


# ── Defaults ──

DEFAULTS = {
    # Used when no active BatchTypeConfig rows exist
    "BATCH_TYPES": [
        {
            "code": "BAKE",
            "name": "Bake Cakes",
            "description": "Baking cake batter into layers",
            "lead_time_days": 3,
            "depends_on": [],
            "is_batchable": True,
            "color": "orange",
            "sort_order": 1,
        },
        {
            "code": "PREP",
            "name": "Make Frosting",
            "description": "Preparing buttercream, fillings, and frostings",
            "lead_time_days": 2,
            "depends_on": [],
            "is_batchable": True,
            "color": "amber",
            "sort_order": 2,
        },
        {
            "code": "STACK",
            "name": "Stack & Fill",
            "description": "Fill, stack, crumb coat and top coat the layers",
            "lead_time_days": 2,
            "depends_on": ["BAKE", "PREP"],
            "is_batchable": True,
            "color": "indigo",
            "sort_order": 3,
        },
        {
            "code": "ASSEMBLE",
            "name": "Assemble",
            "description": "Attach tiers, structural support, finishing touches",
            "lead_time_days": 1,
            "depends_on": ["STACK"],
            "is_batchable": True,
            "color": "purple",
            "sort_order": 4,
        },
        {
            "code": "DECORATE",
            "name": "Decorate",
            "description": "Final decoration, piping, flowers, toppers",
            "lead_time_days": 1,
            "depends_on": ["ASSEMBLE"],
            "is_batchable": False,
            "color": "teal",
            "sort_order": 5,
        },
    ],
    "BATCH_TYPE_PRIORITY": ["BAKE", "PREP", "STACK", "ASSEMBLE", "DECORATE"],
    "DEFAULT_LEAD_TIME_DAYS": 1,
    # Grouping
    "RECIPE_IDENTITY": "batchman.identity.ResolvedNameIdentity",
    "PREP_EXCLUDED_KEYWORDS": ["fondant"],
    "ACTIVE_ORDER_STATUSES": ["confirmed", "in_progress"],
    "INCLUDE_RUSH_ORDERS": False,
    # Providers (read paths)
    "TIER_PROVIDER": "batchman.adapters.orm.OrmTierProvider",
    "STOCK_TASK_PROVIDER": "batchman.adapters.orm.OrmStockTaskProvider",
    "BATCH_TYPE_PROVIDER": "batchman.adapters.orm.OrmBatchTypeProvider",
    # Quantity model (~1 oz of buttercream per 8 sq in at light coverage)
    "FROSTING_GRAMS_PER_AREA": 3.5437,
    "FROSTING_COMPLEXITY_FACTORS": {"light": 1.0, "medium": 2.0, "heavy": 3.0},
    "LABOR_SERVINGS_PER_HOUR": 10,
    "FINISH_BONUS_HOURS": {"fondant": 2.0, "buttercream": 1.0},
    # Units
    "MASS_UNITS": {"g": 1.0, "kg": 1000.0, "oz": 28.3495, "lb": 453.592},
    "DISPLAY_MASS_UNIT": "g",
}


# ── Accessors ──

_sentinel = object()


def get_setting(name, default=_sentinel):
    """
    Get a batchman setting.

    Looks up in order:
    1. BATCHMAN dict (e.g. BATCHMAN = {"DISPLAY_MASS_UNIT": "..."})
    2. Flat setting (e.g. BATCHMAN_DISPLAY_MASS_UNIT = "...")
    3. DEFAULTS
    """
    batchman_dict = getattr(settings, "BATCHMAN", {})
    if name in batchman_dict:
        return batchman_dict[name]

    flat_value = getattr(settings, f"BATCHMAN_{name}", _sentinel)
    if flat_value is not _sentinel:
        return flat_value

    if default is not _sentinel:
        return default

    return DEFAULTS.get(name)


_loader_lock = threading.Lock()
_instances: dict[str, object] = {}


def _load(setting_name: str):
    """Instantiate the class configured under setting_name (cached)."""
    path = get_setting(setting_name)

    instance = _instances.get(setting_name)
    if instance is None:
        with _loader_lock:
            instance = _instances.get(setting_name)
            if instance is None:  # double-checked
                from django.utils.module_loading import import_string

                instance = import_string(path)()
                _instances[setting_name] = instance

    return instance


def get_tier_provider():
    """Return the configured TierProvider instance."""
    return _load("TIER_PROVIDER")


def get_stock_task_provider():
    """Return the configured StockTaskProvider instance."""
    return _load("STOCK_TASK_PROVIDER")


def get_batch_type_provider():
    """Return the configured BatchTypeProvider instance."""
    return _load("BATCH_TYPE_PROVIDER")


def get_recipe_identity():
    """Return the configured RecipeIdentity strategy."""
    return _load("RECIPE_IDENTITY")


def reset_providers() -> None:
    """Reset cached providers and identity strategy (for tests)."""
    with _loader_lock:
        _instances.clear()
