"""
Batchman Models.

- Recipe: recipe reference used as the grouping key
- TierSize, CakeOrder, CakeTier: minimal order-side collaborators
- StockItem, StockTask: stock production tasks
- BatchTypeConfig: production step types with lead times
- ProductionBatch, BatchTier: persisted batches and their members
- BatchCodeCounter: yearly counter behind batch codes
"""

from batchman.models.batch import (
    BatchStatus,
    BatchTier,
    BatchTypeConfig,
    ProductionBatch,
)
from batchman.models.order import (
    CakeOrder,
    CakeTier,
    FrostingComplexity,
    Fulfillment,
    OrderStatus,
    TierShape,
    TierSize,
)
from batchman.models.recipe import Recipe, RecipeKind
from batchman.models.sequence import BatchCodeCounter
from batchman.models.stock import StockItem, StockTask, StockTaskStatus

__all__ = [
    "Recipe",
    "RecipeKind",
    "TierSize",
    "TierShape",
    "CakeOrder",
    "CakeTier",
    "FrostingComplexity",
    "Fulfillment",
    "OrderStatus",
    "StockItem",
    "StockTask",
    "StockTaskStatus",
    "BatchTypeConfig",
    "ProductionBatch",
    "BatchTier",
    "BatchStatus",
    "BatchCodeCounter",
]
