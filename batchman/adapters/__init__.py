"""
Batchman Adapters.

Default provider implementations backed by Batchman's own models.
Select others through the *_PROVIDER settings.
"""

from batchman.adapters.orm import (
    OrmBatchTypeProvider,
    OrmStockTaskProvider,
    OrmTierProvider,
)

__all__ = [
    "OrmTierProvider",
    "OrmStockTaskProvider",
    "OrmBatchTypeProvider",
]
