"""
Batchman Protocols.

Defines interfaces for external integrations.
"""

from batchman.protocols.providers import (
    BatchSnapshot,
    BatchTypeInfo,
    BatchTypeProvider,
    RecipeRef,
    StockTaskProvider,
    StockTaskSnapshot,
    TierProvider,
    TierSnapshot,
)

__all__ = [
    # Protocols
    "TierProvider",
    "StockTaskProvider",
    "BatchTypeProvider",
    # Data types
    "RecipeRef",
    "TierSnapshot",
    "StockTaskSnapshot",
    "BatchTypeInfo",
    "BatchSnapshot",
]
