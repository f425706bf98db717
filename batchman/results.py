"""
Batchman Result Types.

Structured results for batch mutations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from batchman.models import ProductionBatch


@dataclass
class RescheduleResult:
    """
    Outcome of a reschedule.

    If merged=True the batch moved onto an occupied slot and was absorbed:
    ``batch`` is the surviving batch and ``merged_into_id`` its id.
    """

    batch: ProductionBatch
    merged: bool = False
    merged_into_id: int | None = None


@dataclass
class RemovalResult:
    """
    Outcome of removing members from a batch.

    ``batch`` is None when the batch did not exist or was deleted
    because it became empty.
    """

    batch: ProductionBatch | None
    removed: int = 0
    deleted: bool = False


@dataclass
class FailedSuggestion:
    """A suggestion that could not be applied."""

    ref: str
    error: dict


@dataclass
class BulkApplyResult:
    """Outcome of applying several suggestions; each one stands alone."""

    created: list[ProductionBatch] = field(default_factory=list)
    failed: list[FailedSuggestion] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return len(self.failed) > 0


@dataclass
class ReconcileResult:
    """Outcome of a reconciliation pass."""

    merged: int = 0
    rekeyed: int = 0
    survivors: list[int] = field(default_factory=list)
    conflicts: list[dict] = field(default_factory=list)
