"""
Batchman Exceptions.

All batchman errors derive from BatchError so callers can handle them in
one place. Each subclass carries a machine-readable ``kind`` the UI uses to
decide between a retry, a merge-instead prompt or a silent refresh.
"""

from typing import Any


class BatchError(Exception):
    """
    Base exception for all Batchman errors.

    Usage:
        raise BatchValidationError("EMPTY_MEMBERS", batch_type="BAKE")

    Attributes:
        code: Error code (EMPTY_MEMBERS, BATCH_NOT_FOUND, etc.)
        kind: Error family (validation, conflict, not_found, transient)
        details: Additional context as keyword arguments
    """

    kind = "error"

    def __init__(self, code: str, **details: Any):
        self.code = code
        self.details = details
        message = f"{code}: {details}" if details else code
        super().__init__(message)

    def as_dict(self) -> dict:
        """Return error as dictionary for API responses."""
        return {"code": self.code, "kind": self.kind, **self.details}

    def __str__(self) -> str:
        name = type(self).__name__
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{name}({self.code}: {details_str})"
        return f"{name}({self.code})"


class BatchValidationError(BatchError):
    """Malformed mutation input. Never retried automatically."""

    kind = "validation"


class BatchConflictError(BatchError):
    """Uniqueness or merge-type violation; details carry the conflicting batch id."""

    kind = "conflict"


class BatchNotFoundError(BatchError):
    """Referenced batch, tier or stock task does not exist."""

    kind = "not_found"


class TransientStorageError(BatchError):
    """Storage I/O failure. Reads may be retried; mutations were rolled back."""

    kind = "transient"


# Common error codes
# EMPTY_MEMBERS: create called without tiers or stock tasks
# UNKNOWN_BATCH_TYPE: batch type not configured
# INVALID_DURATION / INVALID_DATE / INVALID_DATE_RANGE: bad duration or dates
# INVALID_RECIPE: recipe is neither a reference nor a name
# INVALID_STATUS: status transition not allowed
# TIER_ALREADY_BATCHED: tier already in another batch of the same type
# STOCK_TASK_ALREADY_BATCHED: stock task already in another batch
# BATCH_TYPE_MISMATCH: merge between batches of different types
# SLOT_TAKEN: slot still taken after the concurrent-create retry
# SLOT_COMPLETED: slot held by a completed batch
# BATCH_NOT_FOUND / TIER_NOT_FOUND / STOCK_TASK_NOT_FOUND
# RECIPE_NOT_FOUND / USER_NOT_FOUND
# TYPE_NOT_BATCHABLE: tiers of several orders in a non-batchable type
# SAME_BATCH: merge of a batch into itself
# NOT_SCHEDULED: status needs a scheduled date
# UNKNOWN_UNIT: mass unit not configured
# STORAGE_UNAVAILABLE: database failure (transient)
