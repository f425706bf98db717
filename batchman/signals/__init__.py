"""
Batchman Signals.

Sent after the surrounding transaction commits, so receivers never see a
batch that was rolled back.

Signals:
    batch_created: A batch was created, or members were merged into an
        existing batch occupying the same slot
    batch_merged: A batch was absorbed into another one
    batch_rescheduled: A batch moved to another date
    batch_deleted: A batch was deleted (explicitly or because it emptied)
"""

from django.dispatch import Signal

# Args: batch, created (False when merged into an existing batch)
batch_created = Signal()

# Args: source_id, source_code, target
batch_merged = Signal()

# Args: batch, previous_date
batch_rescheduled = Signal()

# Args: batch_id, code, reason ("deleted" or "empty")
batch_deleted = Signal()

__all__ = ["batch_created", "batch_merged", "batch_rescheduled", "batch_deleted"]
