"""
Batchman Services.

- queries: candidate groups, schedule suggestions, batch lookups
- mutations: create, add, reschedule, merge, remove, delete, reconcile
"""

from batchman.services.mutations import BatchMutations
from batchman.services.queries import BatchQueries

__all__ = [
    "BatchQueries",
    "BatchMutations",
]
