"""
In-process slot locks.

Serialises mutations on the same (batch type, recipe key) inside one
process. Across processes the unique constraint and SELECT FOR UPDATE
take over.
"""

import threading
from contextlib import contextmanager

_registry_lock = threading.Lock()
_locks: dict[tuple[str, str], threading.RLock] = {}


def slot_lock(batch_type: str, recipe_key: str) -> threading.RLock:
    """Return the lock for a slot, creating it on first use."""
    key = (batch_type, recipe_key)
    lock = _locks.get(key)
    if lock is None:
        with _registry_lock:
            lock = _locks.get(key)
            if lock is None:  # double-checked
                lock = threading.RLock()
                _locks[key] = lock
    return lock


@contextmanager
def hold_slots(*slots: tuple[str, str]):
    """
    Hold the locks of several slots.

    Locks are taken in sorted order so two callers holding the same pair
    cannot deadlock.
    """
    locks = [slot_lock(*slot) for slot in sorted(set(slots))]
    for lock in locks:
        lock.acquire()
    try:
        yield
    finally:
        for lock in reversed(locks):
            lock.release()
