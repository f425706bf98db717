"""
Storage failure translation.

Database connectivity problems surface as TransientStorageError after the
transaction has rolled back, so callers can retry safely.
"""

import logging
from contextlib import contextmanager

from django.db import InterfaceError, OperationalError

from batchman.exceptions import TransientStorageError

logger = logging.getLogger(__name__)


@contextmanager
def storage_guard(operation: str):
    """
    Translate database connectivity errors.

    Usable as a context manager or as a decorator:

        @classmethod
        @storage_guard("create_batch")
        def create_batch(cls, ...): ...
    """
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.error(
            f"Storage failure during {operation}: {exc}",
            extra={"operation": operation},
        )
        raise TransientStorageError(
            "STORAGE_UNAVAILABLE", operation=operation, error=str(exc)
        ) from exc
