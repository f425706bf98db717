"""
Django Batchman app configuration.
"""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class BatchmanConfig(AppConfig):
    """Batchman application configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "batchman"
    verbose_name = _("Production Batches")

    def ready(self):
        """Import signal handlers when app is ready."""
        # Import handlers to register them
        from batchman.signals import handlers  # noqa: F401
