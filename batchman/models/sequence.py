"""
Yearly batch code counter.

Batch codes read BT-YYYY-NNNNN and restart at 1 every calendar year. The
counter row for a year is locked while the next number is taken, so
concurrent batch creation never hands out the same code twice.
"""

from django.db import models, transaction
from django.utils.translation import gettext_lazy as _

CODE_PREFIX = "BT"


class BatchCodeCounter(models.Model):
    """Last batch number issued in a calendar year."""

    year = models.PositiveSmallIntegerField(
        unique=True,
        verbose_name=_("Year"),
    )
    last_number = models.PositiveIntegerField(
        default=0,
        verbose_name=_("Last number"),
    )

    class Meta:
        db_table = "batchman_batch_code_counter"
        verbose_name = _("Batch Code Counter")
        verbose_name_plural = _("Batch Code Counters")

    def __str__(self) -> str:
        return format_code(self.year, self.last_number)

    @classmethod
    def next_code(cls, year: int) -> str:
        with transaction.atomic():
            counter, _created = cls.objects.select_for_update().get_or_create(year=year)
            counter.last_number += 1
            counter.save(update_fields=["last_number"])
            return format_code(year, counter.last_number)


def format_code(year: int, number: int) -> str:
    return f"{CODE_PREFIX}-{year}-{number:05d}"
