"""
Write the default batch types (BAKE, PREP, STACK, ASSEMBLE, DECORATE)
to the database so they can be edited in the admin.

Usage:
    python manage.py seed_batch_types
    python manage.py seed_batch_types --update
"""

from django.core.management.base import BaseCommand

from batchman.conf import get_setting


class Command(BaseCommand):
    help = "Create the configured default batch types"

    def add_arguments(self, parser):
        parser.add_argument(
            "--update",
            action="store_true",
            help="Overwrite existing batch types with the configured values",
        )

    def handle(self, *args, **options):
        from batchman.models import BatchTypeConfig

        created = updated = 0
        for entry in get_setting("BATCH_TYPES"):
            values = {
                "name": entry.get("name", entry["code"]),
                "description": entry.get("description", ""),
                "lead_time_days": entry.get("lead_time_days", 1),
                "depends_on": list(entry.get("depends_on", [])),
                "is_batchable": entry.get("is_batchable", True),
                "color": entry.get("color", ""),
                "sort_order": entry.get("sort_order", 0),
            }
            obj, was_created = BatchTypeConfig.objects.get_or_create(
                code=entry["code"], defaults=values
            )
            if was_created:
                created += 1
                self.stdout.write(f"   + {obj.code} ({obj.lead_time_days}d)")
            elif options["update"]:
                for field, value in values.items():
                    setattr(obj, field, value)
                obj.save()
                updated += 1
                self.stdout.write(f"   ~ {obj.code} ({obj.lead_time_days}d)")

        self.stdout.write(
            self.style.SUCCESS(f"Batch types: {created} created, {updated} updated")
        )
