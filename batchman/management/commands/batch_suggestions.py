"""
Print schedule suggestions for a date window, optionally applying them.

Usage:
    python manage.py batch_suggestions --start 2026-05-01 --end 2026-05-07
    python manage.py batch_suggestions --days 7 --apply
"""

from datetime import date, timedelta

from django.core.management.base import BaseCommand, CommandError

from batchman.exceptions import BatchError


def _parse_date(value):
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise CommandError(f"Invalid date: {value} (expected YYYY-MM-DD)")


class Command(BaseCommand):
    help = "Suggest production dates for unbatched tiers and open batches"

    def add_arguments(self, parser):
        parser.add_argument("--start", type=_parse_date, help="First due date (YYYY-MM-DD)")
        parser.add_argument("--end", type=_parse_date, help="Last due date (YYYY-MM-DD)")
        parser.add_argument(
            "--days", type=int, default=None, help="Window of N days from today (overrides --end)"
        )
        parser.add_argument("--apply", action="store_true", help="Create/reschedule batches")

    def handle(self, *args, **options):
        from batchman.service import Planner

        start = options["start"]
        end = options["end"]
        if options["days"] is not None:
            start = start or date.today()
            end = start + timedelta(days=options["days"])

        try:
            suggestions = Planner.suggest_schedule(start, end)
        except BatchError as exc:
            raise CommandError(str(exc))

        if not suggestions:
            self.stdout.write("Nothing to schedule.")
            return

        for s in suggestions:
            line = f"{s.suggested_date}  {s.batch_type:<9} {s.recipe_name}  ({s.reason})"
            if s.batch_id is not None:
                line += f"  [batch {s.batch_id}, now {s.current_date}]"
            self.stdout.write(line)
            for dep in s.missing_dependencies:
                self.stdout.write(
                    self.style.WARNING(f"    missing {dep.batch_type} by {dep.suggested_date}")
                )
            for warning in s.warnings:
                self.stdout.write(self.style.WARNING(f"    {warning}"))

        if not options["apply"]:
            return

        result = Planner.apply_suggestions([s for s in suggestions if s.needs_change])
        for failure in result.failed:
            self.stdout.write(self.style.ERROR(f"  ! {failure.ref}: {failure.error['code']}"))
        self.stdout.write(
            self.style.SUCCESS(
                f"Applied {len(result.created)} suggestion(s), {len(result.failed)} failed"
            )
        )
