"""
Management command to generate occurrences ahead for every active series.

Run periodically (e.g. daily via cron) so the schedule always covers the
configured number of weeks. Past occurrences are marked completed on the way.
"""

from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from scheduling.conf import scheduling_setting
from scheduling.wiring import services


class Command(BaseCommand):
    help = "Generate occurrences for active series and complete past ones"

    def add_arguments(self, parser):
        parser.add_argument(
            "--weeks",
            type=int,
            default=None,
            help="Number of weeks ahead to generate occurrences "
            "(default: SCHEDULING['GENERATE_AHEAD_WEEKS'])",
        )

    def handle(self, *args, **options):
        weeks = options["weeks"] or scheduling_setting("GENERATE_AHEAD_WEEKS")
        horizon = timezone.localdate() + timedelta(weeks=weeks)
        series_store = services().series_store

        self.stdout.write(f"Generating occurrences up to {horizon}...")
        completed = series_store.mark_completed(timezone.localtime().replace(tzinfo=None))
        created = series_store.materialize_all(horizon)

        self.stdout.write(
            self.style.SUCCESS(
                f"Generated {created} new occurrence(s), completed {completed} past occurrence(s)"
            )
        )
