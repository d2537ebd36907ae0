"""
Run the daily engagement analysis.

Usage:
    python manage.py analyze_engagement
    python manage.py analyze_engagement --date 2025-03-14
"""
from datetime import date

from django.core.management.base import BaseCommand, CommandError

from cohort.exceptions import CohortPipelineError
from cohort.flags import run_daily_analysis


class Command(BaseCommand):
    help = 'Classify member engagement and store red/yellow/green flags'

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            type=date.fromisoformat,
            help='Analyze as of this date (YYYY-MM-DD); defaults to today'
        )

    def handle(self, *args, **options):
        try:
            summary = run_daily_analysis(today=options.get('date'))
        except CohortPipelineError as e:
            raise CommandError(f'Engagement analysis failed at {e.step}: {e}') from e

        breakdown = ', '.join(f"{count} {flag_type}" for flag_type, count in summary['breakdown'].items())
        self.stdout.write(
            self.style.SUCCESS(
                f"Analyzed {summary['analyzed']} members: "
                f"{summary['flags_created']} flags ({breakdown}), {summary['failed']} failures"
            )
        )
