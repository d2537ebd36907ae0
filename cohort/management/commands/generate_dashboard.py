"""
Generate a dashboard draft for review.

Usage:
    python manage.py generate_dashboard
    python manage.py generate_dashboard --discussion-prompt
    python manage.py generate_dashboard --health-report
"""
from django.core.management.base import BaseCommand, CommandError

from cohort.dashboard import (
    TRIGGER_SCHEDULED,
    run_daily_generation,
    run_discussion_prompt_generation,
    run_health_report_generation,
)
from cohort.exceptions import CohortPipelineError


class Command(BaseCommand):
    help = 'Generate dashboard content and store it as an unapproved draft'

    def add_arguments(self, parser):
        kind = parser.add_mutually_exclusive_group()
        kind.add_argument(
            '--discussion-prompt',
            action='store_true',
            help='Generate a discussion prompt draft instead of the full dashboard'
        )
        kind.add_argument(
            '--health-report',
            action='store_true',
            help="Generate the facilitator's weekly cohort health report"
        )

    def handle(self, *args, **options):
        try:
            if options['discussion_prompt']:
                content_id = run_discussion_prompt_generation()
            elif options['health_report']:
                content_id = run_health_report_generation()
            else:
                content_id = run_daily_generation(trigger=TRIGGER_SCHEDULED)
        except CohortPipelineError as e:
            raise CommandError(f'Generation failed at {e.step}: {e}') from e

        self.stdout.write(
            self.style.SUCCESS(f'Draft {content_id} generated and awaiting approval')
        )
