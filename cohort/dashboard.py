"""
Dashboard content generation.

``run_daily_generation`` is shared by the cron endpoint, the admin endpoint
and the ``generate_dashboard`` management command. A run either stores one
new draft or raises; nothing is written until every step has succeeded.
"""
import logging
from datetime import datetime
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import DatabaseError

from . import generators
from .context import CommunityContextGatherer, find_stuck_discussions
from .engagement import collect_weekly_metrics
from .exceptions import ContextGatheringError
from .health import CohortHealthGatherer
from .models import DashboardContent
from .prompts import FIRST_NAME_PLACEHOLDER
from .schemas import DashboardPayload, HealthReportContent, serialize_for_json, validate_content
from .themes import determine_engagement_level, extract_themes, extract_themes_from_discussions

logger = logging.getLogger(__name__)

TRIGGER_SCHEDULED = 'scheduled'
TRIGGER_MANUAL = 'manual'


def _triggered_by_id(triggered_by) -> Optional[int]:
    return triggered_by.id if triggered_by is not None else None


def run_daily_generation(trigger: str = TRIGGER_SCHEDULED, triggered_by=None,
                         now: Optional[datetime] = None) -> int:
    """
    Generate a full dashboard draft for review.

    Args:
        trigger: 'scheduled' or 'manual', recorded in the generation context.
        triggered_by: The admin who asked for the run, if any.
        now: Reference time; defaults to the current time.

    Returns:
        The id of the new unapproved DashboardContent row.
    """
    logger.info(f"Starting dashboard generation (trigger={trigger})")

    # Step 1: Community context
    gatherer = CommunityContextGatherer(now=now)
    context = gatherer.gather()

    # Step 2: Themes and engagement band
    themes = extract_themes_from_discussions(context.discussions)
    engagement_level = determine_engagement_level(context.active_users, context.total_users)
    logger.info(f"Themes: {themes}; engagement level: {engagement_level}")

    # Step 3: Hero message
    hero_message = generators.generate_hero_message(context, themes, engagement_level)

    # Step 4: Activity feed
    activity_feed = generators.curate_activity_feed(context.discussions)

    # Step 5: Per-member practice actions
    try:
        metrics = collect_weekly_metrics(get_user_model().active_members(), gatherer.today)
    except DatabaseError as e:
        logger.exception("Weekly member metrics read failed")
        raise ContextGatheringError('member_metrics', str(e)) from e
    practice_actions = generators.generate_practice_actions(metrics, context)

    # Step 6: Assemble and store the draft
    payload = DashboardPayload(
        hero_message=hero_message,
        activity_feed=activity_feed,
        practice_actions=practice_actions,
        program_state=context.program_state,
        upcoming_events=[event.to_dict() for event in context.upcoming_events],
        community_stats={
            'active_members': context.active_users,
            'total_members': context.total_users,
            'engagement_level': engagement_level,
            'themes': themes,
        },
    )
    content = validate_content(DashboardContent.TYPE_FULL_DASHBOARD, payload.to_dict())

    row = DashboardContent.objects.create(
        content_type=DashboardContent.TYPE_FULL_DASHBOARD,
        content=content,
        generation_context=serialize_for_json({
            'discussion_count': len(context.discussions),
            'themes': themes,
            'engagement_level': engagement_level,
            'member_count': len(metrics),
            'active_members': context.active_users,
            'total_members': context.total_users,
            'current_week': context.program_state.current_week,
            'trigger': trigger,
            'triggered_by': _triggered_by_id(triggered_by),
            'generated_for': gatherer.now,
        }),
    )

    logger.info(f"Stored dashboard draft {row.id} with actions for {len(practice_actions)} members")
    return row.id


def run_discussion_prompt_generation(triggered_by=None, now: Optional[datetime] = None) -> int:
    """Generate a discussion prompt draft from this week's themes and stalled threads."""
    logger.info("Starting discussion prompt generation")

    gatherer = CommunityContextGatherer(now=now)
    context = gatherer.gather()

    # Themes from the whole past week, not just the 48 hour feed window
    try:
        texts = gatherer.read_weekly_discussion_texts()
    except DatabaseError as e:
        logger.exception("Weekly discussion read failed")
        raise ContextGatheringError('weekly_discussions', str(e)) from e
    themes = extract_themes(texts)

    stuck = find_stuck_discussions()
    prompt = generators.generate_discussion_prompt(context, themes, stuck)

    row = DashboardContent.objects.create(
        content_type=DashboardContent.TYPE_DISCUSSION_PROMPT,
        content=validate_content(DashboardContent.TYPE_DISCUSSION_PROMPT, prompt.to_dict()),
        generation_context=serialize_for_json({
            'themes': themes,
            'stuck_discussion_ids': [d.id for d in stuck],
            'current_week': context.program_state.current_week,
            'active_members': context.active_users,
            'total_members': context.total_users,
            'trigger': TRIGGER_MANUAL if triggered_by is not None else TRIGGER_SCHEDULED,
            'triggered_by': _triggered_by_id(triggered_by),
            'generated_for': gatherer.now,
        }),
    )

    logger.info(f"Stored discussion prompt draft {row.id}")
    return row.id


def run_health_report_generation(triggered_by=None, now: Optional[datetime] = None) -> int:
    """
    Generate the facilitator's weekly cohort health report as a draft.

    The report goes through the same review workflow as member-facing
    content; approving it makes it the current report.

    Returns:
        The id of the new unapproved health_report row.
    """
    logger.info("Starting health report generation")

    gatherer = CohortHealthGatherer(now=now)
    health = gatherer.gather_health()
    report_html = generators.generate_health_report(health)

    metrics = health.to_dict()
    content = HealthReportContent(
        week=health.program_state.current_week,
        module=health.program_state.current_module,
        report_html=report_html,
        metrics=metrics,
    )

    row = DashboardContent.objects.create(
        content_type=DashboardContent.TYPE_HEALTH_REPORT,
        content=validate_content(DashboardContent.TYPE_HEALTH_REPORT, content.to_dict()),
        generation_context=serialize_for_json({
            'current_week': health.program_state.current_week,
            'active_members': health.active_this_week,
            'total_members': health.total_members,
            'flag_counts': {
                'red': len(health.red_flags),
                'yellow': len(health.yellow_flags),
                'green': len(health.green_flags),
            },
            'themes': health.emerging_themes,
            'stuck_discussion_ids': [d.id for d in health.stuck_discussions],
            'trigger': TRIGGER_MANUAL if triggered_by is not None else TRIGGER_SCHEDULED,
            'triggered_by': _triggered_by_id(triggered_by),
            'generated_for': gatherer.now,
        }),
    )

    logger.info(f"Stored health report draft {row.id} for week {health.program_state.current_week}")
    return row.id


def get_active_dashboard() -> Optional[DashboardContent]:
    """The dashboard members currently see, or None before the first approval."""
    return DashboardContent.get_active(DashboardContent.TYPE_FULL_DASHBOARD)


def personalize_dashboard(content: dict, user) -> dict:
    """
    One member's view of the shared dashboard.

    Fills the first-name placeholder and keeps only that member's actions.
    """
    hero_message = content.get('hero_message', '')
    return {
        'hero_message': hero_message.replace(FIRST_NAME_PLACEHOLDER, user.first_name_or_display),
        'activity_feed': content.get('activity_feed', []),
        'practice_actions': content.get('practice_actions', {}).get(str(user.id), []),
        'program_state': content.get('program_state'),
        'upcoming_events': content.get('upcoming_events', []),
        'community_stats': content.get('community_stats', {}),
    }
