"""
Community context gathering.

Builds the CommunityContext snapshot that every generation run starts from.
A failed read aborts the run; callers never receive a partial context.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.db.models import Count
from django.utils import timezone

from .exceptions import ContextGatheringError
from .models import DiscussionThread, Event, ProgramSetting, UserActivitySnapshot
from .schemas import CommunityContext, DiscussionSummary, ProgramState, UpcomingEvent
from .themes import strip_html

logger = logging.getLogger(__name__)

MAX_DISCUSSIONS = 20
MAX_UPCOMING_EVENTS = 3

SETTING_CURRENT_WEEK = 'current_week'
SETTING_CURRENT_MODULE = 'current_module'

READ_ERRORS = (DatabaseError, KeyError, TypeError, ValueError)


class CommunityContextGatherer:
    """
    Reads program state, recent discussions, upcoming events and member counts.

    Usage:
        context = CommunityContextGatherer().gather()
    """

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or timezone.now()
        self.today = timezone.localdate(self.now)

    def gather(self) -> CommunityContext:
        program_state = self._read('program_settings', self.read_program_state)
        discussions = self._read('discussions', self.read_recent_discussions)
        events = self._read('events', self.read_upcoming_events)
        active_users, total_users = self._read('member_counts', self.read_member_counts)

        logger.info(
            f"Gathered community context: week {program_state.current_week}, "
            f"{len(discussions)} discussions, {len(events)} events, "
            f"{active_users}/{total_users} active members"
        )
        return CommunityContext(
            program_state=program_state,
            discussions=discussions,
            upcoming_events=events,
            active_users=active_users,
            total_users=total_users,
        )

    def _read(self, name: str, reader):
        try:
            return reader()
        except ContextGatheringError:
            raise
        except READ_ERRORS as e:
            logger.exception(f"Community context read '{name}' failed")
            raise ContextGatheringError(name, str(e)) from e

    def read_program_state(self) -> ProgramState:
        """Current week and module, with defaults when staff have not set them."""
        values = dict(
            ProgramSetting.objects.filter(
                setting_key__in=[SETTING_CURRENT_WEEK, SETTING_CURRENT_MODULE]
            ).values_list('setting_key', 'setting_value')
        )

        week = 1
        if SETTING_CURRENT_WEEK in values:
            raw_week = values[SETTING_CURRENT_WEEK]
            week = raw_week.get('week') if isinstance(raw_week, dict) else None
            if not isinstance(week, int) or isinstance(week, bool) or week < 1:
                raise ContextGatheringError(
                    'program_settings', f"current_week is malformed: {raw_week!r}"
                )

        title = settings.COHORT_DEFAULT_MODULE
        module_id = None
        if SETTING_CURRENT_MODULE in values:
            raw_module = values[SETTING_CURRENT_MODULE]
            if not isinstance(raw_module, dict) or not isinstance(raw_module.get('title'), str):
                raise ContextGatheringError(
                    'program_settings', f"current_module is malformed: {raw_module!r}"
                )
            title = raw_module['title']
            module_id = raw_module.get('module_id')

        return ProgramState(current_week=week, current_module=title, module_id=module_id)

    def read_recent_discussions(self) -> list:
        """Discussions from the configured window, newest first."""
        since = self.now - timedelta(hours=settings.COHORT_DISCUSSION_WINDOW_HOURS)
        threads = (
            DiscussionThread.objects
            .filter(created_at__gte=since)
            .select_related('created_by')
            .annotate(response_count=Count('posts'))
            .order_by('-created_at')[:MAX_DISCUSSIONS]
        )
        return [
            DiscussionSummary(
                id=thread.id,
                title=thread.title,
                content=thread.content_html,
                author_name=thread.created_by.full_name,
                created_at=thread.created_at,
                response_count=thread.response_count,
                views_count=thread.views_count,
            )
            for thread in threads
        ]

    def read_weekly_discussion_texts(self, limit: Optional[int] = None) -> list:
        """Title plus plain-text body of each thread from the past week, newest first."""
        week_ago = self.now - timedelta(days=7)
        rows = (
            DiscussionThread.objects
            .filter(created_at__gte=week_ago)
            .order_by('-created_at')
            .values_list('title', 'content_html')
        )
        if limit is not None:
            rows = rows[:limit]
        return [f"{title} {strip_html(body)}" for title, body in rows]

    def read_upcoming_events(self) -> list:
        events = Event.objects.filter(start_time__gte=self.now).order_by('start_time')[:MAX_UPCOMING_EVENTS]
        return [
            UpcomingEvent(
                id=event.id,
                title=event.title,
                start_time=event.start_time,
                location=event.location,
                description=event.description,
            )
            for event in events
        ]

    def read_member_counts(self):
        """Return (members who logged in during the past week, all active members)."""
        members = get_user_model().active_members()
        total = members.count()
        active = (
            UserActivitySnapshot.objects
            .filter(
                user__in=members,
                snapshot_date__gte=self.today - timedelta(days=7),
                logins_count__gt=0,
            )
            .values('user')
            .distinct()
            .count()
        )
        return active, total


def find_stuck_discussions(min_views: int = 10, max_responses: int = 3, limit: int = 5) -> list:
    """
    Discussions people read but few answer.

    Returns the most viewed threads with at least ``min_views`` views and fewer
    than ``max_responses`` replies, as DiscussionSummary objects.
    """
    try:
        threads = (
            DiscussionThread.objects
            .filter(views_count__gte=min_views)
            .select_related('created_by')
            .annotate(response_count=Count('posts'))
            .filter(response_count__lt=max_responses)
            .order_by('-views_count', '-created_at')[:limit]
        )
        return [
            DiscussionSummary(
                id=thread.id,
                title=thread.title,
                content=thread.content_html,
                author_name=thread.created_by.full_name,
                created_at=thread.created_at,
                response_count=thread.response_count,
                views_count=thread.views_count,
            )
            for thread in threads
        ]
    except DatabaseError as e:
        logger.exception("Stuck discussion lookup failed")
        raise ContextGatheringError('stuck_discussions', str(e)) from e
