"""
Weekly cohort health figures.

The facilitator's health report is built from data the rest of the pipeline
already produces: activity snapshots, engagement flags, discussion threads
and the theme extractor. A failed read aborts the run like any other context
read.
"""
import logging
from datetime import timedelta

from django.contrib.auth import get_user_model

from .context import CommunityContextGatherer, find_stuck_discussions
from .engagement import WINDOW_DAYS, EngagementThresholds, build_engagement_data, load_snapshot_window
from .models import DiscussionPost, DiscussionThread, EngagementFlag
from .schemas import CohortHealthContext, ContributorCount, FlagNote
from .themes import extract_themes

logger = logging.getLogger(__name__)

MAX_TOP_CONTRIBUTORS = 5
MAX_THEME_THREADS = 10

# Looser than the dashboard's stuck-thread defaults
STUCK_MIN_VIEWS = 5
STUCK_MAX_RESPONSES = 2


class CohortHealthGatherer(CommunityContextGatherer):
    """
    Reads the week-over-week figures behind the health report.

    Usage:
        health = CohortHealthGatherer().gather_health()
    """

    def __init__(self, now=None, thresholds=None):
        super().__init__(now=now)
        self.thresholds = thresholds or EngagementThresholds.from_settings()
        self.week_ago = self.now - timedelta(days=7)

    def gather_health(self) -> CohortHealthContext:
        program_state = self._read('program_settings', self.read_program_state)
        activity = self._read('member_activity', self.read_member_activity)
        new_discussions, total_responses = self._read('discussion_counts', self.read_discussion_counts)
        flags = self._read('engagement_flags', self.read_recent_flags)
        texts = self._read(
            'weekly_discussions', lambda: self.read_weekly_discussion_texts(limit=MAX_THEME_THREADS)
        )
        stuck = find_stuck_discussions(min_views=STUCK_MIN_VIEWS, max_responses=STUCK_MAX_RESPONSES)

        contributors = sorted(
            (data for data in activity if data.posts_past_week > 0),
            key=lambda data: (-data.posts_past_week, data.user_id),
        )[:MAX_TOP_CONTRIBUTORS]

        health = CohortHealthContext(
            program_state=program_state,
            total_members=len(activity),
            active_this_week=sum(1 for data in activity if data.logins_past_week > 0),
            active_previous_week=sum(1 for data in activity if data.logins_previous_week > 0),
            new_discussions=new_discussions,
            total_responses=total_responses,
            lurkers=sum(1 for data in activity if self.is_lurker(data)),
            top_contributors=[
                ContributorCount(user_id=data.user_id, name=data.user_name, posts=data.posts_past_week)
                for data in contributors
            ],
            red_flags=flags[EngagementFlag.FLAG_RED],
            yellow_flags=flags[EngagementFlag.FLAG_YELLOW],
            green_flags=flags[EngagementFlag.FLAG_GREEN],
            emerging_themes=extract_themes(texts),
            stuck_discussions=stuck,
        )

        logger.info(
            f"Gathered cohort health: {health.active_this_week}/{health.total_members} active "
            f"(previous week {health.active_previous_week}), "
            f"{len(health.red_flags)} red, {len(health.yellow_flags)} yellow, "
            f"{len(health.green_flags)} green flags"
        )
        return health

    def is_lurker(self, data) -> bool:
        """Logging in regularly without posting or responding."""
        return (
            data.logins_past_week >= self.thresholds.lurker_min_logins
            and data.posts_past_week == 0
            and data.responses_past_week == 0
        )

    def read_member_activity(self) -> list:
        """UserEngagementData for every active member over the last two weeks."""
        members = list(get_user_model().active_members())
        window = load_snapshot_window([m.id for m in members], self.today, days=WINDOW_DAYS)
        return [build_engagement_data(member, window.get(member.id, []), self.today) for member in members]

    def read_discussion_counts(self):
        """Return (threads started, replies posted) during the past week."""
        return (
            DiscussionThread.objects.filter(created_at__gte=self.week_ago).count(),
            DiscussionPost.objects.filter(created_at__gte=self.week_ago).count(),
        )

    def read_recent_flags(self) -> dict:
        """
        Flags raised during the past week, by type.

        Red and yellow flags that staff already resolved are left out; green
        flags are listed either way since they are there to be celebrated.
        """
        flags = {flag_type: [] for flag_type, _ in EngagementFlag.FLAG_TYPE_CHOICES}
        recent = (
            EngagementFlag.objects
            .filter(created_at__gte=self.week_ago)
            .select_related('user')
            .order_by('created_at', 'id')
        )
        for flag in recent:
            if flag.resolved and flag.flag_type != EngagementFlag.FLAG_GREEN:
                continue
            flags[flag.flag_type].append(
                FlagNote(user_id=flag.user_id, name=flag.user.full_name, reason=flag.reason)
            )
        return flags
