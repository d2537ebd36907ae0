"""
Member engagement classification.

Turns two weeks of daily activity snapshots into a single red/yellow/green
signal for staff:

- red: a material decline that needs a personal check-in
- yellow: a partial decline or stagnation worth monitoring
- green: an improvement or consistently strong engagement worth celebrating

Classification is a pure function of the aggregated weekly windows and the
configured thresholds. Members with no previous-week snapshots have no
baseline, so no decline rule can fire for them.
"""
import dataclasses
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from .models import EngagementFlag, UserActivitySnapshot
from .schemas import MemberWeeklyMetrics

logger = logging.getLogger(__name__)

WEEK_DAYS = 7
WINDOW_DAYS = 14


@dataclass(frozen=True)
class EngagementThresholds:
    """
    Tunable classification policy.

    Drop values are fractions of the previous week's figure (0.5 = halved).
    Override any field with the ENGAGEMENT_THRESHOLDS setting.
    """
    # red: went silent
    silent_min_baseline_logins: int = 3
    silent_min_baseline_posts: int = 2
    # red/yellow: login decline
    decline_min_baseline_logins: int = 4
    red_login_drop: float = 0.8
    yellow_login_drop: float = 0.5
    # red: sudden silence / yellow: posting stagnation
    high_activity_posts: int = 3
    yellow_post_drop: float = 0.6
    # red: time based
    inactive_days: int = 10
    partner_silence_days: int = 14
    # yellow: lurker
    lurker_min_logins: int = 4
    # green
    breakthrough_min_posts: int = 2
    breakthrough_min_logins: int = 3
    returning_min_logins: int = 3
    anchor_min_logins: int = 5
    anchor_min_posts: int = 2
    anchor_min_responses: int = 3

    @classmethod
    def from_settings(cls) -> 'EngagementThresholds':
        overrides = getattr(settings, 'ENGAGEMENT_THRESHOLDS', None) or {}
        try:
            return dataclasses.replace(cls(), **overrides)
        except TypeError as e:
            raise ImproperlyConfigured(f"Invalid ENGAGEMENT_THRESHOLDS: {e}") from e


@dataclass(frozen=True)
class UserEngagementData:
    """Two weeks of one member's activity, reduced to weekly aggregates."""
    user_id: int
    user_name: str
    as_of: date
    logins_past_week: int = 0
    logins_previous_week: int = 0
    posts_past_week: int = 0
    posts_previous_week: int = 0
    responses_past_week: int = 0
    last_login: Optional[datetime] = None
    last_partner_interaction: Optional[datetime] = None
    has_baseline: bool = False


@dataclass(frozen=True)
class ClassifiedFlag:
    """Classifier output, ready to be stored as an EngagementFlag."""
    flag_type: str
    rule: str
    reason: str
    recommended_action: str
    context: dict = field(default_factory=dict)


# =============================================================================
# Snapshot aggregation
# =============================================================================

def window_bounds(today: date):
    """Return (past_week_start, previous_week_start) for a run on ``today``."""
    return today - timedelta(days=WEEK_DAYS), today - timedelta(days=WINDOW_DAYS)


def load_snapshot_window(user_ids, today: date, days: int = WINDOW_DAYS) -> dict:
    """
    Load recent snapshots for many members in one query.

    Returns:
        Dict of user id -> snapshots ordered newest first.
    """
    start = today - timedelta(days=days)
    snapshots = UserActivitySnapshot.objects.filter(
        user_id__in=list(user_ids),
        snapshot_date__gte=start,
        snapshot_date__lte=today,
    ).order_by('user_id', '-snapshot_date')

    by_user = defaultdict(list)
    for snapshot in snapshots:
        by_user[snapshot.user_id].append(snapshot)
    return by_user


def build_engagement_data(user, snapshots, today: date) -> UserEngagementData:
    """
    Split a member's 14-day snapshots into the past and previous week.

    The past week is every snapshot dated on or after ``today - 7d``; the
    previous week is ``today - 14d`` up to (not including) ``today - 7d``.
    """
    past_start, previous_start = window_bounds(today)
    ordered = sorted(
        (s for s in snapshots if previous_start <= s.snapshot_date <= today),
        key=lambda s: s.snapshot_date,
        reverse=True,
    )
    past_week = [s for s in ordered if s.snapshot_date >= past_start]
    previous_week = [s for s in ordered if s.snapshot_date < past_start]
    latest = ordered[0] if ordered else None

    return UserEngagementData(
        user_id=user.id,
        user_name=user.full_name,
        as_of=today,
        logins_past_week=sum(1 for s in past_week if (s.logins_count or 0) > 0),
        logins_previous_week=sum(1 for s in previous_week if (s.logins_count or 0) > 0),
        posts_past_week=sum(s.posts_count or 0 for s in past_week),
        posts_previous_week=sum(s.posts_count or 0 for s in previous_week),
        responses_past_week=sum(s.responses_count or 0 for s in past_week),
        last_login=latest.last_login if latest else None,
        last_partner_interaction=latest.last_partner_interaction if latest else None,
        has_baseline=bool(previous_week),
    )


def build_weekly_metrics(user, snapshots, today: date) -> MemberWeeklyMetrics:
    """Past-week activity for one member, used to personalize practice actions."""
    past_start, _ = window_bounds(today)
    past_week = sorted(
        (s for s in snapshots if past_start <= s.snapshot_date <= today),
        key=lambda s: s.snapshot_date,
        reverse=True,
    )
    return MemberWeeklyMetrics(
        user_id=user.id,
        user_name=user.full_name,
        days_active=sum(1 for s in past_week if (s.logins_count or 0) > 0),
        posts=sum(s.posts_count or 0 for s in past_week),
        responses=sum(s.responses_count or 0 for s in past_week),
        modules_completed=max((s.modules_completed or 0 for s in past_week), default=0),
        last_partner_interaction=past_week[0].last_partner_interaction if past_week else None,
    )


def collect_weekly_metrics(members, today: Optional[date] = None) -> list:
    """Weekly metrics for every given member, from one snapshot query."""
    today = today or timezone.localdate()
    members = list(members)
    window = load_snapshot_window([m.id for m in members], today, days=WEEK_DAYS)
    return [build_weekly_metrics(member, window.get(member.id, []), today) for member in members]


# =============================================================================
# Classification
# =============================================================================

def _days_since(value: Optional[datetime], as_of: date) -> Optional[int]:
    """Whole days between a timestamp and the analysis date, None if unknown."""
    if value is None:
        return None
    day = timezone.localdate(value) if timezone.is_aware(value) else value.date()
    return (as_of - day).days


def _drop(before: int, after: int) -> float:
    """Fractional decline from ``before`` to ``after``; 0 when there is no baseline."""
    if before <= 0:
        return 0.0
    return max(before - after, 0) / before


class EngagementClassifier:
    """
    Rule-based classifier over a member's weekly aggregates.

    Rules run red, then yellow, then green; the first match is returned, so
    each member gets at most one flag per run.
    """

    def __init__(self, thresholds: Optional[EngagementThresholds] = None):
        self.thresholds = thresholds or EngagementThresholds.from_settings()

    def classify(self, data: UserEngagementData) -> Optional[ClassifiedFlag]:
        return (
            self._red_flag(data)
            or self._yellow_flag(data)
            or self._green_flag(data)
        )

    def _context(self, data: UserEngagementData, rule: str, **extra) -> dict:
        context = {
            'rule': rule,
            'as_of': data.as_of.isoformat(),
            'has_baseline': data.has_baseline,
            'logins_past_week': data.logins_past_week,
            'logins_previous_week': data.logins_previous_week,
            'posts_past_week': data.posts_past_week,
            'posts_previous_week': data.posts_previous_week,
            'responses_past_week': data.responses_past_week,
        }
        context.update(extra)
        return context

    def _flag(self, flag_type, data, rule, reason, action, **extra) -> ClassifiedFlag:
        return ClassifiedFlag(
            flag_type=flag_type,
            rule=rule,
            reason=reason,
            recommended_action=action,
            context=self._context(data, rule, **extra),
        )

    def _red_flag(self, data: UserEngagementData) -> Optional[ClassifiedFlag]:
        t = self.thresholds
        red = EngagementFlag.FLAG_RED

        if data.has_baseline:
            was_active = (
                data.logins_previous_week >= t.silent_min_baseline_logins
                or data.posts_previous_week >= t.silent_min_baseline_posts
            )
            if was_active and data.logins_past_week == 0 and data.posts_past_week == 0:
                return self._flag(
                    red, data, 'went_silent',
                    f"Went silent: login days {data.logins_previous_week} -> 0, "
                    f"posts {data.posts_previous_week} -> 0",
                    "Send a personal check-in. They may have dropped out or be facing challenges.",
                )

            login_drop = _drop(data.logins_previous_week, data.logins_past_week)
            if (data.logins_previous_week >= t.decline_min_baseline_logins
                    and login_drop >= t.red_login_drop):
                return self._flag(
                    red, data, 'sharp_decline',
                    f"Sharp drop in logins: {data.logins_previous_week} -> "
                    f"{data.logins_past_week} days ({round(login_drop * 100)}% down)",
                    "Reach out personally before they disengage completely.",
                    login_drop=round(login_drop, 2),
                )

            if (data.posts_previous_week >= t.high_activity_posts
                    and data.posts_past_week == 0
                    and data.logins_past_week > 0):
                return self._flag(
                    red, data, 'sudden_silence',
                    f"Sudden silence after high activity: posts "
                    f"{data.posts_previous_week} -> 0 while still logging in",
                    "Something changed. They still show up but stopped contributing; check in personally.",
                )

        days_since_login = _days_since(data.last_login, data.as_of)
        if days_since_login is not None and days_since_login >= t.inactive_days:
            return self._flag(
                red, data, 'inactive',
                f"No login for {days_since_login} days",
                "Send a personal check-in. They may have dropped out or be facing challenges.",
                days_since_login=days_since_login,
                last_login=data.last_login.isoformat(),
            )

        days_since_partner = _days_since(data.last_partner_interaction, data.as_of)
        if (days_since_partner is not None
                and days_since_partner >= t.partner_silence_days
                and data.logins_past_week > 0):
            return self._flag(
                red, data, 'partner_broken',
                f"No partner interaction for {days_since_partner} days",
                "The partnership may have stalled. Facilitate a reconnection or consider re-pairing.",
                days_since_partner_interaction=days_since_partner,
                last_partner_interaction=data.last_partner_interaction.isoformat(),
            )

        return None

    def _yellow_flag(self, data: UserEngagementData) -> Optional[ClassifiedFlag]:
        t = self.thresholds
        yellow = EngagementFlag.FLAG_YELLOW

        if data.has_baseline:
            login_drop = _drop(data.logins_previous_week, data.logins_past_week)
            if (data.logins_previous_week >= t.decline_min_baseline_logins
                    and data.logins_past_week > 0
                    and login_drop >= t.yellow_login_drop):
                return self._flag(
                    yellow, data, 'declining',
                    f"Declining engagement: login days {data.logins_previous_week} -> "
                    f"{data.logins_past_week}",
                    "Engagement is slipping. A gentle check-in now keeps it from becoming a red flag.",
                    login_drop=round(login_drop, 2),
                )

            post_drop = _drop(data.posts_previous_week, data.posts_past_week)
            if (data.posts_previous_week >= t.high_activity_posts
                    and data.posts_past_week > 0
                    and post_drop >= t.yellow_post_drop):
                return self._flag(
                    yellow, data, 'posting_stagnation',
                    f"Posting slowed: posts {data.posts_previous_week} -> {data.posts_past_week}",
                    "Invite them back into a live discussion that matches what they were posting about.",
                    post_drop=round(post_drop, 2),
                )

        if (data.logins_past_week >= t.lurker_min_logins
                and data.posts_past_week == 0
                and data.responses_past_week == 0):
            return self._flag(
                yellow, data, 'lurker',
                f"Lurking: {data.logins_past_week} login days with no posts or responses",
                "Invite them to share. They may need permission or encouragement to contribute.",
            )

        return None

    def _green_flag(self, data: UserEngagementData) -> Optional[ClassifiedFlag]:
        t = self.thresholds
        green = EngagementFlag.FLAG_GREEN

        if data.has_baseline:
            if (data.posts_previous_week == 0
                    and data.posts_past_week >= t.breakthrough_min_posts
                    and data.logins_previous_week >= t.breakthrough_min_logins):
                return self._flag(
                    green, data, 'breakthrough',
                    f"Breakthrough: posts 0 -> {data.posts_past_week} after a week of reading",
                    "Celebrate this breakthrough and acknowledge their contribution personally.",
                )

            if (data.logins_previous_week == 0
                    and data.logins_past_week >= t.returning_min_logins):
                return self._flag(
                    green, data, 'returning',
                    f"Returned after a quiet week: login days 0 -> {data.logins_past_week}",
                    "Welcome them back and point them to the conversations they missed.",
                )

        if (data.logins_past_week >= t.anchor_min_logins
                and data.posts_past_week >= t.anchor_min_posts
                and data.responses_past_week >= t.anchor_min_responses):
            return self._flag(
                green, data, 'community_anchor',
                f"Consistent high engagement: {data.logins_past_week} login days, "
                f"{data.posts_past_week} posts, {data.responses_past_week} responses",
                "Community anchor. Highlight their contributions or invite them to mentor others.",
            )

        return None


def classify(data: UserEngagementData,
             thresholds: Optional[EngagementThresholds] = None) -> Optional[ClassifiedFlag]:
    """Classify one member; None when nothing about their week stands out."""
    return EngagementClassifier(thresholds).classify(data)
