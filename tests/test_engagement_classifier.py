"""
Tests for the rule-based engagement classifier.

The classifier is pure: these tests build UserEngagementData directly (or
from in-memory snapshots) and need no database.
"""
from datetime import timedelta
from types import SimpleNamespace

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from cohort.engagement import (
    EngagementThresholds,
    UserEngagementData,
    build_engagement_data,
    build_weekly_metrics,
    classify,
)

TODAY = timezone.localdate()


def engagement(**values):
    defaults = {
        'user_id': 1,
        'user_name': 'Sam Rivera',
        'as_of': TODAY,
        'has_baseline': True,
    }
    defaults.update(values)
    return UserEngagementData(**defaults)


def days_ago(days):
    return timezone.now() - timedelta(days=days)


def snapshot(days, logins=0, posts=0, responses=0, modules=0, last_login=None, last_partner=None):
    return SimpleNamespace(
        snapshot_date=TODAY - timedelta(days=days),
        logins_count=logins,
        posts_count=posts,
        responses_count=responses,
        modules_completed=modules,
        last_login=last_login,
        last_partner_interaction=last_partner,
    )


class TestRedFlags:

    def test_went_silent_after_active_week(self):
        result = classify(engagement(
            logins_previous_week=5, posts_previous_week=3,
            logins_past_week=0, posts_past_week=0,
        ))
        assert result.flag_type == 'red'
        assert result.rule == 'went_silent'
        assert result.context['logins_previous_week'] == 5
        assert result.context['logins_past_week'] == 0
        assert result.context['posts_previous_week'] == 3
        assert result.context['posts_past_week'] == 0
        assert result.context['rule'] == 'went_silent'
        assert '5' in result.reason and '3' in result.reason
        assert result.recommended_action

    def test_sharp_login_decline(self):
        result = classify(engagement(
            logins_previous_week=5, logins_past_week=1,
            posts_previous_week=1, posts_past_week=1,
        ))
        assert result.flag_type == 'red'
        assert result.rule == 'sharp_decline'
        assert result.context['login_drop'] == 0.8

    def test_sudden_silence_while_still_logging_in(self):
        result = classify(engagement(
            logins_previous_week=3, logins_past_week=3,
            posts_previous_week=4, posts_past_week=0,
        ))
        assert result.flag_type == 'red'
        assert result.rule == 'sudden_silence'

    def test_inactive_for_ten_days(self):
        result = classify(engagement(has_baseline=False, last_login=days_ago(12)))
        assert result.flag_type == 'red'
        assert result.rule == 'inactive'
        assert result.context['days_since_login'] == 12

    def test_partner_silence(self):
        result = classify(engagement(
            logins_previous_week=3, logins_past_week=3,
            posts_previous_week=1, posts_past_week=1,
            last_login=days_ago(1),
            last_partner_interaction=days_ago(20),
        ))
        assert result.flag_type == 'red'
        assert result.rule == 'partner_broken'

    def test_red_wins_over_lower_tiers(self):
        # Also a lurker-shaped week, but the decline is checked first
        result = classify(engagement(
            logins_previous_week=7, logins_past_week=1,
            posts_previous_week=0, posts_past_week=0,
        ))
        assert result.flag_type == 'red'


class TestNoBaseline:

    def test_missing_previous_week_is_not_a_decline(self):
        result = classify(engagement(
            has_baseline=False,
            logins_previous_week=0, posts_previous_week=0,
            logins_past_week=0, posts_past_week=0,
        ))
        assert result is None

    def test_new_member_with_light_activity_is_not_flagged(self):
        result = classify(engagement(
            has_baseline=False,
            logins_past_week=3, posts_past_week=0,
            last_login=days_ago(0),
        ))
        assert result is None

    def test_missing_timestamps_never_trigger_time_rules(self):
        result = classify(engagement(
            logins_previous_week=2, logins_past_week=2,
            posts_previous_week=1, posts_past_week=1,
            last_login=None, last_partner_interaction=None,
        ))
        assert result is None


class TestYellowFlags:

    def test_declining_trend(self):
        result = classify(engagement(
            logins_previous_week=4, logins_past_week=1,
            posts_previous_week=1, posts_past_week=1,
        ))
        assert result.flag_type == 'yellow'
        assert result.rule == 'declining'

    def test_posting_stagnation(self):
        result = classify(engagement(
            logins_previous_week=4, logins_past_week=4,
            posts_previous_week=5, posts_past_week=2,
        ))
        assert result.flag_type == 'yellow'
        assert result.rule == 'posting_stagnation'

    def test_lurker(self):
        result = classify(engagement(
            has_baseline=False,
            logins_past_week=5, posts_past_week=0, responses_past_week=0,
        ))
        assert result.flag_type == 'yellow'
        assert result.rule == 'lurker'


class TestGreenFlags:

    def test_breakthrough(self):
        result = classify(engagement(
            logins_previous_week=4, posts_previous_week=0,
            logins_past_week=4, posts_past_week=3,
        ))
        assert result.flag_type == 'green'
        assert result.rule == 'breakthrough'

    def test_returning_member(self):
        result = classify(engagement(
            logins_previous_week=0, posts_previous_week=0,
            logins_past_week=3, posts_past_week=1,
        ))
        assert result.flag_type == 'green'
        assert result.rule == 'returning'

    def test_consistent_anchor(self):
        result = classify(engagement(
            logins_previous_week=6, posts_previous_week=3,
            logins_past_week=6, posts_past_week=3, responses_past_week=4,
        ))
        assert result.flag_type == 'green'
        assert result.rule == 'community_anchor'

    def test_healthy_unremarkable_member(self):
        result = classify(engagement(
            logins_previous_week=3, posts_previous_week=1,
            logins_past_week=3, posts_past_week=1, responses_past_week=1,
        ))
        assert result is None


class TestThresholds:

    def test_classification_is_deterministic(self):
        data = engagement(logins_previous_week=5, posts_previous_week=3)
        assert classify(data) == classify(data)

    def test_settings_override(self, settings):
        data = engagement(has_baseline=False, last_login=days_ago(6))
        assert classify(data) is None

        settings.ENGAGEMENT_THRESHOLDS = {'inactive_days': 5}
        result = classify(data)
        assert result.rule == 'inactive'

    def test_explicit_thresholds(self):
        thresholds = EngagementThresholds(lurker_min_logins=2)
        data = engagement(has_baseline=False, logins_past_week=2)
        assert classify(data, thresholds).rule == 'lurker'

    def test_unknown_override_is_rejected(self, settings):
        settings.ENGAGEMENT_THRESHOLDS = {'not_a_threshold': 1}
        with pytest.raises(ImproperlyConfigured):
            EngagementThresholds.from_settings()


class TestBuildEngagementData:

    def test_splits_windows_at_seven_days(self):
        user = SimpleNamespace(id=7, full_name='Sam Rivera')
        snapshots = [
            snapshot(0, logins=1, posts=1),
            snapshot(7, logins=2, posts=2, responses=1),  # still the past week
            snapshot(8, logins=1, posts=4),
            snapshot(14, logins=1),
            snapshot(15, logins=1, posts=9),  # outside the window
        ]
        data = build_engagement_data(user, snapshots, TODAY)

        assert data.logins_past_week == 2
        assert data.posts_past_week == 3
        assert data.responses_past_week == 1
        assert data.logins_previous_week == 2
        assert data.posts_previous_week == 4
        assert data.has_baseline is True
        assert data.as_of == TODAY

    def test_login_days_not_login_totals(self):
        user = SimpleNamespace(id=7, full_name='Sam Rivera')
        data = build_engagement_data(user, [snapshot(1, logins=6), snapshot(2, logins=0)], TODAY)
        assert data.logins_past_week == 1

    def test_latest_snapshot_supplies_timestamps(self):
        user = SimpleNamespace(id=7, full_name='Sam Rivera')
        recent = days_ago(1)
        data = build_engagement_data(user, [
            snapshot(9, last_login=days_ago(9)),
            snapshot(1, last_login=recent, last_partner=None),
        ], TODAY)
        assert data.last_login == recent
        assert data.last_partner_interaction is None

    def test_no_previous_week_means_no_baseline(self):
        user = SimpleNamespace(id=7, full_name='Sam Rivera')
        data = build_engagement_data(user, [snapshot(2, logins=1)], TODAY)
        assert data.has_baseline is False

    def test_weekly_metrics(self):
        user = SimpleNamespace(id=7, full_name='Sam Rivera')
        partner = days_ago(2)
        metrics = build_weekly_metrics(user, [
            snapshot(1, logins=1, posts=0, responses=3, modules=2, last_partner=partner),
            snapshot(3, logins=1, posts=0, responses=1, modules=1),
            snapshot(10, logins=1, posts=5),
        ], TODAY)
        assert metrics.days_active == 2
        assert metrics.posts == 0
        assert metrics.responses == 4
        assert metrics.modules_completed == 2
        assert metrics.last_partner_interaction == partner
        assert metrics.pattern == 'Supporter - helping others but not sharing their own work'
