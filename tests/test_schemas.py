"""
Tests for content payload validation.
"""
from datetime import datetime

import pytest

from cohort.exceptions import ContentValidationError
from cohort.schemas import (
    ActivityFeedItem,
    CohortHealthContext,
    MemberWeeklyMetrics,
    PracticeCategory,
    ProgramState,
    parse_practice_actions,
    serialize_for_json,
    validate_content,
)


class TestPracticeActions:

    def test_ranked_and_truncated(self):
        items = [
            {'action': f'Action {p}', 'why': 'w', 'priority': p, 'category': 'engage'}
            for p in (3, 1, 5, 2, 4)
        ]
        actions = parse_practice_actions(items)
        # Only the first four are kept, then ranked
        assert [a.priority for a in actions] == [1, 2, 3, 5]
        assert actions[0].category is PracticeCategory.ENGAGE

    def test_empty_list_rejected(self):
        with pytest.raises(ContentValidationError):
            parse_practice_actions([])

    @pytest.mark.parametrize('bad', [
        {'action': 'a', 'why': 'w', 'priority': 0, 'category': 'read'},
        {'action': 'a', 'why': 'w', 'priority': True, 'category': 'read'},
        {'action': 'a', 'why': 'w', 'priority': '1', 'category': 'read'},
        {'action': '', 'why': 'w', 'priority': 1, 'category': 'read'},
        {'action': 'a', 'why': 'w', 'priority': 1, 'category': 'dance'},
        {'why': 'w', 'priority': 1, 'category': 'read'},
    ])
    def test_invalid_action(self, bad):
        with pytest.raises(ContentValidationError):
            parse_practice_actions([bad])


class TestActivityFeedItem:

    def test_accepts_numeric_string_id(self):
        item = ActivityFeedItem.from_dict({'author': 'A', 'preview': 'p', 'discussion_id': '12'})
        assert item.discussion_id == 12
        assert item.posted_relative == ''

    def test_rejects_non_numeric_id(self):
        with pytest.raises(ContentValidationError):
            ActivityFeedItem.from_dict({'author': 'A', 'preview': 'p', 'discussion_id': 'abc'})


class TestValidateContent:

    def test_discussion_prompt(self):
        body = {'title': ' T ', 'prompt': 'P', 'why': 'W'}
        assert validate_content('discussion_prompt', body) == {'title': 'T', 'prompt': 'P', 'why': 'W'}

    def test_schemaless_types_need_an_object(self):
        assert validate_content('hero_message', {'text': 'x'}) == {'text': 'x'}
        with pytest.raises(ContentValidationError):
            validate_content('hero_message', 'just text')

    def test_health_report(self):
        body = {'week': 3, 'module': 'Trust', 'report_html': '<p>Ok</p>'}
        assert validate_content('health_report', body)['metrics'] == {}
        with pytest.raises(ContentValidationError):
            validate_content('health_report', {**body, 'week': 0})
        with pytest.raises(ContentValidationError):
            validate_content('health_report', {**body, 'report_html': '  '})

    def test_dashboard_engagement_level(self):
        body = {
            'hero_message': 'Hi',
            'activity_feed': [],
            'practice_actions': {},
            'community_stats': {'engagement_level': 'extreme'},
        }
        with pytest.raises(ContentValidationError):
            validate_content('full_dashboard', body)


class TestMemberWeeklyMetrics:

    @pytest.mark.parametrize('values,pattern', [
        ({'days_active': 0}, 'Inactive - needs re-engagement'),
        ({'days_active': 5}, 'Lurker - consuming but not contributing'),
        ({'days_active': 3, 'modules_completed': 4}, 'Module rusher - consuming content but not engaging with community'),
        ({'days_active': 3, 'posts': 2}, 'One-way contributor - sharing but not engaging with others'),
        ({'days_active': 3, 'posts': 3, 'responses': 3}, 'Highly engaged - balanced contributor'),
        ({'days_active': 1, 'posts': 1, 'responses': 1}, 'Sporadic - inconsistent engagement'),
        ({'days_active': 3, 'posts': 1, 'responses': 1}, 'Moderate engagement - room to go deeper'),
    ])
    def test_pattern(self, values, pattern):
        assert MemberWeeklyMetrics(user_id=1, user_name='Sam', **values).pattern == pattern

    def test_to_dict_serializes_timestamps(self):
        metrics = MemberWeeklyMetrics(user_id=1, user_name='Sam', last_partner_interaction=datetime(2025, 3, 1, 9, 30))
        assert metrics.to_dict()['last_partner_interaction'] == '2025-03-01T09:30:00'


def test_serialize_for_json_nested():
    value = {'a': [datetime(2025, 1, 2, 3, 4, 5)], 'b': (1, 2)}
    assert serialize_for_json(value) == {'a': ['2025-01-02T03:04:05'], 'b': [1, 2]}


class TestCohortHealthContext:

    @pytest.mark.parametrize('previous,current,change', [(0, 5, 0), (4, 5, 25), (10, 4, -60)])
    def test_engagement_change(self, previous, current, change):
        health = CohortHealthContext(
            program_state=ProgramState(current_week=2, current_module='Trust'),
            total_members=10,
            active_this_week=current,
            active_previous_week=previous,
        )
        assert health.engagement_change == change
