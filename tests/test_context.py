"""
Tests for community context gathering.
"""
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.utils import timezone

from cohort.context import CommunityContextGatherer, find_stuck_discussions
from cohort.exceptions import ContextGatheringError
from cohort.models import Event, ProgramSetting


@pytest.mark.django_db
class TestProgramState:

    def test_defaults_when_unset(self):
        context = CommunityContextGatherer().gather()
        assert context.program_state.current_week == 1
        assert context.program_state.current_module == 'Foundations'
        assert context.program_state.module_id is None

    def test_reads_settings(self):
        ProgramSetting.objects.create(setting_key='current_week', setting_value={'week': 3})
        ProgramSetting.objects.create(
            setting_key='current_module',
            setting_value={'title': 'The Obstacle Is The Way', 'module_id': 'mod-3'},
        )
        state = CommunityContextGatherer().gather().program_state
        assert state.current_week == 3
        assert state.current_module == 'The Obstacle Is The Way'
        assert state.module_id == 'mod-3'

    def test_malformed_week_fails_the_read(self):
        ProgramSetting.objects.create(setting_key='current_week', setting_value={'week': 'three'})
        with pytest.raises(ContextGatheringError) as exc_info:
            CommunityContextGatherer().gather()
        assert exc_info.value.step == 'gather_context:program_settings'


@pytest.mark.django_db
class TestDiscussionsAndEvents:

    def test_recent_discussions_only(self, participant, make_thread):
        recent = make_thread(participant, 'Delegation', hours_ago=2, replies=2)
        make_thread(participant, 'Old thread', hours_ago=72)

        discussions = CommunityContextGatherer().gather().discussions

        assert [d.id for d in discussions] == [recent.id]
        assert discussions[0].response_count == 2
        assert discussions[0].author_name == 'Sarah Lane'

    def test_discussions_newest_first_and_capped(self, participant, make_thread):
        for hours in range(1, 25):
            make_thread(participant, f'Thread {hours}', hours_ago=hours)

        discussions = CommunityContextGatherer().gather().discussions

        assert len(discussions) == 20
        assert discussions[0].title == 'Thread 1'

    def test_next_three_events(self, db):
        now = timezone.now()
        Event.objects.create(title='Past', start_time=now - timedelta(days=1))
        for days in (4, 1, 2, 3):
            Event.objects.create(title=f'In {days} days', start_time=now + timedelta(days=days))

        context = CommunityContextGatherer().gather()

        assert [e.title for e in context.upcoming_events] == ['In 1 days', 'In 2 days', 'In 3 days']
        assert context.next_event_title == 'In 1 days'


@pytest.mark.django_db
class TestMemberCounts:

    def test_counts_active_participants(self, make_member, make_snapshot, admin_user):
        active = make_member()
        make_member()
        make_snapshot(active, days_ago=2, logins=1)
        make_snapshot(active, days_ago=3, logins=2)
        # Staff activity is not counted
        make_snapshot(admin_user, days_ago=1, logins=1)

        context = CommunityContextGatherer().gather()

        assert context.active_users == 1
        assert context.total_users == 2

    def test_failed_read_raises_without_partial_context(self):
        with patch.object(
            CommunityContextGatherer, 'read_upcoming_events', side_effect=DatabaseError('boom')
        ):
            with pytest.raises(ContextGatheringError) as exc_info:
                CommunityContextGatherer().gather()
        assert exc_info.value.read == 'events'
        assert 'boom' in str(exc_info.value)


@pytest.mark.django_db
class TestStuckDiscussions:

    def test_viewed_but_unanswered(self, participant, make_thread):
        stuck = make_thread(participant, 'Stuck', hours_ago=100, views=40, replies=1)
        make_thread(participant, 'Busy', hours_ago=100, views=50, replies=5)
        make_thread(participant, 'Unread', hours_ago=100, views=2, replies=0)

        result = find_stuck_discussions()

        assert [d.id for d in result] == [stuck.id]
        assert result[0].response_count == 1
