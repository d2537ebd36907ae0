"""
Tests for the Django admin change forms.

Approved content and resolved flags are locked; draft edits go through the
same validation as the review endpoints.
"""
import json

import pytest
from django.contrib.auth import get_user_model
from django.test import Client
from django.urls import reverse

from cohort.models import DashboardContent, EngagementFlag
from cohort.review import approve_content

User = get_user_model()


def dashboard_body(hero='{first_name}. What is the conversation you keep postponing?'):
    return {
        'hero_message': hero,
        'activity_feed': [],
        'practice_actions': {},
        'program_state': {'current_week': 2, 'current_module': 'Foundations', 'module_id': None},
        'upcoming_events': [],
        'community_stats': {'engagement_level': 'low'},
    }


@pytest.fixture
def staff_client(db):
    staff = User.objects.create_superuser(
        username='staff', email='staff@example.com', password='testpass123'
    )
    client = Client()
    client.force_login(staff)
    return client


@pytest.fixture
def draft(db):
    return DashboardContent.objects.create(
        content_type=DashboardContent.TYPE_FULL_DASHBOARD,
        content=dashboard_body(),
    )


def change_url(obj):
    return reverse(f'admin:cohort_{obj._meta.model_name}_change', args=[obj.pk])


@pytest.mark.django_db
class TestDashboardContentAdmin:

    def test_active_content_is_locked(self, staff_client, admin_user, draft):
        approve_content(draft.id, admin_user)

        response = staff_client.post(change_url(draft), {
            'content': json.dumps({'anything': 1}),
            'content_type': DashboardContent.TYPE_DISCUSSION_PROMPT,
        })

        assert response.status_code == 302
        draft.refresh_from_db()
        assert draft.state == 'active'
        assert draft.content_type == DashboardContent.TYPE_FULL_DASHBOARD
        assert draft.content['hero_message'].startswith('{first_name}.')
        assert 'anything' not in draft.content

    def test_change_page_renders_for_active_content(self, staff_client, admin_user, draft):
        approve_content(draft.id, admin_user)
        assert staff_client.get(change_url(draft)).status_code == 200

    def test_draft_edit_is_validated(self, staff_client, draft):
        response = staff_client.post(change_url(draft), {'content': json.dumps({'anything': 1})})

        assert response.status_code == 200
        assert response.context['adminform'].form.errors['content']
        draft.refresh_from_db()
        assert 'anything' not in draft.content

    def test_valid_draft_edit_is_saved(self, staff_client, draft):
        body = dashboard_body(hero='{first_name}. Edited in the admin.')

        response = staff_client.post(change_url(draft), {'content': json.dumps(body)})

        assert response.status_code == 302
        draft.refresh_from_db()
        assert draft.content['hero_message'] == '{first_name}. Edited in the admin.'
        assert draft.approved is False


@pytest.mark.django_db
class TestEngagementFlagAdmin:

    def test_resolved_flag_is_locked(self, staff_client, participant, admin_user):
        flag = EngagementFlag.objects.create(user=participant, flag_type='red', reason='Went silent')
        flag.resolve(admin_user, 'Called them')

        response = staff_client.post(change_url(flag), {'resolved_notes': 'rewritten'})

        assert response.status_code == 302
        flag.refresh_from_db()
        assert flag.resolved is True
        assert flag.resolved_notes == 'Called them'

    def test_open_flag_notes_are_editable(self, staff_client, participant):
        flag = EngagementFlag.objects.create(user=participant, flag_type='yellow', reason='Declining')

        response = staff_client.post(change_url(flag), {'resolved_notes': 'Watching this week'})

        assert response.status_code == 302
        flag.refresh_from_db()
        assert flag.resolved_notes == 'Watching this week'
        assert flag.resolved is False
