"""
Pytest fixtures for the cohort pipeline tests.

Claude is never called for real: ``fake_claude`` patches the client factory
and answers each generator with canned JSON that can be overridden per test.
"""
import json
import re
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from django.contrib.auth import get_user_model
from django.test import Client, RequestFactory
from django.utils import timezone

from cohort import prompts

User = get_user_model()

CRON_SECRET = 'cron-test-secret'


# Disable SSL redirect and other production security settings for tests
@pytest.fixture(autouse=True)
def disable_ssl_redirect(settings):
    """Disable SSL redirect for all tests."""
    settings.SECURE_SSL_REDIRECT = False
    settings.SECURE_PROXY_SSL_HEADER = None
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False


@pytest.fixture(autouse=True)
def pipeline_settings(settings):
    """Deterministic pipeline configuration."""
    settings.ANTHROPIC_API_KEY = 'test-key'
    settings.CRON_SECRET = CRON_SECRET
    settings.ENGAGEMENT_THRESHOLDS = {}
    settings.PRACTICE_ACTIONS_BATCH_SIZE = 10
    settings.COHORT_DEFAULT_MODULE = 'Foundations'
    settings.COHORT_DISCUSSION_WINDOW_HOURS = 48
    return settings


@pytest.fixture
def request_factory():
    """Django RequestFactory for creating test requests."""
    return RequestFactory()


@pytest.fixture
def today():
    return timezone.localdate()


# =============================================================================
# Users
# =============================================================================

@pytest.fixture
def make_member(db):
    """Factory for active cohort participants."""
    counter = {'n': 0}

    def _make(first_name='Member', last_name='', role=User.ROLE_PARTICIPANT, **extra):
        counter['n'] += 1
        username = extra.pop('username', f'member{counter["n"]}')
        return User.objects.create_user(
            username=username,
            email=f'{username}@example.com',
            password='testpass123',
            first_name=first_name,
            last_name=last_name,
            role=role,
            **extra
        )

    return _make


@pytest.fixture
def admin_user(db):
    """A program admin who reviews content and resolves flags."""
    return User.objects.create_user(
        username='program_admin',
        email='admin@example.com',
        password='testpass123',
        first_name='Avery',
        role=User.ROLE_ADMIN,
    )


@pytest.fixture
def participant(make_member):
    return make_member(first_name='Sarah', last_name='Lane', username='sarah')


@pytest.fixture
def admin_client(admin_user):
    client = Client()
    client.force_login(admin_user)
    return client


@pytest.fixture
def participant_client(participant):
    client = Client()
    client.force_login(participant)
    return client


@pytest.fixture
def cron_headers():
    return {'HTTP_AUTHORIZATION': f'Bearer {CRON_SECRET}'}


# =============================================================================
# Activity data
# =============================================================================

@pytest.fixture
def make_snapshot(db, today):
    """Create a UserActivitySnapshot ``days_ago`` days before today."""
    from cohort.models import UserActivitySnapshot

    def _make(user, days_ago, logins=0, posts=0, responses=0, modules=0,
              last_login=None, last_partner_interaction=None):
        return UserActivitySnapshot.objects.create(
            user=user,
            snapshot_date=today - timedelta(days=days_ago),
            logins_count=logins,
            posts_count=posts,
            responses_count=responses,
            modules_completed=modules,
            last_login=last_login,
            last_partner_interaction=last_partner_interaction,
        )

    return _make


@pytest.fixture
def make_thread(db):
    from cohort.models import DiscussionPost, DiscussionThread

    def _make(author, title, body='', hours_ago=1, replies=0, views=0):
        thread = DiscussionThread.objects.create(
            title=title,
            content_html=body,
            created_by=author,
            views_count=views,
            created_at=timezone.now() - timedelta(hours=hours_ago),
        )
        for _ in range(replies):
            DiscussionPost.objects.create(thread=thread, author=author, content='Reply')
        return thread

    return _make


# =============================================================================
# Claude
# =============================================================================

def _claude_response(text):
    return SimpleNamespace(content=[SimpleNamespace(type='text', text=text)])


def default_feed_reply(prompt):
    ids = [int(i) for i in re.findall(r'"id": (\d+)', prompt)]
    return json.dumps([
        {
            'author': 'Cohort Member',
            'preview': 'I keep taking work back instead of letting my team own it...',
            'discussion_id': discussion_id,
            'posted_relative': '2 hours ago',
        }
        for discussion_id in ids[:4]
    ])


def default_actions_reply(prompt):
    user_ids = re.findall(r'user_id=(\d+)', prompt)
    return json.dumps({
        user_id: [
            {'action': 'Reflect on one decision you avoided', 'why': 'Avoidance shows the edge',
             'priority': 2, 'category': 'reflect'},
            {'action': 'Call your partner before Friday', 'why': 'You have not connected',
             'priority': 1, 'category': 'connect'},
        ]
        for user_id in user_ids
    })


DEFAULT_REPLIES = {
    'hero_message': lambda prompt: '{first_name}. Week 3 asks what you keep delegating back to yourself.',
    'activity_feed': default_feed_reply,
    'practice_actions': default_actions_reply,
    'discussion_prompt': lambda prompt: json.dumps({
        'title': 'The Conversation You Keep Postponing',
        'prompt': 'Name the conversation. What makes it hard?',
        'why': 'Week 3 is when avoidance patterns show up.',
    }),
    'health_report': lambda prompt: (
        '<h2>Overall Health</h2><p>Most of the cohort showed up this week.</p>'
        '<h2>Recommended Actions</h2><ul><li>Call the members who went quiet.</li></ul>'
    ),
}

SYSTEM_TO_STEP = {
    prompts.HERO_MESSAGE_SYSTEM_PROMPT: 'hero_message',
    prompts.ACTIVITY_FEED_SYSTEM_PROMPT: 'activity_feed',
    prompts.PRACTICE_ACTIONS_SYSTEM_PROMPT: 'practice_actions',
    prompts.DISCUSSION_PROMPT_SYSTEM_PROMPT: 'discussion_prompt',
    prompts.HEALTH_REPORT_SYSTEM_PROMPT: 'health_report',
}


class FakeClaude:
    """
    Stand-in for anthropic.Anthropic routing each request by system prompt.

    ``replies[step]`` may be a string, a callable taking the prompt, or an
    exception instance to raise.
    """

    def __init__(self):
        self.replies = dict(DEFAULT_REPLIES)
        self.calls = []
        self.client = MagicMock()
        self.client.messages.create.side_effect = self._create

    def _create(self, model, max_tokens, system, messages):
        step = SYSTEM_TO_STEP[system]
        prompt = messages[0]['content']
        self.calls.append({'step': step, 'prompt': prompt, 'max_tokens': max_tokens, 'model': model})

        reply = self.replies[step]
        if isinstance(reply, Exception):
            raise reply
        text = reply(prompt) if callable(reply) else reply
        return _claude_response(text)

    def steps(self):
        return [call['step'] for call in self.calls]


@pytest.fixture
def fake_claude():
    fake = FakeClaude()
    with patch('cohort.ai.get_anthropic_client', return_value=fake.client):
        yield fake
