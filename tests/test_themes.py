"""
Tests for discussion theme extraction and engagement banding.
"""
from types import SimpleNamespace

import pytest

from cohort.themes import (
    FALLBACK_THEME,
    determine_engagement_level,
    extract_themes,
    extract_themes_from_discussions,
    strip_html,
)


class TestExtractThemes:

    def test_ranks_by_occurrence_count(self):
        texts = [
            'Delegation is hard. I struggle with delegation every week.',
            'Trust takes time. Delegation requires trust. Feedback helps.',
        ]
        assert extract_themes(texts) == ['delegation', 'trust', 'feedback']

    def test_returns_at_most_three_themes(self):
        texts = ['trust fear conflict boundaries burnout feedback']
        assert len(extract_themes(texts)) == 3

    def test_ties_keep_vocabulary_order(self):
        # Each term appears once; vocabulary order is delegation, trust, ..., burnout
        texts = ['burnout and trust and delegation']
        assert extract_themes(texts) == ['delegation', 'trust', 'burnout']

    def test_case_insensitive(self):
        assert extract_themes(['IMPOSTOR SYNDROME again']) == ['impostor syndrome']

    def test_multi_word_terms_tolerate_whitespace(self):
        texts = ['another difficult\n   conversations week']
        assert extract_themes(texts) == ['difficult conversations']

    def test_no_match_returns_fallback(self):
        assert extract_themes(['We talked about lunch.']) == [FALLBACK_THEME]

    def test_empty_input_returns_fallback(self):
        assert extract_themes([]) == [FALLBACK_THEME]

    def test_deterministic(self):
        texts = ['control uncertainty failure accountability control']
        assert extract_themes(texts) == extract_themes(list(texts))


class TestExtractThemesFromDiscussions:

    def test_uses_title_and_stripped_body(self):
        discussions = [
            SimpleNamespace(title='On vulnerability', content='<p>Being <b>vulnerability</b>-first</p>'),
            SimpleNamespace(title='Presence', content='<div>presence in meetings</div>'),
        ]
        assert extract_themes_from_discussions(discussions) == ['vulnerability', 'presence']

    def test_strip_html_collapses_whitespace(self):
        assert strip_html('<p>Hello</p>\n<p>world</p>') == 'Hello world'
        assert strip_html(None) == ''


class TestEngagementLevel:

    @pytest.mark.parametrize('active,total,expected', [
        (7, 10, 'high'),
        (10, 10, 'high'),
        (4, 10, 'medium'),
        (69, 100, 'medium'),
        (3, 10, 'low'),
        (0, 10, 'low'),
        (0, 0, 'low'),
        (5, 0, 'low'),
    ])
    def test_bands(self, active, total, expected):
        assert determine_engagement_level(active, total) == expected
