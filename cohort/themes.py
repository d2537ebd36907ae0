"""
Discussion theme extraction and community engagement banding.

Themes feed the hero message and discussion prompt generators, which always
need at least one theme to talk about.
"""
import re

# Declaration order is the tie-break order
LEADERSHIP_THEMES = [
    'delegation',
    'trust',
    'difficult conversations',
    'feedback',
    'impostor syndrome',
    'conflict',
    'boundaries',
    'vulnerability',
    'decision-making',
    'fear',
    'authenticity',
    'presence',
    'perfectionism',
    'control',
    'uncertainty',
    'failure',
    'accountability',
    'team dynamics',
    'burnout',
    'work-life balance',
]

FALLBACK_THEME = 'personal leadership challenges'
MAX_THEMES = 3

HIGH_ENGAGEMENT_RATIO = 0.70
MEDIUM_ENGAGEMENT_RATIO = 0.40

_HTML_TAG_RE = re.compile(r'<[^>]*>')


def _theme_pattern(theme: str):
    """A term with any run of whitespace allowed between its words."""
    words = [re.escape(word) for word in theme.split()]
    return re.compile(r'\s+'.join(words), re.IGNORECASE)


_THEME_PATTERNS = [(theme, _theme_pattern(theme)) for theme in LEADERSHIP_THEMES]


def strip_html(html: str) -> str:
    """Strip HTML tags and collapse whitespace."""
    return re.sub(r'\s+', ' ', _HTML_TAG_RE.sub(' ', html or '')).strip()


def extract_themes(texts: list) -> list:
    """
    Find the leadership themes discussed most often.

    Args:
        texts: Free-form discussion texts.

    Returns:
        Up to three themes ranked by occurrence count, or the fallback theme
        when no vocabulary term appears at all.
    """
    all_text = ' '.join(texts).lower()

    scored = []
    for index, (theme, pattern) in enumerate(_THEME_PATTERNS):
        count = len(pattern.findall(all_text))
        if count:
            scored.append((count, index, theme))

    scored.sort(key=lambda item: (-item[0], item[1]))
    themes = [theme for _, _, theme in scored[:MAX_THEMES]]

    return themes or [FALLBACK_THEME]


def extract_themes_from_discussions(discussions) -> list:
    """Extract themes from discussion title and body text."""
    texts = [
        f"{discussion.title} {strip_html(discussion.content)}"
        for discussion in discussions
    ]
    return extract_themes(texts)


def determine_engagement_level(active_members: int, total_members: int) -> str:
    """
    Band the share of members active this week.

    Returns 'high' at 70% or more, 'medium' at 40% or more, otherwise 'low'.
    An empty cohort is 'low'.
    """
    if total_members <= 0:
        return 'low'

    ratio = active_members / total_members
    if ratio >= HIGH_ENGAGEMENT_RATIO:
        return 'high'
    if ratio >= MEDIUM_ENGAGEMENT_RATIO:
        return 'medium'
    return 'low'
