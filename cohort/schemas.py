"""
Typed shapes for the data that flows through the dashboard pipeline.

The database stores generated content and flag context as JSON. Everything
written there is built from (or validated against) these dataclasses first,
so the generators, the review gateway and the dashboard reader agree on one
contract.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from .exceptions import ContentValidationError

ENGAGEMENT_LEVELS = ('high', 'medium', 'low')

MAX_FEED_ITEMS = 4
MAX_PRACTICE_ACTIONS = 4


def serialize_for_json(obj: Any) -> Any:
    """
    Recursively convert datetime objects to ISO format strings for JSON serialization.

    Args:
        obj: Any object (dict, list, datetime, etc.)

    Returns:
        JSON-serializable version of the object
    """
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, dict):
        return {key: serialize_for_json(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [serialize_for_json(item) for item in obj]
    return obj


def _require(data: dict, key: str, kind, where: str):
    """Fetch a required key and check its type."""
    if not isinstance(data, dict):
        raise ContentValidationError(f"{where} must be an object")
    if key not in data:
        raise ContentValidationError(f"{where} is missing '{key}'")
    value = data[key]
    # bool is an int subclass; never accept it where a number is expected
    if kind is int and isinstance(value, bool):
        raise ContentValidationError(f"{where}.{key} must be an integer")
    if not isinstance(value, kind):
        raise ContentValidationError(f"{where}.{key} has the wrong type")
    return value


def _require_text(data: dict, key: str, where: str) -> str:
    value = _require(data, key, str, where).strip()
    if not value:
        raise ContentValidationError(f"{where}.{key} must not be empty")
    return value


# =============================================================================
# Community context
# =============================================================================

@dataclass(frozen=True)
class ProgramState:
    """Where the cohort is in the program."""
    current_week: int
    current_module: str
    module_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'current_week': self.current_week,
            'current_module': self.current_module,
            'module_id': self.module_id,
        }


@dataclass(frozen=True)
class DiscussionSummary:
    """A recent discussion thread as seen by the generators."""
    id: int
    title: str
    content: str
    author_name: str
    created_at: datetime
    response_count: int = 0
    views_count: int = 0


@dataclass(frozen=True)
class UpcomingEvent:
    """A scheduled event shown on the dashboard."""
    id: int
    title: str
    start_time: datetime
    location: str = ''
    description: str = ''

    def to_dict(self) -> dict:
        return serialize_for_json({
            'id': self.id,
            'title': self.title,
            'start_time': self.start_time,
            'location': self.location,
            'description': self.description,
        })


@dataclass(frozen=True)
class CommunityContext:
    """Snapshot of community state, rebuilt on every generation run."""
    program_state: ProgramState
    discussions: list
    upcoming_events: list
    active_users: int
    total_users: int

    @property
    def next_event_title(self) -> Optional[str]:
        return self.upcoming_events[0].title if self.upcoming_events else None


# =============================================================================
# Generated content
# =============================================================================

class PracticeCategory(Enum):
    """Kinds of practice action suggested to a member."""
    CONNECT = "connect"  # Partner/community engagement
    REFLECT = "reflect"  # Personal work and insight
    ENGAGE = "engage"  # Discussion participation
    PRACTICE = "practice"  # Apply concepts to real situations
    READ = "read"  # Assigned reading


@dataclass(frozen=True)
class PracticeAction:
    """One suggested action for a member's week."""
    action: str
    why: str
    priority: int
    category: PracticeCategory

    @classmethod
    def from_dict(cls, data: dict, where: str = 'practice action') -> 'PracticeAction':
        priority = _require(data, 'priority', int, where)
        if priority < 1:
            raise ContentValidationError(f"{where}.priority must be 1 or greater")
        raw_category = _require(data, 'category', str, where).strip().lower()
        try:
            category = PracticeCategory(raw_category)
        except ValueError:
            raise ContentValidationError(f"{where}.category '{raw_category}' is not a known category")
        return cls(
            action=_require_text(data, 'action', where),
            why=_require_text(data, 'why', where),
            priority=priority,
            category=category,
        )

    def to_dict(self) -> dict:
        return {
            'action': self.action,
            'why': self.why,
            'priority': self.priority,
            'category': self.category.value,
        }


def rank_practice_actions(actions: list) -> list:
    """Order actions by ascending priority, keeping the given order for ties."""
    return sorted(actions, key=lambda a: a.priority)


def parse_practice_actions(items, where: str = 'practice actions') -> list:
    """Validate a list of raw action dicts and return them ranked."""
    if not isinstance(items, list) or not items:
        raise ContentValidationError(f"{where} must be a non-empty list")
    actions = [
        PracticeAction.from_dict(item, where=f"{where}[{index}]")
        for index, item in enumerate(items[:MAX_PRACTICE_ACTIONS])
    ]
    return rank_practice_actions(actions)


@dataclass(frozen=True)
class ActivityFeedItem:
    """A curated pointer to a substantive recent discussion."""
    author: str
    preview: str
    discussion_id: int
    posted_relative: str = ''

    @classmethod
    def from_dict(cls, data: dict, where: str = 'activity feed item') -> 'ActivityFeedItem':
        discussion_id = data.get('discussion_id') if isinstance(data, dict) else None
        # Models sometimes echo ids back as strings
        if isinstance(discussion_id, str) and discussion_id.strip().isdigit():
            discussion_id = int(discussion_id.strip())
        if not isinstance(discussion_id, int) or isinstance(discussion_id, bool):
            raise ContentValidationError(f"{where}.discussion_id must be an integer")
        posted = data.get('posted_relative', '')
        return cls(
            author=_require_text(data, 'author', where),
            preview=_require_text(data, 'preview', where),
            discussion_id=discussion_id,
            posted_relative=posted if isinstance(posted, str) else '',
        )

    def to_dict(self) -> dict:
        return {
            'author': self.author,
            'preview': self.preview,
            'discussion_id': self.discussion_id,
            'posted_relative': self.posted_relative,
        }


@dataclass(frozen=True)
class DiscussionPromptContent:
    """A generated discussion starter."""
    title: str
    prompt: str
    why: str

    @classmethod
    def from_dict(cls, data: dict) -> 'DiscussionPromptContent':
        where = 'discussion prompt'
        return cls(
            title=_require_text(data, 'title', where),
            prompt=_require_text(data, 'prompt', where),
            why=_require_text(data, 'why', where),
        )

    def to_dict(self) -> dict:
        return {'title': self.title, 'prompt': self.prompt, 'why': self.why}


@dataclass
class MemberWeeklyMetrics:
    """One member's activity over the past week, used for practice actions."""
    user_id: int
    user_name: str
    days_active: int = 0
    posts: int = 0
    responses: int = 0
    modules_completed: int = 0
    last_partner_interaction: Optional[datetime] = None

    @property
    def pattern(self) -> str:
        """Behaviour pattern label included in the practice action prompt."""
        if self.days_active == 0:
            return 'Inactive - needs re-engagement'
        if self.days_active >= 4 and self.posts == 0 and self.responses == 0:
            return 'Lurker - consuming but not contributing'
        if self.modules_completed > 3 and self.posts == 0 and self.responses == 0:
            return 'Module rusher - consuming content but not engaging with community'
        if self.posts > 0 and self.responses == 0:
            return 'One-way contributor - sharing but not engaging with others'
        if self.posts == 0 and self.responses > 2:
            return 'Supporter - helping others but not sharing their own work'
        if self.posts > 2 and self.responses > 2:
            return 'Highly engaged - balanced contributor'
        if self.days_active <= 2:
            return 'Sporadic - inconsistent engagement'
        return 'Moderate engagement - room to go deeper'

    def to_dict(self) -> dict:
        return serialize_for_json({
            'user_id': self.user_id,
            'user_name': self.user_name,
            'days_active': self.days_active,
            'posts': self.posts,
            'responses': self.responses,
            'modules_completed': self.modules_completed,
            'last_partner_interaction': self.last_partner_interaction,
            'pattern': self.pattern,
        })


@dataclass
class DashboardPayload:
    """The full_dashboard content body."""
    hero_message: str
    activity_feed: list = field(default_factory=list)
    practice_actions: dict = field(default_factory=dict)  # str(user_id) -> [PracticeAction]
    program_state: Optional[ProgramState] = None
    upcoming_events: list = field(default_factory=list)  # plain dicts
    community_stats: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'hero_message': self.hero_message,
            'activity_feed': [item.to_dict() for item in self.activity_feed],
            'practice_actions': {
                user_id: [action.to_dict() for action in actions]
                for user_id, actions in self.practice_actions.items()
            },
            'program_state': self.program_state.to_dict() if self.program_state else None,
            'upcoming_events': serialize_for_json(list(self.upcoming_events)),
            'community_stats': dict(self.community_stats),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DashboardPayload':
        where = 'dashboard'
        hero_message = _require_text(data, 'hero_message', where)

        feed = _require(data, 'activity_feed', list, where)
        if len(feed) > MAX_FEED_ITEMS:
            raise ContentValidationError(f"{where}.activity_feed has more than {MAX_FEED_ITEMS} items")
        activity_feed = [
            ActivityFeedItem.from_dict(item, where=f"{where}.activity_feed[{index}]")
            for index, item in enumerate(feed)
        ]

        raw_actions = _require(data, 'practice_actions', dict, where)
        practice_actions = {
            str(user_id): parse_practice_actions(items, where=f"{where}.practice_actions[{user_id}]")
            for user_id, items in raw_actions.items()
        }

        raw_state = data.get('program_state')
        program_state = None
        if raw_state is not None:
            program_state = ProgramState(
                current_week=_require(raw_state, 'current_week', int, f"{where}.program_state"),
                current_module=_require_text(raw_state, 'current_module', f"{where}.program_state"),
                module_id=raw_state.get('module_id'),
            )

        events = data.get('upcoming_events', [])
        if not isinstance(events, list):
            raise ContentValidationError(f"{where}.upcoming_events must be a list")
        for index, event in enumerate(events):
            _require_text(event, 'title', f"{where}.upcoming_events[{index}]")

        stats = data.get('community_stats', {})
        if not isinstance(stats, dict):
            raise ContentValidationError(f"{where}.community_stats must be an object")
        level = stats.get('engagement_level')
        if level is not None and level not in ENGAGEMENT_LEVELS:
            raise ContentValidationError(f"{where}.community_stats.engagement_level '{level}' is invalid")

        return cls(
            hero_message=hero_message,
            activity_feed=activity_feed,
            practice_actions=practice_actions,
            program_state=program_state,
            upcoming_events=events,
            community_stats=stats,
        )


# =============================================================================
# Weekly health report
# =============================================================================

@dataclass(frozen=True)
class FlagNote:
    """A member named in the health report because of a recent flag."""
    user_id: int
    name: str
    reason: str

    def to_dict(self) -> dict:
        return {'user_id': self.user_id, 'name': self.name, 'reason': self.reason}


@dataclass(frozen=True)
class ContributorCount:
    user_id: int
    name: str
    posts: int

    def to_dict(self) -> dict:
        return {'user_id': self.user_id, 'name': self.name, 'posts': self.posts}


@dataclass
class CohortHealthContext:
    """Week-over-week cohort figures the facilitator's health report is written from."""
    program_state: ProgramState
    total_members: int = 0
    active_this_week: int = 0
    active_previous_week: int = 0
    new_discussions: int = 0
    total_responses: int = 0
    lurkers: int = 0
    top_contributors: list = field(default_factory=list)  # ContributorCount
    red_flags: list = field(default_factory=list)  # FlagNote
    yellow_flags: list = field(default_factory=list)
    green_flags: list = field(default_factory=list)
    emerging_themes: list = field(default_factory=list)
    stuck_discussions: list = field(default_factory=list)  # DiscussionSummary

    @property
    def active_percent(self) -> int:
        if self.total_members <= 0:
            return 0
        return round(self.active_this_week / self.total_members * 100)

    @property
    def engagement_change(self) -> int:
        """Percent change in active members against the previous week, 0 without a baseline."""
        if self.active_previous_week <= 0:
            return 0
        return round(
            (self.active_this_week - self.active_previous_week) / self.active_previous_week * 100
        )

    def to_dict(self) -> dict:
        return {
            'program_state': self.program_state.to_dict(),
            'total_members': self.total_members,
            'active_this_week': self.active_this_week,
            'active_previous_week': self.active_previous_week,
            'active_percent': self.active_percent,
            'engagement_change': self.engagement_change,
            'new_discussions': self.new_discussions,
            'total_responses': self.total_responses,
            'lurkers': self.lurkers,
            'top_contributors': [c.to_dict() for c in self.top_contributors],
            'red_flags': [f.to_dict() for f in self.red_flags],
            'yellow_flags': [f.to_dict() for f in self.yellow_flags],
            'green_flags': [f.to_dict() for f in self.green_flags],
            'emerging_themes': list(self.emerging_themes),
            'stuck_discussions': [
                {'id': d.id, 'title': d.title, 'views': d.views_count, 'responses': d.response_count}
                for d in self.stuck_discussions
            ],
        }


@dataclass
class HealthReportContent:
    """The health_report content body: the facilitator-facing HTML plus the figures behind it."""
    week: int
    module: str
    report_html: str
    metrics: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'HealthReportContent':
        where = 'health report'
        week = _require(data, 'week', int, where)
        if week < 1:
            raise ContentValidationError(f"{where}.week must be at least 1")
        metrics = data.get('metrics', {})
        if not isinstance(metrics, dict):
            raise ContentValidationError(f"{where}.metrics must be an object")
        return cls(
            week=week,
            module=_require_text(data, 'module', where),
            report_html=_require_text(data, 'report_html', where),
            metrics=metrics,
        )

    def to_dict(self) -> dict:
        return {
            'week': self.week,
            'module': self.module,
            'report_html': self.report_html,
            'metrics': serialize_for_json(dict(self.metrics)),
        }


CONTENT_SCHEMAS = {
    'full_dashboard': DashboardPayload,
    'discussion_prompt': DiscussionPromptContent,
    'health_report': HealthReportContent,
}


def validate_content(content_type: str, body) -> dict:
    """
    Validate a content body for its type and return the normalized dict.

    Types without a dedicated schema only need to be a JSON object.
    """
    if not isinstance(body, dict):
        raise ContentValidationError("Content must be a JSON object")
    schema = CONTENT_SCHEMAS.get(content_type)
    if schema is None:
        return body
    return schema.from_dict(body).to_dict()
