"""
Prompt text for the dashboard content generators.
"""
import json

from .schemas import MAX_FEED_ITEMS, MAX_PRACTICE_ACTIONS
from .themes import strip_html

FIRST_NAME_PLACEHOLDER = '{first_name}'

PREVIEW_LENGTH = 80

HERO_MESSAGE_SYSTEM_PROMPT = """You write the opening line members see when they open the cohort dashboard of a leadership development program.

Voice:
- Plain, direct and human
- Points at what is really happening in the cohort this week
- Invites a question instead of applying pressure
- One or two short sentences at most

Rules:
- Begin with the literal placeholder {first_name} followed by a period, e.g. "{first_name}. Week 2 asks what you keep avoiding."
- Never write a real name in place of the placeholder
- No corporate motivational language, no "journey", no "empower", no "welcome back"
- No em dashes

Return only the message text."""

ACTIVITY_FEED_SYSTEM_PROMPT = f"""You pick the most substantive recent discussions in a leadership cohort for the dashboard feed.

Choose up to {MAX_FEED_ITEMS} discussions that show real work: honest questions, real struggles, concrete insight.
Prefer depth over popularity and different voices over the same few people. Skip shallow posts.

For each pick, the preview is the first {PREVIEW_LENGTH} characters of the post, cut at a word boundary.

Return ONLY a JSON array, no other text:
[
  {{
    "author": "First Last",
    "preview": "First {PREVIEW_LENGTH} characters of the post...",
    "discussion_id": 123,
    "posted_relative": "2 hours ago"
  }}
]

discussion_id must be one of the ids you were given. Return fewer items when there are fewer substantive posts."""

PRACTICE_ACTIONS_SYSTEM_PROMPT = f"""You suggest this week's practice actions for members of a leadership development cohort.

For every member you are given, write 1 to {MAX_PRACTICE_ACTIONS} specific, doable actions that fit their behaviour pattern and the current module.
Nudge each member toward what they are avoiding. Keep the tone direct and grounded.

Categories:
- connect: partner and community engagement
- reflect: personal work and insight
- engage: discussion participation
- practice: applying the module to a real situation
- read: assigned reading

Return ONLY a JSON object keyed by the member's user_id (as a string), no other text:
{{
  "42": [
    {{
      "action": "Specific action with a clear outcome",
      "why": "Why it matters for this member right now",
      "priority": 1,
      "category": "connect|reflect|engage|practice|read"
    }}
  ]
}}

Priority 1 is the most important. Every member listed must appear in the object."""

DISCUSSION_PROMPT_SYSTEM_PROMPT = """You write discussion starters for a leadership development cohort.

The prompt should be tied to the current module, specific rather than generic, and invite honest reflection about real situations.
If some discussions have stalled, a new angle on the same topic is welcome.

Return ONLY a JSON object, no other text:
{
  "title": "Discussion title, 6 to 8 words",
  "prompt": "Two or three sentences that frame the question",
  "why": "One sentence on why this matters for the cohort now"
}"""


HEALTH_REPORT_SYSTEM_PROMPT = """You write the weekly cohort health report for the facilitator of a leadership development program.

Your job:
- Turn the cohort's numbers into insights the facilitator can act on
- Separate what needs attention from what is working
- Use specific names and numbers
- Suggest concrete next actions

Structure:
1. Overall Health: one or two sentences on how the cohort is doing
2. What's Working: two or three bullet points of positive patterns
3. What Needs Attention: two or three bullet points, each with a specific action
4. Emerging Themes: what the cohort is wrestling with
5. Recommended Actions: three or four specific things to do this week

Voice:
- Direct and grounded in the data
- No corporate speak
- Clear priorities

Return only the report as HTML (h2, p, ul and li elements), no surrounding text or code fences."""


def build_hero_message_prompt(context, themes: list, engagement_level: str) -> str:
    state = context.program_state
    return f"""Write today's dashboard hero message.

Cohort right now:
- Week: Week {state.current_week}
- Module: {state.current_module}
- Active members this week: {context.active_users} of {context.total_users}
- Recent discussion themes: {', '.join(themes)}
- Next event: {context.next_event_title or 'None scheduled'}
- Overall engagement: {engagement_level}

Start with {FIRST_NAME_PLACEHOLDER}, then say something true about where the cohort is."""


def build_activity_feed_prompt(discussions: list) -> str:
    data = [
        {
            'id': discussion.id,
            'author': discussion.author_name,
            'title': discussion.title,
            'content': strip_html(discussion.content),
            'created_at': discussion.created_at.isoformat(),
            'responses': discussion.response_count,
        }
        for discussion in discussions
    ]
    return f"""Recent discussions:

{json.dumps(data, indent=2)}

Return the JSON array of the best {MAX_FEED_ITEMS} items or fewer."""


def build_practice_actions_prompt(members: list, context) -> str:
    """One request covering a batch of members."""
    state = context.program_state
    member_lines = []
    for metrics in members:
        last_partner = (
            metrics.last_partner_interaction.isoformat()
            if metrics.last_partner_interaction else 'No recent interaction'
        )
        member_lines.append(
            f"""Member user_id={metrics.user_id}:
- Name: {metrics.user_name}
- Days active this week: {metrics.days_active}
- Posts this week: {metrics.posts}
- Responses to others: {metrics.responses}
- Modules completed: {metrics.modules_completed}
- Last partner interaction: {last_partner}
- Pattern: {metrics.pattern}"""
        )

    members_text = '\n\n'.join(member_lines)
    return f"""Program:
- Current week: Week {state.current_week}
- Current module: {state.current_module}
- Next event: {context.next_event_title or 'None scheduled'}

{members_text}

Return the JSON object with actions for every user_id above."""


def build_discussion_prompt_prompt(context, themes: list, stuck_discussions: list) -> str:
    state = context.program_state
    if stuck_discussions:
        stuck = '\n'.join(
            f"- {d.title} ({d.response_count} responses)" for d in stuck_discussions
        )
    else:
        stuck = '- None'
    return f"""Write a discussion prompt for the cohort.

Program:
- Week: Week {state.current_week}
- Module: {state.current_module}
- Members: {context.active_users} active of {context.total_users}

Themes from the past week: {', '.join(themes)}

Discussions that are read but rarely answered:
{stuck}"""


def _bullets(lines: list, empty: str) -> str:
    return '\n'.join(f"- {line}" for line in lines) if lines else empty


def build_health_report_prompt(health) -> str:
    state = health.program_state
    change = health.engagement_change
    contributors = _bullets([f"{c.name}: {c.posts} posts" for c in health.top_contributors], 'None yet')
    red = _bullets([f"{f.name}: {f.reason}" for f in health.red_flags], 'None')
    yellow = _bullets([f"{f.name}: {f.reason}" for f in health.yellow_flags], 'None')
    green = _bullets([f"{f.name}: {f.reason}" for f in health.green_flags], 'None')
    stuck = _bullets(
        [f'"{d.title}" ({d.views_count} views, {d.response_count} responses)' for d in health.stuck_discussions],
        'None',
    )
    return f"""Generate this week's cohort health report.

Data:
- Week: Week {state.current_week}
- Module: {state.current_module}
- Total members: {health.total_members}
- Active this week: {health.active_this_week} ({health.active_percent}%)
- Active previous week: {health.active_previous_week}
- Engagement change: {'+' if change > 0 else ''}{change}%
- New discussions: {health.new_discussions}
- Total responses: {health.total_responses}
- Lurkers: {health.lurkers} (logging in but not contributing)

Top contributors:
{contributors}

Red flags (need immediate attention):
{red}

Yellow flags (monitor):
{yellow}

Green flags (celebrate):
{green}

Emerging themes: {', '.join(health.emerging_themes) or 'No clear patterns yet'}

Stuck discussions (high views, low responses):
{stuck}"""
