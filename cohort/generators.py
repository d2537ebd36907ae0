"""
Per-artifact content generators.

Each generator makes one Claude request (practice actions make one per batch
of members), validates the reply against its schema and returns typed
objects. None of them fall back to canned text: any failure raises
TextGenerationError naming the step.
"""
import logging
import re

from django.conf import settings

from . import prompts
from .ai import generate_text, max_tokens_for, parse_json_response
from .exceptions import ContentValidationError, TextGenerationError
from .schemas import (
    MAX_FEED_ITEMS,
    ActivityFeedItem,
    DiscussionPromptContent,
    parse_practice_actions,
)

logger = logging.getLogger(__name__)

STEP_HERO_MESSAGE = 'hero_message'
STEP_ACTIVITY_FEED = 'activity_feed'
STEP_PRACTICE_ACTIONS = 'practice_actions'
STEP_DISCUSSION_PROMPT = 'discussion_prompt'
STEP_HEALTH_REPORT = 'health_report'

_HTML_FENCE_RE = re.compile(r'^```(?:html)?\s*([\s\S]*?)\s*```$')


def generate_hero_message(context, themes: list, engagement_level: str) -> str:
    """
    Generate the shared hero message.

    The result always starts with the first-name placeholder, which is filled
    in per member when the dashboard is read.
    """
    text = generate_text(
        system=prompts.HERO_MESSAGE_SYSTEM_PROMPT,
        prompt=prompts.build_hero_message_prompt(context, themes, engagement_level),
        max_tokens=max_tokens_for(STEP_HERO_MESSAGE),
        step=STEP_HERO_MESSAGE,
    )
    message = text.strip().strip('"').strip()
    if not message or message == prompts.FIRST_NAME_PLACEHOLDER:
        raise TextGenerationError(STEP_HERO_MESSAGE, "empty hero message")
    if not message.startswith(prompts.FIRST_NAME_PLACEHOLDER):
        message = f"{prompts.FIRST_NAME_PLACEHOLDER}. {message}"
    return message


def curate_activity_feed(discussions: list) -> list:
    """
    Pick up to four substantive discussions for the feed.

    No discussions means an empty feed and no request at all.
    """
    if not discussions:
        return []

    text = generate_text(
        system=prompts.ACTIVITY_FEED_SYSTEM_PROMPT,
        prompt=prompts.build_activity_feed_prompt(discussions),
        max_tokens=max_tokens_for(STEP_ACTIVITY_FEED),
        step=STEP_ACTIVITY_FEED,
    )
    raw_items = parse_json_response(text, STEP_ACTIVITY_FEED, expect=list)

    known_ids = {discussion.id for discussion in discussions}
    items = []
    try:
        for index, raw in enumerate(raw_items[:MAX_FEED_ITEMS]):
            item = ActivityFeedItem.from_dict(raw, where=f"activity_feed[{index}]")
            if item.discussion_id not in known_ids:
                raise ContentValidationError(
                    f"activity_feed[{index}] points at unknown discussion {item.discussion_id}"
                )
            items.append(item)
    except ContentValidationError as e:
        raise TextGenerationError(STEP_ACTIVITY_FEED, str(e)) from e

    return items


def _batches(items: list, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def generate_practice_actions(members: list, context) -> dict:
    """
    Generate practice actions for every member.

    Args:
        members: MemberWeeklyMetrics for each active member.
        context: The CommunityContext of this run.

    Returns:
        Dict of str(user_id) -> ranked list of PracticeAction.
    """
    batch_size = max(int(settings.PRACTICE_ACTIONS_BATCH_SIZE), 1)
    results = {}

    for batch in _batches(list(members), batch_size):
        text = generate_text(
            system=prompts.PRACTICE_ACTIONS_SYSTEM_PROMPT,
            prompt=prompts.build_practice_actions_prompt(batch, context),
            max_tokens=max_tokens_for(STEP_PRACTICE_ACTIONS) * len(batch),
            step=STEP_PRACTICE_ACTIONS,
            user_id=batch[0].user_id if len(batch) == 1 else None,
        )
        by_user = parse_json_response(text, STEP_PRACTICE_ACTIONS, expect=dict)

        for metrics in batch:
            key = str(metrics.user_id)
            if key not in by_user:
                raise TextGenerationError(
                    STEP_PRACTICE_ACTIONS, "no actions returned", user_id=metrics.user_id
                )
            try:
                results[key] = parse_practice_actions(by_user[key], where=f"practice_actions[{key}]")
            except ContentValidationError as e:
                raise TextGenerationError(STEP_PRACTICE_ACTIONS, str(e), user_id=metrics.user_id) from e

        logger.info(f"Generated practice actions for {len(batch)} members")

    return results


def generate_discussion_prompt(context, themes: list, stuck_discussions: list) -> DiscussionPromptContent:
    text = generate_text(
        system=prompts.DISCUSSION_PROMPT_SYSTEM_PROMPT,
        prompt=prompts.build_discussion_prompt_prompt(context, themes, stuck_discussions),
        max_tokens=max_tokens_for(STEP_DISCUSSION_PROMPT),
        step=STEP_DISCUSSION_PROMPT,
    )
    data = parse_json_response(text, STEP_DISCUSSION_PROMPT, expect=dict)
    try:
        return DiscussionPromptContent.from_dict(data)
    except ContentValidationError as e:
        raise TextGenerationError(STEP_DISCUSSION_PROMPT, str(e)) from e


def generate_health_report(health) -> str:
    """
    Write the facilitator's weekly health report.

    Args:
        health: The CohortHealthContext of this run.

    Returns:
        The report as an HTML fragment.
    """
    text = generate_text(
        system=prompts.HEALTH_REPORT_SYSTEM_PROMPT,
        prompt=prompts.build_health_report_prompt(health),
        max_tokens=max_tokens_for(STEP_HEALTH_REPORT),
        step=STEP_HEALTH_REPORT,
    )
    report = text.strip()
    fenced = _HTML_FENCE_RE.match(report)
    if fenced:
        report = fenced.group(1).strip()
    if '<' not in report:
        raise TextGenerationError(STEP_HEALTH_REPORT, "reply is not an HTML report")
    return report
