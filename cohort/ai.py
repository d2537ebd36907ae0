"""
Anthropic client wrapper for the content generators.

Every call is a single attempt with a bounded timeout. Failures of any kind
(missing key, API error, timeout, empty or unparseable output) surface as
TextGenerationError naming the pipeline step.
"""
import json
import logging
import re

import anthropic
from django.conf import settings

from .exceptions import TextGenerationError

logger = logging.getLogger(__name__)

_CODE_BLOCK_RE = re.compile(r'```(?:json)?\s*([\s\S]*?)\s*```')
_JSON_OBJECT_RE = re.compile(r'\{[\s\S]*\}')
_JSON_ARRAY_RE = re.compile(r'\[[\s\S]*\]')


def get_anthropic_client(step: str = 'client'):
    """Get Anthropic client instance."""
    api_key = settings.ANTHROPIC_API_KEY
    if not api_key:
        logger.error("ANTHROPIC_API_KEY not set. Content generation is unavailable.")
        raise TextGenerationError(step, "ANTHROPIC_API_KEY is not configured")

    return anthropic.Anthropic(
        api_key=api_key,
        timeout=settings.AI_REQUEST_TIMEOUT,
        max_retries=0,
    )


def max_tokens_for(artifact: str) -> int:
    return settings.AI_MAX_TOKENS.get(artifact, 1000)


def generate_text(system: str, prompt: str, max_tokens: int, step: str, user_id=None) -> str:
    """
    Send one prompt to Claude and return the text of the reply.

    Args:
        system: System prompt.
        prompt: User message.
        max_tokens: Output budget for this artifact.
        step: Pipeline step name, used in errors and logs.
        user_id: Member the request is for, when there is one.

    Returns:
        The stripped reply text, never empty.
    """
    client = get_anthropic_client(step)

    try:
        response = client.messages.create(
            model=settings.AI_MODEL,
            max_tokens=max_tokens,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
    except anthropic.APIError as e:
        logger.exception(f"Claude request failed at {step}")
        raise TextGenerationError(step, str(e), user_id=user_id) from e

    text = ''.join(
        getattr(block, 'text', '') for block in (response.content or [])
    ).strip()
    if not text:
        raise TextGenerationError(step, "empty response", user_id=user_id)

    return text


def parse_json_response(text: str, step: str, expect=dict, user_id=None):
    """
    Parse JSON from Claude's response.

    Accepts bare JSON, a fenced ```json block, or JSON embedded in prose.
    Raises TextGenerationError when no value of the expected type is found.
    """
    candidates = [text]
    block = _CODE_BLOCK_RE.search(text)
    if block:
        candidates.append(block.group(1))
    embedded = (_JSON_ARRAY_RE if expect is list else _JSON_OBJECT_RE).search(text)
    if embedded:
        candidates.append(embedded.group(0))

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, expect):
            return value

    logger.error(f"Failed to parse JSON from response at {step}: {text[:200]}")
    raise TextGenerationError(
        step, f"expected a JSON {expect.__name__} in the response", user_id=user_id
    )
