"""
Moderation prompt and reply parsing.

The prompt is here, not in config, because it defines what the product
does. Changing it changes every verdict we return.

Parsing never raises. A reply that can't be read as a verdict becomes a
fallback verdict rated Inappropriate, carrying the offending text so an
operator can see what the model actually said.
"""

import json
import logging
from dataclasses import dataclass
from typing import Union

from .models import ModerationVerdict, Rating

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are an image moderator. Analyze the image and return a JSON object "
    "with exactly two fields: 'description' (a concise analysis) and 'rating' "
    "(one of 'G', 'PG', 'PG-13', 'R', or 'Inappropriate'). Your response must "
    "be strictly valid JSON without any additional text."
)


@dataclass(frozen=True)
class ParsedVerdict:
    """The model replied with a well-formed verdict."""
    verdict: ModerationVerdict


@dataclass(frozen=True)
class FallbackVerdict:
    """The reply could not be read; verdict is a synthesized Inappropriate."""
    verdict: ModerationVerdict
    raw_text: str


VerdictParseResult = Union[ParsedVerdict, FallbackVerdict]


def strip_code_fence(text: str) -> str:
    """
    Remove a markdown code fence around a reply, if present.

    Handles both ```json and bare ``` openers.
    """
    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return cleaned

    cleaned = cleaned[3:]
    if cleaned.startswith("json"):
        cleaned = cleaned[4:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_verdict_reply(text: str) -> VerdictParseResult:
    """Parse a model reply into a verdict, recording whether it fell back."""
    cleaned = strip_code_fence(text or "")

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        return _fallback(cleaned)

    if not isinstance(payload, dict):
        return _fallback(cleaned)

    description = payload.get("description")
    rating = payload.get("rating")
    if not isinstance(description, str) or not isinstance(rating, str):
        return _fallback(cleaned)

    try:
        parsed_rating = Rating(rating)
    except ValueError:
        return _fallback(cleaned)

    return ParsedVerdict(ModerationVerdict(description=description, rating=parsed_rating))


def parse_verdict(text: str) -> ModerationVerdict:
    """Parse a model reply into a verdict. Never raises."""
    return parse_verdict_reply(text).verdict


def _fallback(cleaned: str) -> FallbackVerdict:
    logger.warning(
        "Unparsable moderation reply, falling back to Inappropriate",
        extra={"reply_preview": cleaned[:200]},
    )
    return FallbackVerdict(
        verdict=ModerationVerdict.fallback(f"Parsing error in response: {cleaned}"),
        raw_text=cleaned,
    )
