"""
Anthropic Claude moderation client.

An alternate ModerationClient for deployments that moderate with Claude
instead of Grok. Same contract: API failures raise
ModerationTransportError (retried upstream), unreadable replies become
fallback verdicts.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import anthropic
from anthropic import APIError, RateLimitError

from moderator.core.moderation.errors import ModerationTransportError
from moderator.core.moderation.models import ModerationVerdict
from moderator.core.moderation.verdicts import SYSTEM_PROMPT, parse_verdict
from moderator.infrastructure.images import detect_image_type, encode_image, read_frame


logger = logging.getLogger(__name__)


USER_PROMPT = "Moderate this video frame."


@dataclass
class AnthropicConfig:
    """Configuration for the Anthropic client."""
    api_key: str
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1024
    timeout: float = 60.0

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("API key is required")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")


class AnthropicModerationClient:
    """
    ModerationClient implementation using Claude.

    Uses the SDK's async client so waiting on Claude doesn't block other
    requests being served by the same process.
    """

    def __init__(self, config: AnthropicConfig, client=None) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client or anthropic.AsyncAnthropic(
            api_key=config.api_key,
            timeout=config.timeout,
            max_retries=0,  # RetryingModerator owns the retry budget
        )

    async def aclose(self) -> None:
        """Close the SDK client's connection pool if this instance created it."""
        if self._owns_client:
            await self._client.close()

    async def moderate_frame(self, frame_path: Path) -> ModerationVerdict:
        image = read_frame(frame_path)

        try:
            response = await self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": self._build_image_content(image)}
                ],
            )
        except RateLimitError as e:
            logger.warning("Rate limit hit", extra={"error": str(e)})
            raise ModerationTransportError(f"API rate limit exceeded: {e}")
        except APIError as e:
            logger.error("API error", extra={"error": str(e)})
            raise ModerationTransportError(f"API error: {e.message}")

        return parse_verdict(self._extract_text_response(response))

    def _build_image_content(self, image: bytes) -> list[dict]:
        """
        Content array for a single-frame request.

        Claude expects:
        [
            {"type": "image", "source": {"type": "base64", "media_type": "image/jpeg", "data": "..."}},
            {"type": "text", "text": "..."}
        ]
        """
        return [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": detect_image_type(image),
                    "data": encode_image(image),
                },
            },
            {"type": "text", "text": USER_PROMPT},
        ]

    def _extract_text_response(self, response) -> str:
        """Extract text content from API response."""
        if not response.content:
            return ""

        text_blocks = [
            block.text
            for block in response.content
            if hasattr(block, 'text')
        ]

        return "\n".join(text_blocks)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_anthropic_client(settings) -> AnthropicModerationClient:
    config = AnthropicConfig(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        timeout=settings.moderation_timeout_seconds,
    )
    return AnthropicModerationClient(config)
