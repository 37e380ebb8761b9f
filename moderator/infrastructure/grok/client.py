"""
xAI Grok moderation client.

Talks to the OpenAI-compatible chat completions endpoint directly over
httpx: one request per frame, system prompt plus the frame as a base64
data URL.

Anything that stops us from getting a JSON body back (connection
problems, timeouts, non-2xx status, an HTML error page) is a
ModerationTransportError and will be retried. A JSON body whose reply
text isn't a verdict is not an error; it becomes a fallback verdict.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import httpx

from moderator.core.moderation.errors import ModerationTransportError
from moderator.core.moderation.models import ModerationVerdict
from moderator.core.moderation.verdicts import SYSTEM_PROMPT, parse_verdict
from moderator.infrastructure.images import read_frame, to_data_url

logger = logging.getLogger(__name__)


@dataclass
class GrokConfig:
    """Configuration for the Grok client."""
    api_key: str
    base_url: str = "https://api.x.ai/v1"
    model: str = "grok-2-vision-latest"
    temperature: float = 0.7
    timeout: float = 60.0

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("API key is required")
        if not 0 <= self.temperature <= 2:
            raise ValueError("temperature must be between 0 and 2")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @property
    def completions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"


class GrokModerationClient:
    """
    ModerationClient implementation using Grok vision models.

    Pass an httpx.AsyncClient to reuse a connection pool across frames;
    otherwise one is created per call.
    """

    def __init__(
        self,
        config: GrokConfig,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._client = client

    async def moderate_frame(self, frame_path: Path) -> ModerationVerdict:
        payload = self.build_payload(read_frame(frame_path))
        body = await self._post(payload)

        logger.debug("Grok API response", extra={"response": body})

        content = self._extract_text_response(body)
        return parse_verdict(content)

    def build_payload(self, image_data: bytes) -> dict[str, Any]:
        return {
            "model": self._config.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": to_data_url(image_data),
                                "detail": "high",
                            },
                        }
                    ],
                },
            ],
            "temperature": self._config.temperature,
        }

    async def _post(self, payload: dict[str, Any]) -> Any:
        headers = {"Authorization": f"Bearer {self._config.api_key}"}

        try:
            if self._client is not None:
                response = await self._client.post(
                    self._config.completions_url, json=payload, headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=self._config.timeout) as client:
                    response = await client.post(
                        self._config.completions_url, json=payload, headers=headers
                    )
        except httpx.HTTPError as e:
            raise ModerationTransportError(f"Grok request failed: {e}")

        if response.status_code == 429:
            logger.warning("Rate limit hit", extra={"status": response.status_code})
        if not response.is_success:
            raise ModerationTransportError(
                f"Grok API returned status {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise ModerationTransportError(f"Grok API returned a non-JSON body: {e}")

    def _extract_text_response(self, body: Any) -> str:
        """choices[0].message.content, or empty text when the shape is off."""
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return ""
        return content if isinstance(content, str) else ""


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_grok_client(settings) -> GrokModerationClient:
    config = GrokConfig(
        api_key=settings.grok_api_key,
        base_url=settings.grok_base_url,
        model=settings.grok_model,
        temperature=settings.grok_temperature,
        timeout=settings.moderation_timeout_seconds,
    )
    return GrokModerationClient(config)
