"""
Bounded retry around a single frame moderation call.

The orchestrator always hands back a verdict. Transport errors are retried
up to the configured limit; when they run out, the frame gets a fallback
verdict describing the last error instead of failing the request.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import ModerationTransportError
from .models import ModerationVerdict
from .throttle import Sleeper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    How hard to try before giving up on a frame.

    max_retries=3 means up to four calls in total.
    """
    max_retries: int = 3
    delay_seconds: float = 0.2

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


class RetryingModerator:
    """Wraps a ModerationClient so every call ends in a verdict."""

    def __init__(
        self,
        client,
        policy: RetryPolicy = RetryPolicy(),
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._client = client
        self._policy = policy
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def moderate(self, frame_path: Path) -> ModerationVerdict:
        last_error: Exception | None = None

        for attempt in range(1, self._policy.max_attempts + 1):
            try:
                return await self._client.moderate_frame(frame_path)
            except ModerationTransportError as e:
                last_error = e
            except Exception as e:
                # anything else still ends in a verdict
                logger.exception(
                    "Unexpected error from moderation client",
                    extra={"frame": str(frame_path), "attempt": attempt},
                )
                last_error = e

            if attempt < self._policy.max_attempts:
                logger.warning(
                    "Moderation attempt failed, retrying",
                    extra={
                        "frame": str(frame_path),
                        "attempt": attempt,
                        "error": str(last_error),
                    },
                )
                await self._sleep(self._policy.delay_seconds)

        logger.warning(
            "Moderation retries exhausted, using fallback verdict",
            extra={
                "frame": str(frame_path),
                "attempts": self._policy.max_attempts,
                "error": str(last_error),
            },
        )
        return ModerationVerdict.fallback(
            f"Error: {last_error} (after {self._policy.max_attempts} attempts)"
        )
