"""
Fixed-delay pacing for calls to the moderation endpoint.

The pipeline waits on a RateLimiter instead of sleeping inline, so tests
can swap in a limiter that records waits without actually sleeping.
"""

import asyncio
from typing import Awaitable, Callable, Protocol

Sleeper = Callable[[float], Awaitable[None]]


class RateLimiter(Protocol):
    """Something the pipeline awaits between consecutive frames."""

    async def wait(self) -> None:
        ...


class FixedDelayRateLimiter:
    """Waits the same amount of time on every call."""

    def __init__(self, delay_seconds: float, sleep: Sleeper = asyncio.sleep) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")
        self._delay = delay_seconds
        self._sleep = sleep

    @property
    def delay_seconds(self) -> float:
        return self._delay

    async def wait(self) -> None:
        await self._sleep(self._delay)


class NoDelayRateLimiter:
    """Never waits."""

    async def wait(self) -> None:
        return None
