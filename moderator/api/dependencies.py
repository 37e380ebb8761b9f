"""
FastAPI dependency injection.

Dependencies provide the pipeline and its collaborators to route
handlers, so tests can override any of them through
app.dependency_overrides without touching the network or ffmpeg.
"""

import hmac
import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from ..config.settings import Settings, get_settings
from ..core.moderation.pipeline import (
    FrameExtractor,
    MediaFetcher,
    ModerationClient,
    ModerationPipeline,
)
from ..core.moderation.retry import RetryingModerator, RetryPolicy
from ..core.moderation.throttle import FixedDelayRateLimiter, RateLimiter
from ..infrastructure.anthropic.client import AnthropicModerationClient, create_anthropic_client
from ..infrastructure.grok.client import create_grok_client
from ..infrastructure.http.fetcher import HttpMediaFetcher
from ..infrastructure.video.processor import create_frame_extractor

logger = logging.getLogger(__name__)

# The Anthropic SDK client holds a connection pool, so one is kept per
# configuration for the life of the process and closed on shutdown.
_anthropic_clients: dict[tuple, AnthropicModerationClient] = {}


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_zipstory_token(
    settings: Annotated[Settings, Depends(get_settings)],
    zipstory_token: Annotated[Optional[str], Header(alias="zipstory-token")] = None,
) -> str:
    """
    Check the shared-secret header.

    An unset ZIPSTORY_TOKEN rejects everything rather than accepting
    everything.
    """
    expected = settings.zipstory_token
    if not expected or not zipstory_token or not hmac.compare_digest(
        zipstory_token.encode(), expected.encode()
    ):
        logger.warning("Rejected request with missing or invalid token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    return zipstory_token


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_media_fetcher(
    settings: Annotated[Settings, Depends(get_settings)],
) -> MediaFetcher:
    return HttpMediaFetcher(timeout=settings.download_timeout_seconds)


def get_frame_extractor(
    settings: Annotated[Settings, Depends(get_settings)],
) -> FrameExtractor:
    return create_frame_extractor(settings)


def get_moderation_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ModerationClient:
    """
    Provide the moderation client for the configured provider.

    A missing API key surfaces as a 503 rather than a crash on every frame.
    """
    try:
        if settings.moderation_provider == "anthropic":
            return _shared_anthropic_client(settings)
        return create_grok_client(settings)
    except ValueError as e:
        logger.error(
            "Moderation client misconfigured",
            extra={"provider": settings.moderation_provider, "error": str(e)},
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Moderation provider is not configured",
        )


def _shared_anthropic_client(settings: Settings) -> AnthropicModerationClient:
    key = (
        settings.anthropic_api_key,
        settings.anthropic_model,
        settings.anthropic_max_tokens,
        settings.moderation_timeout_seconds,
    )
    client = _anthropic_clients.get(key)
    if client is None:
        client = create_anthropic_client(settings)
        _anthropic_clients[key] = client
    return client


async def close_moderation_clients() -> None:
    """Close shared provider clients. Called from the app lifespan."""
    clients = list(_anthropic_clients.values())
    _anthropic_clients.clear()
    for client in clients:
        await client.aclose()


def get_rate_limiter(
    settings: Annotated[Settings, Depends(get_settings)],
) -> RateLimiter:
    return FixedDelayRateLimiter(settings.frame_delay_seconds)


def get_pipeline(
    settings: Annotated[Settings, Depends(get_settings)],
    fetcher: Annotated[MediaFetcher, Depends(get_media_fetcher)],
    extractor: Annotated[FrameExtractor, Depends(get_frame_extractor)],
    client: Annotated[ModerationClient, Depends(get_moderation_client)],
    rate_limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> ModerationPipeline:
    """
    Provide a fresh pipeline per request.

    The pipeline tracks the request's stage, so it is never shared.
    """
    moderator = RetryingModerator(
        client,
        RetryPolicy(
            max_retries=settings.moderation_max_retries,
            delay_seconds=settings.moderation_retry_delay_seconds,
        ),
    )
    return ModerationPipeline(
        fetcher=fetcher,
        extractor=extractor,
        moderator=moderator,
        rate_limiter=rate_limiter,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

AuthenticatedCaller = Annotated[str, Depends(verify_zipstory_token)]
PipelineDep = Annotated[ModerationPipeline, Depends(get_pipeline)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
