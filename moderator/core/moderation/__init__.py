"""
Frame moderation logic.

Contains the domain models, verdict parsing, retry and throttling
policies, and the pipeline coordinator.
"""

from .errors import (
    ExtractionError,
    FetchError,
    InvalidInputError,
    ModerationTransportError,
    PipelineError,
)
from .models import (
    Frame,
    FrameResult,
    FrameStatus,
    ModerationVerdict,
    PipelineOutcome,
    PipelineStage,
    Rating,
    order_frames,
    parse_frame_index,
)
from .pipeline import (
    EphemeralWorkspace,
    FrameExtractor,
    MediaFetcher,
    ModerationClient,
    ModerationPipeline,
    validate_source_url,
)
from .retry import RetryingModerator, RetryPolicy
from .throttle import FixedDelayRateLimiter, NoDelayRateLimiter, RateLimiter
from .verdicts import SYSTEM_PROMPT, parse_verdict

__all__ = [
    "ExtractionError",
    "FetchError",
    "InvalidInputError",
    "ModerationTransportError",
    "PipelineError",
    "Frame",
    "FrameResult",
    "FrameStatus",
    "ModerationVerdict",
    "PipelineOutcome",
    "PipelineStage",
    "Rating",
    "order_frames",
    "parse_frame_index",
    "EphemeralWorkspace",
    "FrameExtractor",
    "MediaFetcher",
    "ModerationClient",
    "ModerationPipeline",
    "validate_source_url",
    "RetryingModerator",
    "RetryPolicy",
    "FixedDelayRateLimiter",
    "NoDelayRateLimiter",
    "RateLimiter",
    "SYSTEM_PROMPT",
    "parse_verdict",
]
