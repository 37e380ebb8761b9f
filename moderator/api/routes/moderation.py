"""
Video moderation endpoint.

POST /moderate takes a video URL, samples it into frames and returns a
verdict for every frame in temporal order. The work happens inline in
the request: one fetch, one ffmpeg run, then one moderation call per
frame with a short pause between calls.

Failure mapping:
- bad URL or failed download: 400
- unreadable download body or ffmpeg failure: 500
Per-frame moderation problems never fail the request; those frames come
back rated Inappropriate with the error in the description.
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...core.moderation.errors import (
    ExtractionError,
    FetchError,
    InvalidInputError,
    PipelineError,
)
from ...core.moderation.models import PipelineOutcome
from ..dependencies import AuthenticatedCaller, PipelineDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class ModerationRequest(BaseModel):
    """Request body for video moderation."""
    url: str = Field(description="Absolute URL of the video to moderate")


class VerdictItem(BaseModel):
    description: str
    rating: str = Field(description="G, PG, PG-13, R or Inappropriate")


class FrameItem(BaseModel):
    frame: str = Field(description="Path the frame was extracted to (opaque)")
    status: str
    moderation: VerdictItem


class ModerationResponse(BaseModel):
    """Ordered per-frame verdicts for one video."""
    message: str
    frames: list[FrameItem]


class ErrorResponse(BaseModel):
    detail: str
    stage: str


def _to_response(outcome: PipelineOutcome) -> ModerationResponse:
    return ModerationResponse(
        message=outcome.message,
        frames=[FrameItem(**result.to_dict()) for result in outcome.frames],
    )


def _status_for(error: PipelineError) -> int:
    if isinstance(error, InvalidInputError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, FetchError):
        if error.reason == FetchError.BODY:
            return status.HTTP_500_INTERNAL_SERVER_ERROR
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, ExtractionError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/moderate",
    response_model=ModerationResponse,
    status_code=status.HTTP_200_OK,
    summary="Moderate a video frame by frame",
    description="Download a video, sample one frame per second and rate each frame",
    responses={
        400: {"description": "Invalid URL or download failed", "model": ErrorResponse},
        401: {"description": "Missing or invalid zipstory-token"},
        500: {"description": "Frame extraction failed", "model": ErrorResponse},
    },
)
async def moderate(
    body: ModerationRequest,
    _caller: AuthenticatedCaller,
    pipeline: PipelineDep,
):
    logger.info("Moderation requested", extra={"url": body.url})

    try:
        outcome = await pipeline.run(body.url)
    except PipelineError as e:
        return JSONResponse(
            status_code=_status_for(e),
            content={"detail": e.message, "stage": e.stage.value},
        )

    logger.info(
        "Moderation completed",
        extra={
            "url": body.url,
            "frames": outcome.frame_count,
            "flagged": len(outcome.flagged_frames),
        },
    )
    return _to_response(outcome)
