"""
End-to-end moderation of one video.

The coordinator walks a request through

    validate -> fetch -> extract -> order -> moderate each frame -> done

strictly in sequence. Only validation, fetching and extraction can fail
the request; moderation problems are absorbed per frame by the retry
orchestrator and show up as fallback verdicts instead.

Everything external (download, decoder, vision endpoint) sits behind a
Protocol so the pipeline can be exercised without network or ffmpeg.
"""

import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlsplit

from .errors import InvalidInputError, PipelineError
from .models import (
    Frame,
    FrameResult,
    ModerationVerdict,
    PipelineOutcome,
    PipelineStage,
    order_frames,
)
from .retry import RetryingModerator
from .throttle import RateLimiter

logger = logging.getLogger(__name__)

# reg-name, IP literal and percent-encoded characters; \w admits IDN labels
_HOST_PATTERN = re.compile(r"[\w\-.~%!$&'()*+,;=:]+")

SUCCESS_MESSAGE = "File processed successfully - all frames moderated sequentially"
FRAME_EXTENSION = ".jpg"


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class MediaFetcher(Protocol):
    """Downloads a source video to a local file."""

    async def fetch(self, url: str, destination: Path) -> int:
        """Write the resource at url into destination, returning bytes written."""
        ...


class FrameExtractor(Protocol):
    """Samples a local video into numbered still images."""

    async def extract(self, media_path: Path, output_dir: Path) -> list[Path]:
        """Write frames into output_dir and return the files produced."""
        ...


class ModerationClient(Protocol):
    """
    Interface for vision moderation endpoints.

    Implementations raise ModerationTransportError when the endpoint
    can't be reached and return a fallback verdict when the reply can't
    be parsed.
    """

    async def moderate_frame(self, frame_path: Path) -> ModerationVerdict:
        ...


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def validate_source_url(url: str) -> str:
    """Reject anything that is not an absolute URL before touching the network."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidInputError("Invalid URL: empty")

    candidate = url.strip()
    try:
        parts = urlsplit(candidate)
        # port parsing is lazy in urlsplit; touch it so bad ports fail here
        parts.port
    except ValueError as e:
        raise InvalidInputError(f"Invalid URL: {e}")

    if not parts.scheme:
        raise InvalidInputError("Invalid URL: relative URL without a base")
    if not parts.netloc:
        raise InvalidInputError("Invalid URL: missing host")
    if not parts.hostname or not _HOST_PATTERN.fullmatch(parts.hostname):
        raise InvalidInputError(f"Invalid URL: bad host in {parts.netloc!r}")

    return candidate


# ---------------------------------------------------------------------------
# Ephemeral workspace
# ---------------------------------------------------------------------------

class EphemeralWorkspace:
    """
    Request-scoped temp file (downloaded media) and temp dir (frames).

    Use as a context manager; both are removed on every exit path.
    """

    def __init__(self, prefix: str = "moderator-") -> None:
        self._prefix = prefix
        self.media_path: Optional[Path] = None
        self.frames_dir: Optional[Path] = None

    def __enter__(self) -> "EphemeralWorkspace":
        fd, media = tempfile.mkstemp(prefix=self._prefix, suffix=".media")
        os.close(fd)
        self.media_path = Path(media)
        try:
            self.frames_dir = Path(tempfile.mkdtemp(prefix=self._prefix))
        except OSError:
            self.release()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def release(self) -> None:
        if self.media_path is not None:
            try:
                self.media_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(
                    "Failed to remove temp media file",
                    extra={"path": str(self.media_path), "error": str(e)},
                )
            self.media_path = None
        if self.frames_dir is not None:
            shutil.rmtree(self.frames_dir, ignore_errors=True)
            self.frames_dir = None


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------

class ModerationPipeline:
    """
    Runs one moderation request from URL to ordered verdicts.

    One instance per request: the stage attribute tracks that request's
    progress. Collaborators may be shared between instances.
    """

    def __init__(
        self,
        fetcher: MediaFetcher,
        extractor: FrameExtractor,
        moderator: RetryingModerator,
        rate_limiter: RateLimiter,
        frame_extension: str = FRAME_EXTENSION,
    ) -> None:
        self._fetcher = fetcher
        self._extractor = extractor
        self._moderator = moderator
        self._rate_limiter = rate_limiter
        self._frame_extension = frame_extension.lower()
        self.stage = PipelineStage.VALIDATING

    async def run(self, source_url: str) -> PipelineOutcome:
        try:
            url = validate_source_url(source_url)

            with EphemeralWorkspace() as workspace:
                self._enter(PipelineStage.FETCHING, url=url)
                size = await self._fetcher.fetch(url, workspace.media_path)
                logger.info("Downloaded source media", extra={"url": url, "bytes": size})

                self._enter(PipelineStage.EXTRACTING)
                produced = await self._extractor.extract(
                    workspace.media_path, workspace.frames_dir
                )
                frames = self._collect_frames(produced)

                self._enter(PipelineStage.MODERATING, frame_count=len(frames))
                results = await self._moderate_all(frames)

        except PipelineError as e:
            self.stage = PipelineStage.FAILED
            logger.error(
                "Moderation request failed",
                extra={"failed_stage": e.stage.value, "error": e.message},
            )
            raise

        self._enter(PipelineStage.DONE, frame_count=len(results))
        return PipelineOutcome(frames=tuple(results), message=SUCCESS_MESSAGE)

    def _collect_frames(self, produced: list[Path]) -> list[Frame]:
        frames = [
            Frame.from_path(path)
            for path in produced
            if Path(path).suffix.lower() == self._frame_extension
        ]
        return order_frames(frames)

    async def _moderate_all(self, frames: list[Frame]) -> list[FrameResult]:
        results = [FrameResult(frame=frame) for frame in frames]

        for position, result in enumerate(results, start=1):
            verdict = await self._moderator.moderate(result.frame.path)
            result.attach_verdict(verdict)

            logger.debug(
                "Frame moderated",
                extra={
                    "frame": result.frame.identifier,
                    "position": position,
                    "rating": verdict.rating.value,
                },
            )
            await self._rate_limiter.wait()
        return results

    def _enter(self, stage: PipelineStage, **context) -> None:
        self.stage = stage
        logger.info(f"Pipeline stage: {stage.value}", extra=context)
