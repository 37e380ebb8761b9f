"""
Domain models for frame moderation.

These models have no dependencies on external frameworks or APIs. The
HTTP layer serializes them, the infrastructure layer produces them, but
neither is needed to understand them.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class Rating(Enum):
    """The five ratings a frame can receive."""
    G = "G"
    PG = "PG"
    PG_13 = "PG-13"
    R = "R"
    INAPPROPRIATE = "Inappropriate"


class FrameStatus(Enum):
    EXTRACTED = "extracted"
    MODERATED = "moderated"


class PipelineStage(Enum):
    """
    Where a request currently is.

    FAILED is reachable only from FETCHING or EXTRACTING; per-frame
    moderation problems are absorbed before they reach the pipeline.
    """
    VALIDATING = "validating"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    MODERATING = "moderating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ModerationVerdict:
    """
    The structured judgment for one frame.

    Frozen because a verdict is a value: once the model has spoken,
    nothing downstream should rewrite it.
    """
    description: str
    rating: Rating

    @classmethod
    def fallback(cls, description: str) -> "ModerationVerdict":
        """A verdict for a frame that could not be moderated normally."""
        return cls(description=description, rating=Rating.INAPPROPRIATE)

    @property
    def is_inappropriate(self) -> bool:
        return self.rating is Rating.INAPPROPRIATE

    def to_dict(self) -> dict[str, str]:
        return {"description": self.description, "rating": self.rating.value}


def parse_frame_index(path: str | Path) -> int:
    """
    Frame index embedded in a file name like ``frame_0007.jpg``.

    The stem is split on underscores and the second component is read as
    an unsigned integer. Anything else sorts as index 0.
    """
    parts = Path(path).stem.split("_")
    if len(parts) < 2:
        return 0
    candidate = parts[1]
    if not candidate.isascii() or not candidate.isdigit():
        return 0
    return int(candidate)


@dataclass(frozen=True)
class Frame:
    """An extracted still image on disk."""
    path: Path
    index: int

    @classmethod
    def from_path(cls, path: str | Path) -> "Frame":
        path = Path(path)
        return cls(path=path, index=parse_frame_index(path))

    @property
    def identifier(self) -> str:
        return str(self.path)


def order_frames(frames: list[Frame]) -> list[Frame]:
    """
    Sort frames by index ascending.

    Equal indices (typically malformed names that all parse as 0) fall
    back to the file name, then to discovery order since sorted() is stable.
    """
    return sorted(frames, key=lambda frame: (frame.index, frame.path.name))


class VerdictAlreadyAttached(Exception):
    """Raised when a frame result is given a second verdict."""
    pass


@dataclass
class FrameResult:
    """
    A frame paired with its moderation verdict.

    Created when extraction succeeds and mutated exactly once, when the
    verdict arrives.
    """
    frame: Frame
    status: FrameStatus = FrameStatus.EXTRACTED
    verdict: Optional[ModerationVerdict] = None

    def attach_verdict(self, verdict: ModerationVerdict) -> None:
        if self.verdict is not None:
            raise VerdictAlreadyAttached(
                f"Frame {self.frame.identifier} already has a verdict"
            )
        self.verdict = verdict
        self.status = FrameStatus.MODERATED

    @property
    def is_moderated(self) -> bool:
        return self.verdict is not None

    def to_dict(self) -> dict:
        """
        Response shape for one frame.

        The status tag stays "extracted" on the wire, which is what
        existing clients of the /moderate endpoint read.
        """
        return {
            "frame": self.frame.identifier,
            "status": FrameStatus.EXTRACTED.value,
            "moderation": self.verdict.to_dict() if self.verdict else None,
        }


@dataclass(frozen=True)
class PipelineOutcome:
    """
    The ordered result of one moderation request.

    Built by the pipeline coordinator and handed out as an immutable value.
    """
    frames: tuple[FrameResult, ...] = field(default_factory=tuple)
    message: str = ""

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def flagged_frames(self) -> list[FrameResult]:
        """Frames whose verdict is Inappropriate, including fallbacks."""
        return [
            result for result in self.frames
            if result.verdict is not None and result.verdict.is_inappropriate
        ]
