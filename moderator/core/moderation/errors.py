"""
Error taxonomy for the moderation pipeline.

Fatal errors (PipelineError subclasses) abort the request and name the
stage they came from so the HTTP layer can map them to status codes.
ModerationTransportError never leaves the retry orchestrator.
"""

from typing import Optional

from .models import PipelineStage


class PipelineError(Exception):
    """Base class for errors that abort a moderation request."""

    stage: PipelineStage = PipelineStage.FAILED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(PipelineError):
    """The source locator is not a well-formed absolute URL."""

    stage = PipelineStage.VALIDATING


class FetchError(PipelineError):
    """Downloading the source media failed."""

    stage = PipelineStage.FETCHING

    TRANSPORT = "transport"
    STATUS = "status"
    BODY = "body"

    def __init__(
        self,
        message: str,
        reason: str = TRANSPORT,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class ExtractionError(PipelineError):
    """
    The frame decoder could not run or exited non-zero.

    returncode is None when the process never started.
    """

    stage = PipelineStage.EXTRACTING

    def __init__(self, message: str, returncode: Optional[int] = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class ModerationTransportError(Exception):
    """Calling the moderation endpoint failed; safe to retry."""
    pass
