"""
Tests for the pipeline coordinator.

The fetcher, extractor and moderation client are fakes, so these tests
exercise the sequencing, ordering, failure and cleanup rules alone.
"""

import asyncio
from pathlib import Path

import pytest

from moderator.core.moderation.errors import (
    ExtractionError,
    FetchError,
    InvalidInputError,
)
from moderator.core.moderation.models import ModerationVerdict, PipelineStage, Rating
from moderator.core.moderation.pipeline import (
    SUCCESS_MESSAGE,
    EphemeralWorkspace,
    ModerationPipeline,
    validate_source_url,
)
from moderator.core.moderation.retry import RetryingModerator, RetryPolicy

from fakes import FakeExtractor, FakeFetcher, ScriptedClient, transport_error


URL = "https://cdn.example.com/videos/clip.mp4"


def build_pipeline(
    fetcher=None,
    extractor=None,
    client=None,
    limiter=None,
    sleep=None,
    retries: int = 3,
):
    async def no_sleep(_):
        return None

    moderator = RetryingModerator(
        client or ScriptedClient(),
        RetryPolicy(max_retries=retries, delay_seconds=0.2),
        sleep=sleep or no_sleep,
    )
    return ModerationPipeline(
        fetcher=fetcher or FakeFetcher(),
        extractor=extractor or FakeExtractor(),
        moderator=moderator,
        rate_limiter=limiter,
    )


def run(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# URL validation
# ---------------------------------------------------------------------------

class TestValidateSourceUrl:

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/a.mp4",
            "http://10.0.0.1:8080/v?x=1",
            "http://[::1]:8080/v.mp4",
            "  https://example.com/a.mp4 ",
        ],
    )
    def test_accepts_absolute_urls(self, url):
        assert validate_source_url(url) == url.strip()

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "   ",
            "not a url",
            "/relative/path.mp4",
            "example.com/video.mp4",
            "https://",
            "http://host:99999/x",
            "http://exa mple.com/v.mp4",
            "http://exa<mple.com/v.mp4",
            "https://ex ample.com",
            "http://user@/v.mp4",
        ],
    )
    def test_rejects_malformed_urls(self, url):
        with pytest.raises(InvalidInputError):
            validate_source_url(url)


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

class TestModerationPipeline:

    def test_moderates_frames_in_index_order(self, recording_limiter):
        extractor = FakeExtractor(["frame_010.jpg", "frame_002.jpg", "frame_001.jpg"])
        client = ScriptedClient()
        pipeline = build_pipeline(extractor=extractor, client=client, limiter=recording_limiter)

        outcome = run(pipeline.run(URL))

        assert [r.frame.index for r in outcome.frames] == [1, 2, 10]
        assert [p.name for p in client.calls] == ["frame_001.jpg", "frame_002.jpg", "frame_010.jpg"]
        assert outcome.message == SUCCESS_MESSAGE
        assert pipeline.stage is PipelineStage.DONE

    def test_every_frame_gets_its_own_verdict(self, recording_limiter):
        verdicts = [
            ModerationVerdict(description="one", rating=Rating.G),
            ModerationVerdict(description="two", rating=Rating.R),
        ]
        extractor = FakeExtractor(["frame_001.jpg", "frame_002.jpg"])
        pipeline = build_pipeline(
            extractor=extractor, client=ScriptedClient(verdicts), limiter=recording_limiter
        )

        outcome = run(pipeline.run(URL))

        assert [r.verdict for r in outcome.frames] == verdicts
        assert all(r.is_moderated for r in outcome.frames)

    def test_waits_after_each_frame(self, recording_limiter):
        extractor = FakeExtractor(["frame_001.jpg", "frame_002.jpg", "frame_003.jpg"])
        pipeline = build_pipeline(extractor=extractor, limiter=recording_limiter)

        run(pipeline.run(URL))

        assert recording_limiter.waits == 3

    def test_ignores_non_frame_files(self, recording_limiter):
        extractor = FakeExtractor(["frame_001.jpg", "ffmpeg.log", "frame_002.png", "frame_003.JPG"])
        pipeline = build_pipeline(extractor=extractor, limiter=recording_limiter)

        outcome = run(pipeline.run(URL))

        assert [r.frame.path.name for r in outcome.frames] == ["frame_001.jpg", "frame_003.JPG"]

    def test_zero_frames_is_success(self, recording_limiter):
        client = ScriptedClient()
        pipeline = build_pipeline(extractor=FakeExtractor([]), client=client, limiter=recording_limiter)

        outcome = run(pipeline.run(URL))

        assert outcome.frames == ()
        assert outcome.message == SUCCESS_MESSAGE
        assert client.calls == []
        assert recording_limiter.waits == 0

    def test_moderation_failures_never_fail_the_request(self, recording_limiter):
        extractor = FakeExtractor(["frame_001.jpg", "frame_002.jpg"])
        # first frame burns all four attempts, second succeeds
        client = ScriptedClient([transport_error("down")] * 4)
        pipeline = build_pipeline(extractor=extractor, client=client, limiter=recording_limiter)

        outcome = run(pipeline.run(URL))

        first, second = outcome.frames
        assert first.verdict.rating is Rating.INAPPROPRIATE
        assert first.verdict.description == "Error: down (after 4 attempts)"
        assert second.verdict.rating is Rating.G
        assert len(client.calls) == 5
        assert pipeline.stage is PipelineStage.DONE

    def test_fetched_media_is_handed_to_extractor(self, recording_limiter):
        fetcher = FakeFetcher(content=b"movie")
        extractor = FakeExtractor([])
        pipeline = build_pipeline(fetcher=fetcher, extractor=extractor, limiter=recording_limiter)

        run(pipeline.run(URL))

        (url, destination), = fetcher.calls
        (media_path, output_dir), = extractor.calls
        assert url == URL
        assert media_path == destination
        assert output_dir.is_absolute()


# ---------------------------------------------------------------------------
# Fatal errors
# ---------------------------------------------------------------------------

class TestPipelineFailures:

    @pytest.mark.parametrize(
        "url", ["definitely not a url", "http://exa mple.com/v.mp4", "http://exa<mple.com/v.mp4"]
    )
    def test_invalid_url_never_fetches(self, url, recording_limiter):
        fetcher = FakeFetcher()
        pipeline = build_pipeline(fetcher=fetcher, limiter=recording_limiter)

        with pytest.raises(InvalidInputError):
            run(pipeline.run(url))

        assert fetcher.calls == []
        assert pipeline.stage is PipelineStage.FAILED

    def test_fetch_failure_aborts_before_extraction(self, recording_limiter):
        fetcher = FakeFetcher(error=FetchError("Failed to download URL. HTTP Status: 404", reason=FetchError.STATUS, status_code=404))
        extractor = FakeExtractor(["frame_001.jpg"])
        pipeline = build_pipeline(fetcher=fetcher, extractor=extractor, limiter=recording_limiter)

        with pytest.raises(FetchError) as exc_info:
            run(pipeline.run(URL))

        assert exc_info.value.stage is PipelineStage.FETCHING
        assert extractor.calls == []
        assert pipeline.stage is PipelineStage.FAILED

    def test_extraction_failure_produces_no_results(self, recording_limiter):
        client = ScriptedClient()
        extractor = FakeExtractor(error=ExtractionError("ffmpeg failed with status: 1", returncode=1))
        pipeline = build_pipeline(extractor=extractor, client=client, limiter=recording_limiter)

        with pytest.raises(ExtractionError) as exc_info:
            run(pipeline.run(URL))

        assert exc_info.value.stage is PipelineStage.EXTRACTING
        assert exc_info.value.returncode == 1
        assert client.calls == []
        assert pipeline.stage is PipelineStage.FAILED


# ---------------------------------------------------------------------------
# Workspace cleanup
# ---------------------------------------------------------------------------

class TestWorkspaceCleanup:

    def test_workspace_removed_after_success(self, recording_limiter):
        fetcher = FakeFetcher()
        extractor = FakeExtractor(["frame_001.jpg"])
        pipeline = build_pipeline(fetcher=fetcher, extractor=extractor, limiter=recording_limiter)

        run(pipeline.run(URL))

        (_, media_path), = fetcher.calls
        (_, frames_dir), = extractor.calls
        assert not media_path.exists()
        assert not frames_dir.exists()

    def test_workspace_removed_after_extraction_failure(self, recording_limiter):
        fetcher = FakeFetcher()
        extractor = FakeExtractor(error=ExtractionError("Failed to execute ffmpeg: not found"))
        pipeline = build_pipeline(fetcher=fetcher, extractor=extractor, limiter=recording_limiter)

        with pytest.raises(ExtractionError):
            run(pipeline.run(URL))

        (_, media_path), = fetcher.calls
        (_, frames_dir), = extractor.calls
        assert not media_path.exists()
        assert not frames_dir.exists()

    def test_workspace_context_manager(self):
        with EphemeralWorkspace() as workspace:
            media_path = workspace.media_path
            frames_dir = workspace.frames_dir
            assert media_path.exists()
            assert frames_dir.is_dir()
            (frames_dir / "frame_001.jpg").write_bytes(b"x")

        assert not media_path.exists()
        assert not frames_dir.exists()

    def test_workspace_released_on_exception(self):
        with pytest.raises(RuntimeError):
            with EphemeralWorkspace() as workspace:
                media_path = workspace.media_path
                frames_dir = workspace.frames_dir
                raise RuntimeError("boom")

        assert not Path(media_path).exists()
        assert not Path(frames_dir).exists()
