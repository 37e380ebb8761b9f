"""
Frame sampling using FFmpeg.

One ffmpeg run per request samples the whole video at a fixed rate and
scales every frame so its longer edge is a fixed size, writing
frame_001.jpg, frame_002.jpg, ... into the request's temp directory.

The exit code is the only signal we read from ffmpeg. Zero frames with a
zero exit code (empty or very short video) is not an error.
"""

import asyncio
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from moderator.core.moderation.errors import ExtractionError

logger = logging.getLogger(__name__)


FRAME_PATTERN = "frame_%03d.jpg"
FRAME_SUFFIX = Path(FRAME_PATTERN).suffix


def build_sampling_filter(fps: int = 1, max_edge: int = 300) -> str:
    """
    ffmpeg -vf expression: sample at fps, longer edge scaled to max_edge.

    -2 keeps the other dimension proportional and even, which the jpeg
    encoder needs.
    """
    return (
        f"fps={fps},"
        f"scale=w='if(gt(iw,ih),{max_edge},-2)':h='if(gt(iw,ih),-2,{max_edge})'"
    )


class FFmpegFrameExtractor:
    """
    FrameExtractor implementation backed by the ffmpeg binary.

    When thumbnails_dir is set, each frame is also copied there for
    inspection. That copy is best effort; failures are logged and ignored.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        fps: int = 1,
        max_edge: int = 300,
        thumbnails_dir: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._ffmpeg = ffmpeg_path
        self._filter = build_sampling_filter(fps=fps, max_edge=max_edge)
        self._thumbnails_dir = thumbnails_dir
        self._timeout = timeout

    def build_command(self, media_path: Path, output_dir: Path) -> list[str]:
        return [
            self._ffmpeg,
            "-y",  # overwrite
            "-nostdin",
            "-i", str(media_path),
            "-vf", self._filter,
            str(output_dir / FRAME_PATTERN),
        ]

    async def extract(self, media_path: Path, output_dir: Path) -> list[Path]:
        cmd = self.build_command(media_path, output_dir)

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                timeout=self._timeout,
            )
        except OSError as e:
            # binary missing or not executable
            raise ExtractionError(f"Failed to execute ffmpeg: {e}")
        except subprocess.TimeoutExpired:
            raise ExtractionError("ffmpeg timed out")

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace") if result.stderr else ""
            logger.error(
                "ffmpeg exited with non-zero status",
                extra={"returncode": result.returncode, "stderr": stderr[-500:]},
            )
            raise ExtractionError(
                f"ffmpeg failed with status: {result.returncode}",
                returncode=result.returncode,
            )

        frames = sorted(
            p for p in output_dir.iterdir()
            if p.is_file() and p.suffix.lower() == FRAME_SUFFIX
        )
        logger.info("Extracted frames", extra={"count": len(frames)})

        if self._thumbnails_dir is not None:
            self._copy_thumbnails(frames)

        return frames

    def _copy_thumbnails(self, frames: list[Path]) -> None:
        try:
            self._thumbnails_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(
                "Failed to create thumbnails directory",
                extra={"path": str(self._thumbnails_dir), "error": str(e)},
            )
            return

        for frame in frames:
            try:
                shutil.copy(frame, self._thumbnails_dir / frame.name)
            except OSError as e:
                logger.warning(
                    "Failed to copy thumbnail",
                    extra={"frame": str(frame), "error": str(e)},
                )


def create_frame_extractor(settings) -> FFmpegFrameExtractor:
    """
    Factory function for the frame extractor.

    Args:
        settings: Application Settings; debug turns on thumbnail copies

    Returns:
        FrameExtractor implementation
    """
    return FFmpegFrameExtractor(
        ffmpeg_path=settings.ffmpeg_path,
        fps=settings.frame_sample_fps,
        max_edge=settings.frame_max_edge_px,
        thumbnails_dir=settings.thumbnails_dir if settings.debug else None,
    )
