"""
Video processing infrastructure.

Samples downloaded videos into still frames with FFmpeg.
"""

from .processor import (
    FFmpegFrameExtractor,
    build_sampling_filter,
    create_frame_extractor,
)

__all__ = [
    "FFmpegFrameExtractor",
    "build_sampling_filter",
    "create_frame_extractor",
]
