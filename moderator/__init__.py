"""
Frame Moderator - per-frame content moderation for remotely hosted videos.

This package contains the complete application:
- core: Framework-agnostic moderation pipeline
- infrastructure: External service integrations (HTTP fetch, ffmpeg, vision APIs)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
