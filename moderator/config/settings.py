"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
The Settings object is built once per process and handed to the components
that need it, so core code never reads the environment directly.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    """

    # API Configuration
    api_title: str = "Frame Moderator API"
    api_version: str = "v1"
    zipstory_token: str = Field(
        default="",
        description="Shared secret expected in the zipstory-token header."
    )

    # Moderation provider
    moderation_provider: Literal["grok", "anthropic"] = Field(
        default="grok",
        description="Which vision endpoint moderates frames."
    )
    grok_api_key: str = Field(
        default="",
        description="xAI API key. Required when the provider is grok."
    )
    grok_base_url: str = Field(
        default="https://api.x.ai/v1",
        description="OpenAI-compatible base URL for chat completions"
    )
    grok_model: str = Field(
        default="grok-2-vision-latest",
        description="Vision model used for frame moderation"
    )
    grok_temperature: float = Field(default=0.7)
    anthropic_api_key: str = Field(
        default="",
        description="Claude API key. Required when the provider is anthropic."
    )
    anthropic_model: str = Field(default="claude-sonnet-4-20250514")
    anthropic_max_tokens: int = Field(default=1024)
    moderation_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for a single moderation call"
    )

    # Retry and throttling
    moderation_max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries after the first failed moderation attempt"
    )
    moderation_retry_delay_ms: int = Field(
        default=200,
        ge=0,
        description="Fixed wait between moderation attempts"
    )
    frame_delay_ms: int = Field(
        default=200,
        ge=0,
        description="Pause after each moderated frame to stay under endpoint rate limits"
    )

    # Frame extraction
    frame_sample_fps: int = Field(default=1, ge=1)
    frame_max_edge_px: int = Field(
        default=300,
        ge=1,
        description="Longer edge of each extracted frame; aspect ratio is kept"
    )
    ffmpeg_path: str = Field(default="ffmpeg")
    download_timeout_seconds: float = Field(default=300.0)

    # Debug thumbnails
    debug: bool = Field(
        default=False,
        description="Copy every extracted frame into thumbnails_dir for inspection"
    )
    thumbnails_dir: Path = Field(default=Path("thumbnails"))

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def moderation_retry_delay_seconds(self) -> float:
        return self.moderation_retry_delay_ms / 1000

    @property
    def frame_delay_seconds(self) -> float:
        return self.frame_delay_ms / 1000

    def validate_required_fields(self) -> list[str]:
        """
        Return the env vars that must be set but are not.

        Requirements depend on the selected provider, so this lives
        outside Pydantic validation.
        """
        missing = []

        if not self.zipstory_token:
            missing.append("ZIPSTORY_TOKEN")

        if self.moderation_provider == "grok" and not self.grok_api_key:
            missing.append("GROK_API_KEY")
        if self.moderation_provider == "anthropic" and not self.anthropic_api_key:
            missing.append("ANTHROPIC_API_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
