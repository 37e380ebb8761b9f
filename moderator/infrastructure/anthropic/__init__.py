"""
Anthropic Claude moderation client.

Implements the ModerationClient protocol from core.moderation.pipeline.
"""

from .client import AnthropicConfig, AnthropicModerationClient, create_anthropic_client

__all__ = ["AnthropicConfig", "AnthropicModerationClient", "create_anthropic_client"]
