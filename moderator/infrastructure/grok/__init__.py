"""
xAI Grok moderation client (OpenAI-compatible chat completions).
"""

from .client import GrokConfig, GrokModerationClient, create_grok_client

__all__ = ["GrokConfig", "GrokModerationClient", "create_grok_client"]
