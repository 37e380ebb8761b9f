"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- http: source media download (httpx)
- video: frame sampling with ffmpeg
- grok: xAI vision moderation (OpenAI-compatible API)
- anthropic: Claude vision moderation

These wrappers translate between external formats and our domain models.
"""
