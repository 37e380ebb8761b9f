"""
Core business logic for frame moderation.

This module is framework-agnostic - it doesn't import FastAPI, httpx,
or any vision SDK. Everything external is reached through the protocols
in core.moderation.pipeline.
"""
