"""
HTTP download of source media.
"""

from .fetcher import HttpMediaFetcher

__all__ = ["HttpMediaFetcher"]
