"""
NewsDesk Ingestion Module
=========================

Feed fetching and content extraction components.

This module handles:
- Feed download and parsing with retries
- Full-page content extraction and HTML sanitization
"""

from .feed_fetcher import FeedFetcher
from .content_cleaner import ContentExtractor

__all__ = [
    "FeedFetcher",
    "ContentExtractor",
]
