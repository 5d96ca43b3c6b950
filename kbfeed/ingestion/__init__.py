"""
kbfeed Ingestion Module
=======================

This module handles:
- RSS/Atom feed download and parsing
- Resolving entries into documents (link following or synthesis)
- HTML to Markdown conversion
"""

from .feed_manager import FeedManager
from .content_resolver import ContentResolver
from .content_converter import ContentConverter

__all__ = [
    "FeedManager",
    "ContentResolver",
    "ContentConverter",
]
