"""
kbfeed Storage Layer
====================

This module provides:
- Ingest repository: the (feed, entry) dedup store
- Content cache: local copies of submitted documents
"""

from .ingest_repository import IngestRepository
from .content_cache import ContentCache

__all__ = [
    "IngestRepository",
    "ContentCache",
]
