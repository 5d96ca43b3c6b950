"""
kbfeed Processing Module
========================

Ingest orchestration: drives feed entries from the dedup check through
submission to the knowledge base.
"""

from .pipeline import IngestPipeline

__all__ = [
    'IngestPipeline',
]
