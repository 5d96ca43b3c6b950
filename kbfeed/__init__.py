"""
kbfeed - RSS to Knowledge Base Ingest
=====================================

Polls configured RSS/Atom feeds and submits each new entry, at most once, to
an Open WebUI knowledge base for retrieval-augmented querying.

Main Components:
- Configuration: YAML + environment variables with Pydantic validation
- Dedup store: SQLite record of every submitted (feed, entry) pair
- Ingestion: feed parsing, link following or Markdown synthesis, HTML conversion
- Delivery: two-step file upload and knowledge-base linking
"""

__version__ = "1.0.0"
__description__ = "Ingest RSS/Atom feeds into an Open WebUI knowledge base"

from .config.settings import load_settings
from .database.connection import DatabaseConnection
from .storage.ingest_repository import IngestRepository
from .processing.pipeline import IngestPipeline
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import KbFeedError

__all__ = [
    "load_settings",
    "DatabaseConnection",
    "IngestRepository",
    "IngestPipeline",
    "configure_application_logging",
    "get_logger_for_component",
    "KbFeedError",
]
