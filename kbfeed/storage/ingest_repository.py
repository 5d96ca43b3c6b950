"""
Ingest Repository
=================

Identity and dedup store. Records which (feed id, entry GUID) pairs have been
fully submitted to the knowledge base, keyed by a deterministic sha256 hash of
the pair.

Usage protocol (per entry): lookup() first; compute_hash() only for entries
that are new; record() only after the remote submission succeeded.
"""

import hashlib
import sqlite3
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import IngestRecord
from ..database.schema import DatabaseSchema, RSS_RECORDS_TABLE
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, DedupConflictError, ErrorCode


class IngestRepository:
    """Repository for IngestRecord rows."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize ingest repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.schema = DatabaseSchema(db_connection)
        self.logger = get_logger_for_component("ingest_repository")

    def ensure_schema(self) -> None:
        """Create the backing table if absent. Safe to call every run."""
        self.schema.create_tables()

    def verify_schema(self) -> bool:
        """True if the backing table exists with the expected columns."""
        return self.schema.verify_schema()

    @staticmethod
    def compute_hash(feed_id: str, guid: str) -> str:
        """Deterministic identity hash of an entry.

        Args:
            feed_id: Configured feed identifier
            guid: Entry GUID

        Returns:
            64-character lowercase sha256 hex digest of "<feed_id>-<guid>"
        """
        return hashlib.sha256(f"{feed_id}-{guid}".encode("utf-8")).hexdigest()

    def lookup(self, feed_id: str, guid: str) -> Optional[str]:
        """Return the stored hash for an entry, or None if not yet ingested.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            row = self.db.execute_one(
                f"SELECT hash FROM {RSS_RECORDS_TABLE} WHERE rss_id = ? AND guid = ?",
                (feed_id, guid)
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to look up {feed_id}/{guid}: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

        return row["hash"] if row else None

    def record(self, feed_id: str, guid: str, content_hash: str) -> IngestRecord:
        """Insert an ingest record.

        Raises:
            DedupConflictError: If the (feed_id, guid) pair or the hash is already recorded
            DatabaseError: On any other database failure
        """
        try:
            rows = self.db.execute_update(
                f"INSERT INTO {RSS_RECORDS_TABLE} (rss_id, guid, hash) VALUES (?, ?, ?)",
                (feed_id, guid, content_hash)
            )
        except sqlite3.IntegrityError as e:
            raise DedupConflictError(
                f"Entry already recorded: {e}",
                feed_id=feed_id,
                entry_guid=guid,
                context={"hash": content_hash},
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to record {feed_id}/{guid}: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

        if rows == 0:
            raise DatabaseError(
                f"No rows affected recording {feed_id}/{guid}",
                error_code=ErrorCode.DATABASE_ERROR
            )

        self.logger.debug(f"Recorded {feed_id}/{guid} as {content_hash[:6]}")
        return IngestRecord(feed_id=feed_id, guid=guid, content_hash=content_hash)

    def count_records(self, feed_id: Optional[str] = None) -> int:
        """Count ingest records, optionally for one feed."""
        if feed_id is None:
            row = self.db.execute_one(f"SELECT COUNT(*) AS n FROM {RSS_RECORDS_TABLE}")
        else:
            row = self.db.execute_one(
                f"SELECT COUNT(*) AS n FROM {RSS_RECORDS_TABLE} WHERE rss_id = ?",
                (feed_id,)
            )
        return row["n"]

    def list_records(self, feed_id: str) -> List[IngestRecord]:
        """List all ingest records of a feed."""
        rows = self.db.execute_query(
            f"SELECT rss_id, guid, hash FROM {RSS_RECORDS_TABLE} WHERE rss_id = ? ORDER BY guid",
            (feed_id,)
        )
        return [
            IngestRecord(feed_id=row["rss_id"], guid=row["guid"], content_hash=row["hash"])
            for row in rows
        ]
