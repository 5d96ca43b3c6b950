"""
kbfeed Database Schema
======================

Schema for the dedup store: a single ``rss_records`` table keyed by
(rss_id, guid) with a unique content hash. The table is created when absent
and never migrated.
"""

import sqlite3
import logging

from .connection import DatabaseConnection
from ..utils.exceptions import DatabaseError, ErrorCode

logger = logging.getLogger(__name__)

RSS_RECORDS_TABLE = "rss_records"

EXPECTED_COLUMNS = {"rss_id", "guid", "hash"}


class DatabaseSchema:
    """Schema manager for the kbfeed SQLite database."""

    def __init__(self, db: DatabaseConnection):
        """Initialize database schema manager.

        Args:
            db: Database connection manager
        """
        self.db = db

    def table_exists(self) -> bool:
        """Check whether the records table is present."""
        row = self.db.execute_one(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (RSS_RECORDS_TABLE,)
        )
        return row is not None

    def create_tables(self) -> bool:
        """Create the records table if it does not exist.

        Returns:
            True if the table was created, False if it already existed

        Raises:
            DatabaseError: If the table cannot be created
        """
        try:
            if self.table_exists():
                logger.debug(f"Table {RSS_RECORDS_TABLE} already exists")
                return False

            with self.db.transaction() as conn:
                conn.execute(
                    f"""
                    CREATE TABLE {RSS_RECORDS_TABLE} (
                        rss_id TEXT NOT NULL,
                        guid TEXT NOT NULL,
                        hash TEXT NOT NULL,
                        PRIMARY KEY (rss_id, guid),
                        UNIQUE (hash)
                    )
                """
                )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create table {RSS_RECORDS_TABLE}: {e}",
                error_code=ErrorCode.DATABASE_SCHEMA
            ) from e

        logger.info(f"Created table {RSS_RECORDS_TABLE}")
        return True

    def verify_schema(self) -> bool:
        """Verify the records table exists with the expected columns."""
        try:
            if not self.table_exists():
                logger.error(f"Missing table {RSS_RECORDS_TABLE}")
                return False

            rows = self.db.execute_query(f"PRAGMA table_info({RSS_RECORDS_TABLE})")
            columns = {row["name"] for row in rows}
            if columns != EXPECTED_COLUMNS:
                logger.error(
                    f"Unexpected columns. Expected: {EXPECTED_COLUMNS}, Found: {columns}"
                )
                return False

            logger.info("Database schema verification passed")
            return True

        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False
