"""
kbfeed Database Connection Management
=====================================

SQLite connection handling for the dedup store. A run is single-threaded,
so one connection is opened lazily and reused until close().
"""

import sqlite3
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Generator, List

from ..utils.exceptions import DatabaseError, ErrorCode

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """SQLite connection manager for the dedup database."""

    def __init__(self, db_path: str):
        """Initialize database connection manager.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    def _create_connection(self) -> sqlite3.Connection:
        """Create a new SQLite connection."""
        try:
            conn = sqlite3.connect(
                self.db_path,
                timeout=30.0  # 30 second timeout for database locks
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Cannot open database {self.db_path}: {e}",
                error_code=ErrorCode.DATABASE_CONNECTION
            ) from e

        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        conn.row_factory = sqlite3.Row

        logger.debug(f"Opened database connection to {self.db_path}")
        return conn

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get the shared connection.

        Usage:
            with db.get_connection() as conn:
                rows = conn.execute("SELECT * FROM rss_records").fetchall()
        """
        if self._conn is None:
            self._conn = self._create_connection()

        try:
            yield self._conn
        except sqlite3.Error as e:
            logger.error(f"Database connection error: {e}")
            self._conn.rollback()
            raise

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Execute operations within a database transaction.

        Commits on success, rolls back on any exception.
        """
        with self.get_connection() as conn:
            try:
                yield conn
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Transaction rolled back due to error: {e}")
                raise

    def execute_query(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        """Execute a SELECT query and return all rows."""
        with self.get_connection() as conn:
            return conn.execute(query, params).fetchall()

    def execute_one(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        """Execute a query and return the first row or None."""
        with self.get_connection() as conn:
            return conn.execute(query, params).fetchone()

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Execute an INSERT/UPDATE/DELETE query and return affected rows."""
        with self.transaction() as conn:
            cursor = conn.execute(query, params)
            return cursor.rowcount

    def close(self) -> None:
        """Close the connection if open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("Closed database connection")

    def __enter__(self) -> "DatabaseConnection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
