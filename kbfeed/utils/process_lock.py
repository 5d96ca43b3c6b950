"""
Process Lock Utilities
======================

Scheduled ingest runs can overlap when a pass takes longer than the cron
interval. Runs against the same dedup database take an exclusive ``flock``
on a lock file in the system temp dir; a second run sees the lock held
and exits instead of submitting the same entries twice.
"""

import os
import fcntl
import hashlib
import logging
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ProcessLock:
    """Non-blocking exclusive file lock holding the owner's PID."""

    def __init__(self, lock_name: str, lock_dir: Optional[str] = None):
        """
        Args:
            lock_name: Lock file name without extension
            lock_dir: Directory for the lock file (default: system temp dir)
        """
        self.lock_file = Path(lock_dir or tempfile.gettempdir()) / f"{lock_name}.lock"
        self.lock_fd: Optional[int] = None
        self.acquired = False

    def acquire(self) -> bool:
        """Try to take the lock without waiting.

        Returns:
            True if this process now holds the lock, False if another one does
        """
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)

        # No O_TRUNC: the holder's PID must survive a refused attempt
        fd = os.open(str(self.lock_file), os.O_CREAT | os.O_WRONLY)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            os.close(fd)
            holder = self.get_lock_holder_pid()
            logger.warning(
                f"Run lock {self.lock_file} is held"
                f"{f' by PID {holder}' if holder else ''}"
            )
            return False

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        os.fsync(fd)

        self.lock_fd = fd
        self.acquired = True
        logger.debug(f"Run lock acquired: {self.lock_file}")
        return True

    def release(self) -> None:
        """Drop the lock and remove the lock file. No-op if not held."""
        if not self.acquired:
            return

        try:
            self.lock_file.unlink(missing_ok=True)
            fcntl.flock(self.lock_fd, fcntl.LOCK_UN)
            os.close(self.lock_fd)
            logger.debug(f"Run lock released: {self.lock_file}")
        except OSError as e:
            logger.warning(f"Error releasing run lock {self.lock_file}: {e}")
        finally:
            self.lock_fd = None
            self.acquired = False

    def get_lock_holder_pid(self) -> Optional[int]:
        """PID recorded in the lock file, if readable."""
        try:
            return int(self.lock_file.read_text().strip())
        except (ValueError, OSError):
            return None

    def __enter__(self) -> "ProcessLock":
        if not self.acquire():
            raise RuntimeError(f"Could not acquire process lock: {self.lock_file}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


def lock_for_database(db_file: str, lock_dir: Optional[str] = None) -> ProcessLock:
    """Build the run lock for a dedup database.

    The lock name derives from the resolved database path, so two
    configurations sharing a database also share the lock.

    Returns:
        Unacquired ProcessLock
    """
    db_hash = hashlib.sha256(str(Path(db_file).resolve()).encode()).hexdigest()[:16]
    return ProcessLock(f"kbfeed-run-{db_hash}", lock_dir=lock_dir)
