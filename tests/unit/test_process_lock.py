"""
Tests for the run lock.
"""

import os

import pytest

from kbfeed.utils.process_lock import ProcessLock, lock_for_database


class TestProcessLock:
    """flock based single-run lock."""

    def test_acquire_and_release(self, tmp_path):
        lock = ProcessLock("kbfeed-test", lock_dir=str(tmp_path))

        assert lock.acquire()
        assert lock.get_lock_holder_pid() == os.getpid()

        lock.release()
        assert not lock.lock_file.exists()

    def test_second_lock_refused(self, tmp_path):
        first = ProcessLock("kbfeed-test", lock_dir=str(tmp_path))
        second = ProcessLock("kbfeed-test", lock_dir=str(tmp_path))

        assert first.acquire()
        try:
            assert not second.acquire()
            # refused attempt keeps the holder's PID
            assert second.get_lock_holder_pid() == os.getpid()
        finally:
            first.release()

        assert second.acquire()
        second.release()

    def test_context_manager(self, tmp_path):
        with ProcessLock("kbfeed-test", lock_dir=str(tmp_path)) as lock:
            assert lock.acquired
            with pytest.raises(RuntimeError):
                with ProcessLock("kbfeed-test", lock_dir=str(tmp_path)):
                    pass
        assert not lock.acquired

    def test_release_without_acquire(self, tmp_path):
        ProcessLock("kbfeed-test", lock_dir=str(tmp_path)).release()


class TestLockForDatabase:
    """Lock naming per database file."""

    def test_same_database_same_lock(self, tmp_path):
        db_file = str(tmp_path / "kbfeed.db")
        first = lock_for_database(db_file, lock_dir=str(tmp_path))
        second = lock_for_database(str(tmp_path / "." / "kbfeed.db"), lock_dir=str(tmp_path))
        assert first.lock_file == second.lock_file
        assert first.lock_file.name.startswith("kbfeed-run-")

    def test_different_databases_different_locks(self, tmp_path):
        first = lock_for_database(str(tmp_path / "a.db"), lock_dir=str(tmp_path))
        second = lock_for_database(str(tmp_path / "b.db"), lock_dir=str(tmp_path))
        assert first.lock_file != second.lock_file
