"""Unit tests for RunLock"""

import json
import os
import socket
import tempfile
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from docsync.services.run_lock import UNREADABLE_LOCK_GRACE_SECONDS, RunAlreadyInProgress, RunLock


class TestRunLock:
    """Test exclusive, fail-fast run locking"""

    @pytest.fixture
    def lock_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir) / "documentation" / ".docsync.lock"

    def test_acquire_and_release(self, lock_file):
        with RunLock(lock_file):
            owner = json.loads(lock_file.read_text())
            assert owner["pid"] == os.getpid()
            assert owner["hostname"] == socket.gethostname()
            assert "startedAt" in owner

        assert not lock_file.exists()

    def test_live_lock_fails_immediately(self, lock_file):
        with RunLock(lock_file):
            with pytest.raises(RunAlreadyInProgress) as exc_info:
                RunLock(lock_file).acquire()

        assert exc_info.value.owner["pid"] == os.getpid()

    def test_released_on_exception(self, lock_file):
        with pytest.raises(RuntimeError):
            with RunLock(lock_file):
                raise RuntimeError("boom")

        assert not lock_file.exists()

    def test_stale_lock_taken_over(self, lock_file):
        lock_file.parent.mkdir(parents=True)
        lock_file.write_text(
            json.dumps({"pid": 999999, "hostname": socket.gethostname(), "startedAt": "x"})
        )

        with patch("docsync.services.run_lock.os.kill", side_effect=ProcessLookupError):
            with RunLock(lock_file):
                assert json.loads(lock_file.read_text())["pid"] == os.getpid()

    def test_fresh_empty_lock_is_respected(self, lock_file):
        lock_file.parent.mkdir(parents=True)
        lock_file.write_text("")

        with pytest.raises(RunAlreadyInProgress):
            RunLock(lock_file).acquire()

        assert lock_file.read_text() == ""

    def test_old_corrupt_lock_taken_over(self, lock_file):
        lock_file.parent.mkdir(parents=True)
        lock_file.write_text("{not json")
        old = time.time() - UNREADABLE_LOCK_GRACE_SECONDS - 60
        os.utime(lock_file, (old, old))

        with RunLock(lock_file):
            assert json.loads(lock_file.read_text())["pid"] == os.getpid()

    def test_lock_file_appears_complete(self, lock_file):
        lock_file.parent.mkdir(parents=True)
        seen = []
        real_link = os.link

        def link(source, target):
            # Identity is already on disk when the lock becomes visible
            seen.append(json.loads(Path(source).read_text()))
            real_link(source, target)

        with patch("docsync.services.run_lock.os.link", side_effect=link):
            with RunLock(lock_file):
                pass

        assert seen[0]["pid"] == os.getpid()
        assert list(lock_file.parent.iterdir()) == []

    def test_lock_from_other_host_is_respected(self, lock_file):
        lock_file.parent.mkdir(parents=True)
        lock_file.write_text(json.dumps({"pid": 1, "hostname": "elsewhere", "startedAt": "x"}))

        with pytest.raises(RunAlreadyInProgress):
            RunLock(lock_file).acquire()

        assert lock_file.exists()

    def test_release_does_not_remove_foreign_lock(self, lock_file):
        lock = RunLock(lock_file)
        lock.acquire()
        lock_file.write_text(json.dumps({"pid": 1, "hostname": "elsewhere"}))

        lock.release()

        assert lock_file.exists()
