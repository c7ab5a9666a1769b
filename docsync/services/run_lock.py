"""Advisory lock preventing concurrent runs against one documentation tree"""

import json
import logging
import os
import socket
import tempfile
import time
from datetime import UTC, datetime
from pathlib import Path

logger = logging.getLogger(__name__)

# An unreadable lock younger than this is assumed to belong to a live writer
UNREADABLE_LOCK_GRACE_SECONDS = 30


class RunAlreadyInProgress(Exception):
    """Raised when another live run holds the lock"""

    def __init__(self, lock_file: Path, owner: dict):
        self.lock_file = lock_file
        self.owner = owner
        super().__init__(
            f"Another run is in progress (pid {owner.get('pid')} on "
            f"{owner.get('hostname')}, started {owner.get('startedAt')}); lock: {lock_file}"
        )


class RunLock:
    """Lock file holding the owning process identity and start time

    Acquisition never waits: a live lock fails immediately. A lock left by a
    dead process on this host is taken over.
    """

    def __init__(self, lock_file: str | Path):
        self.lock_file = Path(lock_file)
        self.pid = os.getpid()
        self.hostname = socket.gethostname()
        self._held = False

    def acquire(self) -> None:
        """
        Acquire the lock

        The owner identity is written to a private temp file first and then
        hard-linked into place, so a visible lock file is always complete.

        Raises:
            RunAlreadyInProgress: If a live process holds the lock
        """
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=f"{self.lock_file.name}.", suffix=".claim", dir=self.lock_file.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(
                    {
                        "pid": self.pid,
                        "hostname": self.hostname,
                        "startedAt": datetime.now(UTC).isoformat(),
                    },
                    f,
                )
            for _ in range(2):
                try:
                    os.link(temp_name, self.lock_file)
                except FileExistsError:
                    owner = self._read_owner()
                    if self._owner_alive(owner):
                        raise RunAlreadyInProgress(self.lock_file, owner) from None
                    logger.warning(f"Removing stale run lock left by pid {owner.get('pid')}")
                    self.lock_file.unlink(missing_ok=True)
                    continue

                self._held = True
                logger.debug(f"Acquired run lock {self.lock_file}")
                return
        finally:
            os.unlink(temp_name)

        raise RunAlreadyInProgress(self.lock_file, self._read_owner())

    def release(self) -> None:
        """Remove the lock file if this process still owns it"""
        if not self._held:
            return
        owner = self._read_owner()
        if owner.get("pid") == self.pid and owner.get("hostname") == self.hostname:
            self.lock_file.unlink(missing_ok=True)
            logger.debug(f"Released run lock {self.lock_file}")
        else:
            logger.warning(f"Run lock {self.lock_file} was taken over by another process")
        self._held = False

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def _read_owner(self) -> dict:
        try:
            data = json.loads(self.lock_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    def _owner_alive(self, owner: dict) -> bool:
        pid = owner.get("pid")
        if not isinstance(pid, int):
            # Unreadable lock: not written by RunLock, so only age can tell
            try:
                age = time.time() - self.lock_file.stat().st_mtime
            except FileNotFoundError:
                return False
            return age < UNREADABLE_LOCK_GRACE_SECONDS
        if owner.get("hostname") != self.hostname:
            # A process on another host cannot be checked; assume it is alive
            return True
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True
