"""Atomic file replacement helpers"""

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: str | Path, content: str) -> bool:
    """
    Write text to path via a temp file in the same directory and an atomic rename

    A reader never observes a partially written file: either the previous
    content or the new content is present.

    Args:
        path: Destination file
        content: Full UTF-8 text to write

    Returns:
        bool: False if the file already held identical content (nothing written)
    """
    path = Path(path)
    if path.exists() and path.read_text(encoding="utf-8") == content:
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        # os.replace is atomic on POSIX and Windows
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.remove(temp_name)
        raise

    logger.debug(f"Wrote {path}")
    return True


def remove_file(path: str | Path) -> bool:
    """Remove a file if present; returns False if it did not exist"""
    path = Path(path)
    if not path.exists():
        return False
    path.unlink()
    logger.debug(f"Removed {path}")
    return True


def cleanup_stale_temp_files(directory: str | Path) -> int:
    """Remove temp files left behind by an interrupted atomic write"""
    directory = Path(directory)
    if not directory.exists():
        return 0

    removed = 0
    for temp_file in directory.rglob(".*.tmp"):
        try:
            temp_file.unlink()
            removed += 1
            logger.info(f"Removed stale temp file: {temp_file}")
        except OSError as e:
            logger.error(f"Error removing stale temp file {temp_file}: {e}")
    return removed
