"""Shared file helpers for moodtrack."""

import logging
import os
import tempfile
from typing import Optional

from .locking import FileLock

logger = logging.getLogger("moodtrack")


def atomic_write_text(path: str, text: str, lock: bool = True) -> None:
    """Replace *path* with *text* (UTF-8) without ever exposing a partial file.

    Writes to a temp file in the same directory, fsyncs, then renames over
    the target. With ``lock=True`` the write happens under a FileLock so
    concurrent writers cannot interleave.
    """
    dir_path = os.path.dirname(path) or "."
    os.makedirs(dir_path, exist_ok=True)

    if lock:
        with FileLock(path, timeout=30.0):
            _do_atomic_write(path, text, dir_path)
    else:
        _do_atomic_write(path, text, dir_path)


def _do_atomic_write(path: str, text: str, dir_path: str) -> None:
    fd, tmp_path = tempfile.mkstemp(dir=dir_path, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def locked_read_text(path: str, timeout: float = 10.0) -> Optional[str]:
    """Read *path* under its FileLock. Returns None if the file does not exist."""
    if not os.path.exists(path):
        return None
    with FileLock(path, timeout=timeout):
        try:
            with open(path, encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
