"""
Directory-based file locking for the on-disk event log.

``os.mkdir()`` is atomic on POSIX and Windows, so creating ``<path>.lock``
doubles as lock acquisition. A ``holder.json`` inside the lock directory
records who holds it, which lets a later process break locks left behind by
a crashed writer.

Usage:
    with FileLock("/data/emotion-detector-data.json"):
        payload = read(path)
        write(path, updated)
"""

import json
import logging
import os
import time
from datetime import datetime, timezone

logger = logging.getLogger("moodtrack")

# A lock older than this is assumed to belong to a crashed writer
STALE_LOCK_SECONDS = 300


class LockTimeout(TimeoutError):
    """Raised when a lock cannot be acquired within the timeout."""


class FileLock:
    """Exclusive lock on *path* implemented with ``mkdir``.

    Args:
        path: Resource being protected; the lock directory is ``path + ".lock"``.
        timeout: Seconds to wait in ``acquire`` (None waits forever).
        poll_interval: Seconds between attempts.
        stale_threshold: Age in seconds after which a held lock is broken.
    """

    def __init__(self, path: str, timeout: float = 30.0,
                 poll_interval: float = 0.05, stale_threshold: float = STALE_LOCK_SECONDS):
        self.path = path
        self.lock_dir = path + ".lock"
        self.meta_path = os.path.join(self.lock_dir, "holder.json")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.stale_threshold = stale_threshold
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self, blocking: bool = True) -> bool:
        """Take the lock.

        Returns True once held, or False when *blocking* is False and another
        holder has it.

        Raises:
            LockTimeout: blocking and the timeout elapsed.
        """
        start = time.monotonic()
        while True:
            try:
                os.mkdir(self.lock_dir)
            except FileExistsError:
                if self._break_stale():
                    continue
                if not blocking:
                    return False
                if self.timeout is not None and time.monotonic() - start >= self.timeout:
                    raise LockTimeout(
                        f"Could not acquire lock on {self.path} after "
                        f"{self.timeout:.1f}s (holder: {self._read_holder()})"
                    )
                time.sleep(self.poll_interval)
                continue
            self._write_meta()
            self._held = True
            logger.debug("Lock acquired: %s", self.lock_dir)
            return True

    def release(self) -> None:
        if not self._held:
            return
        try:
            if os.path.exists(self.meta_path):
                os.unlink(self.meta_path)
            os.rmdir(self.lock_dir)
            logger.debug("Lock released: %s", self.lock_dir)
        except OSError as e:
            logger.warning("Error releasing lock %s: %s", self.lock_dir, e)
        finally:
            self._held = False

    def _write_meta(self) -> None:
        now_ts = time.time()
        meta = {
            "pid": os.getpid(),
            "acquired_at": datetime.fromtimestamp(now_ts, tz=timezone.utc).isoformat(),
            "acquired_at_ts": now_ts,
            "path": self.path,
        }
        try:
            with open(self.meta_path, "w", encoding="utf-8") as f:
                json.dump(meta, f)
        except OSError as e:
            # the lock directory exists, so the lock is held either way
            logger.debug("Could not write lock metadata %s: %s", self.meta_path, e)

    def _read_holder(self) -> str:
        try:
            with open(self.meta_path, encoding="utf-8") as f:
                meta = json.load(f)
            return f"pid={meta.get('pid')}, acquired={meta.get('acquired_at')}"
        except (OSError, ValueError):
            return "unknown"

    def _break_stale(self) -> bool:
        """Remove the lock if its holder died or it outlived ``stale_threshold``.

        Returns True when a stale lock was removed.
        """
        try:
            if not os.path.exists(self.meta_path):
                # crashed between mkdir and metadata write
                age = time.time() - os.path.getmtime(self.lock_dir)
                if age > self.stale_threshold:
                    self._force_break()
                    return True
                return False

            with open(self.meta_path, encoding="utf-8") as f:
                meta = json.load(f)
        except (OSError, ValueError):
            return False

        holder_pid = meta.get("pid")
        if holder_pid and holder_pid != os.getpid():
            try:
                os.kill(holder_pid, 0)
            except ProcessLookupError:
                logger.warning(
                    "Breaking orphaned lock on %s (holder pid=%s no longer exists)",
                    self.path, holder_pid,
                )
                self._force_break()
                return True
            except OSError:
                pass

        age = time.time() - float(meta.get("acquired_at_ts", 0))
        if age > self.stale_threshold:
            logger.warning(
                "Breaking stale lock on %s (held by pid=%s for %.0fs)",
                self.path, holder_pid, age,
            )
            self._force_break()
            return True
        return False

    def _force_break(self) -> None:
        try:
            if os.path.exists(self.meta_path):
                os.unlink(self.meta_path)
            os.rmdir(self.lock_dir)
        except OSError as e:
            logger.debug("Could not break lock %s: %s", self.lock_dir, e)

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, *exc):
        self.release()
        return False

    def __del__(self):
        if self._held:
            self.release()
