"""
EventStore — append-only, capacity-bounded log of observations.

The whole log is serialized as one JSON array under a single backend key,
newest observation first. Every ``all()`` and ``append()`` round-trips through
the backend, so several processes sharing a FileBackend see each other's
writes.

Reads are fail-soft: missing, unreadable or corrupt data reads as an empty
log. Writes are fail-loud: any backend failure raises StoreWriteError,
including a failed read of the log a write is about to replace. Only data
that was read and found corrupt is overwritten by the next append.

``append`` is read-modify-write. Callers must serialize ``append`` calls;
IngestionCoordinator does this with a lock.
"""

import json
import logging
from typing import List, Optional

from .backends import MemoryBackend, StorageBackend
from .observation import Observation

logger = logging.getLogger("moodtrack")

STORAGE_KEY = "emotion-detector-data"
DEFAULT_CAPACITY = 1000


class StoreWriteError(Exception):
    """Persisting the event log failed. The log on disk is unchanged."""


class EventStore:
    """Newest-first observation log over a key-value backend.

    Parameters
    ----------
    backend : StorageBackend | None
        Where the serialized log lives. Defaults to a fresh MemoryBackend.
    capacity : int
        Maximum number of observations kept (default 1000).
    key : str
        Backend key holding the log.
    """

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        capacity: int = DEFAULT_CAPACITY,
        key: str = STORAGE_KEY,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.backend = backend if backend is not None else MemoryBackend()
        self.capacity = capacity
        self.key = key

    # ── reads ───────────────────────────────────────────────────────────

    def all(self) -> List[Observation]:
        """Full log, newest first. Empty on any read or decode failure."""
        try:
            return self._load()
        except OSError as e:
            logger.warning("Error loading stored emotions from %r: %s", self.key, e)
            return []

    def __len__(self) -> int:
        return len(self.all())

    def export(self) -> str:
        """Full log as indented JSON text; ``restore`` accepts it back."""
        return _encode(self.all(), indent=2)

    # ── writes ──────────────────────────────────────────────────────────

    def append(self, observation: Observation) -> None:
        """Prepend *observation* and evict the oldest entries beyond capacity.

        Raises:
            StoreWriteError: the backend rejected the write, or the
                current log could not be read.
        """
        if not isinstance(observation, Observation):
            raise TypeError(f"expected Observation, got {type(observation).__name__}")
        updated = [observation] + self._load_for_write()
        evicted = len(updated) - self.capacity
        if evicted > 0:
            del updated[self.capacity:]
        self._write(updated)
        logger.debug(
            "Appended %s (%s, %s)%s", observation.id, observation.emotion,
            observation.source, f"; evicted {evicted}" if evicted > 0 else "",
        )

    def clear(self) -> None:
        """Empty the log.

        Raises:
            StoreWriteError: the backend could not remove the key.
        """
        try:
            self.backend.remove(self.key)
        except OSError as e:
            logger.error("Error clearing emotion data %r: %s", self.key, e)
            raise StoreWriteError(f"could not clear {self.key!r}: {e}") from e

    def restore(self, text: str, replace: bool = True) -> int:
        """Load an ``export()`` payload back into the store.

        With ``replace=False`` the imported observations are merged into the
        current log; ids already present are skipped. The merged log is
        ordered newest first by timestamp and truncated to capacity.

        Returns:
            Length of the log after the restore.

        Raises:
            ValueError: *text* is not a valid export. Nothing is written.
            StoreWriteError: the backend rejected the write.
        """
        try:
            imported = _decode(text)
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"not a valid emotion export: {e}") from e

        if replace:
            merged = imported
        else:
            current = self._load_for_write()
            seen = {o.id for o in current}
            merged = current + [o for o in imported if o.id not in seen]
            merged.sort(key=lambda o: o.timestamp, reverse=True)

        merged = merged[:self.capacity]
        self._write(merged)
        return len(merged)

    # ── private ─────────────────────────────────────────────────────────

    def _load(self) -> List[Observation]:
        """Stored log. Corrupt data reads as empty; backend OSErrors propagate."""
        try:
            raw = self.backend.get(self.key)
        except UnicodeDecodeError as e:
            logger.warning("Stored emotion log %r is not valid UTF-8, reading as empty: %s", self.key, e)
            return []
        if not raw:
            return []
        try:
            return _decode(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Stored emotion log %r is corrupt, reading as empty: %s", self.key, e)
            return []

    def _load_for_write(self) -> List[Observation]:
        # an unreadable log must not be overwritten with a shorter one
        try:
            return self._load()
        except OSError as e:
            logger.error("Error reading emotion log %r before writing: %s", self.key, e)
            raise StoreWriteError(f"could not read {self.key!r} before writing: {e}") from e

    def _write(self, observations: List[Observation]) -> None:
        payload = _encode(observations)
        try:
            self.backend.set(self.key, payload)
        except OSError as e:
            logger.error("Error storing emotion log %r: %s", self.key, e)
            raise StoreWriteError(f"could not write {self.key!r}: {e}") from e


def _encode(observations: List[Observation], indent: Optional[int] = None) -> str:
    return json.dumps([o.to_dict() for o in observations], indent=indent, ensure_ascii=False)


def _decode(raw: str) -> List[Observation]:
    data = json.loads(raw)
    if not isinstance(data, list):
        raise TypeError(f"expected a JSON array, got {type(data).__name__}")
    return [Observation.from_dict(d) for d in data]
