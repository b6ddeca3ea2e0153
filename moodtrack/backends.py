"""
Key-value persistence backends for the event log.

A backend stores UTF-8 text under string keys and exposes three calls:

    get(key)          -> str | None
    set(key, value)   -> None   (may raise on failure)
    remove(key)       -> None

``MemoryBackend`` keeps values in a dict and is what tests use.
``FileBackend`` keeps one ``<key>.json`` file per key under a directory and
writes atomically under a FileLock.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Dict, Optional

from .locking import FileLock
from .utils import atomic_write_text, locked_read_text

logger = logging.getLogger("moodtrack")

_KEY_RE = re.compile(r"^[\w.-]+$")


class StorageQuotaExceeded(OSError):
    """Raised by a backend when a write would exceed its size quota."""


class StorageBackend(ABC):
    """Minimal key-value interface the EventStore persists through."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Stored text for *key*, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete *key*. Removing an absent key is not an error."""


class MemoryBackend(StorageBackend):
    """In-process dict backend.

    Args:
        quota_bytes: Optional cap on the UTF-8 size of all stored values.
            A ``set`` that would exceed it raises StorageQuotaExceeded and
            leaves the previous value in place.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            others = sum(len(v.encode("utf-8")) for k, v in self._data.items() if k != key)
            needed = others + len(value.encode("utf-8"))
            if needed > self.quota_bytes:
                raise StorageQuotaExceeded(
                    f"writing {key!r} needs {needed} bytes, quota is {self.quota_bytes}"
                )
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileBackend(StorageBackend):
    """One JSON file per key under *directory*."""

    def __init__(self, directory: str):
        self.directory = os.path.abspath(directory)

    def path_for(self, key: str) -> str:
        if not _KEY_RE.match(key):
            raise ValueError(f"invalid storage key {key!r}")
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        return locked_read_text(self.path_for(key))

    def set(self, key: str, value: str) -> None:
        atomic_write_text(self.path_for(key), value)

    def remove(self, key: str) -> None:
        path = self.path_for(key)
        if not os.path.exists(path):
            return
        with FileLock(path, timeout=30.0):
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
        logger.debug("Removed %s", path)
