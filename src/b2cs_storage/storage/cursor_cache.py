"""Bounded, thread-safe cache of in-flight listing cursors."""

import logging
import threading
from typing import Generic, TypeVar

from cachetools import LRUCache

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CAPACITY = 100


class CursorCache(Generic[T]):
    """
    Fixed-capacity LRU map from resume tokens to live cursors.

    Inserting past capacity silently drops the least recently used cursor.
    Lookups are destructive: a cursor can be taken exactly once.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._cursors: LRUCache = LRUCache(maxsize=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return int(self._cursors.maxsize)

    def put(self, token: str, cursor: T) -> None:
        with self._lock:
            if len(self._cursors) >= self._cursors.maxsize and token not in self._cursors:
                log.debug("Cursor cache full (%d), evicting oldest cursor", len(self._cursors))
            self._cursors[token] = cursor

    def take(self, token: str) -> T | None:
        """Remove and return the cursor stored under *token*, or None if unknown."""
        with self._lock:
            return self._cursors.pop(token, None)

    def clear(self) -> None:
        with self._lock:
            self._cursors.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cursors)

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._cursors
