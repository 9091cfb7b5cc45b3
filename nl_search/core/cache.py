"""
In-process memoization with tag based invalidation.

Field description tables are derived from static collections, so entries never
expire on their own; they are dropped explicitly by invalidating a tag.
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaggedCache:
    """
    Key/value cache whose entries are grouped under invalidation tags.

    The compute function runs outside the lock; if two callers miss the same
    key concurrently both compute it and the last write wins.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._values: Dict[str, Any] = {}
        self._tags: Dict[str, Set[str]] = {}

    def get_or_compute(
        self, key: str, compute: Callable[[], T], tags: Iterable[str] = ()
    ) -> T:
        """
        Return the cached value for key, computing and storing it on a miss.

        Args:
            key: Cache key
            compute: Zero-argument function producing the value
            tags: Tags under which the entry can later be invalidated

        Returns:
            Cached or freshly computed value
        """
        with self._lock:
            if key in self._values:
                logger.debug("Cache hit for %s", key)
                return self._values[key]

        logger.debug("Cache miss for %s", key)
        value = compute()

        with self._lock:
            self._values[key] = value
            for tag in tags:
                self._tags.setdefault(tag, set()).add(key)
        return value

    def invalidate(self, tag: str) -> int:
        """
        Drop every entry stored under tag.

        Returns:
            Number of entries removed
        """
        with self._lock:
            keys = self._tags.pop(tag, set())
            removed = 0
            for key in keys:
                if key in self._values:
                    del self._values[key]
                    removed += 1
                for other in self._tags.values():
                    other.discard(key)
        logger.info("Invalidated %d cache entries for tag %s", removed, tag)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
            self._tags.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)
