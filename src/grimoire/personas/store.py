"""Persona store: memoized classification results keyed by book."""

import logging
from collections import OrderedDict
from typing import Dict, Optional, Union

from .types import Defaulted, Parsed

logger = logging.getLogger(__name__)

StoredResult = Union[Parsed, Defaulted]


def persona_key(title: str, author: Optional[str] = None) -> str:
    """Normalized cache key: case-folded, stripped title and author."""
    return f"{title.strip().casefold()}::{(author or '').strip().casefold()}"


class PersonaStore:
    """In-process persona cache with LRU eviction.

    Entries live between ``open()`` and ``close()``. ``max_entries`` of 0
    means unbounded.
    """

    def __init__(self, max_entries: int = 1024):
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, StoredResult]" = OrderedDict()
        self._open = False
        self.hit_count = 0
        self.miss_count = 0
        self.eviction_count = 0

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> None:
        self._open = True
        logger.debug("Persona store opened")

    async def close(self) -> None:
        self._entries.clear()
        self._open = False
        logger.debug("Persona store closed")

    def _check_open(self) -> None:
        if not self._open:
            raise RuntimeError("PersonaStore is not open")

    def get(self, key: str) -> Optional[StoredResult]:
        """Get a stored result and mark it most recently used."""
        self._check_open()
        result = self._entries.get(key)
        if result is None:
            self.miss_count += 1
            return None

        self._entries.move_to_end(key)
        self.hit_count += 1
        return result

    def put(self, key: str, result: StoredResult) -> None:
        """Store a result, replacing any previous entry for ``key``."""
        self._check_open()
        self._entries[key] = result
        self._entries.move_to_end(key)

        # LRU eviction if store full
        if self.max_entries > 0:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self.eviction_count += 1
                logger.debug(f"Evicted persona entry: {evicted}")

    def invalidate(self, key: str) -> bool:
        """Drop one entry; returns whether it existed."""
        self._check_open()
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry and reset statistics."""
        self._entries.clear()
        self.hit_count = 0
        self.miss_count = 0
        self.eviction_count = 0
        logger.info("Persona store cleared")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get_stats(self) -> Dict[str, int | float]:
        """Get store statistics."""
        total = self.hit_count + self.miss_count
        return {
            "hits": self.hit_count,
            "misses": self.miss_count,
            "hit_rate": self.hit_count / total if total > 0 else 0,
            "evictions": self.eviction_count,
            "size": len(self._entries),
            "max_entries": self.max_entries,
        }
