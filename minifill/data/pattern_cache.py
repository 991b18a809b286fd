"""Bounded LRU cache of resolved pattern queries shared across solver runs."""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Dict, Tuple

from ..core.constants import DEFAULT_PATTERN_CACHE_SIZE
from ..utils.logger import get_logger
from .normalization import PatternLike
from .trie import Match, PatternTrie


LOGGER = get_logger(__name__)

CacheKey = Tuple[int, str]


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    bypasses: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return (self.hits / lookups) * 100 if lookups else 0.0

    def to_dict(self) -> Dict[str, float]:
        payload: Dict[str, float] = asdict(self)
        payload["hitRate"] = round(self.hit_rate, 2)
        return payload


class PatternCache:
    """Maps ``(length, canonical pattern)`` to the trie's resolved matches.

    Readers never block: when the lock is busy they query the trie directly
    and leave the cache untouched. Inserts, evictions and the hit/miss
    counters live under the main lock; the bypass counter has its own short
    lock because bypassing readers cannot take the main one. Cached values
    are tuples so callers cannot mutate shared state.
    """

    def __init__(self, trie: PatternTrie, max_entries: int = DEFAULT_PATTERN_CACHE_SIZE) -> None:
        if max_entries < 1:
            raise ValueError("Pattern cache needs room for at least one entry")
        self._trie = trie
        self.max_entries = max_entries
        self._entries: "OrderedDict[CacheKey, Tuple[Match, ...]]" = OrderedDict()
        self._lock = threading.Lock()
        self._bypass_lock = threading.Lock()
        self._stats = CacheStats()

    @property
    def trie(self) -> PatternTrie:
        return self._trie

    def lookup(self, length: int, pattern: PatternLike) -> Tuple[Match, ...]:
        canonical = PatternTrie.normalize_query(length, pattern)
        key = (length, canonical)

        if not self._lock.acquire(blocking=False):
            with self._bypass_lock:
                self._stats.bypasses += 1
            return tuple(self._trie.query(length, canonical))
        try:
            cached = self._entries.get(key)
            if cached is not None:
                self._entries.move_to_end(key)
                self._stats.hits += 1
                return cached
            self._stats.misses += 1
        finally:
            self._lock.release()

        resolved = tuple(self._trie.query(length, canonical))
        with self._lock:
            if key not in self._entries:
                self._entries[key] = resolved
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)
                    self._stats.evictions += 1
        return resolved

    def count(self, length: int, pattern: PatternLike) -> int:
        return len(self.lookup(length, pattern))

    def clear(self) -> None:
        """Drop every entry and reset counters; used when the dictionary is reloaded."""

        with self._lock, self._bypass_lock:
            self._entries.clear()
            self._stats = CacheStats()
        LOGGER.debug("Pattern cache cleared")

    def rebind(self, trie: PatternTrie) -> None:
        with self._lock, self._bypass_lock:
            self._trie = trie
            self._entries.clear()
            self._stats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> CacheStats:
        """Consistent snapshot of the counters; waits for in-flight updates."""

        with self._lock, self._bypass_lock:
            snapshot = CacheStats(**asdict(self._stats))
            snapshot.size = len(self._entries)
        return snapshot
