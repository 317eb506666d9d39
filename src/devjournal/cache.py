"""In-memory LRU cache with per-entry time-to-live.

Entries are kept in registration order; each carries its last access time and
expiry time. Eviction picks the entry with the oldest last access, falling
back to registration order when several share the same timestamp.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

from .errors import CapacityViolation, ConstructionError

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_SECONDS = 600.0


@dataclass
class CacheEntry:
    """A cached value and its timing metadata."""
    key: Hashable
    value: Any
    last_access: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ExpiringLRUCache:
    """Bounded key/value store with LRU eviction and TTL expiry."""

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            max_size: Maximum number of live entries
            default_ttl: Seconds an entry stays visible when set without a ttl
            clock: Monotonic time source in seconds

        Raises:
            ConstructionError: If max_size or default_ttl is not positive
        """
        if max_size <= 0:
            raise ConstructionError(f"max_size must be positive, got {max_size}")
        if default_ttl <= 0:
            raise ConstructionError(f"default_ttl must be positive, got {default_ttl}")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry] = {}
        self.hit_count = 0
        self.miss_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value, or None if absent or expired.

        A hit marks the key most recently used. An expired entry is removed
        and counted as a miss.
        """
        now = self._clock()
        entry = self._entries.get(key)

        if entry is None:
            self.miss_count += 1
            return None

        if entry.is_expired(now):
            del self._entries[key]
            self.miss_count += 1
            return None

        entry.last_access = now
        self.hit_count += 1
        return entry.value

    def peek(self, key: Hashable) -> Optional[Any]:
        """Return a live value without touching recency or counters."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        """Insert or replace a value.

        Overwriting refreshes both value and expiry and counts as a touch.
        Inserting a new key into a full cache evicts the least recently
        used entry first.
        """
        now = self._clock()
        actual_ttl = ttl if ttl is not None else self.default_ttl

        entry = self._entries.get(key)
        if entry is not None:
            entry.value = value
            entry.last_access = now
            entry.expires_at = now + actual_ttl
            return

        if len(self._entries) >= self.max_size:
            self._evict_lru()

        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            last_access=now,
            expires_at=now + actual_ttl,
        )

        if len(self._entries) > self.max_size:
            raise CapacityViolation(
                f"Cache holds {len(self._entries)} entries, max is {self.max_size}"
            )

    def delete(self, key: Hashable) -> None:
        """Remove a key. No-op if absent."""
        self._entries.pop(key, None)

    def _evict_lru(self) -> None:
        # min() keeps the first of equal candidates, i.e. registration order
        oldest = min(self._entries.values(), key=lambda e: e.last_access, default=None)
        if oldest is not None:
            logger.debug("Evicting %r (last access %.3f)", oldest.key, oldest.last_access)
            del self._entries[oldest.key]

    def purge_expired(self) -> int:
        """Physically remove expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        """Remove all entries and reset counters."""
        self._entries.clear()
        self.hit_count = 0
        self.miss_count = 0

    def hit_ratio(self) -> float:
        total = self.hit_count + self.miss_count
        return round(self.hit_count / total, 3) if total > 0 else 0.0

    def memory_usage(self) -> int:
        """Rough size in bytes: serialized length of every stored key and value."""
        return sum(
            len(json.dumps(key, default=str)) + len(json.dumps(entry.value, default=str))
            for key, entry in self._entries.items()
        )

    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
            "hit_ratio": self.hit_ratio(),
            "memory_usage": self.memory_usage(),
        }
