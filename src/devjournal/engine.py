"""Retrieval engine: filter -> cache -> store lookups over date-keyed records.

The engine owns one cache, one membership filter and one prefix index. It
never writes day files; writers persist through the store and then call
``register_key`` so the filter learns about the new day.

Reads follow a fixed path per key:

    filter says absent  -> None, no store I/O
    cache hit           -> cached record
    cache miss          -> store read; a hit is cached and its tokens indexed

Store read failures are logged, counted and reported to the caller as
absence. Concurrency is cooperative (asyncio); state is only mutated between
await points, so no locks guard the cache, filter or index.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional, Union

from .bloom import BloomFilter
from .cache import ExpiringLRUCache
from .config import EngineConfig
from .errors import StoreReadError
from .metrics import QuerySample, RingBuffer
from .models import PayloadTag, PrefixMatch, iter_date_keys, utc_now, validate_date_key
from .store import EntityStore, JournalStore
from .tokenizer import Tokenizer, extract_tokens
from .trie import Trie

logger = logging.getLogger(__name__)

Record = dict[str, Any]


@dataclass
class RetrievalCounters:
    """Read-path counters, kept apart so failures can be told from absence."""
    store_reads: int = 0
    store_misses: int = 0
    store_read_failures: int = 0
    filter_rejections: int = 0
    single_flight_joins: int = 0
    tokenizer_failures: int = 0


class RetrievalEngine:
    """Multi-level lookup surface over a date-keyed store."""

    def __init__(
        self,
        config: EngineConfig,
        store: Optional[EntityStore] = None,
        tokenizer: Optional[Tokenizer] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the engine. No I/O happens until the first query.

        Args:
            config: Engine configuration
            store: Backing store (default: JournalStore over config's entries dir)
            tokenizer: Token extractor (default: config hook, then extract_tokens)
            clock: Monotonic time source shared with the cache

        Raises:
            ConstructionError: If cache or filter parameters are invalid
        """
        self.config = config
        self.store = store if store is not None else JournalStore(config.get_entries_path())
        self.tokenizer = tokenizer or config.get_tokenizer() or extract_tokens
        self._clock = clock

        self.cache = ExpiringLRUCache(
            max_size=config.cache_max_size,
            default_ttl=config.cache_ttl_seconds,
            clock=clock,
        )
        self.filter = BloomFilter(
            expected_items=config.filter_expected_items,
            false_positive_rate=config.filter_false_positive_rate,
        )
        self.index = Trie()
        self.metrics: RingBuffer[QuerySample] = RingBuffer(config.metrics_buffer_size)
        self.counters = RetrievalCounters()

        self.query_count = 0
        self.total_query_ms = 0.0

        # key -> (text, tag) occurrence counts already merged into the index
        self._merged_tokens: dict[str, Counter] = {}
        self._in_flight: dict[str, asyncio.Future] = {}
        self._init_lock = asyncio.Lock()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ========== lifecycle ==========

    async def initialize(self) -> None:
        """Seed the filter and prefix index from the store.

        Idempotent; concurrent callers wait for a single warm-up. If listing
        the store fails the error propagates and the next call retries.
        """
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            started = self._clock()

            keys = list(await self.store.list_all_keys())
            for key in keys:
                self.filter.add(key)

            warmup = self.config.index_warmup_files
            recent = keys[-warmup:] if warmup > 0 else []
            for key in recent:
                record = await self._read_from_store(key)
                if record is not None:
                    self._merge_tokens(key, record)

            self._initialized = True
            logger.info(
                "Retrieval engine initialized in %.1fms: %d days in filter, %d terms indexed from %d days",
                (self._clock() - started) * 1000,
                len(keys),
                self.index.word_count,
                len(recent),
            )

    async def shutdown(self) -> dict[str, Any]:
        """Clear the cache and metrics buffer and log final stats.

        In-flight store reads are not cancelled. The engine can be queried
        again afterwards and will start from a cold cache.

        Returns:
            Stats snapshot taken before clearing
        """
        final = self.stats()
        logger.info("Shutting down retrieval engine. Final stats: %s", json.dumps(final, default=str))
        self.cache.clear()
        self.metrics.clear()
        return final

    # ========== point lookups ==========

    async def get_entry(self, key: str) -> Optional[Record]:
        """Return the day record for key, or None if there is none.

        Raises:
            ValueError: If key is not a YYYY-MM-DD date
        """
        validate_date_key(key)
        await self.initialize()

        started = self._clock()
        record = await self._lookup(key)
        self._record_query("get_entry", key, started, 0 if record is None else 1)
        return record

    async def entry_exists(self, key: str) -> bool:
        """Check whether a day file exists without reading it."""
        validate_date_key(key)
        await self.initialize()

        if not self.filter.contains(key):
            self.counters.filter_rejections += 1
            return False
        if self.cache.peek(key) is not None:
            return True
        try:
            return await self.store.key_exists(key)
        except OSError as e:
            self.counters.store_read_failures += 1
            logger.warning("Existence check for %s failed, treating as absent: %s", key, e)
            return False

    def register_key(self, key: str) -> None:
        """Record that a day was written.

        Adds the key to the filter and drops any cached copy so the next read
        goes to the store.
        """
        validate_date_key(key)
        if not self.filter.contains(key):
            self.filter.add(key)
        self.cache.delete(key)

    async def _lookup(self, key: str) -> Optional[Record]:
        if not self.filter.contains(key):
            self.counters.filter_rejections += 1
            return None

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        if not self.config.single_flight:
            return await self._fetch(key)

        pending = self._in_flight.get(key)
        if pending is not None:
            self.counters.single_flight_joins += 1
            logger.debug("Joining in-flight read for %s", key)
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._fetch(key))
        self._in_flight[key] = task
        task.add_done_callback(lambda done, k=key: self._forget_in_flight(k, done))
        # Shielded so a cancelled caller leaves the shared read running
        return await asyncio.shield(task)

    def _forget_in_flight(self, key: str, task: asyncio.Future) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _fetch(self, key: str) -> Optional[Record]:
        record = await self._read_from_store(key)
        if record is None:
            return None
        self.cache.set(key, record)
        self._merge_tokens(key, record)
        return record

    async def _read_from_store(self, key: str) -> Optional[Record]:
        self.counters.store_reads += 1
        try:
            record = await self.store.read_entity(key)
        except (StoreReadError, OSError) as e:
            self.counters.store_read_failures += 1
            logger.warning("Store read failed for %s, treating as absent: %s", key, e)
            return None
        if record is None:
            self.counters.store_misses += 1
        return record

    def _merge_tokens(self, key: str, record: Record) -> None:
        try:
            tokens = list(self.tokenizer(record))
        except Exception:
            self.counters.tokenizer_failures += 1
            logger.exception("Tokenizer failed for %s; record not indexed", key)
            return

        # Insert only occurrences beyond what this day already contributed
        merged = self._merged_tokens.setdefault(key, Counter())
        seen: Counter = Counter()
        for token in tokens:
            ident = (token.text.lower(), token.payload.tag)
            seen[ident] += 1
            if seen[ident] > merged[ident]:
                self.index.insert(token.text, token.payload)
        merged |= seen

    # ========== range queries ==========

    async def get_range(self, start: str, end: str, limit: int = 100) -> list[Record]:
        """Return day records from start to end inclusive, ascending by date.

        Ranges spanning more than batch_threshold_days are read in windows of
        max_concurrent_reads concurrent lookups; results keep date order
        regardless of which read completes first.

        Raises:
            ValueError: If start or end is not a YYYY-MM-DD date
        """
        keys = list(iter_date_keys(start, end))
        await self.initialize()

        if limit <= 0 or not keys:
            return []

        started = self._clock()
        if len(keys) - 1 > self.config.batch_threshold_days:
            records = await self._get_batched(keys, limit)
        else:
            records = await self._get_sequential(keys, limit)

        self._record_query("get_range", f"{start}..{end}", started, len(records))
        return records

    async def _get_sequential(self, keys: list[str], limit: int) -> list[Record]:
        records = []
        for key in keys:
            record = await self._lookup(key)
            if record is not None:
                records.append(record)
                if len(records) >= limit:
                    break
        return records

    async def _get_batched(self, keys: list[str], limit: int) -> list[Record]:
        window = max(1, self.config.max_concurrent_reads)
        records: list[Record] = []
        for offset in range(0, len(keys), window):
            batch = keys[offset:offset + window]
            # gather preserves argument order, so each window stays date-ordered
            results = await asyncio.gather(*(self._lookup(key) for key in batch))
            records.extend(record for record in results if record is not None)
            if len(records) >= limit:
                break
        return records[:limit]

    # ========== prefix search ==========

    def search_by_prefix(
        self,
        prefix: str,
        tag: Optional[Union[PayloadTag, str]] = None,
        limit: int = 10,
    ) -> list[PrefixMatch]:
        """Indexed terms starting with prefix, most frequent first.

        The tag filter is applied before truncation, so up to limit matches
        of that tag are returned when they exist.
        """
        if tag is not None and not isinstance(tag, PayloadTag):
            tag = PayloadTag(tag)

        matches = self.index.starts_with(prefix, limit=None)
        if tag is not None:
            matches = [m for m in matches if m.payload is not None and m.payload.tag is tag]
        return matches[:max(limit, 0)]

    def search_technologies(self, prefix: str, limit: int = 10) -> list[PrefixMatch]:
        return self.search_by_prefix(prefix, PayloadTag.TECHNOLOGY, limit)

    def search_keywords(self, prefix: str, limit: int = 10) -> list[PrefixMatch]:
        return self.search_by_prefix(prefix, PayloadTag.KEYWORD, limit)

    # ========== metrics ==========

    def _record_query(self, operation: str, target: str, started: float, results: int) -> None:
        duration_ms = (self._clock() - started) * 1000
        self.query_count += 1
        self.total_query_ms += duration_ms
        self.metrics.push(QuerySample(
            operation=operation,
            target=target,
            duration_ms=round(duration_ms, 3),
            results=results,
            timestamp=utc_now(),
        ))

    def recent_metrics(self, count: int = 100) -> list[QuerySample]:
        """Most recent query samples, newest first."""
        return self.metrics.latest(count)

    def stats(self) -> dict[str, Any]:
        """Combined cache, filter, index and read-path metrics."""
        average = self.total_query_ms / self.query_count if self.query_count else 0.0
        return {
            "initialized": self._initialized,
            "cache": self.cache.stats(),
            "filter": self.filter.stats(),
            "index": {
                **self.index.stats(),
                "indexed_days": len(self._merged_tokens),
            },
            "retrieval": {
                **asdict(self.counters),
                "in_flight": len(self._in_flight),
            },
            "queries": {
                "total": self.query_count,
                "average_ms": round(average, 3),
                "total_ms": round(self.total_query_ms, 3),
            },
            "metrics_buffer": self.metrics.stats(),
        }
