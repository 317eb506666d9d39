"""Property-based tests for cache, filter and prefix index invariants.

Uses hypothesis to verify the invariants hold for many inputs.
"""

import asyncio
from dataclasses import replace

from hypothesis import given, settings, strategies as st

from devjournal.bloom import BloomFilter
from devjournal.cache import ExpiringLRUCache
from devjournal.config import EngineConfig
from devjournal.engine import RetrievalEngine
from devjournal.models import TechnologyPayload
from devjournal.trie import Trie

from conftest import FakeClock, FakeStore, make_record

keys = st.text(alphabet="abcdefgh", min_size=1, max_size=3)
words = st.text(alphabet="abcxyz", min_size=1, max_size=6)


class TestCacheProperties:
    """Property-based tests for the LRU cache."""

    @given(
        max_size=st.integers(min_value=1, max_value=10),
        ops=st.lists(st.tuples(st.sampled_from(["set", "get", "delete"]), keys), max_size=80),
    )
    def test_size_never_exceeds_max(self, max_size, ops):
        """After every operation the cache holds at most max_size entries."""
        clock = FakeClock()
        cache = ExpiringLRUCache(max_size=max_size, default_ttl=5, clock=clock)
        for op, key in ops:
            clock.advance(1)
            if op == "set":
                cache.set(key, key)
            elif op == "get":
                cache.get(key)
            else:
                cache.delete(key)
            assert len(cache) <= max_size

    @given(capacity=st.integers(min_value=1, max_value=20))
    def test_first_key_evicted_after_capacity_plus_one(self, capacity):
        """capacity+1 distinct sets without reads evict exactly the first."""
        cache = ExpiringLRUCache(max_size=capacity, clock=FakeClock())
        for i in range(capacity + 1):
            cache.set(f"k{i}", i)
        assert cache.peek("k0") is None
        assert all(cache.peek(f"k{i}") == i for i in range(1, capacity + 1))

    @given(ops=st.lists(keys, max_size=50))
    def test_hits_plus_misses_equals_gets(self, ops):
        cache = ExpiringLRUCache(max_size=4, clock=FakeClock())
        for i, key in enumerate(ops):
            if i % 2:
                cache.set(key, i)
            else:
                cache.get(key)
        assert cache.hit_count + cache.miss_count == len(ops[::2])


class TestBloomProperties:
    """Property-based tests for the membership filter."""

    @given(items=st.lists(st.text(min_size=0, max_size=30), max_size=200))
    def test_no_false_negatives(self, items):
        """Every added item is reported as possibly present."""
        bloom = BloomFilter(expected_items=50, false_positive_rate=0.05)
        for item in items:
            bloom.add(item)
        assert all(bloom.contains(item) for item in items)


class TestTrieProperties:
    """Property-based tests for the prefix index."""

    @given(inserted=st.lists(words, min_size=1, max_size=40))
    def test_frequencies_match_insert_counts(self, inserted):
        trie = Trie()
        for word in inserted:
            trie.insert(word, TechnologyPayload(name=word, date="2024-01-01"))

        results = trie.starts_with("", limit=None)
        assert sorted(r.word for r in results) == sorted(set(inserted))
        for match in results:
            assert match.frequency == inserted.count(match.word)
            assert trie.search(match.word) == TechnologyPayload(name=match.word, date="2024-01-01")

    @given(inserted=st.lists(words, min_size=1, max_size=40), prefix=st.text(alphabet="abcxyz", max_size=2))
    def test_starts_with_sorted_and_prefixed(self, inserted, prefix):
        trie = Trie()
        for word in inserted:
            trie.insert(word)
        results = trie.starts_with(prefix, limit=None)
        frequencies = [r.frequency for r in results]
        assert frequencies == sorted(frequencies, reverse=True)
        assert all(r.word.startswith(prefix) for r in results)
        assert len(results) == len({w for w in inserted if w.startswith(prefix)})


class TestRangeProperties:
    """Property-based tests for range ordering."""

    @given(
        present=st.sets(st.integers(min_value=1, max_value=28), max_size=28),
        concurrency=st.integers(min_value=1, max_value=8),
        limit=st.integers(min_value=1, max_value=30),
    )
    @settings(max_examples=30, deadline=None)
    def test_range_ascending_and_limited(self, present, concurrency, limit):
        dates = [f"2024-02-{d:02d}" for d in sorted(present)]
        store = FakeStore({d: make_record(d) for d in dates})
        config = replace(
            EngineConfig(),
            batch_threshold_days=0,
            max_concurrent_reads=concurrency,
            filter_expected_items=100,
            filter_false_positive_rate=0.01,
            index_warmup_files=0,
        )
        engine = RetrievalEngine(config, store=store, clock=FakeClock())

        records = asyncio.run(engine.get_range("2024-02-01", "2024-02-28", limit=limit))
        assert [r["date"] for r in records] == dates[:limit]
