"""
Tests for shardprune.catalog.cache.

Covers:
- Deterministic snapshot hashing
- SnapshotCache reuse, invalidation and error propagation
- Snapshot fingerprints are only computed for debug logging
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from shardprune.catalog.cache import SnapshotCache, hash_snapshot
from shardprune.catalog.snapshot import build_snapshot
from shardprune.catalog.source import InMemoryCatalog
from shardprune.errors import NotFoundError


class CountingCatalog(InMemoryCatalog):
    """In-memory catalog that counts loads."""

    def __init__(self, snapshots):
        super().__init__(snapshots)
        self.loads = 0

    def load_shard_catalog(self, table_id):
        self.loads += 1
        return super().load_shard_catalog(table_id)


class TestHashSnapshot:
    """Test snapshot hashing."""

    def test_hash_is_deterministic(self, hash_catalog):
        assert hash_snapshot(hash_catalog) == hash_snapshot(hash_catalog)
        assert len(hash_snapshot(hash_catalog)) == 32

    def test_equal_layouts_hash_equal(self, customer_column):
        first = build_snapshot("t", customer_column, "r", [(1, 0, 9), (2, 10, 19)])
        second = build_snapshot("t", customer_column, "r", [(1, 0, 9), (2, 10, 19)])

        assert hash_snapshot(first) == hash_snapshot(second)

    def test_moved_bound_changes_hash(self, customer_column):
        first = build_snapshot("t", customer_column, "r", [(1, 0, 9), (2, 10, 19)])
        split = build_snapshot("t", customer_column, "r", [(1, 0, 8), (2, 9, 19)])

        assert hash_snapshot(first) != hash_snapshot(split)

    def test_max_inclusive_changes_hash(self, customer_column):
        inclusive = build_snapshot("t", customer_column, "r", [(1, 0, 9), (2, 10, 19)])
        exclusive = build_snapshot(
            "t", customer_column, "r", [(1, 0, 9), (2, 10, 19)], max_inclusive=False
        )

        assert hash_snapshot(inclusive) != hash_snapshot(exclusive)


class TestSnapshotCache:
    """Test snapshot caching."""

    def test_loads_once(self, hash_catalog):
        source = CountingCatalog([hash_catalog])
        cache = SnapshotCache(source)

        first = cache.load_shard_catalog("orders")
        second = cache.load_shard_catalog("orders")

        assert first is second
        assert source.loads == 1
        assert "orders" in cache

    def test_resolve_partition_column_uses_cache(self, hash_catalog):
        source = CountingCatalog([hash_catalog])
        cache = SnapshotCache(source)

        cache.load_shard_catalog("orders")
        column = cache.resolve_partition_column("orders")

        assert column == hash_catalog.partition_column
        assert source.loads == 1

    def test_invalidate_one_table(self, hash_catalog, range_catalog):
        source = CountingCatalog([hash_catalog, range_catalog])
        cache = SnapshotCache(source)
        cache.load_shard_catalog("orders")
        cache.load_shard_catalog("events")

        cache.invalidate("orders")

        assert "orders" not in cache
        assert len(cache) == 1
        cache.load_shard_catalog("orders")
        assert source.loads == 3

    def test_invalidate_all(self, hash_catalog, range_catalog):
        cache = SnapshotCache(InMemoryCatalog([hash_catalog, range_catalog]))
        cache.load_shard_catalog("orders")
        cache.load_shard_catalog("events")

        cache.invalidate()

        assert len(cache) == 0

    def test_not_found_is_not_cached(self):
        cache = SnapshotCache(InMemoryCatalog())

        with pytest.raises(NotFoundError):
            cache.load_shard_catalog("missing")
        assert len(cache) == 0

    def test_concurrent_loads_share_one_snapshot(self, hash_catalog):
        cache = SnapshotCache(InMemoryCatalog([hash_catalog]))

        with ThreadPoolExecutor(max_workers=8) as pool:
            snapshots = list(
                pool.map(lambda _: cache.load_shard_catalog("orders"), range(32))
            )

        assert all(s is snapshots[0] for s in snapshots)


class TestCacheLogging:
    """The snapshot fingerprint is only computed when debug logging is on."""

    @pytest.fixture
    def hash_calls(self, monkeypatch):
        calls = []

        def counting_hash(snapshot):
            calls.append(snapshot.table_id)
            return "fingerprint"

        monkeypatch.setattr("shardprune.catalog.cache.hash_snapshot", counting_hash)
        return calls

    def test_no_fingerprint_without_debug(self, hash_catalog, hash_calls, caplog):
        cache = SnapshotCache(InMemoryCatalog([hash_catalog]))

        with caplog.at_level(logging.INFO, logger="shardprune.catalog.cache"):
            cache.load_shard_catalog("orders")

        assert hash_calls == []

    def test_fingerprint_logged_at_debug(self, hash_catalog, hash_calls, caplog):
        cache = SnapshotCache(InMemoryCatalog([hash_catalog]))

        with caplog.at_level(logging.DEBUG, logger="shardprune.catalog.cache"):
            cache.load_shard_catalog("orders")

        assert hash_calls == ["orders"]
        assert "fingerprint" in caplog.text
