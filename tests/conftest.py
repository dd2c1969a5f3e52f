"""Shared fixtures: small hash and range distributed tables."""

import pytest

from shardprune.catalog.snapshot import PartitionColumn, build_snapshot
from shardprune.schema.hashing import hash_token, uniform_hash_ranges
from shardprune.schema.types import Int, String


@pytest.fixture
def customer_column():
    """NOT NULL int64 distribution column."""
    return PartitionColumn("customer_id", 1, Int(64), nullable=False)


@pytest.fixture
def hash_catalog(customer_column):
    """4 hash shards (ids 1-4) covering the whole token space."""
    bounds = [
        (shard_id, lo, hi)
        for shard_id, (lo, hi) in enumerate(uniform_hash_ranges(4), start=1)
    ]
    return build_snapshot("orders", customer_column, "h", bounds)


@pytest.fixture
def hash_catalog_with_null_shard():
    """4 hash shards (ids 1-4) over a nullable column plus catch-all shard 5."""
    column = PartitionColumn("customer_id", 1, Int(64), nullable=True)
    bounds = [
        (shard_id, lo, hi)
        for shard_id, (lo, hi) in enumerate(uniform_hash_ranges(4), start=1)
    ]
    return build_snapshot("orders_nullable", column, "h", bounds, catch_all_shard_id=5)


@pytest.fixture
def range_catalog():
    """Int range shards: 10 (-inf, 99], 11 [100, 199], 12 [200, +inf)."""
    column = PartitionColumn("event_id", 1, Int(64), nullable=True)
    return build_snapshot(
        "events",
        column,
        "r",
        [(10, None, 99), (11, 100, 199), (12, 200, None)],
    )


@pytest.fixture
def text_catalog():
    """Text range shards with exclusive max: 1 (-inf, g), 2 [g, n), 3 [n, +inf)."""
    column = PartitionColumn("name", 1, String(), nullable=True)
    return build_snapshot(
        "people",
        column,
        "r",
        [(1, None, "g"), (2, "g", "n"), (3, "n", None)],
        max_inclusive=False,
    )


def value_in_shard(catalog, shard_id, start=0):
    """First int >= start whose hash token falls in the given hash shard."""
    interval = next(s for s in catalog.intervals if s.shard_id == shard_id)
    value = start
    while True:
        token = hash_token(value, Int(64))
        if interval.min_value <= token <= interval.max_value:
            return value
        value += 1


@pytest.fixture
def find_value():
    """Expose value_in_shard to tests."""
    return value_in_shard
