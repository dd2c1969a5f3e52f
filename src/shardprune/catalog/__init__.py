"""
Shard catalog layer for shardprune.

Provides the immutable snapshot that pruning runs against and the sources
that produce it:

- Snapshot: ShardInterval, PartitionColumn, ShardCatalogSnapshot (validated)
- Methods: HASH / RANGE partitioning rules
- Sources: in-memory catalog, Parquet catalog reader/writer
- Cache: per-table snapshot cache with deterministic snapshot hashing
"""

from shardprune.catalog.cache import SnapshotCache, hash_snapshot
from shardprune.catalog.methods import (
    HASH_CONFIG,
    METHOD_CONFIGS,
    RANGE_CONFIG,
    MethodConfig,
    PartitionMethod,
    config_for,
)
from shardprune.catalog.reader import CatalogReader, shard_bounds_table, write_catalog
from shardprune.catalog.snapshot import (
    PartitionColumn,
    ShardCatalogSnapshot,
    ShardInterval,
    build_snapshot,
)
from shardprune.catalog.source import InMemoryCatalog, ShardCatalogSource

__all__ = [
    # methods.py exports
    "PartitionMethod",
    "MethodConfig",
    "HASH_CONFIG",
    "RANGE_CONFIG",
    "METHOD_CONFIGS",
    "config_for",
    # snapshot.py exports
    "PartitionColumn",
    "ShardInterval",
    "ShardCatalogSnapshot",
    "build_snapshot",
    # sources
    "ShardCatalogSource",
    "InMemoryCatalog",
    "CatalogReader",
    "write_catalog",
    "shard_bounds_table",
    # cache.py exports
    "SnapshotCache",
    "hash_snapshot",
]
