"""
Snapshot caching for shardprune catalog sources.

This module provides:

1. Snapshot Hashing (hash_snapshot):
   - Creates deterministic MD5 hash of a snapshot's table, column, method and
     shard bounds
   - Normalizes datetimes to ISO format, ObjectIds to strings
   - Same shard layout always produces the same hash

2. Snapshot Cache (SnapshotCache):
   - Wraps any catalog source
   - Loads each table's snapshot once and serves it until invalidated
   - Safe to share between threads; snapshots themselves are immutable

Usage:
    cache = SnapshotCache(CatalogReader("catalog"))
    snapshot = cache.load_shard_catalog("orders")   # reads Parquet
    snapshot = cache.load_shard_catalog("orders")   # served from memory
    cache.invalidate("orders")                      # after shard moves/splits
"""

import hashlib
import json
import logging
import threading
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId

from shardprune.catalog.snapshot import PartitionColumn, ShardCatalogSnapshot
from shardprune.catalog.source import ShardCatalogSource

logger = logging.getLogger(__name__)


def hash_snapshot(snapshot: ShardCatalogSnapshot) -> str:
    """
    Create deterministic hash of a snapshot's shard layout.

    Args:
        snapshot: Validated shard catalog snapshot

    Returns:
        Hex string hash (32 characters)

    Example:
        >>> hash_snapshot(reader.load_shard_catalog("orders"))
        'a3f5c9d2e1b4f6a8c7e9d1b3f5a7c9e1'
    """

    def normalize_value(obj):
        """
        Recursively normalize bound values for deterministic hashing.

        Converts datetimes to ISO strings, ObjectIds to strings,
        and sorts dict keys to ensure the same layout always hashes identically.
        """
        if isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, ObjectId):
            return str(obj)
        elif isinstance(obj, dict):
            return {k: normalize_value(v) for k, v in sorted(obj.items())}
        elif isinstance(obj, (list, tuple)):
            return [normalize_value(v) for v in obj]
        return obj

    column = snapshot.partition_column

    # Build canonical representation
    snapshot_repr = {
        "table_id": str(snapshot.table_id),
        "column": {
            "name": column.name,
            "ordinal": column.ordinal,
            "type": column.value_type.type_name,
            "nullable": column.nullable,
        },
        "method": snapshot.partition_method.value,
        "max_inclusive": snapshot.max_inclusive,
        "shards": [
            [
                shard.shard_id,
                normalize_value(shard.min_value),
                normalize_value(shard.max_value),
                shard.catch_all,
            ]
            for shard in snapshot.shards
        ],
    }

    # Create deterministic JSON (sorted keys)
    json_str = json.dumps(snapshot_repr, sort_keys=True, separators=(",", ":"))

    # Hash it
    return hashlib.md5(json_str.encode("utf-8")).hexdigest()


class SnapshotCache:
    """
    Caches snapshots loaded from another catalog source.

    Errors from the wrapped source (NotFoundError, MalformedCatalogError)
    propagate and are not cached.
    """

    def __init__(self, source: ShardCatalogSource):
        self.source = source
        self._snapshots: Dict[Any, ShardCatalogSnapshot] = {}
        self._lock = threading.Lock()

    def load_shard_catalog(self, table_id: Any) -> ShardCatalogSnapshot:
        with self._lock:
            cached = self._snapshots.get(table_id)
        if cached is not None:
            return cached

        snapshot = self.source.load_shard_catalog(table_id)
        with self._lock:
            # Keep the first snapshot stored if another thread raced us
            snapshot = self._snapshots.setdefault(table_id, snapshot)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Cached snapshot for table %r (%s)", table_id, hash_snapshot(snapshot)
            )
        return snapshot

    def resolve_partition_column(self, table_id: Any) -> PartitionColumn:
        return self.load_shard_catalog(table_id).partition_column

    def invalidate(self, table_id: Optional[Any] = None) -> None:
        """Drop one table's snapshot, or every snapshot when table_id is None."""
        with self._lock:
            if table_id is None:
                self._snapshots.clear()
            else:
                self._snapshots.pop(table_id, None)

    def __contains__(self, table_id: Any) -> bool:
        with self._lock:
            return table_id in self._snapshots

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)
