"""
Catalog sources: where shard catalog snapshots come from.

The pruning engine never looks anything up by itself; callers pass it a
snapshot. A catalog source is the collaborator that resolves a table id to
its partition column and a consistent snapshot of its shards.
"""

import logging
from typing import Any, Dict, Iterable, List, Protocol

from shardprune.catalog.snapshot import PartitionColumn, ShardCatalogSnapshot
from shardprune.errors import NotFoundError

logger = logging.getLogger(__name__)


class ShardCatalogSource(Protocol):
    """Anything that can load shard catalogs by table id."""

    def load_shard_catalog(self, table_id: Any) -> ShardCatalogSnapshot:
        ...

    def resolve_partition_column(self, table_id: Any) -> PartitionColumn:
        ...


class InMemoryCatalog:
    """
    Catalog source over already-built snapshots.

    Example:
        >>> catalog = InMemoryCatalog([orders_snapshot, events_snapshot])
        >>> catalog.load_shard_catalog("orders").shard_count
        4
    """

    def __init__(self, snapshots: Iterable[ShardCatalogSnapshot] = ()):
        self._snapshots: Dict[Any, ShardCatalogSnapshot] = {}
        for snapshot in snapshots:
            self.add(snapshot)

    def add(self, snapshot: ShardCatalogSnapshot) -> None:
        """Register or replace a table's snapshot."""
        self._snapshots[snapshot.table_id] = snapshot

    def table_ids(self) -> List[Any]:
        return list(self._snapshots)

    def load_shard_catalog(self, table_id: Any) -> ShardCatalogSnapshot:
        try:
            return self._snapshots[table_id]
        except KeyError:
            raise NotFoundError(table_id) from None

    def resolve_partition_column(self, table_id: Any) -> PartitionColumn:
        return self.load_shard_catalog(table_id).partition_column

    def __len__(self) -> int:
        return len(self._snapshots)
