"""
shardprune: shard pruning for distributed tables.

Given a table's shard layout and a predicate on its distribution column,
decide which shards could hold matching rows.

    from shardprune import PruningEngine, build_equality, Or, encode

    catalog = reader.load_shard_catalog("orders")
    column = catalog.partition_column
    predicate = Or((build_equality(column, 7), build_equality(column, 9)))
    encode(PruningEngine().prune(catalog, predicate))
"""

from shardprune.analysis import (
    NO_RESTRICTION,
    And,
    Equals,
    IsNull,
    Opaque,
    Or,
    PartitionExpressionFactory,
    build_equality,
    describe_equality,
    predicate_from_filter,
)
from shardprune.catalog import (
    CatalogReader,
    InMemoryCatalog,
    PartitionColumn,
    PartitionMethod,
    ShardCatalogSnapshot,
    ShardInterval,
    SnapshotCache,
    build_snapshot,
)
from shardprune.errors import (
    MalformedCatalogError,
    NotFoundError,
    ShardPruneError,
    TypeMismatchError,
)
from shardprune.execution import (
    CandidateShardSet,
    PruningEngine,
    ResultEncoder,
    encode,
    prune,
)

__all__ = [
    # predicates
    "Equals",
    "IsNull",
    "Opaque",
    "And",
    "Or",
    "NO_RESTRICTION",
    "PartitionExpressionFactory",
    "build_equality",
    "describe_equality",
    "predicate_from_filter",
    # catalog
    "PartitionColumn",
    "PartitionMethod",
    "ShardInterval",
    "ShardCatalogSnapshot",
    "build_snapshot",
    "InMemoryCatalog",
    "CatalogReader",
    "SnapshotCache",
    # execution
    "CandidateShardSet",
    "PruningEngine",
    "prune",
    "ResultEncoder",
    "encode",
    # errors
    "ShardPruneError",
    "NotFoundError",
    "TypeMismatchError",
    "MalformedCatalogError",
]
