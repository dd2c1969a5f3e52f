"""
Caller-facing pruning entry points.

Each function loads the table's partition column and shard snapshot from a
catalog source, builds the clause list, prunes, and returns the surviving
shard ids as an ascending ``pyarrow.Int64Array``. Values arrive as text (or
None for SQL NULL) and are parsed with the partition column's type, the way
a SQL function receives its arguments.

    prune_using_no_values(source, "orders")                  # no WHERE clause
    prune_using_single_value(source, "orders", "42")         # id = 42
    prune_using_single_value(source, "orders", None)         # id IS NULL
    prune_using_either_value(source, "orders", "1", "2")     # id = 1 OR id = 2
    prune_using_both_values(source, "orders", "1", "2")      # id = 1 AND id = 2
    debug_equality_expression(source, "orders")              # template text
"""

import logging
from typing import Any, List, Optional

import pyarrow as pa

from shardprune.analysis.expressions import PartitionExpressionFactory
from shardprune.analysis.inspector import predicate_from_clauses
from shardprune.analysis.predicates import Or, PredicateTree
from shardprune.catalog.snapshot import PartitionColumn
from shardprune.catalog.source import ShardCatalogSource
from shardprune.execution.encoder import ResultEncoder
from shardprune.execution.pruner import PruningEngine

logger = logging.getLogger(__name__)

_factory = PartitionExpressionFactory()
_engine = PruningEngine()
_encoder = ResultEncoder()


def prune_using_no_values(source: ShardCatalogSource, table_id: Any) -> pa.Int64Array:
    """Shards of the table after pruning with an empty clause list."""
    return _pruned_shard_ids(source, table_id, [])


def prune_using_single_value(
    source: ShardCatalogSource, table_id: Any, value: Optional[str]
) -> pa.Int64Array:
    """Shards of the table after pruning with ``column = value``."""
    column = source.resolve_partition_column(table_id)
    clause = _text_partition_expression(column, value)
    return _pruned_shard_ids(source, table_id, [clause])


def prune_using_either_value(
    source: ShardCatalogSource,
    table_id: Any,
    first_value: Optional[str],
    second_value: Optional[str],
) -> pa.Int64Array:
    """Shards of the table after pruning with ``column = v1 OR column = v2``."""
    column = source.resolve_partition_column(table_id)
    or_clause = Or(
        (
            _text_partition_expression(column, first_value),
            _text_partition_expression(column, second_value),
        )
    )
    return _pruned_shard_ids(source, table_id, [or_clause])


def prune_using_both_values(
    source: ShardCatalogSource,
    table_id: Any,
    first_value: Optional[str],
    second_value: Optional[str],
) -> pa.Int64Array:
    """Shards of the table after pruning with ``column = v1 AND column = v2``."""
    column = source.resolve_partition_column(table_id)
    clauses = [
        _text_partition_expression(column, first_value),
        _text_partition_expression(column, second_value),
    ]
    return _pruned_shard_ids(source, table_id, clauses)


def debug_equality_expression(source: ShardCatalogSource, table_id: Any) -> str:
    """Textual form of the equality template for the table's partition column."""
    column = source.resolve_partition_column(table_id)
    return _factory.describe_equality(column)


def _text_partition_expression(
    column: PartitionColumn, value: Optional[str]
) -> PredicateTree:
    """Equality between the partition column and a text value, or IS NULL."""
    literal = None if value is None else column.value_type.parse(value)
    return _factory.build_equality(column, literal)


def _pruned_shard_ids(
    source: ShardCatalogSource, table_id: Any, clauses: List[PredicateTree]
) -> pa.Int64Array:
    """Load the table's shards, prune them with the clauses, encode the ids."""
    catalog = source.load_shard_catalog(table_id)
    candidates = _engine.prune(catalog, predicate_from_clauses(clauses))
    logger.debug(
        "Table %r: %d clauses -> shards %s",
        table_id,
        len(clauses),
        list(candidates),
    )
    return _encoder.encode(candidates)
