"""
Shard pruning engine for shardprune.

================================================================================
DATA FLOW - PREDICATE TO CANDIDATE SHARDS
================================================================================

    prune(catalog, predicate)
        |
        |-- bind a comparator once for the call:
        |       HASH  -> key(value) = hash_token(value, column type)
        |       RANGE -> key(value) = column type sort key
        |
        |-- evaluate the tree recursively:
        |
        |   Equals(v)   binary search of the sorted lower bounds for the last
        |               interval whose min <= key(v), then check its max
        |               (inclusive for hash, as declared for range).
        |               Miss -> catch-all shard if any, else nothing.
        |   IsNull      catch-all shard if any; nothing if the column is
        |               NOT NULL; otherwise every shard.
        |   Opaque      every shard.
        |   And(cs)     intersection, stopping at the first empty result.
        |               And(()) -> every shard, nothing evaluated.
        |   Or(cs)      union. Or(()) -> nothing.
        |
        v
    CandidateShardSet (iterates ascending, no duplicates)

EXAMPLE:
--------------------------------------------------------------------------------

    4 hash shards over the token space:

        1: [-2147483648, -1073741825]    2: [-1073741824, -1]
        3: [0, 1073741823]               4: [1073741824, 2147483647]

    Or(Equals(a), Equals(b)) with hash_token(a) = -5, hash_token(b) = 2e9

        Equals(a) -> {2}
        Equals(b) -> {4}
        Or        -> {2, 4}

SOUNDNESS
--------------------------------------------------------------------------------
Every rule only removes shards that provably cannot hold a matching row. When
a clause cannot be interpreted (Opaque, a leaf on another column, an unknown
node) it keeps every shard.

The engine is a pure function of an immutable snapshot and an immutable
predicate. It holds no state between calls and is safe to share between
threads.
================================================================================
"""

import logging
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterator, List, Optional, Tuple

from shardprune.analysis.predicates import (
    And,
    Equals,
    IsNull,
    Opaque,
    Or,
    PredicateTree,
    is_no_restriction,
)
from shardprune.catalog.snapshot import (
    PartitionColumn,
    ShardCatalogSnapshot,
    ShardInterval,
)
from shardprune.schema.hashing import hash_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateShardSet:
    """
    Shard ids that may hold matching rows.

    Iteration, ``shard_ids`` and ``repr`` are always ascending.
    """

    ids: FrozenSet[int] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "ids", frozenset(self.ids))

    @property
    def shard_ids(self) -> Tuple[int, ...]:
        return tuple(sorted(self.ids))

    def intersection(self, other: "CandidateShardSet") -> "CandidateShardSet":
        return CandidateShardSet(self.ids & other.ids)

    def union(self, other: "CandidateShardSet") -> "CandidateShardSet":
        return CandidateShardSet(self.ids | other.ids)

    def __iter__(self) -> Iterator[int]:
        return iter(self.shard_ids)

    def __len__(self) -> int:
        return len(self.ids)

    def __contains__(self, shard_id: object) -> bool:
        return shard_id in self.ids

    def __bool__(self) -> bool:
        return bool(self.ids)

    def __repr__(self) -> str:
        return f"CandidateShardSet({list(self.shard_ids)})"


EMPTY_SET = CandidateShardSet()


@dataclass(frozen=True)
class TraceStep:
    """One evaluated node of a predicate tree."""

    depth: int
    node: str
    candidates: Tuple[int, ...]
    note: str = ""


@dataclass
class PruningTrace:
    """Diagnostic record of one pruning call (see PruningEngine.explain)."""

    table_id: Any
    result: CandidateShardSet = EMPTY_SET
    steps: List[TraceStep] = field(default_factory=list)

    def render(self) -> str:
        """Indented, one line per evaluated node."""
        lines = [f"table {self.table_id!r} -> {list(self.result.shard_ids)}"]
        for step in self.steps:
            note = f" ({step.note})" if step.note else ""
            lines.append(
                f"{'  ' * (step.depth + 1)}{step.node}: {list(step.candidates)}{note}"
            )
        return "\n".join(lines)


class _Comparator:
    """Comparison capability for one catalog, bound once per pruning call."""

    def __init__(self, catalog: ShardCatalogSnapshot):
        self.value_type = catalog.partition_column.value_type
        self.hash_tokens = catalog.config.bounds_are_hash_tokens

    def key(self, value: Any) -> Any:
        """
        Ordering key of a literal, comparable to the catalog's bound keys.

        Raises:
            TypeMismatchError: If the literal does not match the column type
        """
        if self.hash_tokens:
            return hash_token(value, self.value_type)
        return self.value_type.sort_key(self.value_type.validate(value))


class _Evaluation:
    """State of a single prune() call. Never shared between calls."""

    def __init__(
        self, catalog: ShardCatalogSnapshot, trace: Optional[PruningTrace] = None
    ):
        self.catalog = catalog
        self.comparator = _Comparator(catalog)
        self.full = full_shard_set(catalog)
        self.trace = trace

    def evaluate(self, node: PredicateTree, depth: int = 0) -> CandidateShardSet:
        # Reserve the parent's slot so the trace reads top-down
        position = None
        if self.trace is not None:
            position = len(self.trace.steps)
            self.trace.steps.append(TraceStep(depth, type(node).__name__, ()))

        if isinstance(node, Equals):
            result, note = self._equals(node)
        elif isinstance(node, IsNull):
            result, note = self._is_null(node)
        elif isinstance(node, Opaque):
            result, note = self.full, node.reason
        elif isinstance(node, And):
            result, note = self._and(node, depth)
        elif isinstance(node, Or):
            result, note = self._or(node, depth)
        else:
            logger.debug(
                "Unsupported predicate %s treated as opaque", type(node).__name__
            )
            result, note = self.full, "unsupported predicate"

        if position is not None:
            self.trace.steps[position] = TraceStep(
                depth, type(node).__name__, result.shard_ids, note
            )
        return result

    def _targets_partition_column(self, column: Optional[PartitionColumn]) -> bool:
        if column is None:
            return True
        partition_column = self.catalog.partition_column
        return (
            column.name == partition_column.name
            and column.ordinal == partition_column.ordinal
        )

    def _equals(self, node: Equals) -> Tuple[CandidateShardSet, str]:
        if not self._targets_partition_column(node.column):
            return self.full, f"column {node.column.name!r} is not the partition column"

        key = self.comparator.key(node.value)
        interval = self._find_interval(key)
        if interval is not None:
            return CandidateShardSet((interval.shard_id,)), f"key {key!r}"

        catch_all = self.catalog.catch_all_shard_id
        if catch_all is not None:
            return CandidateShardSet((catch_all,)), f"key {key!r} -> catch-all"
        return EMPTY_SET, f"key {key!r} outside every shard"

    def _find_interval(self, key: Any) -> Optional[ShardInterval]:
        """Binary search for the interval containing ``key``."""
        intervals = self.catalog.intervals
        if not intervals:
            return None

        lower_keys = self.catalog.lower_keys
        upper_keys = self.catalog.upper_keys

        # Only the first lower bound may be open, so search from index 1
        index = bisect_right(lower_keys, key, lo=1) - 1

        lower = lower_keys[index]
        if lower is not None and key < lower:
            return None

        upper = upper_keys[index]
        if upper is not None:
            if self.catalog.max_inclusive:
                if key > upper:
                    return None
            elif key >= upper:
                return None

        return intervals[index]

    def _is_null(self, node: IsNull) -> Tuple[CandidateShardSet, str]:
        if not self._targets_partition_column(node.column):
            return self.full, f"column {node.column.name!r} is not the partition column"

        catch_all = self.catalog.catch_all_shard_id
        if catch_all is not None:
            return CandidateShardSet((catch_all,)), "catch-all shard"

        if not self.catalog.partition_column.nullable:
            return EMPTY_SET, "partition column is NOT NULL"

        logger.warning(
            "Cannot prune IS NULL on table %r: nullable column %r and no "
            "catch-all shard; keeping all %d shards",
            self.catalog.table_id,
            self.catalog.partition_column.name,
            len(self.full),
        )
        return self.full, "null placement undetermined"

    def _and(self, node: And, depth: int) -> Tuple[CandidateShardSet, str]:
        if not node.children:
            return self.full, "no restriction"

        result = None
        for index, child in enumerate(node.children):
            child_result = self.evaluate(child, depth + 1)
            result = child_result if result is None else result.intersection(
                child_result
            )
            if not result:
                skipped = len(node.children) - index - 1
                if skipped:
                    return EMPTY_SET, f"empty after {index + 1}, skipped {skipped}"
                return EMPTY_SET, ""
        return result, ""

    def _or(self, node: Or, depth: int) -> Tuple[CandidateShardSet, str]:
        result = EMPTY_SET
        for child in node.children:
            result = result.union(self.evaluate(child, depth + 1))
        return result, ""


class PruningEngine:
    """
    Evaluates predicate trees against shard catalog snapshots.

    Example:
        >>> engine = PruningEngine()
        >>> engine.prune(catalog, NO_RESTRICTION)
        CandidateShardSet([102008, 102009, 102010, 102011])
        >>> engine.prune(catalog, build_equality(column, 42))
        CandidateShardSet([102010])
    """

    def prune(
        self, catalog: ShardCatalogSnapshot, predicate: PredicateTree
    ) -> CandidateShardSet:
        """
        Return the shards of ``catalog`` that may hold rows matching
        ``predicate``.

        Raises:
            TypeMismatchError: If a literal does not match the column type
        """
        if is_no_restriction(predicate):
            result = full_shard_set(catalog)
        else:
            result = _Evaluation(catalog).evaluate(predicate)

        logger.debug(
            "Pruned table %r: %d of %d shards remain",
            catalog.table_id,
            len(result),
            catalog.shard_count,
        )
        return result

    def explain(
        self, catalog: ShardCatalogSnapshot, predicate: PredicateTree
    ) -> PruningTrace:
        """Prune and record the candidates of every evaluated node."""
        trace = PruningTrace(table_id=catalog.table_id)
        trace.result = _Evaluation(catalog, trace).evaluate(predicate)
        return trace


_DEFAULT_ENGINE = PruningEngine()


def prune(
    catalog: ShardCatalogSnapshot, predicate: PredicateTree
) -> CandidateShardSet:
    """Module-level shortcut for PruningEngine.prune."""
    return _DEFAULT_ENGINE.prune(catalog, predicate)


def full_shard_set(catalog: ShardCatalogSnapshot) -> CandidateShardSet:
    """Every shard of the catalog, including the catch-all shard."""
    return CandidateShardSet(catalog.all_shard_ids)
