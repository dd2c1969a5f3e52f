"""
Shard catalog snapshots.

A ShardCatalogSnapshot is the immutable view of one distributed table's
shards that a pruning call works against. Snapshots are validated when they
are built: a snapshot that exists is sorted, non-overlapping and typed, so
the pruning engine can binary-search it without re-checking anything.

Example:
    ShardCatalogSnapshot(
        table_id="orders",
        partition_column=PartitionColumn("customer_id", 1, Int(64), nullable=False),
        partition_method=PartitionMethod.HASH,
        shards=(
            ShardInterval(102008, -2147483648, -1, Int(32)),
            ShardInterval(102009, 0, 2147483647, Int(32)),
        ),
    )
"""

import logging
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Optional, Tuple, Union

from shardprune.catalog.methods import MethodConfig, PartitionMethod, config_for
from shardprune.constants import SHARD_ID_MAX, SHARD_ID_MIN
from shardprune.errors import MalformedCatalogError, TypeMismatchError
from shardprune.schema.types import BaseType, Int

logger = logging.getLogger(__name__)

# Type of hash shard bounds
HASH_TOKEN_TYPE = Int(32)


@dataclass(frozen=True)
class PartitionColumn:
    """The single column a table is distributed by."""

    name: str
    ordinal: int
    value_type: BaseType
    nullable: bool = True


@dataclass(frozen=True)
class ShardInterval:
    """
    One physical shard of a table.

    ``min_value`` / ``max_value`` of None mean the range is open on that side.
    A catch-all shard has no bounds and holds rows that fit no other shard.
    """

    shard_id: int
    min_value: Optional[Any]
    max_value: Optional[Any]
    value_type: BaseType
    catch_all: bool = False


@dataclass(frozen=True)
class ShardCatalogSnapshot:
    """Validated, immutable shard layout of one distributed table."""

    table_id: Any
    partition_column: PartitionColumn
    partition_method: PartitionMethod
    shards: Tuple[ShardInterval, ...] = ()
    max_inclusive: Optional[bool] = None

    # Derived during validation
    intervals: Tuple[ShardInterval, ...] = field(init=False, repr=False)
    catch_all_shard_id: Optional[int] = field(init=False, repr=False)
    all_shard_ids: FrozenSet[int] = field(init=False, repr=False)
    lower_keys: Tuple[Any, ...] = field(init=False, repr=False)
    upper_keys: Tuple[Any, ...] = field(init=False, repr=False)

    def __post_init__(self):
        method = PartitionMethod(self.partition_method)
        config = config_for(method)
        object.__setattr__(self, "partition_method", method)
        object.__setattr__(self, "shards", tuple(self.shards))

        max_inclusive = self.max_inclusive
        if max_inclusive is None:
            max_inclusive = config.max_inclusive_default
        elif not max_inclusive and not config.allow_exclusive_max:
            raise MalformedCatalogError(
                f"Table {self.table_id!r}: {method.name} partitioning requires "
                "inclusive shard maximums"
            )
        object.__setattr__(self, "max_inclusive", bool(max_inclusive))

        self._validate(config)

    @property
    def config(self) -> MethodConfig:
        return config_for(self.partition_method)

    @property
    def bound_type(self) -> BaseType:
        """Type of the shard bounds: hash tokens or the column type."""
        if self.config.bounds_are_hash_tokens:
            return HASH_TOKEN_TYPE
        return self.partition_column.value_type

    @property
    def shard_count(self) -> int:
        return len(self.all_shard_ids)

    def _validate(self, config: MethodConfig) -> None:
        seen_ids = set()
        catch_all_id = None
        intervals = []

        for shard in self.shards:
            shard_id = shard.shard_id
            if not isinstance(shard_id, int) or isinstance(shard_id, bool):
                raise MalformedCatalogError(
                    f"Table {self.table_id!r}: shard id {shard_id!r} is not an integer"
                )
            if not SHARD_ID_MIN <= shard_id <= SHARD_ID_MAX:
                raise MalformedCatalogError(
                    f"Table {self.table_id!r}: shard id {shard_id} exceeds 64 bits"
                )
            if shard_id in seen_ids:
                raise MalformedCatalogError(
                    f"Table {self.table_id!r}: duplicate shard id {shard_id}"
                )
            seen_ids.add(shard_id)

            if shard.catch_all:
                if catch_all_id is not None:
                    raise MalformedCatalogError(
                        f"Table {self.table_id!r}: more than one catch-all shard "
                        f"({catch_all_id}, {shard_id})"
                    )
                if shard.min_value is not None or shard.max_value is not None:
                    raise MalformedCatalogError(
                        f"Table {self.table_id!r}: catch-all shard {shard_id} "
                        "must not declare bounds"
                    )
                catch_all_id = shard_id
            else:
                intervals.append(shard)

        lower_keys = []
        upper_keys = []
        last = len(intervals) - 1
        for index, shard in enumerate(intervals):
            lo, hi = self._interval_keys(shard, config, index == 0, index == last)
            if lo is not None and hi is not None:
                if hi < lo or (hi == lo and not self.max_inclusive):
                    raise MalformedCatalogError(
                        f"Table {self.table_id!r}: shard {shard.shard_id} has an "
                        f"empty range [{shard.min_value!r}, {shard.max_value!r}]"
                    )
            if index > 0:
                previous_hi = upper_keys[-1]
                overlaps = (
                    previous_hi >= lo if self.max_inclusive else previous_hi > lo
                )
                if overlaps:
                    previous = intervals[index - 1]
                    raise MalformedCatalogError(
                        f"Table {self.table_id!r}: shard {shard.shard_id} is out of "
                        f"order or overlaps shard {previous.shard_id}"
                    )
            lower_keys.append(lo)
            upper_keys.append(hi)

        object.__setattr__(self, "intervals", tuple(intervals))
        object.__setattr__(self, "catch_all_shard_id", catch_all_id)
        object.__setattr__(self, "all_shard_ids", frozenset(seen_ids))
        object.__setattr__(self, "lower_keys", tuple(lower_keys))
        object.__setattr__(self, "upper_keys", tuple(upper_keys))

        logger.debug(
            "Validated snapshot for table %r: %d intervals, catch-all=%s (%s)",
            self.table_id,
            len(intervals),
            catch_all_id,
            config.description,
        )

    def _interval_keys(
        self, shard: ShardInterval, config: MethodConfig, first: bool, last: bool
    ) -> Tuple[Any, Any]:
        """Validate one interval's bounds and return their ordering keys."""
        bound_type = self.bound_type
        if shard.value_type != bound_type:
            raise MalformedCatalogError(
                f"Table {self.table_id!r}: shard {shard.shard_id} bounds are "
                f"{shard.value_type!r}, expected {bound_type!r}"
            )

        keys = []
        for side, bound, may_be_open in (
            ("min", shard.min_value, first),
            ("max", shard.max_value, last),
        ):
            if bound is None:
                if not (config.allow_open_bounds and may_be_open):
                    raise MalformedCatalogError(
                        f"Table {self.table_id!r}: shard {shard.shard_id} has no "
                        f"{side} value"
                    )
                keys.append(None)
                continue
            try:
                literal = bound_type.validate(bound)
            except TypeMismatchError as e:
                raise MalformedCatalogError(
                    f"Table {self.table_id!r}: shard {shard.shard_id} {side} "
                    f"value is invalid: {e}"
                ) from e
            keys.append(bound_type.sort_key(literal))
        return keys[0], keys[1]


def build_snapshot(
    table_id: Any,
    partition_column: PartitionColumn,
    partition_method: Union[PartitionMethod, str],
    bounds,
    catch_all_shard_id: Optional[int] = None,
    max_inclusive: Optional[bool] = None,
) -> ShardCatalogSnapshot:
    """
    Build a snapshot from ``(shard_id, min_value, max_value)`` triples.

    The bound type follows the partition method (hash tokens for hash tables,
    the column type for range tables).

    Example:
        >>> build_snapshot("events", column, "r", [(1, 0, 99), (2, 100, 199)])
    """
    method = PartitionMethod(partition_method)
    if config_for(method).bounds_are_hash_tokens:
        bound_type = HASH_TOKEN_TYPE
    else:
        bound_type = partition_column.value_type

    shards = [
        ShardInterval(shard_id, lo, hi, bound_type) for shard_id, lo, hi in bounds
    ]
    if catch_all_shard_id is not None:
        shards.append(
            ShardInterval(catch_all_shard_id, None, None, bound_type, catch_all=True)
        )

    return ShardCatalogSnapshot(
        table_id=table_id,
        partition_column=partition_column,
        partition_method=method,
        shards=tuple(shards),
        max_inclusive=max_inclusive,
    )
