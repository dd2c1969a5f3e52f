"""
Partition method configuration for shardprune.

================================================================================
PARTITION METHODS
================================================================================

HASH ("h")
    Rows are routed by the 32-bit hash token of the distribution column.
    Shard bounds are Int(32) tokens, both inclusive, and every hash shard has
    both bounds. Equality pruning hashes the literal and searches the tokens.

RANGE ("r")
    Rows are routed by the distribution column value itself. Shard bounds are
    literals of the column type. The first shard may have an open minimum and
    the last an open maximum. Whether a shard's maximum is inclusive is
    declared by the catalog and preserved exactly.

NULL HANDLING
    Neither method places NULLs by itself. A NULL-holding row can only live in
    the table's catch-all shard, when one exists. Without a catch-all shard a
    NOT NULL column prunes IS NULL to nothing; a nullable column cannot be
    pruned and keeps every shard.

================================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Union


class PartitionMethod(Enum):
    """Supported distribution strategies."""

    HASH = "h"
    RANGE = "r"


@dataclass(frozen=True)
class MethodConfig:
    """Per-method rules used to validate snapshots and compare literals."""

    # Bounds are hash tokens rather than column literals
    bounds_are_hash_tokens: bool

    # Inclusive max when the catalog does not declare one
    max_inclusive_default: bool

    # Catalog may declare an exclusive max
    allow_exclusive_max: bool

    # First shard may omit its min, last shard its max
    allow_open_bounds: bool

    # Description for logging
    description: str


HASH_CONFIG = MethodConfig(
    bounds_are_hash_tokens=True,
    max_inclusive_default=True,
    allow_exclusive_max=False,
    allow_open_bounds=False,
    description="hash (inclusive 32-bit token ranges)",
)

RANGE_CONFIG = MethodConfig(
    bounds_are_hash_tokens=False,
    max_inclusive_default=True,
    allow_exclusive_max=True,
    allow_open_bounds=True,
    description="range (column value bounds, catalog-declared max inclusivity)",
)

METHOD_CONFIGS: Dict[PartitionMethod, MethodConfig] = {
    PartitionMethod.HASH: HASH_CONFIG,
    PartitionMethod.RANGE: RANGE_CONFIG,
}


def config_for(method: Union[PartitionMethod, str]) -> MethodConfig:
    """
    Look up the configuration of a partition method.

    Accepts the enum or its one-letter catalog code ("h", "r").

    Raises:
        ValueError: If the method is not supported
    """
    return METHOD_CONFIGS[PartitionMethod(method)]
