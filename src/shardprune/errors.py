"""
Error taxonomy for shardprune.

Invariant violations fail fast: a malformed catalog or a mistyped literal
could silently drop shards that hold matching rows. Predicate shapes the
engine cannot interpret are not errors; they are folded into ``Opaque`` and
pruned conservatively.
"""


class ShardPruneError(Exception):
    """Base class for all shardprune errors."""


class NotFoundError(ShardPruneError, LookupError):
    """Table identifier does not resolve to a distributed table."""

    def __init__(self, table_id):
        self.table_id = table_id
        super().__init__(f"Distributed table not found: {table_id!r}")


class TypeMismatchError(ShardPruneError, TypeError):
    """A literal is incompatible with the partition column's declared type."""

    def __init__(self, value, expected: str, reason: str = ""):
        self.value = value
        self.expected = expected
        message = (
            f"Cannot compare {type(value).__name__} value {value!r} "
            f"against column of type {expected}"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MalformedCatalogError(ShardPruneError, ValueError):
    """Shard intervals violate the sort / non-overlap invariant."""
