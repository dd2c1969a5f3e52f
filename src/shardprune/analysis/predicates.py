"""
Predicate trees over a table's distribution column.

================================================================================
NODE KINDS
================================================================================

    Equals(value)     rows whose partition column equals ``value``
    IsNull()          rows whose partition column is NULL
    Opaque(reason)    anything the pruner cannot interpret; may be true for
                      any row
    And(children)     all children true. And(()) is "no restriction".
    Or(children)      any child true. Or(()) is "always false"; the caller
                      facing API never builds it.

Leaves may carry the PartitionColumn they test. A leaf bound to a different
column does not restrict the partition column and prunes like Opaque.

EXAMPLE
-------

    WHERE customer_id = 7 OR customer_id = 9

    Or((
        Equals(7, column=customer_id),
        Equals(9, column=customer_id),
    ))

All nodes are frozen; children are stored as tuples.
================================================================================
"""

from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple, Union

from shardprune.catalog.snapshot import PartitionColumn


@dataclass(frozen=True)
class Equals:
    """Equality test between the partition column and a literal."""

    value: Any
    column: Optional[PartitionColumn] = None


@dataclass(frozen=True)
class IsNull:
    """NULL test on the partition column."""

    column: Optional[PartitionColumn] = None


@dataclass(frozen=True)
class Opaque:
    """A clause the pruner cannot use; never prunes anything."""

    reason: str = ""


@dataclass(frozen=True)
class And:
    """Conjunction. An empty conjunction is always true."""

    children: Tuple["PredicateTree", ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))


@dataclass(frozen=True)
class Or:
    """Disjunction. An empty disjunction is always false."""

    children: Tuple["PredicateTree", ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))


PredicateTree = Union[Equals, IsNull, Opaque, And, Or]

# The "no WHERE clause" predicate
NO_RESTRICTION = And(())


def is_no_restriction(predicate: PredicateTree) -> bool:
    """True for an empty conjunction."""
    return isinstance(predicate, And) and not predicate.children


def iter_leaves(predicate: PredicateTree) -> Iterator[PredicateTree]:
    """Yield the leaves of a predicate tree, left to right."""
    if isinstance(predicate, (And, Or)):
        for child in predicate.children:
            yield from iter_leaves(child)
    else:
        yield predicate


def tree_depth(predicate: PredicateTree) -> int:
    """
    Nesting depth of AND/OR nodes.

    Examples:
        >>> tree_depth(Equals(1))
        0
        >>> tree_depth(And((Or((Equals(1), Equals(2))),)))
        2
    """
    if isinstance(predicate, (And, Or)):
        return 1 + max((tree_depth(c) for c in predicate.children), default=0)
    return 0
