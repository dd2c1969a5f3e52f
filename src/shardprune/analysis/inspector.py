"""
Filter inspector for shardprune.

This module turns MongoDB-style filter documents into PredicateTrees over a
table's distribution column. Only clauses that provably restrict the
partition column become Equals / IsNull leaves; everything else becomes
Opaque, which the pruner treats as "may match any row".

================================================================================
CORE PRINCIPLE: PRUNE ONLY WHAT IS PROVABLE
================================================================================

Dropping a shard that holds a matching row corrupts results. Keeping a shard
that holds none only costs a wasted fetch. So the inspector never guesses:

    PRUNABLE (partition column only):
        {"customer_id": 7}                    # Equals(7)
        {"customer_id": None}                 # IsNull()
        {"customer_id": {"$eq": 7}}           # Equals(7)
        {"customer_id": {"$in": [7, 9]}}      # Or(Equals(7), Equals(9))

    OPAQUE:
        {"status": "active"}                  # other column
        {"customer_id": {"$gt": 7}}           # range operators
        {"$nor": [{"customer_id": 7}]}        # negation
        {"$expr": {...}}                      # cannot analyze statically

================================================================================
OPERATOR CATEGORIES
================================================================================

    PRUNABLE_OPERATORS: $eq, $in
    LOGICAL_OPERATORS:  $and, $or (recursed into)
    Everything else:    Opaque

================================================================================
USAGE
================================================================================

    predicate = predicate_from_filter(
        {"$or": [{"customer_id": 7}, {"customer_id": 9}], "status": "open"},
        column,
    )
    # And((Or((Equals(7), Equals(9))), Opaque("field 'status'")))
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from shardprune.analysis.expressions import build_equality
from shardprune.analysis.predicates import And, Opaque, Or, PredicateTree
from shardprune.catalog.snapshot import PartitionColumn

logger = logging.getLogger(__name__)

__all__ = [
    # Classification sets
    "PRUNABLE_OPERATORS",
    "LOGICAL_OPERATORS",
    # Translation
    "predicate_from_filter",
    "predicate_from_clauses",
]

# =============================================================================
# OPERATOR CLASSIFICATION
# =============================================================================

PRUNABLE_OPERATORS: frozenset[str] = frozenset(
    {
        # ── Equality ────────────────────────────────────────────────────────────
        # Each literal maps to exactly one shard (or the catch-all).
        #
        # Example:
        #   {"customer_id": {"$eq": 7}}
        #
        "$eq",
        # ── Set membership ──────────────────────────────────────────────────────
        # A disjunction of equalities: union of the shards of each literal.
        #
        # Example:
        #   {"customer_id": {"$in": [7, 9, 11]}}
        #
        "$in",
    }
)

LOGICAL_OPERATORS: frozenset[str] = frozenset(
    {
        # ── $and ────────────────────────────────────────────────────────────────
        # Intersection of the children's shards.
        "$and",
        # ── $or ─────────────────────────────────────────────────────────────────
        # Union of the children's shards. Any depth is allowed.
        "$or",
    }
)


def predicate_from_filter(
    filter_dict: Dict[str, Any], column: PartitionColumn
) -> PredicateTree:
    """
    Translate a filter document into a predicate tree.

    The fields of a document are combined with AND, so an empty document is
    the no-restriction predicate ``And(())``.

    Args:
        filter_dict: MongoDB-style filter
        column: The table's partition column

    Returns:
        PredicateTree equivalent to, or weaker than, the filter

    Raises:
        TypeMismatchError: If a literal compared to the partition column has
            an incompatible type
    """
    if not isinstance(filter_dict, dict):
        return _opaque(f"filter is {type(filter_dict).__name__}, not a document")

    clauses: List[PredicateTree] = []
    for key, value in filter_dict.items():
        if key in LOGICAL_OPERATORS:
            clauses.append(_logical_clause(key, value, column))
        elif key.startswith("$"):
            clauses.append(_opaque(f"operator {key}"))
        elif key == column.name:
            clauses.append(_column_clause(value, column))
        else:
            clauses.append(_opaque(f"field {key!r}"))

    return And(tuple(clauses))


def predicate_from_clauses(clauses: Sequence[PredicateTree]) -> PredicateTree:
    """
    Combine a WHERE clause list into one predicate (implicit AND).

    An empty list means no restriction.
    """
    return And(tuple(clauses))


def _logical_clause(
    operator: str, branches: Any, column: PartitionColumn
) -> PredicateTree:
    if not isinstance(branches, list):
        return _opaque(f"{operator} argument is not a list")

    children = tuple(predicate_from_filter(branch, column) for branch in branches)
    if operator == "$and":
        return And(children)
    return Or(children)


def _column_clause(value: Any, column: PartitionColumn) -> PredicateTree:
    """Translate the value of a filter field naming the partition column."""
    if not isinstance(value, dict):
        return build_equality(column, value)

    if not value or not all(k.startswith("$") for k in value):
        # Embedded document literal
        return _opaque("document literal on partition column")

    clauses: List[PredicateTree] = []
    for operator, argument in value.items():
        if operator == "$eq":
            clauses.append(build_equality(column, argument))
        elif operator == "$in":
            if not isinstance(argument, list):
                clauses.append(_opaque("$in argument is not a list"))
                continue
            # An empty $in matches nothing
            clauses.append(
                Or(tuple(build_equality(column, item) for item in argument))
            )
        else:
            clauses.append(_opaque(f"operator {operator} on partition column"))

    if len(clauses) == 1:
        return clauses[0]
    return And(tuple(clauses))


def _opaque(reason: str) -> Opaque:
    logger.debug("Clause folded to Opaque: %s", reason)
    return Opaque(reason)
