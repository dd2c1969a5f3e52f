"""
Predicate analysis.

This module provides the predicate tree that pruning evaluates, the factory
that builds partition column clauses, and the translation of filter
documents into predicate trees.
"""

from shardprune.analysis.expressions import (
    PartitionExpressionFactory,
    build_equality,
    describe_equality,
)
from shardprune.analysis.inspector import (
    # Operator classification sets
    LOGICAL_OPERATORS,
    PRUNABLE_OPERATORS,
    # Translation
    predicate_from_clauses,
    predicate_from_filter,
)
from shardprune.analysis.predicates import (
    NO_RESTRICTION,
    And,
    Equals,
    IsNull,
    Opaque,
    Or,
    PredicateTree,
    is_no_restriction,
    iter_leaves,
    tree_depth,
)

__all__ = [
    # predicates
    "PredicateTree",
    "Equals",
    "IsNull",
    "Opaque",
    "And",
    "Or",
    "NO_RESTRICTION",
    "is_no_restriction",
    "iter_leaves",
    "tree_depth",
    # expressions
    "PartitionExpressionFactory",
    "build_equality",
    "describe_equality",
    # inspector
    "PRUNABLE_OPERATORS",
    "LOGICAL_OPERATORS",
    "predicate_from_filter",
    "predicate_from_clauses",
]
