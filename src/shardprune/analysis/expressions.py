"""
Partition expression factory.

Builds the canonical clauses over a table's distribution column:

    build_equality(column, 42)    -> Equals(42, column)
    build_equality(column, None)  -> IsNull(column)

A NULL literal selects a null test instead of an equality test. The two are
kept as different leaf kinds because NULL rows follow different pruning rules
than equal values.

``describe_equality`` renders the equality template (right operand unbound)
as stable text, so tests can check that the factory wires the equality
strategy to the right column.
"""

from typing import Any, Optional

from shardprune.analysis.predicates import Equals, IsNull, PredicateTree
from shardprune.catalog.snapshot import PartitionColumn

# Operator and strategy names rendered by describe_equality
EQUALITY_OPERATOR = "="
EQUALITY_STRATEGY = "btree-equal"


class PartitionExpressionFactory:
    """Builds equality and null-test clauses for partition columns."""

    def build_equality(
        self, column: PartitionColumn, value: Optional[Any] = None
    ) -> PredicateTree:
        """
        Build ``column = value``, or ``column IS NULL`` when value is None.

        Raises:
            TypeMismatchError: If ``value`` does not match the column type
        """
        if value is None:
            return IsNull(column=column)
        literal = column.value_type.validate(value)
        return Equals(value=literal, column=column)

    def describe_equality(self, column: PartitionColumn) -> str:
        """
        Render the equality template of ``column``.

        Example:
            >>> factory.describe_equality(PartitionColumn("id", 1, Int(64)))
            '{OPEXPR :opname = :strategy btree-equal :opresulttype bool
             :args ({COLUMN :name id :ordinal 1 :type int64}
             {CONST :type int64 :constisnull true :constvalue <>})}'

        (Rendered on a single line.)
        """
        type_name = column.value_type.type_name
        column_node = (
            f"{{COLUMN :name {column.name} :ordinal {column.ordinal} "
            f":type {type_name}}}"
        )
        const_node = f"{{CONST :type {type_name} :constisnull true :constvalue <>}}"
        return (
            f"{{OPEXPR :opname {EQUALITY_OPERATOR} :strategy {EQUALITY_STRATEGY} "
            f":opresulttype bool :args ({column_node} {const_node})}}"
        )


_DEFAULT_FACTORY = PartitionExpressionFactory()


def build_equality(column: PartitionColumn, value: Optional[Any] = None) -> PredicateTree:
    """Module-level shortcut for PartitionExpressionFactory.build_equality."""
    return _DEFAULT_FACTORY.build_equality(column, value)


def describe_equality(column: PartitionColumn) -> str:
    """Module-level shortcut for PartitionExpressionFactory.describe_equality."""
    return _DEFAULT_FACTORY.describe_equality(column)
