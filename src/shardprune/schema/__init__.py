"""
Partition column types for shardprune.

Provides the column types a table can be distributed by and the hash token
function used by hash partitioning.
"""

from .types import (
    BaseType,
    String,
    Int,
    Float,
    Bool,
    Timestamp,
    ObjectId,
    type_from_name,
)
from .hashing import hash_token, uniform_hash_ranges

# Import types module for Types.X syntax
from . import types as Types

__all__ = [
    # Types module for Types.X syntax
    "Types",
    # Individual type classes
    "BaseType",
    "String",
    "Int",
    "Float",
    "Bool",
    "Timestamp",
    "ObjectId",
    "type_from_name",
    # Hashing
    "hash_token",
    "uniform_hash_ranges",
]
