"""
Hash tokens for hash-partitioned tables.

A hash-partitioned table routes every row by the 32-bit hash token of its
distribution column value. Shards own contiguous, inclusive token ranges that
together cover [HASH_TOKEN_MIN, HASH_TOKEN_MAX].

TOKEN COMPUTATION
-----------------

    value --validate--> canonical literal
          --bson.encode({"v": literal})--> canonical bytes
          --md5--> first 4 bytes, big-endian, signed --> token

BSON gives a type-tagged encoding, so ``"1"`` and ``1`` never share a token
and ObjectId / datetime literals encode natively.
"""

import hashlib
from typing import Any, List, Tuple

import bson

from shardprune.constants import HASH_TOKEN_COUNT, HASH_TOKEN_MAX, HASH_TOKEN_MIN
from shardprune.schema.types import BaseType


def hash_token(value: Any, value_type: BaseType) -> int:
    """
    Compute the signed 32-bit hash token of a literal.

    Args:
        value: Literal of the distribution column
        value_type: Declared type of the distribution column

    Returns:
        Token in [HASH_TOKEN_MIN, HASH_TOKEN_MAX]

    Raises:
        TypeMismatchError: If the literal does not match ``value_type``
    """
    literal = value_type.validate(value)
    encoded = bson.encode({"v": literal})
    digest = hashlib.md5(encoded).digest()
    return int.from_bytes(digest[:4], "big", signed=True)


def uniform_hash_ranges(shard_count: int) -> List[Tuple[int, int]]:
    """
    Split the token space into ``shard_count`` contiguous inclusive ranges.

    The last range absorbs the remainder so the ranges cover the whole space.

    Example:
        >>> uniform_hash_ranges(4)
        [(-2147483648, -1073741825), (-1073741824, -1), (0, 1073741823),
         (1073741824, 2147483647)]
    """
    if shard_count <= 0:
        raise ValueError(f"shard_count must be positive, got {shard_count}")

    increment = HASH_TOKEN_COUNT // shard_count
    ranges = []
    for index in range(shard_count):
        lo = HASH_TOKEN_MIN + index * increment
        hi = lo + increment - 1
        if index == shard_count - 1:
            hi = HASH_TOKEN_MAX
        ranges.append((lo, hi))
    return ranges
