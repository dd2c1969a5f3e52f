"""
Shared constants for shardprune.
"""

import pyarrow as pa

# =============================================================================
# HASH TOKEN DOMAIN
# =============================================================================
# Hash-partitioned tables split the signed 32-bit token space into contiguous
# ranges, one per shard. Both bounds of every hash shard are inclusive.

HASH_TOKEN_MIN = -(2**31)
HASH_TOKEN_MAX = 2**31 - 1
HASH_TOKEN_COUNT = 2**32

# =============================================================================
# RESULT ENCODING
# =============================================================================

SHARD_ID_ARROW_TYPE = pa.int64()
SHARD_ID_MIN = -(2**63)
SHARD_ID_MAX = 2**63 - 1

# =============================================================================
# PARQUET CATALOG LAYOUT
# =============================================================================

TABLES_FILE = "tables.parquet"
SHARDS_FILE = "shards.parquet"

# Rows read per batch when scanning catalog files
DEFAULT_BATCH_SIZE = 10_000
