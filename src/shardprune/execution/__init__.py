"""
Pruning execution and result encoding for shardprune.
"""

from shardprune.execution.encoder import ResultEncoder, encode
from shardprune.execution.pruner import (
    EMPTY_SET,
    CandidateShardSet,
    PruningEngine,
    PruningTrace,
    TraceStep,
    full_shard_set,
    prune,
)

__all__ = [
    "CandidateShardSet",
    "EMPTY_SET",
    "PruningEngine",
    "PruningTrace",
    "TraceStep",
    "prune",
    "full_shard_set",
    # encoder.py exports
    "ResultEncoder",
    "encode",
]
