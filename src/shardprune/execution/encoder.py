"""
Result encoding for pruned shard sets.

Callers receive candidate shards as an ordered sequence of 64-bit shard
identifiers. The canonical form is a ``pyarrow.Int64Array``; list, pandas and
polars renderings are derived from it.

The encoder is a pure format transform: it never reorders, drops or adds
identifiers beyond what the candidate set iterates (ascending, unique).
"""

from typing import List, Literal, Union

import pandas as pd
import polars as pl
import pyarrow as pa

from shardprune.constants import SHARD_ID_ARROW_TYPE
from shardprune.execution.pruner import CandidateShardSet


class ResultEncoder:
    """
    Serializes CandidateShardSets.

    Example:
        >>> encoder = ResultEncoder()
        >>> encoder.encode(CandidateShardSet({102010, 102008}))
        <pyarrow.lib.Int64Array object at 0x...>
        [
          102008,
          102010
        ]
    """

    def encode(self, candidates: CandidateShardSet) -> pa.Int64Array:
        """Encode as an ascending Int64Array (possibly empty)."""
        return pa.array(list(candidates), type=SHARD_ID_ARROW_TYPE)

    def to_list(self, candidates: CandidateShardSet) -> List[int]:
        return self.encode(candidates).to_pylist()

    def to_series(
        self,
        candidates: CandidateShardSet,
        engine: Literal["pandas", "polars"] = "pandas",
        name: str = "shard_id",
    ) -> Union[pd.Series, "pl.Series"]:
        """
        Render as a pandas or polars Series of int64.

        Args:
            candidates: Pruned shard set
            engine: "pandas" or "polars"
            name: Series name
        """
        array = self.encode(candidates)
        if engine == "pandas":
            return pd.Series(array.to_numpy(zero_copy_only=False), name=name, dtype="int64")
        elif engine == "polars":
            return pl.Series(name, array.to_pylist(), dtype=pl.Int64)
        raise ValueError(f"Unknown engine {engine!r}, expected 'pandas' or 'polars'")


_DEFAULT_ENCODER = ResultEncoder()


def encode(candidates: CandidateShardSet) -> pa.Int64Array:
    """Module-level shortcut for ResultEncoder.encode."""
    return _DEFAULT_ENCODER.encode(candidates)
