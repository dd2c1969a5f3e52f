"""
Parquet shard catalog for shardprune.

This module stores shard metadata as two Parquet files and loads it back into
validated ShardCatalogSnapshots.

DATA FLOW
=========

STEP 1: CATALOG LAYOUT
----------------------
A catalog directory holds one row per distributed table and one row per
shard:

    catalog_dir/
        tables.parquet
        shards.parquet

tables.parquet:
    table_id | column_name | column_ordinal | column_type | nullable |
    partition_method | max_inclusive

    "orders" | "customer_id" | 1 | "int64" | False | "h" | True

shards.parquet:
    table_id | shard_id | min_value | max_value | catch_all

    "orders" | 102008 | "-2147483648" | "-1073741825" | False
    "orders" | 102009 | "-1073741824" | "-1"          | False

Bounds are stored as text, like the source system's shard metadata, and are
parsed with the bound type: Int(32) tokens for hash tables, the partition
column type for range tables. Null bounds are open.


STEP 2: READ ONE TABLE
----------------------
Both files are read with a ``table_id`` filter pushed down to pyarrow, so a
large catalog is not materialized for a single lookup.


STEP 3: ORDER AND VALIDATE
--------------------------
Rows are ordered by parsed lower bound (open bound first, catch-all last) and
handed to ShardCatalogSnapshot, which rejects overlapping or malformed
intervals with MalformedCatalogError.


OUTPUT: ShardCatalogSnapshot
-----------------------------
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Literal, Union

import pandas as pd
import polars as pl
import pyarrow as pa
import pyarrow.parquet as pq

from shardprune.catalog.methods import PartitionMethod, config_for
from shardprune.catalog.snapshot import (
    HASH_TOKEN_TYPE,
    PartitionColumn,
    ShardCatalogSnapshot,
    ShardInterval,
)
from shardprune.constants import (
    DEFAULT_BATCH_SIZE,
    SHARD_ID_ARROW_TYPE,
    SHARDS_FILE,
    TABLES_FILE,
)
from shardprune.errors import MalformedCatalogError, NotFoundError, TypeMismatchError
from shardprune.schema.types import type_from_name

logger = logging.getLogger(__name__)


TABLES_SCHEMA = pa.schema(
    [
        ("table_id", pa.string()),
        ("column_name", pa.string()),
        ("column_ordinal", pa.int32()),
        ("column_type", pa.string()),
        ("nullable", pa.bool_()),
        ("partition_method", pa.string()),
        ("max_inclusive", pa.bool_()),
    ]
)

SHARDS_SCHEMA = pa.schema(
    [
        ("table_id", pa.string()),
        ("shard_id", pa.int64()),
        ("min_value", pa.string()),
        ("max_value", pa.string()),
        ("catch_all", pa.bool_()),
    ]
)


class CatalogReader:
    """
    Reads shard catalogs from a Parquet catalog directory.

    Example:
        >>> reader = CatalogReader(catalog_dir="catalog")
        >>> column = reader.resolve_partition_column("orders")
        >>> snapshot = reader.load_shard_catalog("orders")
        >>>
        >>> # Or inspect every shard
        >>> df = reader.to_dataframe()
    """

    def __init__(self, catalog_dir: Union[str, Path]):
        """
        Initialize reader for a catalog directory.

        Args:
            catalog_dir: Directory containing tables.parquet and shards.parquet
        """
        self.catalog_dir = Path(catalog_dir)

        if not self.catalog_dir.exists():
            raise FileNotFoundError(f"Catalog directory not found: {catalog_dir}")

        self.tables_file = self.catalog_dir / TABLES_FILE
        self.shards_file = self.catalog_dir / SHARDS_FILE

        for path in (self.tables_file, self.shards_file):
            if not path.exists():
                raise FileNotFoundError(f"Catalog file not found: {path}")

    def table_ids(self) -> List[str]:
        """All distributed tables in the catalog, in file order."""
        table = pq.read_table(self.tables_file, columns=["table_id"])
        return table.column("table_id").to_pylist()

    def resolve_partition_column(self, table_id: Any) -> PartitionColumn:
        """
        Look up the partition column of a table.

        Raises:
            NotFoundError: If the table is not in the catalog
            MalformedCatalogError: If the table row is duplicated or invalid
        """
        return self._partition_column(table_id, self._table_row(table_id))

    def _partition_column(self, table_id: Any, row: Dict[str, Any]) -> PartitionColumn:
        try:
            value_type = type_from_name(row["column_type"])
        except ValueError as e:
            raise MalformedCatalogError(f"Table {table_id!r}: {e}") from e

        return PartitionColumn(
            name=row["column_name"],
            ordinal=row["column_ordinal"],
            value_type=value_type,
            nullable=bool(row["nullable"]),
        )

    def load_shard_catalog(self, table_id: Any) -> ShardCatalogSnapshot:
        """
        Load a validated snapshot of a table's shards.

        Raises:
            NotFoundError: If the table is not in the catalog
            MalformedCatalogError: If shard rows violate the catalog invariants
        """
        row = self._table_row(table_id)
        column = self._partition_column(table_id, row)

        try:
            method = PartitionMethod(row["partition_method"])
        except ValueError as e:
            raise MalformedCatalogError(f"Table {table_id!r}: {e}") from e

        if config_for(method).bounds_are_hash_tokens:
            bound_type = HASH_TOKEN_TYPE
        else:
            bound_type = column.value_type

        shards = []
        for shard_row in self._shard_rows(table_id):
            shards.append(
                ShardInterval(
                    shard_id=shard_row["shard_id"],
                    min_value=self._parse_bound(table_id, shard_row, "min_value", bound_type),
                    max_value=self._parse_bound(table_id, shard_row, "max_value", bound_type),
                    value_type=bound_type,
                    catch_all=bool(shard_row["catch_all"]),
                )
            )

        # Catalog files are unordered; ordering by lower bound is the loader's job
        shards.sort(key=lambda s: _load_order(s, bound_type))

        snapshot = ShardCatalogSnapshot(
            table_id=table_id,
            partition_column=column,
            partition_method=method,
            shards=tuple(shards),
            max_inclusive=row["max_inclusive"],
        )
        logger.info(
            f"Loaded {snapshot.shard_count} shards for table '{table_id}' "
            f"from {self.catalog_dir}"
        )
        return snapshot

    def load_bounds_table(self, table_id: Any) -> pa.Table:
        """
        Load a table's shards with bounds typed by the bound type.

        See shard_bounds_table.
        """
        return shard_bounds_table(self.load_shard_catalog(table_id))

    def iter_shard_rows(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> Iterator[Dict[str, Any]]:
        """
        Stream raw shard rows of every table.

        Reads in batches to avoid loading a large catalog into memory.

        Args:
            batch_size: Number of rows to read per batch

        Yields:
            Shard row dictionaries
        """
        parquet_file = pq.ParquetFile(self.shards_file)
        for batch in parquet_file.iter_batches(batch_size=batch_size):
            yield from batch.to_pylist()

    def to_dataframe(
        self,
        engine: Literal["pandas", "polars"] = "pandas",
    ) -> Union[pd.DataFrame, "pl.DataFrame"]:
        """
        Load every shard row joined with its table's partition metadata.

        Args:
            engine: "pandas" or "polars"

        Returns:
            One row per shard, ordered by table id and shard id
        """
        tables = pq.read_table(self.tables_file)
        shards = pq.read_table(self.shards_file)
        joined = shards.join(tables, keys="table_id", join_type="left outer")
        joined = joined.sort_by([("table_id", "ascending"), ("shard_id", "ascending")])

        if engine == "pandas":
            return joined.to_pandas()
        elif engine == "polars":
            return pl.from_arrow(joined)
        raise ValueError(f"Unknown engine {engine!r}, expected 'pandas' or 'polars'")

    def get_statistics(self) -> Dict[str, Any]:
        """
        Catalog-level counts.

        Returns:
            Dict with table_count, shard_count and per-method table counts
        """
        tables = pq.read_table(self.tables_file, columns=["partition_method"])
        methods = tables.column("partition_method").to_pylist()
        shard_count = pq.ParquetFile(self.shards_file).metadata.num_rows

        return {
            "catalog_dir": str(self.catalog_dir),
            "table_count": len(methods),
            "shard_count": shard_count,
            "hash_tables": methods.count(PartitionMethod.HASH.value),
            "range_tables": methods.count(PartitionMethod.RANGE.value),
        }

    def __len__(self) -> int:
        """Number of distributed tables in the catalog."""
        return pq.ParquetFile(self.tables_file).metadata.num_rows

    def _table_row(self, table_id: Any) -> Dict[str, Any]:
        # Table ids are stored as text, whatever type the caller uses
        rows = pq.read_table(
            self.tables_file, filters=[("table_id", "==", str(table_id))]
        ).to_pylist()
        if not rows:
            raise NotFoundError(table_id)
        if len(rows) > 1:
            raise MalformedCatalogError(
                f"Table {table_id!r} has {len(rows)} rows in {self.tables_file.name}"
            )
        return rows[0]

    def _shard_rows(self, table_id: Any) -> List[Dict[str, Any]]:
        return pq.read_table(
            self.shards_file, filters=[("table_id", "==", str(table_id))]
        ).to_pylist()

    @staticmethod
    def _parse_bound(table_id, row, side, bound_type):
        text = row[side]
        if text is None:
            return None
        try:
            return bound_type.parse(text)
        except TypeMismatchError as e:
            raise MalformedCatalogError(
                f"Table {table_id!r}: shard {row['shard_id']} {side} {text!r} "
                f"is not a valid {bound_type.type_name}"
            ) from e


def _load_order(shard: ShardInterval, bound_type) -> tuple:
    if shard.catch_all:
        return (2,)
    if shard.min_value is None:
        return (0,)
    return (1, bound_type.sort_key(shard.min_value))


def write_catalog(
    catalog_dir: Union[str, Path],
    snapshots: Iterable[ShardCatalogSnapshot],
) -> Path:
    """
    Write snapshots as a Parquet catalog directory (replacing existing files).

    Args:
        catalog_dir: Target directory, created if missing
        snapshots: Snapshots to store; table ids are stored as text

    Returns:
        The catalog directory
    """
    catalog_dir = Path(catalog_dir)
    catalog_dir.mkdir(parents=True, exist_ok=True)

    table_rows: List[Dict[str, Any]] = []
    shard_rows: List[Dict[str, Any]] = []
    for snapshot in snapshots:
        column = snapshot.partition_column
        table_id = str(snapshot.table_id)
        table_rows.append(
            {
                "table_id": table_id,
                "column_name": column.name,
                "column_ordinal": column.ordinal,
                "column_type": column.value_type.type_name,
                "nullable": column.nullable,
                "partition_method": snapshot.partition_method.value,
                "max_inclusive": snapshot.max_inclusive,
            }
        )
        bound_type = snapshot.bound_type
        for shard in snapshot.shards:
            shard_rows.append(
                {
                    "table_id": table_id,
                    "shard_id": shard.shard_id,
                    "min_value": _format_bound(shard.min_value, bound_type),
                    "max_value": _format_bound(shard.max_value, bound_type),
                    "catch_all": shard.catch_all,
                }
            )

    pq.write_table(
        pa.Table.from_pylist(table_rows, schema=TABLES_SCHEMA),
        catalog_dir / TABLES_FILE,
    )
    pq.write_table(
        pa.Table.from_pylist(shard_rows, schema=SHARDS_SCHEMA),
        catalog_dir / SHARDS_FILE,
    )

    logger.info(
        "Wrote catalog with %d tables and %d shards to %s",
        len(table_rows),
        len(shard_rows),
        catalog_dir,
    )
    return catalog_dir


def shard_bounds_table(snapshot: ShardCatalogSnapshot) -> pa.Table:
    """
    Arrow table of a snapshot's shards with typed bound columns.

    Unlike the text bounds of the catalog files, ``min_value`` and
    ``max_value`` use the Arrow type of the bound type: int32 tokens for hash
    tables, the partition column's type for range tables. Rows follow the
    snapshot order (intervals by lower bound, catch-all last).

    Example:
        >>> shard_bounds_table(range_snapshot).schema.field("min_value").type
        DataType(int64)
    """
    bound_type = snapshot.bound_type
    schema = pa.schema(
        [
            ("shard_id", SHARD_ID_ARROW_TYPE),
            ("min_value", bound_type.to_arrow()),
            ("max_value", bound_type.to_arrow()),
            ("catch_all", pa.bool_()),
        ]
    )

    def arrow_bound(value):
        if value is None:
            return None
        return bound_type.to_arrow_value(bound_type.validate(value))

    shards = snapshot.intervals + tuple(
        s for s in snapshot.shards if s.catch_all
    )
    return pa.Table.from_pylist(
        [
            {
                "shard_id": shard.shard_id,
                "min_value": arrow_bound(shard.min_value),
                "max_value": arrow_bound(shard.max_value),
                "catch_all": shard.catch_all,
            }
            for shard in shards
        ],
        schema=schema,
    )


def _format_bound(value: Any, bound_type) -> Any:
    if value is None:
        return None
    return bound_type.format(bound_type.validate(value))
