"""
Tests for shardprune.api - the caller-facing entry points.

Values are passed as text (None for NULL) and parsed with the partition
column type before pruning.
"""

import pyarrow as pa
import pytest

from shardprune.api import (
    debug_equality_expression,
    prune_using_both_values,
    prune_using_either_value,
    prune_using_no_values,
    prune_using_single_value,
)
from shardprune.catalog import CatalogReader, InMemoryCatalog, SnapshotCache, write_catalog
from shardprune.catalog.snapshot import PartitionColumn, build_snapshot
from shardprune.errors import NotFoundError, TypeMismatchError
from shardprune.schema.types import Int, String


@pytest.fixture
def source(hash_catalog, hash_catalog_with_null_shard, range_catalog, text_catalog):
    return InMemoryCatalog(
        [hash_catalog, hash_catalog_with_null_shard, range_catalog, text_catalog]
    )


class TestNoValues:
    def test_returns_every_shard(self, source):
        result = prune_using_no_values(source, "orders")

        assert isinstance(result, pa.Int64Array)
        assert result.to_pylist() == [1, 2, 3, 4]

    def test_includes_catch_all_shard(self, source):
        assert prune_using_no_values(source, "orders_nullable").to_pylist() == [
            1,
            2,
            3,
            4,
            5,
        ]

    def test_zero_shards(self):
        column = PartitionColumn("id", 1, Int(64))
        source = InMemoryCatalog([build_snapshot("empty", column, "h", [])])

        assert prune_using_no_values(source, "empty").to_pylist() == []


class TestSingleValue:
    @pytest.mark.parametrize(
        "value, expected", [("apple", [1]), ("house", [2]), ("zebra", [3])]
    )
    def test_text_range_table(self, source, value, expected):
        assert prune_using_single_value(source, "people", value).to_pylist() == expected

    def test_integer_text_is_parsed(self, source, find_value, hash_catalog):
        value = find_value(hash_catalog, 3)

        result = prune_using_single_value(source, "orders", str(value))

        assert result.to_pylist() == [3]

    def test_null_goes_to_catch_all(self, source):
        assert prune_using_single_value(source, "orders_nullable", None).to_pylist() == [5]

    def test_null_on_not_null_column(self, source):
        assert prune_using_single_value(source, "orders", None).to_pylist() == []

    def test_null_without_catch_all(self, source):
        assert prune_using_single_value(source, "people", None).to_pylist() == [1, 2, 3]

    def test_invalid_text(self, source):
        with pytest.raises(TypeMismatchError):
            prune_using_single_value(source, "orders", "abc")

    def test_unknown_table(self, source):
        with pytest.raises(NotFoundError) as excinfo:
            prune_using_single_value(source, "missing", "1")

        assert excinfo.value.table_id == "missing"


class TestTwoValues:
    def test_either_value(self, source):
        result = prune_using_either_value(source, "people", "apple", "zebra")

        assert result.to_pylist() == [1, 3]

    def test_either_value_same_shard(self, source):
        assert prune_using_either_value(source, "people", "apple", "bee").to_pylist() == [1]

    def test_either_value_with_null(self, source):
        result = prune_using_either_value(source, "events", None, "150")

        assert result.to_pylist() == [10, 11, 12]

    def test_both_values_different_shards(self, source):
        assert prune_using_both_values(source, "people", "apple", "house").to_pylist() == []

    def test_both_values_same_shard(self, source):
        assert prune_using_both_values(source, "events", "100", "150").to_pylist() == [11]

    def test_both_values_null_and_value(self, source, find_value, hash_catalog):
        value = find_value(hash_catalog, 2)

        result = prune_using_both_values(source, "orders_nullable", None, str(value))

        assert result.to_pylist() == []


class TestDebugEqualityExpression:
    def test_template_text(self, source):
        assert debug_equality_expression(source, "people") == (
            "{OPEXPR :opname = :strategy btree-equal :opresulttype bool "
            ":args ({COLUMN :name name :ordinal 1 :type string} "
            "{CONST :type string :constisnull true :constvalue <>})}"
        )

    def test_unknown_table(self, source):
        with pytest.raises(NotFoundError):
            debug_equality_expression(source, "missing")


class TestParquetSource:
    """The entry points work on a cached Parquet catalog."""

    def test_round_trip_through_catalog_files(self, tmp_path, text_catalog):
        write_catalog(tmp_path, [text_catalog])
        source = SnapshotCache(CatalogReader(tmp_path))

        assert prune_using_single_value(source, "people", "mango").to_pylist() == [2]
        assert prune_using_either_value(source, "people", "a", "z").to_pylist() == [1, 3]
        assert len(source) == 1
