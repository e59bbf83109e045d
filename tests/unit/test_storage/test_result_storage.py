"""
Unit tests for Parquet result storage.
"""

import pytest

from pingmonitor.storage import ParquetStorage, RESULT_SCHEMA, results_to_dataframe


@pytest.mark.unit
class TestParquetStorage:
    """Test cases for ParquetStorage class."""

    def test_initialization(self):
        assert ParquetStorage().compression == "snappy"
        assert ParquetStorage(compression="zstd").compression == "zstd"

    def test_save_load_dataframe(self, temp_dir, test_utils):
        """Test saving and loading a result table."""
        storage = ParquetStorage()
        df = results_to_dataframe([test_utils.success(10.0), test_utils.failure()])
        file_path = temp_dir / "nested" / "results.parquet"

        storage.save_dataframe(df, str(file_path))

        assert storage.file_exists(str(file_path))
        assert storage.get_file_size(str(file_path)) > 0
        loaded = storage.load_dataframe(str(file_path))
        assert loaded.columns == list(RESULT_SCHEMA)
        assert loaded["success"].to_list() == [True, False]
        assert loaded["error"].to_list() == [None, "Timeout"]

    def test_load_with_column_pruning(self, temp_dir, test_utils):
        storage = ParquetStorage()
        file_path = str(temp_dir / "results.parquet")
        storage.save_dataframe(results_to_dataframe([test_utils.success(5.0)]), file_path)

        loaded = storage.load_dataframe(file_path, columns=["host", "average_time_ms"])

        assert loaded.columns == ["host", "average_time_ms"]
        assert loaded["average_time_ms"].to_list() == [5.0]

    def test_append_creates_then_extends(self, temp_dir, test_utils):
        storage = ParquetStorage()
        file_path = str(temp_dir / "results.parquet")

        storage.append_dataframe(results_to_dataframe([test_utils.failure()]), file_path)
        storage.append_dataframe(results_to_dataframe([test_utils.success(7.0)]), file_path)

        loaded = storage.load_dataframe(file_path)
        assert len(loaded) == 2
        assert loaded["average_time_ms"].to_list() == [None, 7.0]

    def test_append_empty_is_noop(self, temp_dir):
        storage = ParquetStorage()
        file_path = str(temp_dir / "results.parquet")

        storage.append_dataframe(results_to_dataframe([]), file_path)

        assert storage.file_exists(file_path) is False

    def test_missing_file(self, temp_dir):
        storage = ParquetStorage()
        missing = str(temp_dir / "missing.parquet")

        assert storage.file_exists(missing) is False
        assert storage.get_file_size(missing) == 0
        with pytest.raises(Exception):
            storage.load_dataframe(missing)


@pytest.mark.unit
class TestResultsToDataframe:
    """Test cases for flattening results into rows."""

    def test_schema_and_values(self, test_utils):
        success = test_utils.success(
            12.0, host="a", minimum_time_ms=11.0, maximum_time_ms=13.0,
            options=test_utils.options(ip_version=6),
        )
        df = results_to_dataframe([success, test_utils.failure(host="b")])

        assert dict(df.schema) == RESULT_SCHEMA
        first, second = df.to_dicts()
        assert first["host"] == "a"
        assert first["reply_count"] == 1
        assert first["average_response_time_ms"] == 12.0
        assert first["ip_version"] == 6
        assert second["host"] == "b"
        assert second["packet_loss_percentage"] == 100
        assert second["packets_transmitted"] is None
        assert second["reply_count"] == 0

    def test_timestamp_mismatch(self, test_utils):
        with pytest.raises(ValueError):
            results_to_dataframe([test_utils.failure()], recorded_at=[])
