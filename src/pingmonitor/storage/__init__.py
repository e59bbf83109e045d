"""
Storage for probe results.

Results are flattened into a fixed-schema Polars DataFrame and persisted as
compressed Parquet. ``record_results`` records a live stream in chunks while
passing every result through to the consumer.
"""

from .base import DataStorage
from .parquet_storage import ParquetStorage
from .recorder import RESULT_SCHEMA, record_results, result_to_row, results_to_dataframe

__all__ = [
    "DataStorage",
    "ParquetStorage",
    "RESULT_SCHEMA",
    "record_results",
    "result_to_row",
    "results_to_dataframe",
]
