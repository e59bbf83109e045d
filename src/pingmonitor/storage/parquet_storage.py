"""
Parquet result storage using Polars.
"""

import logging
from pathlib import Path
from typing import List, Literal, Optional

import polars as pl

from .base import DataStorage

logger = logging.getLogger(__name__)

CompressionType = Literal["snappy", "gzip", "brotli", "lz4", "zstd"]


class ParquetStorage(DataStorage):
    """
    Columnar, compressed storage for probe result tables.

    Parquet files cannot be appended in place, so ``append_dataframe`` reads
    the existing table, concatenates and rewrites it. Recording flushes in
    chunks to keep the number of rewrites low.
    """

    def __init__(self, compression: CompressionType = "snappy"):
        self.compression = compression
        logger.debug(f"ParquetStorage using {compression} compression")

    def save_dataframe(self, df: pl.DataFrame, path: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            df.write_parquet(target, compression=self.compression)
        except Exception as e:
            logger.error(f"Failed to write {len(df)} results to {target}: {e}")
            raise
        logger.debug(f"Wrote {len(df)} results to {target}")

    def load_dataframe(self, path: str, columns: Optional[List[str]] = None) -> pl.DataFrame:
        try:
            # Column pruning: only the requested columns are decoded.
            df = pl.read_parquet(path, columns=columns) if columns else pl.read_parquet(path)
        except Exception as e:
            logger.error(f"Failed to read results from {path}: {e}")
            raise
        logger.debug(f"Read {len(df)} results from {path}")
        return df

    def append_dataframe(self, df: pl.DataFrame, path: str) -> None:
        if df.is_empty():
            return
        if not self.file_exists(path):
            self.save_dataframe(df, path)
            return

        existing = self.load_dataframe(path)
        # Relaxed so an all-null column in one chunk does not clash with typed data in another.
        combined = pl.concat([existing, df], how="diagonal_relaxed")
        self.save_dataframe(combined, path)
        logger.debug(f"Appended {len(df)} results to {path} ({len(combined)} total)")

    def file_exists(self, path: str) -> bool:
        return Path(path).is_file()

    def get_file_size(self, path: str) -> int:
        try:
            return Path(path).stat().st_size
        except FileNotFoundError:
            return 0
