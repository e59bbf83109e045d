"""
Abstract base class for result storage backends.

A backend persists tabular probe results (one row per ``ProbeResult``) as
Polars DataFrames. Streams are recorded incrementally, so every backend must
support appending to an existing file as well as whole-file writes.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import polars as pl


class DataStorage(ABC):
    """Interface for persisting probe result tables."""

    @abstractmethod
    def save_dataframe(self, df: pl.DataFrame, path: str) -> None:
        """Write ``df`` to ``path``, replacing any existing file."""

    @abstractmethod
    def load_dataframe(self, path: str, columns: Optional[List[str]] = None) -> pl.DataFrame:
        """
        Read a result table.

        Args:
            path: File to read
            columns: Only read these columns when given

        Returns:
            The stored rows
        """

    @abstractmethod
    def append_dataframe(self, df: pl.DataFrame, path: str) -> None:
        """Add the rows of ``df`` to ``path``, creating the file if needed."""

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def get_file_size(self, path: str) -> int:
        """Size of ``path`` in bytes, 0 if it does not exist."""
