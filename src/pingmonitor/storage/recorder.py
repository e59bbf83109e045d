"""
Recording probe results to storage.

``results_to_dataframe`` flattens results into a fixed-schema table and
``record_results`` is a passthrough combinator that persists a live stream
in chunks while forwarding every element unchanged.
"""

import logging
from datetime import datetime
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Optional, Sequence

import polars as pl

from ..models.results import ProbeResult
from ..validation import ErrorSeverity, handle_error, validate_positive_integer
from .base import DataStorage

logger = logging.getLogger(__name__)

# Fixed so that chunks with only failures (all-null timings) still concatenate.
RESULT_SCHEMA: Dict[str, Any] = {
    "recorded_at": pl.Datetime("us"),
    "host": pl.Utf8,
    "success": pl.Boolean,
    "error": pl.Utf8,
    "packet_loss_percentage": pl.Int64,
    "packets_transmitted": pl.Int64,
    "packets_received": pl.Int64,
    "minimum_time_ms": pl.Float64,
    "average_time_ms": pl.Float64,
    "maximum_time_ms": pl.Float64,
    "standard_deviation_time_ms": pl.Float64,
    "average_response_time_ms": pl.Float64,
    "reply_count": pl.Int64,
    "timeout_seconds": pl.Float64,
    "interval_seconds": pl.Float64,
    "packet_size_bytes": pl.Int64,
    "ttl": pl.Int64,
    "ip_version": pl.Int64,
}


def result_to_row(result: ProbeResult, recorded_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Flatten one result into a row matching ``RESULT_SCHEMA``."""
    options = result.options
    row: Dict[str, Any] = {
        "recorded_at": recorded_at or datetime.now(),
        "host": result.host,
        "success": result.is_success(),
        "error": None,
        "packet_loss_percentage": result.packet_loss_percentage,
        "packets_transmitted": None,
        "packets_received": None,
        "minimum_time_ms": None,
        "average_time_ms": None,
        "maximum_time_ms": None,
        "standard_deviation_time_ms": None,
        "average_response_time_ms": None,
        "reply_count": 0,
        "timeout_seconds": options.timeout_seconds,
        "interval_seconds": options.interval_seconds,
        "packet_size_bytes": options.packet_size_bytes,
        "ttl": options.ttl,
        "ip_version": options.ip_version,
    }
    if result.is_success():
        row.update(
            packets_transmitted=result.packets_transmitted,
            packets_received=result.packets_received,
            minimum_time_ms=result.minimum_time_ms,
            average_time_ms=result.average_time_ms,
            maximum_time_ms=result.maximum_time_ms,
            standard_deviation_time_ms=result.standard_deviation_time_ms,
            average_response_time_ms=result.average_response_time_ms(),
            reply_count=len(result.lines),
        )
    else:
        row["error"] = result.error.value
    return row


def results_to_dataframe(results: Sequence[ProbeResult],
                         recorded_at: Optional[Sequence[datetime]] = None) -> pl.DataFrame:
    """
    Build a result table.

    Args:
        results: Results to flatten, in order
        recorded_at: Optional per-result timestamps; "now" when omitted

    Returns:
        A DataFrame with ``RESULT_SCHEMA`` columns, one row per result
    """
    if recorded_at is not None and len(recorded_at) != len(results):
        raise ValueError(f"Expected {len(results)} timestamps, got {len(recorded_at)}")
    rows = [
        result_to_row(result, recorded_at[i] if recorded_at is not None else None)
        for i, result in enumerate(results)
    ]
    columns = {name: [row[name] for row in rows] for name in RESULT_SCHEMA}
    return pl.DataFrame(columns, schema=RESULT_SCHEMA)


async def record_results(source: AsyncIterable[ProbeResult], storage: DataStorage, path: str,
                         flush_every: int = 10) -> AsyncIterator[ProbeResult]:
    """
    Forward every result from ``source`` while appending it to ``path``.

    Rows are buffered and written every ``flush_every`` results, and once more
    when the stream ends or the consumer stops early.

    Raises:
        ValidationError: If ``flush_every`` < 1 (on first pull)
    """
    flush_every = validate_positive_integer(flush_every, min_value=1, field_name="flush_every")
    buffer: List[ProbeResult] = []
    timestamps: List[datetime] = []
    written = 0

    def _flush() -> None:
        nonlocal written
        if not buffer:
            return
        storage.append_dataframe(results_to_dataframe(buffer, timestamps), path)
        written += len(buffer)
        buffer.clear()
        timestamps.clear()

    iterator = source.__aiter__()
    try:
        async for result in iterator:
            buffer.append(result)
            timestamps.append(datetime.now())
            if len(buffer) >= flush_every:
                _flush()
            yield result
    finally:
        try:
            _flush()
        except Exception as e:
            handle_error(
                error=e,
                context=f"flushing results to {path}",
                severity=ErrorSeverity.ERROR,
                reraise=True,
                logger=logger
            )
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()
        logger.info(f"Recorded {written} results to {path}")
