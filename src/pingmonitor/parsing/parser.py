"""
Ping output parsing.

This module converts a normalised ``ExecutionOutcome`` (or an exception raised
by the runner) into a ``ProbeResult``. Parsing is pure given its inputs.

Rules:
- A non-zero or absent exit status is always a failure; the error kind is
  classified from the combined output text.
- On a zero exit status, packet statistics and summary timings are extracted
  with the patterns in ``parsing.patterns``. A computed loss of 100% is still
  a failure, since some ping builds exit 0 when nothing came back.
"""

import logging
import math
from typing import Iterable, List, Optional

from ..models.results import (
    ErrorKind,
    ExecutionOutcome,
    FailedProbeResult,
    ProbeOptions,
    ProbeResult,
    ProbeResultLine,
    SuccessfulProbeResult,
)
from .patterns import (
    ERROR_CLASSIFICATION_RULES,
    PACKET_LOSS_FALLBACK_PATTERN,
    PACKET_STATISTICS_PATTERNS,
    REPLY_TIME_PATTERN,
    SUMMARY_TIMING_PATTERNS,
    TIMEOUT_KEYWORDS,
)

logger = logging.getLogger(__name__)


def calculate_packet_loss_percentage(transmitted: int, received: int) -> int:
    """Loss percentage rounded half-up; 100 when nothing was transmitted."""
    if transmitted == 0:
        return 100
    return int(math.floor((transmitted - received) / transmitted * 100 + 0.5))


def classify_error(output: str) -> ErrorKind:
    """Classify a failure from its output text, first matching rule wins."""
    lower = output.lower()
    for kind, needles in ERROR_CLASSIFICATION_RULES:
        if any(needle in lower for needle in needles):
            return kind
    return ErrorKind.UNKNOWN


def is_reply_line(line: str) -> bool:
    return REPLY_TIME_PATTERN.search(line) is not None


def parse_reply_line(line: str) -> ProbeResultLine:
    """Extract the round-trip time from one reply line (0.0 if absent)."""
    time_ms = 0.0
    match = REPLY_TIME_PATTERN.search(line)
    if match:
        try:
            time_ms = float(match.group(1))
        except ValueError:
            # e.g. "time=1.2.3 ms"
            logger.debug(f"Unparseable reply time in line: {line!r}")
    return ProbeResultLine(line, time_ms)


def parse_reply_lines(lines: Iterable[str]) -> List[ProbeResultLine]:
    stripped = (line.strip() for line in lines)
    return [parse_reply_line(line) for line in stripped if line and is_reply_line(line)]


def _to_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_output(
    lines: List[str],
    returncode: Optional[int],
    host: str,
    options: ProbeOptions,
    timed_out: bool = False,
) -> ProbeResult:
    """Build a result from output lines and an exit status.

    Args:
        lines: Combined, non-empty output lines (stdout first).
        returncode: Exit status, or None if the process was killed.
        host: Target host echoed onto the result.
        options: Effective configuration echoed onto the result.
        timed_out: Whether the runner terminated the process on timeout.

    Returns:
        ``SuccessfulProbeResult`` or ``FailedProbeResult``.
    """
    raw_output = "\n".join(lines)

    if returncode != 0:
        error = classify_error(raw_output)
        if error is ErrorKind.UNKNOWN and timed_out:
            error = ErrorKind.TIMEOUT
        logger.debug(f"Ping to {host} failed with status {returncode}: {error.value}")
        return FailedProbeResult(host=host, options=options, error=error, raw_output=raw_output)

    transmitted: Optional[int] = None
    received: Optional[int] = None
    packet_loss = 0

    for pattern in PACKET_STATISTICS_PATTERNS:
        match = pattern.search(raw_output)
        if match:
            transmitted = int(match.group(1))
            received = int(match.group(2))
            packet_loss = calculate_packet_loss_percentage(transmitted, received)
            break
    else:
        loss_match = PACKET_LOSS_FALLBACK_PATTERN.search(raw_output)
        if loss_match:
            packet_loss = int(loss_match.group(1))

    timings = {}
    for pattern in SUMMARY_TIMING_PATTERNS:
        match = pattern.search(raw_output)
        if match:
            timings = match.groupdict()
            break

    if packet_loss >= 100:
        error = classify_error(raw_output)
        logger.debug(f"Ping to {host} exited 0 but lost every packet: {error.value}")
        return FailedProbeResult(host=host, options=options, error=error, raw_output=raw_output)

    return SuccessfulProbeResult(
        host=host,
        options=options,
        packet_loss_percentage=packet_loss,
        raw_output=raw_output,
        packets_transmitted=transmitted,
        packets_received=received,
        minimum_time_ms=_to_float(timings.get("min")),
        average_time_ms=_to_float(timings.get("avg")),
        maximum_time_ms=_to_float(timings.get("max")),
        standard_deviation_time_ms=_to_float(timings.get("stddev")),
        lines=tuple(parse_reply_lines(lines)),
    )


def parse_outcome(outcome: ExecutionOutcome, host: str, options: ProbeOptions) -> ProbeResult:
    """Parse a completed command outcome into a ``ProbeResult``."""
    return parse_output(
        outcome.combined_lines(),
        outcome.returncode,
        host,
        options,
        timed_out=outcome.timed_out,
    )


def result_from_error(error: BaseException, host: str, options: ProbeOptions) -> FailedProbeResult:
    """Build a failure from a runner exception; there is no output to scan."""
    message = str(error) or type(error).__name__
    lower = message.lower()
    kind = ErrorKind.TIMEOUT if any(k in lower for k in TIMEOUT_KEYWORDS) else ErrorKind.UNKNOWN
    return FailedProbeResult(host=host, options=options, error=kind, raw_output=message)
