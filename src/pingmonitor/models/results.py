"""
Probe result data models.

This module defines the structures that flow out of the execution pipeline:

- ``ExecutionOutcome``: normalised output of one external command
- ``ProbeResultLine``: one parsed reply line
- ``SuccessfulProbeResult`` / ``FailedProbeResult``: the two variants of
  ``ProbeResult``. They carry disjoint field sets, so timing fields simply do
  not exist on a failure and an error kind does not exist on a success.
- ``RollingStats``: a statistics snapshot over a window of results

All result objects are immutable once created.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union


class ErrorKind(str, Enum):
    """
    Classified reason for a failed probe.

    Classification is a best-effort substring match over the ping output;
    anything unrecognised collapses to ``UNKNOWN``.
    """
    HOSTNAME_NOT_FOUND = "HostnameNotFound"
    HOST_UNREACHABLE = "HostUnreachable"
    PERMISSION_DENIED = "PermissionDenied"
    TIMEOUT = "Timeout"
    UNKNOWN = "UnknownError"

    @classmethod
    def from_value(cls, value: str) -> "ErrorKind":
        """Map a serialised value back to a kind, defaulting to ``UNKNOWN``."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    Normalised result of running one external command, whichever way it ran.
    """

    stdout: str
    stderr: str
    # None when the process was killed or never reported a status.
    returncode: Optional[int]
    # Name of the terminating signal, e.g. "SIGTERM".
    signal: Optional[str] = None
    # True when the runner had to terminate the process on timeout.
    timed_out: bool = False

    def combined_lines(self) -> List[str]:
        """Stdout lines followed by stderr lines, without empty lines."""
        lines = (self.stdout or "").splitlines() + (self.stderr or "").splitlines()
        return [line for line in lines if line]

    @property
    def exited_cleanly(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True)
class ProbeOptions:
    """Configuration echoed back on every result."""

    timeout_seconds: Optional[float]
    interval_seconds: float
    packet_size_bytes: int
    ttl: int
    ip_version: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "timeout_in_seconds": self.timeout_seconds,
            "interval": self.interval_seconds,
            "packet_size_in_bytes": self.packet_size_bytes,
            "ttl": self.ttl,
        }
        if self.ip_version is not None:
            data["ip_version"] = self.ip_version
        return data


@dataclass(frozen=True)
class ProbeResultLine:
    """One reply line and its round-trip time (0.0 when unparseable)."""

    raw_line: str
    time_ms: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "raw_line", self.raw_line.strip())

    @classmethod
    def from_line(cls, line: str) -> "ProbeResultLine":
        """Parse a raw reply line such as ``... time=10.5 ms``."""
        from ..parsing.parser import parse_reply_line
        return parse_reply_line(line)

    def to_dict(self) -> Dict[str, Any]:
        return {"line": self.raw_line, "time_in_ms": self.time_ms}

    def __str__(self) -> str:
        return self.raw_line


@dataclass(frozen=True)
class SuccessfulProbeResult:
    """
    A probe that received at least one reply.

    Timing fields are ``None`` when the platform output did not report them;
    ``average_response_time_ms()`` always returns a number.
    """

    host: str
    options: ProbeOptions
    packet_loss_percentage: int
    raw_output: str
    packets_transmitted: Optional[int] = None
    packets_received: Optional[int] = None
    minimum_time_ms: Optional[float] = None
    average_time_ms: Optional[float] = None
    maximum_time_ms: Optional[float] = None
    standard_deviation_time_ms: Optional[float] = None
    lines: Tuple[ProbeResultLine, ...] = ()
    success: Literal[True] = field(default=True, init=False)

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def average_response_time_ms(self) -> float:
        """Summary average, else the mean of reply lines, else 0."""
        if self.average_time_ms is not None:
            return self.average_time_ms
        if not self.lines:
            return 0.0
        return sum(line.time_ms for line in self.lines) / len(self.lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "error": None,
            "host": self.host,
            "packet_loss_percentage": self.packet_loss_percentage,
            "packets_transmitted": self.packets_transmitted,
            "packets_received": self.packets_received,
            "options": self.options.to_dict(),
            "timings": {
                "minimum_time_in_ms": self.minimum_time_ms,
                "maximum_time_in_ms": self.maximum_time_ms,
                "average_time_in_ms": self.average_time_ms,
                "standard_deviation_time_in_ms": self.standard_deviation_time_ms,
            },
            "raw_output": self.raw_output,
            "lines": [line.to_dict() for line in self.lines],
        }

    def __str__(self) -> str:
        return self.raw_output


@dataclass(frozen=True)
class FailedProbeResult:
    """A probe that received no reply, or could not be run at all."""

    host: str
    options: ProbeOptions
    error: ErrorKind
    raw_output: str
    packet_loss_percentage: Literal[100] = field(default=100, init=False)
    success: Literal[False] = field(default=False, init=False)

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.error.value,
            "host": self.host,
            "packet_loss_percentage": 100,
            "packets_transmitted": None,
            "packets_received": None,
            "options": self.options.to_dict(),
            "timings": {
                "minimum_time_in_ms": None,
                "maximum_time_in_ms": None,
                "average_time_in_ms": None,
                "standard_deviation_time_in_ms": None,
            },
            "raw_output": self.raw_output,
            "lines": [],
        }

    def __str__(self) -> str:
        return self.raw_output


ProbeResult = Union[SuccessfulProbeResult, FailedProbeResult]


@dataclass(frozen=True)
class RollingStats:
    """
    Statistics over a sliding window of results.

    Response-time figures cover successful results only; ``packet_loss``
    covers every result in the window. All figures are rounded to two places.
    """

    count: int
    average: float
    minimum: float
    maximum: float
    standard_deviation: float
    # Mean absolute deviation from the window average.
    jitter: float
    packet_loss: float
    timestamp: datetime = field(default_factory=datetime.now)
