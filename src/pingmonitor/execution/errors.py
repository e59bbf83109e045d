"""
Pipeline exceptions.

Probe-level failures (unknown host, 100% loss, ...) are never raised; they are
returned as ``FailedProbeResult``. The exceptions here describe faults of the
pipeline itself: the operation was aborted, the process overran its deadline,
or the command could not be formed.
"""

from typing import Optional, Sequence


class PipelineError(Exception):
    """Base class for faults raised by the execution pipeline."""


class ProbeAbortedError(PipelineError):
    """The cancellation token fired before or during execution."""

    def __init__(self, message: str = "Operation was aborted"):
        super().__init__(message)


class ProbeTimeoutError(PipelineError):
    """The process did not finish within the computed process timeout."""

    def __init__(self, timeout_seconds: float, message: Optional[str] = None):
        self.timeout_ms = int(round(timeout_seconds * 1000))
        super().__init__(message or f"Ping command timed out after {self.timeout_ms}ms")


class CommandError(PipelineError):
    """The command line could not be executed as given."""

    def __init__(self, message: str, argv: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.argv = list(argv) if argv is not None else []
