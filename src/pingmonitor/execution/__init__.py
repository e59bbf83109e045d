"""
Process execution for the ping pipeline.

This module provides blocking and asynchronous command runners with timeout
and cancellation, and the exceptions raised for pipeline faults.
"""

from .errors import (
    CommandError,
    PipelineError,
    ProbeAbortedError,
    ProbeTimeoutError,
)
from .runner import (
    TimeoutConstants,
    calculate_process_timeout,
    run_command_async,
    run_command_sync,
    terminate_process,
)

__all__ = [
    # Errors
    "CommandError",
    "PipelineError",
    "ProbeAbortedError",
    "ProbeTimeoutError",
    # Runners
    "TimeoutConstants",
    "calculate_process_timeout",
    "run_command_async",
    "run_command_sync",
    "terminate_process",
]
