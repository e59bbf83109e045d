"""
pingmonitor: a typed interface over the operating system's ping utility.

This package builds ping command lines for the host platform, runs them
(blocking, asynchronously or as a continuous stream), parses the text output
into structured results and offers combinators over live result streams.

The package is organized into specialized modules:
- system: Platform detection, cancellation and command construction
- execution: Process runners with timeout and cancellation
- parsing: Ping output parsing and error classification
- models: Configuration snapshots and result types
- streaming: The probe stream, combinators and rolling statistics
- config: Configuration management and validation
- storage: Recording results to Parquet
- validation: Input validation and error handling
- cli: Command-line interface

Usage:
    From command line:
        pingmonitor example.com -c 0 --stats 10

    Programmatically:
        from pingmonitor import Ping
        result = Ping("example.com").set_count(3).run()
        if result.is_success():
            print(result.average_response_time_ms())
"""

# Main interfaces
from .ping import Ping
from .config import get_config, clear_config_cache, set_config_path
from .cli import main_cli

# Model classes for external use
from .models import (
    AppConfig,
    ErrorKind,
    ExecutionOutcome,
    FailedProbeResult,
    ProbeConfig,
    ProbeOptions,
    ProbeResult,
    ProbeResultLine,
    RollingStats,
    SuccessfulProbeResult,
)

# Execution
from .execution import (
    CommandError,
    PipelineError,
    ProbeAbortedError,
    ProbeTimeoutError,
)

# Streaming
from .streaming import (
    PingStream,
    ProbeStream,
    StreamState,
    batch,
    batch_with_timeout,
    combine,
    filter_results,
    map_results,
    rolling_stats,
    skip_failures,
    skip_successes,
    take,
    window,
)

# System utilities
from .system import CancellationToken, PlatformFamily, build_ping_command, detect_platform_family

# Validation utilities
from .validation import ErrorSeverity, ValidationError

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    "Ping",
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "main_cli",
    # Models
    "AppConfig",
    "ErrorKind",
    "ExecutionOutcome",
    "FailedProbeResult",
    "ProbeConfig",
    "ProbeOptions",
    "ProbeResult",
    "ProbeResultLine",
    "RollingStats",
    "SuccessfulProbeResult",
    # Execution
    "CommandError",
    "PipelineError",
    "ProbeAbortedError",
    "ProbeTimeoutError",
    # Streaming
    "PingStream",
    "ProbeStream",
    "StreamState",
    "batch",
    "batch_with_timeout",
    "combine",
    "filter_results",
    "map_results",
    "rolling_stats",
    "skip_failures",
    "skip_successes",
    "take",
    "window",
    # System
    "CancellationToken",
    "PlatformFamily",
    "build_ping_command",
    "detect_platform_family",
    # Validation
    "ErrorSeverity",
    "ValidationError",
]
