"""
Data models for the ping pipeline.

Configuration Models:
- The frozen probe configuration snapshot read by every execution path
- Settings loaded from ``config.toml`` (probe defaults, stream, logging)

Result Models:
- Normalised command outcomes
- The discriminated success/failure probe result and its reply lines
- Rolling statistics snapshots produced by the streaming layer
"""

# Configuration models
from .config import (
    AppConfig,
    LoggingConfig,
    ProbeConfig,
    ProbeDefaults,
    StreamConfig,
)

# Result models
from .results import (
    ErrorKind,
    ExecutionOutcome,
    FailedProbeResult,
    ProbeOptions,
    ProbeResult,
    ProbeResultLine,
    RollingStats,
    SuccessfulProbeResult,
)

__all__ = [
    # Configuration
    "AppConfig",
    "LoggingConfig",
    "ProbeConfig",
    "ProbeDefaults",
    "StreamConfig",
    # Results
    "ErrorKind",
    "ExecutionOutcome",
    "FailedProbeResult",
    "ProbeOptions",
    "ProbeResult",
    "ProbeResultLine",
    "RollingStats",
    "SuccessfulProbeResult",
]
