"""
Asynchronous streaming of probe results.

This module provides:

- ``ProbeStream``: the state machine driving repeated probes for one host
- Combinators (take, filter, map, window, batch, rolling statistics, merge)
- ``PingStream``: a chainable facade binding the combinators to a ``Ping``
"""

from .combinators import (
    PingStream,
    batch,
    batch_with_timeout,
    combine,
    combine_pings,
    filter_results,
    map_results,
    rolling_stats,
    skip_failures,
    skip_successes,
    take,
    window,
)
from .stats import calculate_rolling_stats
from .stream import ProbeStream, StreamState

__all__ = [
    # Orchestration
    "ProbeStream",
    "StreamState",
    # Combinators
    "PingStream",
    "batch",
    "batch_with_timeout",
    "combine",
    "combine_pings",
    "filter_results",
    "map_results",
    "rolling_stats",
    "skip_failures",
    "skip_successes",
    "take",
    "window",
    # Statistics
    "calculate_rolling_stats",
]
