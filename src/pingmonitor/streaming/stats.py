"""
Rolling statistics over a window of probe results.
"""

import math
from typing import Sequence

from ..models.results import ProbeResult, RollingStats, SuccessfulProbeResult


def _round2(value: float) -> float:
    # Half-up, so 0.125 -> 0.13
    return math.floor(value * 100 + 0.5) / 100


def calculate_rolling_stats(successes: Sequence[SuccessfulProbeResult],
                            all_results: Sequence[ProbeResult]) -> RollingStats:
    """
    Summarise a window of results.

    Args:
        successes: Recent successful results; response-time figures use these
        all_results: Recent results of either kind; packet loss uses these

    Returns:
        A ``RollingStats`` with every figure rounded to two decimal places.
        With no successes every figure is 0 and packet loss is 100.
    """
    times = [result.average_response_time_ms() for result in successes]
    count = len(times)
    if count == 0:
        return RollingStats(
            count=0,
            average=0.0,
            minimum=0.0,
            maximum=0.0,
            standard_deviation=0.0,
            jitter=0.0,
            packet_loss=100.0,
        )

    average = sum(times) / count
    variance = sum((t - average) ** 2 for t in times) / count
    jitter = sum(abs(t - average) for t in times) / count

    total = len(all_results)
    received = sum(1 for result in all_results if result.is_success())
    packet_loss = (total - received) / total * 100 if total else 0.0

    return RollingStats(
        count=count,
        average=_round2(average),
        minimum=_round2(min(times)),
        maximum=_round2(max(times)),
        standard_deviation=_round2(math.sqrt(variance)),
        jitter=_round2(jitter),
        packet_loss=_round2(packet_loss),
    )
