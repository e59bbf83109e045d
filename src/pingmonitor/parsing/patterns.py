"""
Regular expressions for ping output.

Ping output is unstructured text whose exact wording differs per platform, so
parsing is a best-effort heuristic. All patterns live here; supporting a new
output variant means appending a pattern to the relevant registry.
"""

import re
from typing import List, Pattern, Tuple

from ..models.results import ErrorKind

# Packet statistics: group 1 = transmitted, group 2 = received.
PACKET_STATISTICS_PATTERNS: List[Pattern[str]] = [
    # BSD / iputils: "3 packets transmitted, 3 received" / "3 packets received"
    re.compile(r"(\d+)\s+packets?\s+transmitted,\s+(\d+)\s+(?:packets?\s+)?received", re.IGNORECASE),
    # Windows: "Packets: Sent = 4, Received = 4, Lost = 0 (0% loss)"
    re.compile(r"Sent\s*=\s*(\d+),\s*Received\s*=\s*(\d+)", re.IGNORECASE),
]

# Summary timings: named groups min/avg/max and optional stddev.
SUMMARY_TIMING_PATTERNS: List[Pattern[str]] = [
    # "round-trip min/avg/max/stddev = 10.5/11.4/12.3/0.9 ms"
    # "rtt min/avg/max/mdev = 10.5/11.4/12.3/0.9 ms"
    re.compile(
        r"min/avg/max/(?:stddev|mdev)\s*=\s*(?P<min>[0-9.]+)/(?P<avg>[0-9.]+)/(?P<max>[0-9.]+)/(?P<stddev>[0-9.]+)\s*ms",
        re.IGNORECASE,
    ),
    # Windows: "Minimum = 1ms, Maximum = 3ms, Average = 2ms"
    re.compile(
        r"Minimum\s*=\s*(?P<min>[0-9.]+)\s*ms,\s*Maximum\s*=\s*(?P<max>[0-9.]+)\s*ms,\s*Average\s*=\s*(?P<avg>[0-9.]+)\s*ms",
        re.IGNORECASE,
    ),
]

# Looser fallback when no packet statistics line matched.
PACKET_LOSS_FALLBACK_PATTERN = re.compile(r"(\d+)%\s*(?:packet\s*)?loss", re.IGNORECASE)

# "time=12.3 ms", "time<1ms", "TIME<=0.5 ms"
REPLY_TIME_PATTERN = re.compile(r"time[<=]+([0-9.]+)\s*ms", re.IGNORECASE)

# Error classification, first match wins. Matched against lowercased text.
ERROR_CLASSIFICATION_RULES: List[Tuple[ErrorKind, Tuple[str, ...]]] = [
    (ErrorKind.HOSTNAME_NOT_FOUND, ("unknown host", "name or service not known")),
    (ErrorKind.HOST_UNREACHABLE, ("no route to host", "host unreachable")),
    (ErrorKind.PERMISSION_DENIED, ("permission denied",)),
    (ErrorKind.TIMEOUT, ("timeout", "timed out")),
]

# Keywords that mark a runner exception as a timeout.
TIMEOUT_KEYWORDS: Tuple[str, ...] = ("timeout", "timed out")
