"""
Ping command construction.

This module turns a ``ProbeConfig`` snapshot into the argument list for the
platform's ping binary. Building is pure: the same snapshot and platform
family always produce the same list, and building never fails.
"""

import logging
import math
from typing import List

from ..models.config import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_PACKET_SIZE_BYTES,
    DEFAULT_TTL,
    ProbeConfig,
)
from .platform import PlatformFamily

logger = logging.getLogger(__name__)


def timeout_to_milliseconds(timeout_seconds: float) -> int:
    """Convert a fractional-second timeout to whole milliseconds."""
    return int(round(timeout_seconds * 1000))


def timeout_to_whole_seconds(timeout_seconds: float) -> int:
    """Round a fractional-second timeout up to whole seconds, at least 1."""
    return max(1, int(math.ceil(timeout_seconds)))


def _format_number(value: float) -> str:
    # 2.0 -> "2", 0.5 -> "0.5"
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def build_ping_command(config: ProbeConfig, family: PlatformFamily) -> List[str]:
    """Build the ordered argument list for one ping invocation.

    Optional numeric flags are only emitted when they differ from the
    platform's default, which keeps commands minimal and avoids flags some
    ping builds reject.

    Args:
        config: Probe configuration snapshot.
        family: Ping family of the host platform.

    Returns:
        ``[binary, *flags, host]``.

    Examples:
        >>> build_ping_command(ProbeConfig("google.com", count=3, packet_size_bytes=64, ttl=128),
        ...                    PlatformFamily.WINDOWS)
        ['ping', '-n', '3', '-w', '5000', '-l', '64', '-i', '128', 'google.com']
    """
    is_windows = family is PlatformFamily.WINDOWS
    is_darwin = family is PlatformFamily.DARWIN

    # macOS selects IPv6 through a separate binary instead of a flag.
    if is_darwin and config.ip_version == 6:
        command = ["ping6"]
    else:
        command = ["ping"]

    if not is_darwin and config.ip_version in (4, 6):
        command.append(f"-{config.ip_version}")

    command.extend(["-n" if is_windows else "-c", str(config.count)])

    if is_windows:
        command.extend(["-w", str(timeout_to_milliseconds(config.timeout_seconds))])
    elif is_darwin:
        command.extend(["-W", str(timeout_to_milliseconds(config.timeout_seconds))])
    else:
        command.extend(["-W", str(timeout_to_whole_seconds(config.timeout_seconds))])

    # ping.exe has no interval flag; -i there is the TTL.
    if not is_windows and config.interval_seconds != DEFAULT_INTERVAL_SECONDS:
        command.extend(["-i", _format_number(config.interval_seconds)])

    if config.packet_size_bytes != DEFAULT_PACKET_SIZE_BYTES:
        command.extend(["-l" if is_windows else "-s", str(config.packet_size_bytes)])

    if config.ttl != DEFAULT_TTL:
        command.extend(["-i" if is_windows else "-t", str(config.ttl)])

    if family is PlatformFamily.LINUX and config.show_lost_packets:
        command.append("-O")

    command.append(config.host)

    logger.debug(f"Built ping command: {' '.join(command)}")
    return command
