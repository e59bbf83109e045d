"""
System interaction utilities for ping execution.

This module provides the platform-facing pieces of the package:

- Platform family detection used to pick ping flags
- IPv6 literal detection used for IP version auto-detection
- The cooperative cancellation handle shared by pings and streams
- Ping command construction for each platform family
"""

# Cancellation
from .cancellation import CancellationToken

# Platform detection
from .platform import PlatformFamily, detect_platform_family, is_ipv6_literal

# Command construction
from .commands import (
    build_ping_command,
    timeout_to_milliseconds,
    timeout_to_whole_seconds,
)

__all__ = [
    # Cancellation
    "CancellationToken",
    # Platform
    "PlatformFamily",
    "detect_platform_family",
    "is_ipv6_literal",
    # Commands
    "build_ping_command",
    "timeout_to_milliseconds",
    "timeout_to_whole_seconds",
]
