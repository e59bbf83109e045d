"""
Platform identification and host literal classification.

The command builder and the process runner only need to know which family of
``ping`` binary they are talking to; this module maps the interpreter's
platform string onto that family.
"""

import ipaddress
import logging
import sys
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class PlatformFamily(Enum):
    """Families of ping binaries with distinct flag conventions."""
    DARWIN = "darwin"      # BSD-style ping, ping6 for IPv6, -W in milliseconds
    LINUX = "linux"        # iputils ping, -W in seconds, supports -O
    WINDOWS = "windows"    # ping.exe, -n/-w/-l/-i flags


def detect_platform_family(platform: Optional[str] = None) -> PlatformFamily:
    """Return the ping family for ``platform`` (defaults to ``sys.platform``).

    Anything that is neither macOS nor Windows is treated as the GNU/Linux
    family, which matches iputils on the BSD-derived systems closely enough
    for the flags this package emits.
    """
    platform = platform if platform is not None else sys.platform
    if platform == "darwin":
        return PlatformFamily.DARWIN
    if platform in ("win32", "cygwin"):
        return PlatformFamily.WINDOWS
    return PlatformFamily.LINUX


def is_ipv6_literal(host: str) -> bool:
    """True if ``host`` is a literal IPv6 address (zone ids allowed)."""
    candidate = host.strip()
    if candidate.startswith("[") and candidate.endswith("]"):
        candidate = candidate[1:-1]
    try:
        return isinstance(ipaddress.ip_address(candidate), ipaddress.IPv6Address)
    except ValueError:
        return False
