"""
Unit tests for platform detection and IPv6 literal classification.
"""

from unittest.mock import patch

import pytest

from pingmonitor.system.platform import PlatformFamily, detect_platform_family, is_ipv6_literal


@pytest.mark.unit
class TestDetectPlatformFamily:
    """Test cases for platform family detection."""

    @pytest.mark.parametrize(
        "platform,expected",
        [
            ("darwin", PlatformFamily.DARWIN),
            ("win32", PlatformFamily.WINDOWS),
            ("cygwin", PlatformFamily.WINDOWS),
            ("linux", PlatformFamily.LINUX),
            ("freebsd13", PlatformFamily.LINUX),
        ],
    )
    def test_explicit_platform(self, platform, expected):
        assert detect_platform_family(platform) is expected

    def test_defaults_to_sys_platform(self):
        with patch("pingmonitor.system.platform.sys.platform", "darwin"):
            assert detect_platform_family() is PlatformFamily.DARWIN


@pytest.mark.unit
class TestIsIpv6Literal:
    """Test cases for IPv6 literal detection."""

    @pytest.mark.parametrize("host", ["::1", "2001:4860:4860::8888", "[::1]", "fe80::1%eth0"])
    def test_ipv6_literals(self, host):
        assert is_ipv6_literal(host) is True

    @pytest.mark.parametrize("host", ["127.0.0.1", "google.com", "", "not:an:address::x"])
    def test_non_ipv6(self, host):
        assert is_ipv6_literal(host) is False
