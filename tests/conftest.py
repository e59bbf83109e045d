"""
Pytest configuration and shared fixtures for the pingmonitor test suite.

This module provides common fixtures, canned ping output for each platform
family, and helpers for building results and fake streams.
"""

import shutil
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


# ============================================================================
# Canned ping output
# ============================================================================


MACOS_SUCCESS_OUTPUT = "\n".join([
    "PING google.com (142.250.185.110): 56 data bytes",
    "64 bytes from 142.250.185.110: icmp_seq=0 ttl=115 time=10.5 ms",
    "64 bytes from 142.250.185.110: icmp_seq=1 ttl=115 time=11.4 ms",
    "64 bytes from 142.250.185.110: icmp_seq=2 ttl=115 time=12.3 ms",
    "",
    "--- google.com ping statistics ---",
    "3 packets transmitted, 3 packets received, 0.0% packet loss",
    "round-trip min/avg/max/stddev = 10.500/11.400/12.300/0.735 ms",
])

LINUX_PARTIAL_LOSS_OUTPUT = "\n".join([
    "PING example.com (93.184.216.34) 56(84) bytes of data.",
    "64 bytes from 93.184.216.34: icmp_seq=1 ttl=56 time=20.1 ms",
    "no answer yet for icmp_seq=2",
    "64 bytes from 93.184.216.34: icmp_seq=3 ttl=56 time=22.3 ms",
    "",
    "--- example.com ping statistics ---",
    "3 packets transmitted, 2 received, 33% packet loss, time 2003ms",
    "rtt min/avg/max/mdev = 20.100/21.200/22.300/1.100 ms",
])

WINDOWS_SUCCESS_OUTPUT = "\r\n".join([
    "Pinging google.com [142.250.185.110] with 32 bytes of data:",
    "Reply from 142.250.185.110: bytes=32 time=12ms TTL=117",
    "Reply from 142.250.185.110: bytes=32 time<1ms TTL=117",
    "",
    "Ping statistics for 142.250.185.110:",
    "    Packets: Sent = 2, Received = 2, Lost = 0 (0% loss),",
    "Approximate round trip times in milli-seconds:",
    "    Minimum = 1ms, Maximum = 12ms, Average = 6ms",
])

TOTAL_LOSS_OUTPUT = "\n".join([
    "PING 10.255.255.1 (10.255.255.1): 56 data bytes",
    "Request timeout for icmp_seq 0",
    "",
    "--- 10.255.255.1 ping statistics ---",
    "1 packets transmitted, 0 packets received, 100.0% packet loss",
])


@pytest.fixture
def macos_output():
    return MACOS_SUCCESS_OUTPUT


@pytest.fixture
def linux_output():
    return LINUX_PARTIAL_LOSS_OUTPUT


@pytest.fixture
def windows_output():
    return WINDOWS_SUCCESS_OUTPUT


@pytest.fixture
def total_loss_output():
    return TOTAL_LOSS_OUTPUT


# ============================================================================
# Result Fixtures
# ============================================================================


class TestUtils:
    """Utility functions for testing."""

    @staticmethod
    def options(**overrides):
        from pingmonitor.models.results import ProbeOptions

        values: Dict[str, Any] = {
            "timeout_seconds": 5.0,
            "interval_seconds": 1.0,
            "packet_size_bytes": 56,
            "ttl": 64,
        }
        values.update(overrides)
        return ProbeOptions(**values)

    @staticmethod
    def success(time_ms: float = 10.0, host: str = "example.com", **kwargs):
        from pingmonitor.models.results import ProbeResultLine, SuccessfulProbeResult

        values: Dict[str, Any] = {
            "host": host,
            "options": TestUtils.options(),
            "packet_loss_percentage": 0,
            "raw_output": f"64 bytes from {host}: icmp_seq=0 time={time_ms} ms",
            "packets_transmitted": 1,
            "packets_received": 1,
            "average_time_ms": time_ms,
            "lines": (ProbeResultLine(f"64 bytes from {host}: time={time_ms} ms", time_ms),),
        }
        values.update(kwargs)
        return SuccessfulProbeResult(**values)

    @staticmethod
    def failure(host: str = "example.com", error=None, raw_output: str = "Request timeout"):
        from pingmonitor.models.results import ErrorKind, FailedProbeResult

        return FailedProbeResult(
            host=host,
            options=TestUtils.options(),
            error=error or ErrorKind.TIMEOUT,
            raw_output=raw_output,
        )

    @staticmethod
    async def agen(items: List[Any], delay: float = 0.0):
        """Async generator over ``items`` with an optional pause before each."""
        import asyncio

        for item in items:
            if delay:
                await asyncio.sleep(delay)
            yield item

    @staticmethod
    async def collect(source) -> List[Any]:
        return [item async for item in source]


@pytest.fixture
def test_utils():
    """Provide test utility functions."""
    return TestUtils


@pytest.fixture
def sample_config_data():
    """Sample config.toml content for testing."""
    return {
        "probe": {
            "timeout_seconds": 2.0,
            "count": 3,
            "interval_seconds": 0.5,
            "packet_size_bytes": 64,
            "ttl": 128,
            "ip_version": 4,
            "show_lost_packets": False,
        },
        "stream": {
            "stats_window_size": 5,
            "batch_size": 4,
        },
        "logging": {
            "level": "DEBUG",
        },
    }


@pytest.fixture
def config_file(temp_dir, sample_config_data):
    """Write a temporary config.toml for testing."""
    import toml

    config_path = temp_dir / "config.toml"
    with open(config_path, "w") as f:
        toml.dump(sample_config_data, f)
    return config_path


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically reset configuration state after each test."""
    yield

    from pingmonitor.config import reset_config_path

    reset_config_path()
