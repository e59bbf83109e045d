"""
Single-probe orchestration.

``Ping`` is the public entry point of the package. It holds a mutable,
fluently configured set of probe parameters and wires the pipeline together:

    snapshot -> build_ping_command -> runner -> parse_outcome -> ProbeResult

Every execution method first takes an immutable ``ProbeConfig`` snapshot, so
changing a ``Ping`` after a run or stream has started never affects it.
"""

import logging
import math
from typing import Any, AsyncIterator, Callable, List, Optional

from .config.manager import get_config
from .execution import (
    calculate_process_timeout,
    ProbeAbortedError,
    run_command_async,
    run_command_sync,
)
from .models.config import (
    AppConfig,
    DEFAULT_COUNT,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_PACKET_SIZE_BYTES,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TTL,
    INFINITE_COUNT,
    ProbeConfig,
)
from .models.results import ProbeOptions, ProbeResult
from .parsing import parse_outcome, result_from_error
from .streaming.combinators import PingStream, batch
from .streaming.stream import ProbeStream
from .system import (
    CancellationToken,
    PlatformFamily,
    build_ping_command,
    detect_platform_family,
    is_ipv6_literal,
)
from .validation import (
    ErrorSeverity,
    ValidationError,
    handle_subprocess_error,
    validate_ip_version,
    validate_positive_float,
    validate_positive_integer,
)

logger = logging.getLogger(__name__)

MAX_TTL = 255


def options_from_config(config: ProbeConfig) -> ProbeOptions:
    """The subset of a snapshot echoed back on every result."""
    return ProbeOptions(
        timeout_seconds=config.timeout_seconds,
        interval_seconds=config.interval_seconds,
        packet_size_bytes=config.packet_size_bytes,
        ttl=config.ttl,
        ip_version=config.ip_version,
    )


class Ping:
    """
    Fluent builder and runner for ping probes against one host.

    Example:
        >>> ping = Ping("example.com").set_count(3).set_interval(0.5)
        >>> ping.build_command()[:3]  # doctest: +SKIP
        ['ping', '-c', '3']

    Setters validate their input and raise ``ValidationError`` on impossible
    values. Probe failures (unknown host, full packet loss, ...) are returned
    as ``FailedProbeResult`` and never raised.
    """

    def __init__(
        self,
        hostname: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        count: float = DEFAULT_COUNT,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        packet_size_bytes: int = DEFAULT_PACKET_SIZE_BYTES,
        ttl: int = DEFAULT_TTL,
        platform_family: Optional[PlatformFamily] = None,
    ):
        if not isinstance(hostname, str) or not hostname.strip():
            raise ValidationError("hostname must be a non-empty string", field_name="hostname", value=hostname)

        self.hostname = hostname.strip()
        self.platform_family = platform_family or detect_platform_family()

        self.timeout_seconds = DEFAULT_TIMEOUT_SECONDS
        self.count = DEFAULT_COUNT
        self.interval_seconds = DEFAULT_INTERVAL_SECONDS
        self.packet_size_bytes = DEFAULT_PACKET_SIZE_BYTES
        self.ttl = DEFAULT_TTL
        self.show_lost_packets = True
        self.cancel_token: Optional[CancellationToken] = None

        # Literal IPv6 hosts default to IPv6; an explicit setter always wins.
        self._detected_ip_version: Optional[int] = 6 if is_ipv6_literal(self.hostname) else None
        self._explicit_ip_version: Optional[int] = None
        self._ip_version_set = False

        self.set_timeout(timeout_seconds)
        self.set_count(count)
        self.set_interval(interval_seconds)
        self.set_packet_size(packet_size_bytes)
        self.set_ttl(ttl)

    @classmethod
    def from_config(cls, host: str, monitor_config: Optional[AppConfig] = None,
                    platform_family: Optional[PlatformFamily] = None) -> "Ping":
        """
        Create a ``Ping`` using the ``[probe]`` defaults of the configuration.

        Args:
            host: Target hostname or address
            monitor_config: Loaded configuration; the global one when None
            platform_family: Override for the detected platform family
        """
        app_config = monitor_config or get_config()
        defaults = app_config.probe
        ping = cls(
            host,
            timeout_seconds=defaults.timeout_seconds,
            count=defaults.count,
            interval_seconds=defaults.interval_seconds,
            packet_size_bytes=defaults.packet_size_bytes,
            ttl=defaults.ttl,
            platform_family=platform_family,
        )
        ping.set_show_lost_packets(defaults.show_lost_packets)
        if defaults.ip_version is not None:
            ping.set_ip_version(defaults.ip_version)
        return ping

    # --- Fluent setters ---

    def set_timeout(self, timeout_seconds: float) -> "Ping":
        self.timeout_seconds = validate_positive_float(
            timeout_seconds, min_value=0.0, field_name="timeout_seconds", exclusive_min=True
        )
        return self

    def set_count(self, count: float) -> "Ping":
        """Set the attempt count; 0 or ``math.inf`` streams forever."""
        if isinstance(count, float) and math.isinf(count) and count > 0:
            self.count = INFINITE_COUNT
            return self
        self.count = validate_positive_integer(count, min_value=0, field_name="count")
        return self

    def set_interval(self, interval_seconds: float) -> "Ping":
        self.interval_seconds = validate_positive_float(
            interval_seconds, min_value=0.0, field_name="interval_seconds"
        )
        return self

    def set_packet_size(self, packet_size_bytes: int) -> "Ping":
        self.packet_size_bytes = validate_positive_integer(
            packet_size_bytes, min_value=0, field_name="packet_size_bytes"
        )
        return self

    def set_ttl(self, ttl: int) -> "Ping":
        self.ttl = validate_positive_integer(ttl, min_value=1, max_value=MAX_TTL, field_name="ttl")
        return self

    def set_ip_version(self, ip_version: Optional[int]) -> "Ping":
        """Force IPv4/IPv6, or ``None`` to let the platform decide."""
        self._explicit_ip_version = validate_ip_version(ip_version)
        self._ip_version_set = True
        return self

    def set_ipv4(self) -> "Ping":
        return self.set_ip_version(4)

    def set_ipv6(self) -> "Ping":
        return self.set_ip_version(6)

    def set_show_lost_packets(self, show_lost_packets: bool) -> "Ping":
        self.show_lost_packets = bool(show_lost_packets)
        return self

    def set_cancel_token(self, cancel_token: Optional[CancellationToken]) -> "Ping":
        self.cancel_token = cancel_token
        return self

    @property
    def ip_version(self) -> Optional[int]:
        if self._ip_version_set:
            return self._explicit_ip_version
        return self._detected_ip_version

    @property
    def is_infinite(self) -> bool:
        return self.count == INFINITE_COUNT

    # --- Pipeline ---

    def snapshot(self) -> ProbeConfig:
        """Freeze the current parameters for one run or stream."""
        return ProbeConfig(
            host=self.hostname,
            timeout_seconds=self.timeout_seconds,
            count=self.count,
            interval_seconds=self.interval_seconds,
            packet_size_bytes=self.packet_size_bytes,
            ttl=self.ttl,
            ip_version=self.ip_version,
            show_lost_packets=self.show_lost_packets,
            cancel_token=self.cancel_token,
        )

    def single_attempt(self, config: Optional[ProbeConfig] = None) -> "Ping":
        """A fresh one-shot ``Ping`` inheriting everything but the count."""
        config = config or self.snapshot()
        attempt = type(self)(
            config.host,
            timeout_seconds=config.timeout_seconds,
            count=1,
            interval_seconds=config.interval_seconds,
            packet_size_bytes=config.packet_size_bytes,
            ttl=config.ttl,
            platform_family=self.platform_family,
        )
        attempt.set_ip_version(config.ip_version)
        attempt.set_show_lost_packets(config.show_lost_packets)
        attempt.set_cancel_token(config.cancel_token)
        return attempt

    def build_command(self, config: Optional[ProbeConfig] = None) -> List[str]:
        return build_ping_command(config or self.snapshot(), self.platform_family)

    def calculate_process_timeout(self, config: Optional[ProbeConfig] = None) -> int:
        """Seconds allowed for the whole invocation, including a safety buffer."""
        config = config or self.snapshot()
        return calculate_process_timeout(config.count, config.timeout_seconds, config.interval_seconds)

    def run(self) -> ProbeResult:
        """
        Run the probe, blocking until the process exits or times out.

        Returns:
            A ``SuccessfulProbeResult`` or ``FailedProbeResult``. A ping binary
            that cannot be spawned is reported as a failure, not raised.
        """
        config = self.snapshot()
        options = options_from_config(config)
        argv = self.build_command(config)
        try:
            outcome = run_command_sync(argv, self.calculate_process_timeout(config))
        except OSError as e:
            handle_subprocess_error(e, " ".join(argv), severity=ErrorSeverity.WARNING, reraise=False, logger=logger)
            return result_from_error(e, config.host, options)
        return parse_outcome(outcome, config.host, options)

    async def run_async(self) -> ProbeResult:
        """
        Run the probe on the event loop.

        Raises:
            ProbeAbortedError: If the cancellation token fired before or during the run
            ProbeTimeoutError: If the process overran its deadline
            OSError: If the ping binary cannot be spawned
        """
        config = self.snapshot()
        if config.cancel_token is not None and config.cancel_token.is_cancelled:
            raise ProbeAbortedError()

        outcome = await run_command_async(
            self.build_command(config),
            self.calculate_process_timeout(config),
            cancel_token=config.cancel_token,
        )
        return parse_outcome(outcome, config.host, options_from_config(config))

    # --- Streaming ---

    def stream(self) -> ProbeStream:
        """A lazy async sequence of results, one per attempt."""
        return ProbeStream(self)

    def stream_with_filter(
        self,
        filter_fn: Optional[Callable[[ProbeResult], bool]] = None,
        transform: Optional[Callable[[ProbeResult], Any]] = None,
    ) -> AsyncIterator[Any]:
        return PingStream(self).filter(filter_fn).map(transform)

    def stream_batched(self, size: int) -> AsyncIterator[List[ProbeResult]]:
        return batch(self.stream(), size)

    def pipeline(self) -> PingStream:
        """A chainable combinator facade over this ping's stream."""
        return PingStream(self)

    def __repr__(self) -> str:
        return (
            f"Ping(host={self.hostname!r}, count={self.count}, timeout={self.timeout_seconds}, "
            f"interval={self.interval_seconds}, family={self.platform_family.value})"
        )
