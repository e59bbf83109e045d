"""
Configuration data models.

This module contains the immutable probe configuration snapshot read by the
execution pipeline, and the settings loaded from ``config.toml``.
"""

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..system.cancellation import CancellationToken

# Defaults shared by Ping, the command builder and the config validators.
DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_COUNT = 1
DEFAULT_INTERVAL_SECONDS = 1.0
DEFAULT_PACKET_SIZE_BYTES = 56
DEFAULT_TTL = 64
INFINITE_COUNT = 0


@dataclass(frozen=True)
class ProbeConfig:
    """
    Snapshot of everything needed to run one ping invocation.

    Produced by ``Ping.snapshot()``. The runner, the parser and the streaming
    loop only ever read a snapshot, so mutating the ``Ping`` afterwards has no
    effect on work already in flight.
    """

    # Hostname or literal address; always the last command-line token.
    host: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    # 0 means "run forever" for streams.
    count: int = DEFAULT_COUNT
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    packet_size_bytes: int = DEFAULT_PACKET_SIZE_BYTES
    ttl: int = DEFAULT_TTL
    # None lets the platform decide.
    ip_version: Optional[int] = None
    # Only meaningful for the GNU/Linux family (-O).
    show_lost_packets: bool = True
    cancel_token: Optional["CancellationToken"] = field(default=None, compare=False)

    @property
    def is_infinite(self) -> bool:
        return self.count == INFINITE_COUNT


@dataclass
class ProbeDefaults:
    """
    Default probe parameters, loaded from the ``[probe]`` section.
    """

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    count: int = DEFAULT_COUNT
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    packet_size_bytes: int = DEFAULT_PACKET_SIZE_BYTES
    ttl: int = DEFAULT_TTL
    ip_version: Optional[int] = None
    show_lost_packets: bool = True


@dataclass
class StreamConfig:
    """
    Streaming defaults used by the CLI, loaded from the ``[stream]`` section.
    """

    # Sliding window used by rolling statistics.
    stats_window_size: int = 10
    # Results buffered before each write to the output file.
    batch_size: int = 10


@dataclass
class LoggingConfig:
    """
    Logging setup applied by the CLI, loaded from the ``[logging]`` section.
    """

    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    probe: ProbeDefaults = field(default_factory=ProbeDefaults)
    stream: StreamConfig = field(default_factory=StreamConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
