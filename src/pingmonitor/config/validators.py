"""
Configuration validation utilities.

This module turns the raw ``[probe]``, ``[stream]`` and ``[logging]`` tables
of ``config.toml`` into validated configuration models. Missing keys fall
back to the built-in defaults.
"""

import logging
from typing import Any, Dict

from ..models.config import (
    AppConfig,
    DEFAULT_COUNT,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_PACKET_SIZE_BYTES,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TTL,
    LoggingConfig,
    ProbeDefaults,
    StreamConfig,
)
from ..validation import (
    ValidationError,
    validate_enum_choice,
    validate_ip_version,
    validate_positive_float,
    validate_positive_integer,
)

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _require_table(data: Any, section: str) -> Dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"[{section}] must be a table", field_name=section, value=data)
    return data


def validate_probe_defaults(probe_data: Dict[str, Any]) -> ProbeDefaults:
    """
    Validate and create ProbeDefaults from the ``[probe]`` table.

    Raises:
        ValidationError: If validation fails
    """
    probe_data = _require_table(probe_data, "probe")
    try:
        timeout_seconds = validate_positive_float(
            probe_data.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
            min_value=0.0,
            max_value=3600.0,
            field_name="probe.timeout_seconds",
            exclusive_min=True,
        )

        count = validate_positive_integer(
            probe_data.get("count", DEFAULT_COUNT),
            min_value=0,  # 0 streams forever
            field_name="probe.count",
        )

        interval_seconds = validate_positive_float(
            probe_data.get("interval_seconds", DEFAULT_INTERVAL_SECONDS),
            min_value=0.0,
            max_value=3600.0,
            field_name="probe.interval_seconds",
        )

        packet_size_bytes = validate_positive_integer(
            probe_data.get("packet_size_bytes", DEFAULT_PACKET_SIZE_BYTES),
            min_value=0,
            max_value=65507,  # Largest IPv4 ICMP payload
            field_name="probe.packet_size_bytes",
        )

        ttl = validate_positive_integer(
            probe_data.get("ttl", DEFAULT_TTL),
            min_value=1,
            max_value=255,
            field_name="probe.ttl",
        )

        # TOML has no null; 0 or a missing key means "let the platform decide"
        raw_ip_version = probe_data.get("ip_version", 0)
        ip_version = validate_ip_version(None if raw_ip_version == 0 else raw_ip_version,
                                         field_name="probe.ip_version")

        show_lost_packets = probe_data.get("show_lost_packets", True)
        if not isinstance(show_lost_packets, bool):
            raise ValidationError(
                "probe.show_lost_packets must be a boolean",
                field_name="probe.show_lost_packets",
                value=show_lost_packets
            )

        return ProbeDefaults(
            timeout_seconds=timeout_seconds,
            count=count,
            interval_seconds=interval_seconds,
            packet_size_bytes=packet_size_bytes,
            ttl=ttl,
            ip_version=ip_version,
            show_lost_packets=show_lost_packets,
        )

    except ValidationError as e:
        logger.error(f"Probe configuration validation failed: {e}")
        raise


def validate_stream_config(stream_data: Dict[str, Any]) -> StreamConfig:
    """Validate and create StreamConfig from the ``[stream]`` table."""
    stream_data = _require_table(stream_data, "stream")
    try:
        stats_window_size = validate_positive_integer(
            stream_data.get("stats_window_size", 10),
            min_value=1,
            max_value=10000,
            field_name="stream.stats_window_size",
        )

        batch_size = validate_positive_integer(
            stream_data.get("batch_size", 10),
            min_value=1,
            max_value=100000,
            field_name="stream.batch_size",
        )

        return StreamConfig(
            stats_window_size=stats_window_size,
            batch_size=batch_size,
        )

    except ValidationError as e:
        logger.error(f"Stream configuration validation failed: {e}")
        raise


def validate_logging_config(logging_data: Dict[str, Any]) -> LoggingConfig:
    """Validate and create LoggingConfig from the ``[logging]`` table."""
    logging_data = _require_table(logging_data, "logging")
    defaults = LoggingConfig()
    try:
        level = validate_enum_choice(
            str(logging_data.get("level", defaults.level)).upper(),
            valid_choices=VALID_LOG_LEVELS,
            field_name="logging.level",
        )

        log_format = logging_data.get("format", defaults.format)
        if not isinstance(log_format, str) or "%(message)s" not in log_format:
            raise ValidationError(
                "logging.format must be a string containing %(message)s",
                field_name="logging.format",
                value=log_format
            )

        datefmt = logging_data.get("datefmt", defaults.datefmt)
        if not isinstance(datefmt, str) or not datefmt.strip():
            raise ValidationError(
                "logging.datefmt must be a non-empty string",
                field_name="logging.datefmt",
                value=datefmt
            )

        return LoggingConfig(level=level, format=log_format, datefmt=datefmt)

    except ValidationError as e:
        logger.error(f"Logging configuration validation failed: {e}")
        raise


def validate_app_config(config_data: Dict[str, Any]) -> AppConfig:
    """Validate every section of a parsed ``config.toml``."""
    return AppConfig(
        probe=validate_probe_defaults(config_data.get("probe", {})),
        stream=validate_stream_config(config_data.get("stream", {})),
        logging=validate_logging_config(config_data.get("logging", {})),
    )
