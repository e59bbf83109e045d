"""
Reading ``config.toml`` from disk.

Only parsing happens here; value checks live in ``config.validators``.
Unknown sections and keys are reported in the log but otherwise ignored, so
a misspelt option shows up as a warning instead of silently using a default.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List

from ..validation import handle_config_error, ErrorSeverity

logger = logging.getLogger(__name__)

# Recognised keys per section of config.toml.
KNOWN_SECTIONS: Dict[str, List[str]] = {
    "probe": [
        "timeout_seconds",
        "count",
        "interval_seconds",
        "packet_size_bytes",
        "ttl",
        "ip_version",
        "show_lost_packets",
    ],
    "stream": ["stats_window_size", "batch_size"],
    "logging": ["level", "format", "datefmt"],
}


def load_toml_file(file_path: Path, description: str = "configuration file") -> Dict[str, Any]:
    """
    Parse a TOML file.

    Args:
        file_path: File to read
        description: Used in log and error messages

    Returns:
        The parsed document

    Raises:
        FileNotFoundError: If ``file_path`` is not a file
        tomllib.TOMLDecodeError: If the document is not valid TOML
    """
    if not file_path.is_file():
        raise FileNotFoundError(f"{description} not found: {file_path}")

    logger.debug(f"Reading {description}: {file_path}")
    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        handle_config_error(
            error=e,
            context=f"parsing {description} {file_path}",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise


def find_unknown_keys(config_data: Dict[str, Any]) -> List[str]:
    """Dotted names of sections or keys that no validator reads."""
    unknown = []
    for section, values in config_data.items():
        if section not in KNOWN_SECTIONS:
            unknown.append(section)
            continue
        if isinstance(values, dict):
            unknown.extend(f"{section}.{key}" for key in values if key not in KNOWN_SECTIONS[section])
    return unknown


def load_main_config(config_path: Path) -> Dict[str, Any]:
    """Read config.toml and warn about entries that will be ignored."""
    config_data = load_toml_file(config_path, "main configuration file")
    for name in find_unknown_keys(config_data):
        logger.warning(f"Ignoring unknown configuration entry '{name}' in {config_path}")
    return config_data
