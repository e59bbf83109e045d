"""
Process-wide access to the loaded ``config.toml``.

The first ``get_config()`` call reads and validates the file; later calls
reuse the cached ``AppConfig``. The CLI points the manager at a different
file with ``set_config_path()`` before anything reads the configuration.

Without an explicit path the manager looks for ``conf/config.toml`` next to
the source tree and falls back to built-in defaults when it is absent, so the
library works without any configuration file.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..models.config import AppConfig
from ..validation import handle_config_error, ErrorSeverity
from .loader import load_main_config
from .validators import validate_app_config

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_FILE_PATH = Path(__file__).parent.parent.parent.parent / "conf" / "config.toml"

# Module state: the cached configuration and where it comes from.
_CONFIG: Optional[AppConfig] = None
_CONFIG_FILE_PATH = _DEFAULT_CONFIG_FILE_PATH
# An explicitly chosen file must exist; the default one is optional.
_CONFIG_PATH_EXPLICIT = False


def set_config_path(config_path: Path) -> None:
    """
    Read configuration from ``config_path`` from now on.

    Drops any cached configuration. A file chosen this way is required: if
    it is missing, the next ``get_config()`` raises ``FileNotFoundError``.
    """
    global _CONFIG_FILE_PATH, _CONFIG, _CONFIG_PATH_EXPLICIT
    _CONFIG_FILE_PATH = Path(config_path)
    _CONFIG_PATH_EXPLICIT = True
    _CONFIG = None
    logger.debug(f"Using configuration file {_CONFIG_FILE_PATH}")


def reset_config_path() -> None:
    """Go back to the optional default file and drop the cache."""
    global _CONFIG_FILE_PATH, _CONFIG, _CONFIG_PATH_EXPLICIT
    _CONFIG_FILE_PATH = _DEFAULT_CONFIG_FILE_PATH
    _CONFIG_PATH_EXPLICIT = False
    _CONFIG = None


def clear_config_cache() -> None:
    """Forget the loaded configuration; the file is read again on next use."""
    global _CONFIG
    _CONFIG = None
    logger.debug("Dropped cached configuration")


def _load_config(config_path: Path) -> AppConfig:
    """
    Read and validate one configuration file.

    Raises:
        FileNotFoundError: If an explicitly chosen file is missing
        ValidationError: If a value is out of range
        tomllib.TOMLDecodeError: If the file is not valid TOML
    """
    if not _CONFIG_PATH_EXPLICIT and not config_path.exists():
        logger.debug(f"No configuration file at {config_path}, using built-in defaults")
        return AppConfig()

    try:
        app_config = validate_app_config(load_main_config(config_path))
    except Exception as e:
        handle_config_error(
            error=e,
            context=f"loading {config_path}",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise

    logger.info(f"Loaded configuration from {config_path}")
    return app_config


def get_config() -> AppConfig:
    """Return the cached configuration, loading it on first use."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _load_config(_CONFIG_FILE_PATH)
    return _CONFIG


def is_config_loaded() -> bool:
    return _CONFIG is not None


def get_config_info() -> Dict[str, Any]:
    """
    Describe where configuration comes from, for diagnostics.

    Returns:
        ``config_loaded``, ``config_path``, ``config_path_explicit`` and
        ``config_file_exists``
    """
    return {
        "config_loaded": is_config_loaded(),
        "config_path": str(_CONFIG_FILE_PATH),
        "config_path_explicit": _CONFIG_PATH_EXPLICIT,
        "config_file_exists": _CONFIG_FILE_PATH.exists(),
    }
