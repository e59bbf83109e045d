"""
Error reporting shared by every layer of pingmonitor.

Probe failures are data (``FailedProbeResult``) and never pass through here.
What does: impossible parameter values (``ValidationError``), broken
configuration files, ping binaries that cannot be spawned and errors that
end the CLI. ``handle_error`` logs them in one format at a chosen severity
and then either re-raises or lets the caller recover.
"""

import logging
import sys
from enum import Enum
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """How loudly an error is reported."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Severity -> (logging level, attach traceback)
_LOG_LEVELS: Dict[str, tuple] = {
    "debug": (logging.DEBUG, True),
    "info": (logging.INFO, False),
    "warning": (logging.WARNING, False),
    "error": (logging.ERROR, False),
    "critical": (logging.CRITICAL, True),
}


class ValidationError(Exception):
    """
    A parameter value that can never produce a valid ping invocation.

    Raised by the fluent setters of ``Ping``, by the stream combinators for
    impossible sizes, and by the configuration validators. ``field_name``
    names the offending setting, e.g. ``"ttl"`` or ``"probe.timeout_seconds"``.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Log ``error`` as ``"Error in <context>: <error>"`` and optionally re-raise it.

    Args:
        error: The exception being reported
        context: What was being done, e.g. ``"probing example.com"``
        severity: An ``ErrorSeverity`` or its string value
        reraise: Raise ``error`` again after logging
        logger: Logger of the reporting module; this module's logger if None
    """
    target = logger or globals()['logger']
    key = severity.lower() if isinstance(severity, str) else severity.value
    level, with_traceback = _LOG_LEVELS.get(key, (logging.ERROR, False))

    target.log(level, f"Error in {context}: {error}", exc_info=with_traceback)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Report a problem reading or validating ``config.toml``."""
    handle_error(error, f"config {context}", **kwargs)


def handle_subprocess_error(error: Exception, command: str, **kwargs) -> None:
    """Report a ping command that could not be run."""
    handle_error(error, f"subprocess command '{command}'", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Report an error that ends the CLI, then exit with ``exit_code`` (default 1)."""
    exit_code = kwargs.pop('exit_code', 1)
    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)
    sys.exit(exit_code)
