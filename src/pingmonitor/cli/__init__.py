"""
Command-line interface for pingmonitor.
"""

from .main import build_parser, main, main_cli, run_monitor

__all__ = ["build_parser", "main", "main_cli", "run_monitor"]
