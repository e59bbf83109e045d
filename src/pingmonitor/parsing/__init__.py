"""
Ping output parsing and error classification.
"""

from .parser import (
    calculate_packet_loss_percentage,
    classify_error,
    is_reply_line,
    parse_outcome,
    parse_output,
    parse_reply_line,
    parse_reply_lines,
    result_from_error,
)

__all__ = [
    "calculate_packet_loss_percentage",
    "classify_error",
    "is_reply_line",
    "parse_outcome",
    "parse_output",
    "parse_reply_line",
    "parse_reply_lines",
    "result_from_error",
]
