"""Shared utilities for the 3D asset index."""
from .errors import sanitize_error_message
from .log import get_logger, log_structured, log_success, request_id_var
from .result import Result
from .time import format_timestamp, ms, now, timer
from .types import IGNORED_DIR_NAMES, MODEL_EXTENSIONS, ErrorCode

__all__ = [
    "Result",
    "get_logger",
    "log_success",
    "log_structured",
    "request_id_var",
    "now",
    "ms",
    "format_timestamp",
    "timer",
    "ErrorCode",
    "MODEL_EXTENSIONS",
    "IGNORED_DIR_NAMES",
    "sanitize_error_message",
]
