"""Backend-facing alias for shared utilities."""

from __future__ import annotations

from am3d_shared import (
    IGNORED_DIR_NAMES,
    MODEL_EXTENSIONS,
    ErrorCode,
    Result,
    format_timestamp,
    get_logger,
    log_structured,
    log_success,
    ms,
    now,
    request_id_var,
    sanitize_error_message,
    timer,
)

__all__ = [
    "Result",
    "ErrorCode",
    "get_logger",
    "log_success",
    "log_structured",
    "request_id_var",
    "sanitize_error_message",
    "format_timestamp",
    "now",
    "ms",
    "timer",
    "MODEL_EXTENSIONS",
    "IGNORED_DIR_NAMES",
]
