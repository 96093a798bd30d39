"""
Logging utilities with consistent formatting and emoji indicators.
"""
import json
import logging
import os
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Final

# Emoji indicators for log levels
EMOJI_MAP: Final[dict[str, str]] = {
    "DEBUG": "🔍",
    "INFO": "ℹ️",
    "WARNING": "⚠️",
    "ERROR": "❌",
    "CRITICAL": "🔥",
    "SUCCESS": "✅",
}

# Global logger prefix
PREFIX: Final[str] = "🧊 AM3D"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class CorrelationFilter(logging.Filter):
    """Inject `request_id` from `request_id_var` into each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("")
        return True


class EmojiFormatter(logging.Formatter):
    """Custom formatter that adds emoji based on log level."""

    def format(self, record: logging.LogRecord) -> str:
        emoji = EMOJI_MAP.get(record.levelname, "🧊")

        # Format: 🧊 AM3D [✅] index.watcher [rid]: message
        rid = str(getattr(record, "request_id", "") or "").strip()
        rid_part = f" [{rid}]" if rid else ""
        formatter = logging.Formatter(f"{PREFIX} [{emoji}] %(name)s{rid_part}: %(message)s")
        return formatter.format(record)


def _default_level() -> int:
    raw = str(os.environ.get("AM3D_LOG_LEVEL", "") or "").strip().upper()
    level = logging.getLevelName(raw) if raw else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def _ensure_correlation_filter(logger: logging.Logger) -> None:
    if any(isinstance(f, CorrelationFilter) for f in logger.filters):
        return
    logger.addFilter(CorrelationFilter())


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Get a logger with the AM3D prefix and emoji indicators.

    Args:
        name: Logger name (usually __name__)
        level: Optional logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance with emoji formatting
    """
    # Strip the package prefix so records read "index.watcher" rather than
    # "am3d_backend.features.index.watcher".
    if name.startswith("__main__"):
        name = "main"
    elif "." in name:
        parts = name.split(".")
        if "features" in parts:
            name = ".".join(parts[parts.index("features") + 1:])
        elif parts[0] in ("am3d_backend", "am3d_shared"):
            name = ".".join(parts[1:])

    logger = logging.getLogger(f"am3d.{name}")
    _ensure_correlation_filter(logger)

    if level is not None:
        logger.setLevel(level)
    elif not logger.handlers:
        logger.setLevel(_default_level())

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(EmojiFormatter())
        logger.addHandler(handler)

        # Prevent propagation to avoid duplicate logs
        logger.propagate = False

    return logger

# Add SUCCESS level
SUCCESS_LEVEL: Final[int] = 25  # Between INFO (20) and WARNING (30)
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")

def log_success(logger: logging.Logger, message: str) -> None:
    """Log a success message with ✅ emoji."""
    logger.log(SUCCESS_LEVEL, message)

def log_structured(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """Emit a structured JSON log entry with contextual fields."""
    payload = {
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "context": context,
    }
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
