"""
Configuration for the 3D asset index.

Every tunable is read from the environment once at import time.
"""
import logging
import os
from pathlib import Path

from .utils import env_bool

logger = logging.getLogger(__name__)


def _env_raw(*names: str, default: str | None = None) -> str | None:
    for name in names:
        if not name:
            continue
        val = os.getenv(name)
        if val is not None and str(val).strip() != "":
            return str(val).strip()
    return default


def _env_int(default: int, *names: str, min_value: int | None = None, max_value: int | None = None) -> int:
    raw = _env_raw(*names)
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid integer for %s=%r, using default=%s", names[0] if names else "<unknown>", raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning("Value too small for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, min_value)
        value = min_value
    if max_value is not None and value > max_value:
        logger.warning("Value too large for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, max_value)
        value = max_value
    return value


def _env_float(default: float, *names: str, min_value: float | None = None, max_value: float | None = None) -> float:
    raw = _env_raw(*names)
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid float for %s=%r, using default=%s", names[0] if names else "<unknown>", raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning("Value too small for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, min_value)
        value = min_value
    if max_value is not None and value > max_value:
        logger.warning("Value too large for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, max_value)
        value = max_value
    return value


def _env_bool(default: bool, *names: str) -> bool:
    for name in names:
        if name and name in os.environ:
            return env_bool(name, default)
    return default


def _resolve_thumbnail_dir() -> Path:
    env_path = _env_raw("AM3D_THUMBNAIL_DIR")
    if env_path:
        try:
            return Path(env_path).expanduser().resolve()
        except (OSError, RuntimeError):
            logger.warning("Failed to resolve AM3D_THUMBNAIL_DIR: %s, using fallback", env_path)
    return Path.cwd() / "thumbnails"


# Thumbnails (placeholder PNGs)
THUMBNAIL_DIR: Path = _resolve_thumbnail_dir()
THUMBNAIL_SIZE: int = _env_int(256, "AM3D_THUMBNAIL_SIZE", min_value=32, max_value=2048)

# Watcher
WATCHER_ENABLED: bool = _env_bool(True, "AM3D_WATCHER_ENABLED")
WATCHER_POLLING: bool = _env_bool(False, "AM3D_WATCHER_POLLING")
WATCHER_POLL_INTERVAL_S: float = _env_float(2.0, "AM3D_WATCHER_POLL_INTERVAL_S", min_value=0.1, max_value=300.0)
WATCHER_STOP_TIMEOUT_S: float = _env_float(2.0, "AM3D_WATCHER_STOP_TIMEOUT_S", min_value=0.0, max_value=60.0)

# HTTP boundary
HTTP_HOST: str = _env_raw("AM3D_HTTP_HOST", default="127.0.0.1") or "127.0.0.1"
HTTP_PORT: int = _env_int(8190, "AM3D_HTTP_PORT", min_value=1, max_value=65535)
MAX_JSON_BYTES: int = _env_int(1024 * 1024, "AM3D_MAX_JSON_SIZE", min_value=1024)
