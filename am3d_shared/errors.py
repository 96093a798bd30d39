"""
Client-safe error messages.

Scan and update failures are usually ``OSError``s whose text embeds absolute
paths from the library; only the reason and the file name reach HTTP clients.
"""
from __future__ import annotations

import os
import re
from typing import Any

from .log import get_logger

logger = get_logger(__name__)
_DEBUG_MODE = os.getenv("AM3D_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")
_WINDOWS_PATH_RE = re.compile(r"[A-Za-z]:\\[^\s'\"]+")
_UNIX_PATH_RE = re.compile(r"(?<![A-Za-z0-9:/?&=#%])/(?!/)[^\s'\"#?]+")
MAX_MESSAGE_LENGTH = 200


def _mask_path(match: re.Match[str]) -> str:
    name = os.path.basename(match.group(0).rstrip("/\\"))
    return f"[path]/{name}" if name else "[path]"


def _mask_paths(value: str) -> str:
    """Replace absolute paths with ``[path]/<basename>``."""
    cleaned = _WINDOWS_PATH_RE.sub(_mask_path, value)
    return _UNIX_PATH_RE.sub(_mask_path, cleaned)


def _describe(exc: Any) -> str:
    if isinstance(exc, OSError) and exc.strerror:
        target = os.path.basename(os.fsdecode(exc.filename)) if exc.filename else ""
        return f"{exc.strerror} ({target})" if target else exc.strerror
    return str(exc)


def sanitize_error_message(exc: Any, fallback: str) -> str:
    """
    Build a safe error message for clients.

    Args:
        exc: Exception or raw value to sanitize.
        fallback: Prefix, and the whole message when nothing meaningful remains.

    Returns:
        ``"<fallback>: <detail>"`` with paths reduced to their base name.
    """
    fallback = fallback or "An error occurred"
    if exc is None:
        return fallback

    detail = " ".join(_mask_paths(_describe(exc)).splitlines()).strip()
    if _DEBUG_MODE:
        logger.debug("Sanitized error payload: %r -> %s", exc, detail)
    if not detail:
        return fallback
    return f"{fallback}: {detail[:MAX_MESSAGE_LENGTH]}"
