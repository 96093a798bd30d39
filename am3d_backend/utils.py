"""
Lenient parsing for env variables, query strings and JSON fields.
"""
from __future__ import annotations

import os
from typing import Any

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def parse_bool(value: Any, default: bool = False) -> bool:
    """``?preview=1``, ``{"rebuild": "yes"}`` and ``AM3D_*=off`` all parse; anything else is ``default``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower() if isinstance(value, str) else ""
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return default


def env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name) if name else None
    return default if raw is None else parse_bool(raw, default)


def parse_int(value: Any, default: int | None = None) -> int | None:
    """Asset and folder ids from route segments; ``True`` is not an id."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, int):
        return value
    text = str(value).strip()
    digits = text[1:] if text.startswith("-") else text
    return int(text) if digits.isascii() and digits.isdigit() else default
