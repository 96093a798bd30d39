"""
Clock helpers: POSIX seconds for records, milliseconds for durations, ISO
strings for the metadata blob.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone


def now() -> float:
    return time.time()


def ms() -> int:
    return int(time.time() * 1000)


def format_timestamp(ts: float | None = None) -> str:
    """UTC ISO 8601 with a trailing ``Z``, e.g. ``2025-12-29T19:30:45.120000Z``."""
    if ts is None:
        ts = now()
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


@contextmanager
def timer(label: str, logger: logging.Logger) -> Iterator[None]:
    """Log ``"<label> took N.NNNs"`` at DEBUG when the block exits, even on error."""
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.debug("%s took %.3fs", label, time.perf_counter() - start)
