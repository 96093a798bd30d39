"""
Response utilities for route handlers.
"""
import math
from typing import Any

from aiohttp import web

from am3d_backend.shared import ErrorCode, Result

# Business errors return HTTP 200 with {ok:false,...}, except these.
_STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND.value: 404,
    ErrorCode.INVALID_INPUT.value: 400,
    ErrorCode.INVALID_JSON.value: 400,
}


def status_for(result: Result) -> int:
    if result.ok:
        return 200
    return _STATUS_BY_CODE.get(str(result.code), 200)


def _json_response(result: Result, status: int | None = None) -> web.Response:
    """
    Convert Result to JSON response.

    Args:
        result: Result object
        status: HTTP status code (optional, derived from the error code if None)

    Returns:
        aiohttp web.Response
    """
    if status is None:
        status = status_for(result)

    payload = _sanitize_json_payload(result.to_envelope())
    return web.json_response(payload, status=status)


def _sanitize_json_payload(value: Any) -> Any:
    """
    Normalize payload values so they are always valid strict JSON.
    - Converts NaN/Infinity floats to None.
    - Recurses through dict/list/tuple containers.
    - Sets become sorted lists.
    """
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {k: _sanitize_json_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize_json_payload(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return [_sanitize_json_payload(v) for v in sorted(value)]
    return value
