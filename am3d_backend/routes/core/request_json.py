"""
Safe JSON request parsing with size limits.

Guarantees:
- Never raises to handlers (returns Result)
- Enforces an upper bound on JSON payload size
"""
from __future__ import annotations

import json
from typing import Any

from aiohttp import web

from am3d_backend.config import MAX_JSON_BYTES
from am3d_backend.shared import ErrorCode, Result

MIN_JSON_BYTES = 1024
REQUEST_STREAM_CHUNK_BYTES = 64 * 1024


async def _read_json(request: web.Request, *, max_bytes: int | None = None) -> Result[dict]:
    """
    Read and decode a JSON request body with a strict max size.

    Returns:
        Result.Ok(dict) or Result.Err(code, error, ...)
    """
    limit = max(MIN_JSON_BYTES, int(max_bytes) if max_bytes is not None else MAX_JSON_BYTES)

    length_error = _content_length_error(request, limit)
    if length_error is not None:
        return length_error
    body = await _read_request_body_limited(request, limit)
    if not body.ok:
        return Result.Err(body.code or ErrorCode.INVALID_JSON, body.error or "Invalid request body", **(body.meta or {}))
    return _decode_and_parse_json_dict(body.data or b"")


def _content_length_error(request: web.Request, limit: int) -> Result[dict] | None:
    size = request.content_length
    if size is None or size <= limit:
        return None
    return Result.Err(ErrorCode.INVALID_INPUT, f"JSON body too large ({size} > {limit})", limit=limit, size=size)


async def _read_request_body_limited(request: web.Request, limit: int) -> Result[bytes]:
    buf = bytearray()
    try:
        async for chunk in request.content.iter_chunked(REQUEST_STREAM_CHUNK_BYTES):
            if not chunk:
                continue
            buf.extend(chunk)
            if len(buf) > limit:
                return Result.Err(ErrorCode.INVALID_INPUT, f"JSON body too large (> {limit})", limit=limit, size=len(buf))
    except (OSError, ValueError) as exc:
        return Result.Err(ErrorCode.INVALID_JSON, f"Failed to read request body: {exc}")
    return Result.Ok(bytes(buf))


def _decode_and_parse_json_dict(body: bytes) -> Result[dict]:
    try:
        text = body.decode("utf-8", errors="strict")
    except UnicodeDecodeError as exc:
        return Result.Err(ErrorCode.INVALID_JSON, f"Invalid UTF-8 JSON body: {exc}")
    try:
        parsed: Any = json.loads(text) if text.strip() else {}
    except ValueError as exc:
        return Result.Err(ErrorCode.INVALID_JSON, f"Invalid JSON body: {exc}")
    if not isinstance(parsed, dict):
        return Result.Err(ErrorCode.INVALID_JSON, "JSON body must be an object")
    return Result.Ok(parsed)
