"""
Observability helpers (request id + timing) for aiohttp routes.
"""
from __future__ import annotations

import time
from typing import Any
from uuid import uuid4

from aiohttp import web

from .shared import get_logger, request_id_var
from .utils import env_bool

logger = get_logger(__name__)

_APPKEY_OBS_INSTALLED = web.AppKey("am3d_observability_installed", bool)
REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LEN = 128
SLOW_REQUEST_MS = 1000.0


def _new_request_id() -> str:
    return uuid4().hex


def _get_request_id(request: web.Request) -> str:
    incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if incoming and len(incoming) <= _MAX_REQUEST_ID_LEN and incoming.isprintable():
        return incoming
    return _new_request_id()


@web.middleware
async def request_context_middleware(request: web.Request, handler):
    """Add request-id correlation and lightweight request logging context."""
    if env_bool("AM3D_OBS_DISABLE", False):
        return await handler(request)

    rid = _get_request_id(request)
    request["am3d_request_id"] = rid
    token = request_id_var.set(rid)
    start = time.perf_counter()
    status: int | None = None
    error: str | None = None
    try:
        response = await handler(request)
        status = int(getattr(response, "status", 200) or 200)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
    except web.HTTPException as exc:
        status = exc.status
        exc.headers[REQUEST_ID_HEADER] = rid
        raise
    except Exception as exc:
        status = 500
        error = f"{exc.__class__.__name__}: {exc}"
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000.0
        _emit_request_log(request, status=status, duration_ms=duration_ms, error=error)
        request_id_var.reset(token)


def build_request_log_fields(request: web.Request, response_status: int | None = None) -> dict[str, Any]:
    return {
        "request_id": request.get("am3d_request_id", ""),
        "method": request.method,
        "path": request.path,
        "status": response_status,
    }


def _emit_request_log(request: web.Request, *, status: int | None, duration_ms: float, error: str | None) -> None:
    fields = build_request_log_fields(request, response_status=status)
    fields["duration_ms"] = round(duration_ms, 1)
    if error:
        fields["error"] = error
    message = "%s %s -> %s (%.1fms)"
    args = (request.method, request.path, status, duration_ms)
    if status is not None and status >= 500:
        logger.error(message, *args, extra=fields)
    elif status is not None and status >= 400:
        logger.warning(message, *args, extra=fields)
    elif duration_ms >= SLOW_REQUEST_MS:
        logger.info(message, *args, extra=fields)
    else:
        logger.debug(message, *args, extra=fields)


def ensure_observability(app: web.Application) -> None:
    """
    Install middleware once.
    """
    if app.get(_APPKEY_OBS_INSTALLED):
        return
    app[_APPKEY_OBS_INSTALLED] = True
    app.middlewares.append(request_context_middleware)
