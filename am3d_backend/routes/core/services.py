"""
Service lookup for route handlers.

Services are built once per application and stored on it; handlers never
reach for module globals.
"""
from typing import Any

from aiohttp import web

from am3d_backend.features.index import LibraryService
from am3d_backend.shared import ErrorCode, Result

APP_KEY_SERVICES: web.AppKey[dict[str, Any]] = web.AppKey("am3d_services", dict)


def _require_library(request: web.Request) -> Result[LibraryService]:
    services = request.app.get(APP_KEY_SERVICES)
    library = services.get("library") if services else None
    if library is None:
        return Result.Err(ErrorCode.SERVICE_UNAVAILABLE, "Library service is not initialized")
    return Result.Ok(library)
