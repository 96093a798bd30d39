"""
Folder endpoints: folder tree, scans and watch roots.
"""
from aiohttp import web

from am3d_backend.shared import ErrorCode, Result, get_logger
from am3d_backend.utils import parse_bool, parse_int

from ..core import _json_response, _read_json, _require_library

logger = get_logger(__name__)


async def _path_from_request(request: web.Request) -> Result[str]:
    """Folder path from the JSON body, falling back to ``?path=``."""
    raw = request.query.get("path") or ""
    if request.can_read_body:
        body = await _read_json(request)
        if not body.ok:
            return body
        raw = str((body.data or {}).get("path") or raw)
    if not raw.strip():
        return Result.Err(ErrorCode.INVALID_INPUT, "Missing folder path")
    return Result.Ok(raw)


def register_folder_routes(routes: web.RouteTableDef) -> None:
    """Register folder routes."""

    @routes.get("/api/folders")
    async def list_folders(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        return _json_response(svc.data.list_folders())

    @routes.get(r"/api/folders/{folder_id:\d+}")
    async def get_folder(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        folder_id = parse_int(request.match_info["folder_id"])
        if folder_id is None:
            return _json_response(Result.Err(ErrorCode.INVALID_INPUT, "Invalid folder id"))
        return _json_response(svc.data.get_folder(folder_id))

    @routes.get("/api/folders/by-path")
    async def get_folder_by_path(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        return _json_response(svc.data.get_folder_by_path(request.query.get("path", "")))

    @routes.get("/api/folders/subfolders")
    async def list_subfolders_query(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        return _json_response(svc.data.list_direct_children(request.query.get("path", "")))

    @routes.get("/api/folders/subfolders/{folder_path:.+}")
    async def list_subfolders(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        return _json_response(svc.data.list_direct_children(request.match_info["folder_path"]))

    @routes.get("/api/folders/info")
    async def folder_info(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        return _json_response(await svc.data.folder_info(request.query.get("path", "")))

    @routes.post("/api/folders/scan")
    async def scan_folder(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        body = await _read_json(request)
        if not body.ok:
            return _json_response(body)
        payload = body.data or {}
        rebuild = parse_bool(payload.get("rebuild"), False)
        return _json_response(await svc.data.scan_folder(str(payload.get("path") or ""), rebuild=rebuild))

    @routes.get("/api/folders/watched")
    async def list_watched(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        return _json_response(svc.data.list_watched_folders())

    @routes.post("/api/folders/watch")
    async def add_watch(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        path = await _path_from_request(request)
        if not path.ok:
            return _json_response(path)
        return _json_response(await svc.data.add_watch_folder(path.data))

    @routes.delete("/api/folders/watch")
    async def remove_watch(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        path = await _path_from_request(request)
        if not path.ok:
            return _json_response(path)
        return _json_response(await svc.data.remove_watch_folder(path.data))
