"""
Asset endpoints: listing, lookup, edits, deletion and file streaming.
"""
import mimetypes

from aiohttp import web

from am3d_backend.shared import ErrorCode, Result, get_logger
from am3d_backend.utils import parse_bool, parse_int

from ..core import _json_response, _read_json, _require_library

logger = get_logger(__name__)

# Formats the stdlib mimetypes table does not know.
_MODEL_CONTENT_TYPES = {
    ".gltf": "model/gltf+json",
    ".glb": "model/gltf-binary",
    ".obj": "model/obj",
    ".usdz": "model/vnd.usdz+zip",
}


def _asset_id_or_error(request: web.Request) -> Result[int]:
    asset_id = parse_int(request.match_info.get("asset_id"))
    if asset_id is None or asset_id <= 0:
        return Result.Err(ErrorCode.INVALID_INPUT, "Invalid asset id")
    return Result.Ok(asset_id)


def _content_type_for(filename: str) -> str:
    ext = filename[filename.rfind("."):].lower() if "." in filename else ""
    if ext in _MODEL_CONTENT_TYPES:
        return _MODEL_CONTENT_TYPES[ext]
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def register_asset_routes(routes: web.RouteTableDef) -> None:
    """Register asset routes."""

    @routes.get("/api/assets")
    async def list_assets(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        q = request.query
        return _json_response(
            svc.data.list_assets(
                filetype=q.get("type") or None,
                folder=q.get("folder") or None,
                query=q.get("q") or None,
            )
        )

    @routes.get("/api/assets/folder/{folder_path:.+}")
    async def list_assets_in_folder(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        return _json_response(svc.data.list_assets_by_folder(request.match_info["folder_path"]))

    @routes.get("/api/assets/type/{filetype}")
    async def list_assets_of_type(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        return _json_response(svc.data.list_assets_by_type(request.match_info["filetype"]))

    @routes.get("/api/assets/search/{query}")
    async def search_assets(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        return _json_response(svc.data.search_assets(request.match_info["query"]))

    @routes.get("/api/assets/{asset_id}")
    async def get_asset(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        asset_id = _asset_id_or_error(request)
        if not asset_id.ok:
            return _json_response(asset_id)
        return _json_response(svc.data.get_asset(asset_id.data))

    @routes.put("/api/assets/{asset_id}")
    async def update_asset(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        asset_id = _asset_id_or_error(request)
        if not asset_id.ok:
            return _json_response(asset_id)
        body = await _read_json(request)
        if not body.ok:
            return _json_response(body)
        return _json_response(await svc.data.update_asset(asset_id.data, body.data or {}))

    @routes.delete("/api/assets/{asset_id}")
    async def delete_asset(request: web.Request) -> web.Response:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        asset_id = _asset_id_or_error(request)
        if not asset_id.ok:
            return _json_response(asset_id)
        return _json_response(await svc.data.delete_asset(asset_id.data))

    @routes.get("/api/assets/{asset_id}/stream")
    async def stream_asset(request: web.Request) -> web.StreamResponse:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        asset_id = _asset_id_or_error(request)
        if not asset_id.ok:
            return _json_response(asset_id)
        opened = svc.data.open_asset(asset_id.data)
        if not opened.ok:
            return _json_response(opened)

        path = opened.data
        preview = parse_bool(request.query.get("preview"), False)
        filename = path.name.replace('"', "").replace("\r", "").replace("\n", "")[:255]
        # FileResponse streams the file and handles HTTP range requests.
        response = web.FileResponse(path=str(path))
        response.headers["Content-Type"] = _content_type_for(filename)
        response.headers["Content-Disposition"] = f'{"inline" if preview else "attachment"}; filename="{filename}"'
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Cache-Control"] = "private, no-cache"
        return response

    @routes.get("/api/thumbnails/{filename}")
    async def get_thumbnail(request: web.Request) -> web.StreamResponse:
        svc = _require_library(request)
        if not svc.ok:
            return _json_response(svc)
        opened = svc.data.open_thumbnail(request.match_info["filename"])
        if not opened.ok:
            return _json_response(opened)
        response = web.FileResponse(path=str(opened.data))
        response.headers["Content-Type"] = "image/png"
        response.headers["Cache-Control"] = "private, max-age=60"
        return response
