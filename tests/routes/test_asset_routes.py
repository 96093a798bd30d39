import json
from pathlib import Path

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from am3d_backend.routes import create_app


def _write(path: Path, data: bytes = b"x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest_asyncio.fixture
async def client(services):
    client = TestClient(TestServer(create_app(services)))
    await client.start_server()
    try:
        yield client
    finally:
        await client.close()


async def _scan(client, root: Path) -> dict:
    resp = await client.post("/api/folders/scan", data=json.dumps({"path": str(root)}))
    payload = await resp.json()
    assert payload["ok"] is True, payload
    return payload


async def _asset_id(client, filename: str) -> int:
    payload = await (await client.get("/api/assets")).json()
    return next(a["id"] for a in payload["data"] if a["filename"] == filename)


@pytest.mark.asyncio
async def test_list_assets_with_filters(client, library_root):
    _write(library_root / "Characters" / "hero_lowpoly_v2.fbx")
    _write(library_root / "Trees" / "oak.obj")
    await _scan(client, library_root)

    all_assets = await (await client.get("/api/assets")).json()
    by_type = await (await client.get("/api/assets", params={"type": "obj"})).json()
    by_query = await (await client.get("/api/assets", params={"q": "lowpoly"})).json()
    by_folder = await (await client.get("/api/assets", params={"folder": str(library_root / "Trees")})).json()

    assert all_assets["ok"] is True
    assert all_assets["meta"]["total"] == 2
    assert [a["filename"] for a in by_type["data"]] == ["oak.obj"]
    assert [a["filename"] for a in by_query["data"]] == ["hero_lowpoly_v2.fbx"]
    assert [a["filename"] for a in by_folder["data"]] == ["oak.obj"]


@pytest.mark.asyncio
async def test_get_asset_by_id_and_errors(client, library_root):
    _write(library_root / "crate.fbx")
    await _scan(client, library_root)
    asset_id = await _asset_id(client, "crate.fbx")

    ok = await client.get(f"/api/assets/{asset_id}")
    missing = await client.get("/api/assets/9999")
    bad = await client.get("/api/assets/abc")

    assert ok.status == 200
    body = await ok.json()
    assert body["data"]["filepath"] == str(library_root / "crate.fbx")
    assert body["data"]["metadata"]["estimated"] is True
    assert missing.status == 404 and (await missing.json())["code"] == "NOT_FOUND"
    assert bad.status == 400 and (await bad.json())["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_search_and_type_paths(client, library_root):
    _write(library_root / "Vehicles" / "car.fbx")
    _write(library_root / "stone.obj")
    await _scan(client, library_root)

    search = await (await client.get("/api/assets/search/vehicle")).json()
    by_type = await (await client.get("/api/assets/type/fbx")).json()

    assert [a["filename"] for a in search["data"]] == ["car.fbx"]
    assert [a["filename"] for a in by_type["data"]] == ["car.fbx"]


@pytest.mark.asyncio
async def test_update_and_delete_asset(client, library_root):
    _write(library_root / "crate.fbx")
    _write(library_root / "barrel.fbx")
    await _scan(client, library_root)
    asset_id = await _asset_id(client, "crate.fbx")

    put = await client.put(f"/api/assets/{asset_id}", data=json.dumps({"tags": ["hero", "hero"], "metadata": {"lod": 2}}))
    bad_json = await client.put(f"/api/assets/{asset_id}", data="{not json")
    immutable = await client.put(f"/api/assets/{asset_id}", data=json.dumps({"filepath": "/x.fbx"}))
    deleted = await client.delete(f"/api/assets/{asset_id}")
    deleted_again = await client.delete(f"/api/assets/{asset_id}")

    updated = await put.json()
    assert updated["data"]["tags"] == ["hero"]
    assert updated["data"]["metadata"] == {"lod": 2}
    assert bad_json.status == 400 and (await bad_json.json())["code"] == "INVALID_JSON"
    assert immutable.status == 400
    assert (await deleted.json())["data"]["deleted"] is True
    assert deleted_again.status == 404
    remaining = await (await client.get("/api/assets")).json()
    assert [a["filename"] for a in remaining["data"]] == ["barrel.fbx"]


@pytest.mark.asyncio
async def test_stream_asset_bytes(client, library_root):
    _write(library_root / "crate.glb", b"glTF-binary-payload")
    await _scan(client, library_root)
    asset_id = await _asset_id(client, "crate.glb")

    download = await client.get(f"/api/assets/{asset_id}/stream")
    preview = await client.get(f"/api/assets/{asset_id}/stream", params={"preview": "1"})

    assert download.status == 200
    assert await download.read() == b"glTF-binary-payload"
    assert download.headers["Content-Type"] == "model/gltf-binary"
    assert download.headers["Content-Disposition"].startswith("attachment;")
    assert preview.headers["Content-Disposition"].startswith("inline;")


@pytest.mark.asyncio
async def test_stream_missing_file_is_not_found(client, library_root):
    f = _write(library_root / "crate.obj")
    await _scan(client, library_root)
    asset_id = await _asset_id(client, "crate.obj")
    f.unlink()

    resp = await client.get(f"/api/assets/{asset_id}/stream")

    assert resp.status == 404


@pytest.mark.asyncio
async def test_thumbnail_route(client, services, library_root):
    crate = _write(library_root / "crate.fbx")
    await _scan(client, library_root)
    thumbnail = services["repository"].get_asset_by_path(str(crate)).thumbnail_path

    ok = await client.get(f"/api/thumbnails/{Path(thumbnail).name}")
    missing = await client.get("/api/thumbnails/none_thumb.png")

    assert ok.status == 200
    assert ok.headers["Content-Type"] == "image/png"
    assert (await ok.read()).startswith(b"\x89PNG")
    assert missing.status == 404


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    resp = await client.get("/api/assets", headers={"X-Request-ID": "abc-123"})
    generated = await client.get("/api/assets")

    assert resp.headers["X-Request-ID"] == "abc-123"
    assert generated.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_routes_without_services_report_unavailable():
    app = web.Application()
    from am3d_backend.routes.registry import register_routes

    register_routes(app, {})
    client = TestClient(TestServer(app))
    await client.start_server()
    try:
        payload = await (await client.get("/api/assets")).json()
        assert payload["ok"] is False
        assert payload["code"] == "SERVICE_UNAVAILABLE"
    finally:
        await client.close()
