import json
from pathlib import Path

import pytest
import pytest_asyncio
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


@pytest.mark.asyncio
async def test_scan_route_returns_counts(client, library_root):
    _write(library_root / "a.fbx")
    _write(library_root / "Sub" / "b.obj")

    resp = await client.post("/api/folders/scan", data=json.dumps({"path": str(library_root)}))
    rebuilt = await client.post("/api/folders/scan", data=json.dumps({"path": str(library_root), "rebuild": True}))

    payload = await resp.json()
    assert resp.status == 200
    assert payload["ok"] is True
    assert payload["data"]["asset_count"] == 2
    assert "duration_ms" in payload["meta"]
    again = await rebuilt.json()
    assert again["data"]["rebuild"] is True and again["data"]["cleared"] == 2


@pytest.mark.asyncio
async def test_scan_route_validates_input(client, tmp_path):
    missing_path = await client.post("/api/folders/scan", data=json.dumps({}))
    not_found = await client.post("/api/folders/scan", data=json.dumps({"path": str(tmp_path / "nope")}))
    not_object = await client.post("/api/folders/scan", data=json.dumps(["x"]))

    assert missing_path.status == 400
    assert not_found.status == 404
    assert not_object.status == 400 and (await not_object.json())["code"] == "INVALID_JSON"


@pytest.mark.asyncio
async def test_folder_tree_routes(client, library_root):
    _write(library_root / "A" / "Deep" / "x.fbx")
    _write(library_root / "B" / "y.fbx", b"123")
    await client.post("/api/folders/scan", data=json.dumps({"path": str(library_root)}))

    folders = await (await client.get("/api/folders")).json()
    root = await (await client.get("/api/folders/by-path", params={"path": str(library_root)})).json()
    children = await (await client.get("/api/folders/subfolders", params={"path": str(library_root)})).json()
    by_id = await (await client.get(f"/api/folders/{root['data']['id']}")).json()
    info = await (await client.get("/api/folders/info", params={"path": str(library_root)})).json()
    missing = await client.get("/api/folders/9999")

    assert folders["meta"]["total"] == 4
    assert sorted(f["name"] for f in children["data"]) == ["A", "B"]
    assert by_id["data"]["path"] == str(library_root)
    assert info["data"]["asset_count"] == 2
    assert info["data"]["total_size"] == 4
    assert info["data"]["indexed_count"] == 2
    assert missing.status == 404


@pytest.mark.asyncio
async def test_watch_lifecycle_routes(client, library_root, observer):
    _write(library_root / "a.fbx")

    added = await client.post("/api/folders/watch", data=json.dumps({"path": str(library_root)}))
    watched = await (await client.get("/api/folders/watched")).json()
    removed = await client.delete("/api/folders/watch", params={"path": str(library_root)})
    after = await (await client.get("/api/folders/watched")).json()

    added_payload = await added.json()
    assert added_payload["ok"] is True
    assert added_payload["data"]["scan"]["created"] == 1
    assert watched["data"] == [str(library_root)]
    assert (await removed.json())["data"]["removed"] is True
    assert after["data"] == []
    assert len(observer.unscheduled) == 1


@pytest.mark.asyncio
async def test_watch_missing_folder_reports_failure(client, tmp_path):
    resp = await client.post("/api/folders/watch", data=json.dumps({"path": str(tmp_path / "later")}))
    empty = await client.post("/api/folders/watch", data=json.dumps({"path": ""}))

    payload = await resp.json()
    assert resp.status == 200
    assert payload["ok"] is False
    assert payload["code"] == "WATCH_FAILED"
    assert payload["meta"]["tracked"] is True
    assert empty.status == 400


@pytest.mark.asyncio
async def test_app_cleanup_stops_watcher(services, library_root, observer):
    client = TestClient(TestServer(create_app(services)))
    await client.start_server()
    await client.post("/api/folders/watch", data=json.dumps({"path": str(library_root)}))

    await client.close()

    assert observer.stopped is True
    assert services["watcher"].list_watched_folders() == []
