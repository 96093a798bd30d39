import asyncio
import os

import pytest

from am3d_backend.adapters.store import MemoryRepository
from am3d_backend.adapters.thumbnails import PlaceholderThumbnails
from am3d_backend.features.index.indexer import AssetIndexer, FileStat, build_metadata


def _write(path, data=b"x"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.fixture
def indexer(tmp_path):
    return AssetIndexer(MemoryRepository(), PlaceholderThumbnails(tmp_path / "thumbs", size=32))


@pytest.mark.asyncio
async def test_upsert_creates_asset_with_tags_metadata_and_thumbnail(indexer, library_root):
    f = _write(library_root / "Characters" / "hero_lowpoly_v2.fbx", b"12345")

    res = await indexer.upsert(str(f))

    assert res.ok, res.error
    assert res.data["action"] == "created"
    asset = indexer.repository.get_asset_by_path(str(f))
    assert asset.filename == "hero_lowpoly_v2.fbx"
    assert asset.filetype == ".fbx"
    assert asset.filesize == 5
    assert asset.last_modified == os.stat(f).st_mtime
    assert {"fbx", "character", "lowpoly", "versioned"} <= set(asset.tags)
    assert asset.metadata["estimated"] is True
    assert asset.metadata["directory"] == str(f.parent)
    assert asset.metadata["extension"] == ".fbx"
    assert asset.metadata["modifiedAt"].endswith("Z")
    assert os.path.basename(asset.thumbnail_path).startswith("hero_lowpoly_v2_fbx_")
    assert os.path.isfile(asset.thumbnail_path)


@pytest.mark.asyncio
async def test_mtime_guard_keeps_user_edits_until_file_is_newer(indexer, library_root):
    f = _write(library_root / "crate.obj", b"abc")
    await indexer.upsert(str(f))
    asset = indexer.repository.get_asset_by_path(str(f))
    indexer.repository.update_asset(asset.id, {"tags": ["hand-picked"], "metadata": {"note": "keep"}})
    stored_mtime = asset.last_modified

    same = await indexer.upsert(str(f), FileStat(size=999, mtime=stored_mtime, birthtime=0.0))
    older = await indexer.upsert(str(f), FileStat(size=999, mtime=stored_mtime - 10, birthtime=0.0))
    assert same.data["action"] == "unchanged"
    assert older.data["action"] == "unchanged"
    unchanged = indexer.repository.get_asset(asset.id)
    assert unchanged.filesize == 3
    assert unchanged.last_modified == stored_mtime
    assert unchanged.thumbnail_path == asset.thumbnail_path

    newer = await indexer.upsert(str(f), FileStat(size=42, mtime=stored_mtime + 5, birthtime=0.0))
    assert newer.data["action"] == "updated"
    updated = indexer.repository.get_asset(asset.id)
    assert updated.filesize == 42
    assert updated.last_modified == stored_mtime + 5
    assert updated.tags == ["hand-picked"]
    assert updated.metadata == {"note": "keep"}


@pytest.mark.asyncio
async def test_upsert_stats_the_file_when_no_stat_is_given(indexer, library_root):
    f = _write(library_root / "crate.obj", b"abc")
    await indexer.upsert(str(f))
    asset = indexer.repository.get_asset_by_path(str(f))

    f.write_bytes(b"abcdefgh")
    os.utime(f, (asset.last_modified + 20, asset.last_modified + 20))
    res = await indexer.upsert(str(f))

    assert res.data["action"] == "updated"
    assert indexer.repository.get_asset(asset.id).filesize == 8


@pytest.mark.asyncio
async def test_unsupported_and_missing_files_are_skipped(indexer, library_root):
    txt = _write(library_root / "notes.txt")

    unsupported = await indexer.upsert(str(txt))
    missing = await indexer.upsert(str(library_root / "gone.fbx"))

    assert unsupported.ok and unsupported.data["action"] == "skipped"
    assert unsupported.meta["reason"] == "unsupported"
    assert missing.ok and missing.data["action"] == "skipped"
    assert missing.meta["reason"] == "stat_failed"
    assert indexer.repository.list_assets() == []


@pytest.mark.asyncio
async def test_empty_path_is_rejected(indexer):
    res = await indexer.upsert("")
    assert res.ok is False
    assert res.code == "INVALID_INPUT"
    assert (await indexer.remove("")).code == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_remove_deletes_only_that_asset(indexer, library_root):
    a = _write(library_root / "a.fbx")
    b = _write(library_root / "b.fbx")
    await indexer.upsert(str(a))
    await indexer.upsert(str(b))

    first = await indexer.remove(str(a))
    second = await indexer.remove(str(a))

    assert first.data["removed"] is True
    assert second.data["removed"] is False
    assert [x.filepath for x in indexer.repository.list_assets()] == [str(b)]


@pytest.mark.asyncio
async def test_concurrent_upserts_of_one_path_create_a_single_asset(indexer, library_root):
    f = _write(library_root / "crate.glb")

    results = await asyncio.gather(*(indexer.upsert(str(f)) for _ in range(5)))

    actions = sorted(r.data["action"] for r in results)
    assert actions == ["created", "unchanged", "unchanged", "unchanged", "unchanged"]
    assert len(indexer.repository.list_assets()) == 1
    assert indexer._path_locks == {}


@pytest.mark.asyncio
async def test_thumbnail_failure_leaves_thumbnail_path_empty(tmp_path, library_root):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    indexer = AssetIndexer(MemoryRepository(), PlaceholderThumbnails(blocker / "thumbs"))
    f = _write(library_root / "crate.obj")

    res = await indexer.upsert(str(f))

    assert res.data["action"] == "created"
    assert res.data["asset"]["thumbnail_path"] is None


def test_build_metadata_shape():
    meta = build_metadata("/lib/a/b.usd", FileStat(size=1, mtime=0.0, birthtime=0.0))
    assert meta == {
        "directory": "/lib/a",
        "extension": ".usd",
        "estimated": True,
        "createdAt": "1970-01-01T00:00:00Z",
        "modifiedAt": "1970-01-01T00:00:00Z",
    }
