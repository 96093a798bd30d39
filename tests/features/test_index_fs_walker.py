import os
from pathlib import Path

import pytest

from am3d_backend.adapters.store import MemoryRepository
from am3d_backend.features.index import fs_walker as fw
from am3d_backend.features.index.indexer import AssetIndexer


def _write(path: Path, data: bytes = b"x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def _walker(max_depth: int = fw.MAX_SCAN_DEPTH) -> fw.DirectoryWalker:
    repo = MemoryRepository()
    return fw.DirectoryWalker(repo, AssetIndexer(repo), max_depth=max_depth)


def _tree(root: Path) -> None:
    _write(root / "a.fbx")
    _write(root / "Sub" / "b.obj")
    _write(root / "notes.txt")
    _write(root / ".e.fbx")
    _write(root / ".hidden" / "c.fbx")
    _write(root / "node_modules" / "d.fbx")
    (root / "Empty").mkdir()


def test_iter_entries_skips_ignored_dirs_hidden_and_unsupported_files(library_root: Path) -> None:
    _tree(library_root)

    entries = list(_walker().iter_entries(str(library_root)))

    files = {os.path.relpath(e.path, library_root) for e in entries if not e.is_dir}
    dirs = {os.path.relpath(e.path, library_root) for e in entries if e.is_dir}
    assert files == {"a.fbx", os.path.join("Sub", "b.obj")}
    assert dirs == {"Sub", "Empty"}
    by_path = {os.path.basename(e.path): e for e in entries}
    assert by_path["a.fbx"].depth == 0
    assert by_path["b.obj"].depth == 1
    assert by_path["Sub"].stat is None
    assert by_path["a.fbx"].stat.size == 1


def test_iter_entries_does_not_descend_past_max_depth(library_root: Path) -> None:
    _write(library_root / "l1" / "y.fbx")
    _write(library_root / "l1" / "l2" / "x.fbx")

    entries = list(_walker(max_depth=1).iter_entries(str(library_root)))

    names = {os.path.basename(e.path) for e in entries}
    assert names == {"l1", "y.fbx", "l2"}


def test_iter_entries_stops_symlink_cycles_at_the_depth_bound(library_root: Path) -> None:
    _write(library_root / "a.fbx")
    os.symlink(library_root, library_root / "loop", target_is_directory=True)

    entries = list(_walker(max_depth=3).iter_entries(str(library_root)))

    assert len([e for e in entries if not e.is_dir]) == 4
    assert max(e.depth for e in entries) == 4


def test_iter_entries_reports_unreadable_directories_and_continues(library_root: Path, monkeypatch) -> None:
    _write(library_root / "locked" / "x.fbx")
    _write(library_root / "open" / "y.fbx")
    real_scandir = os.scandir

    def _scandir(path):
        if str(path).endswith("locked"):
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(fw.os, "scandir", _scandir)
    errors = []

    entries = list(_walker().iter_entries(str(library_root), lambda p, e: errors.append(p)))

    assert {os.path.basename(e.path) for e in entries if not e.is_dir} == {"y.fbx"}
    assert errors == [str(library_root / "locked")]


def test_iter_entries_of_missing_root_yields_nothing(tmp_path: Path) -> None:
    assert list(_walker().iter_entries(str(tmp_path / "nope"))) == []


@pytest.mark.asyncio
async def test_walk_indexes_assets_and_materializes_folders(library_root: Path) -> None:
    _tree(library_root)
    _write(library_root / "Sub" / "Deeper" / "c.glb")
    walker = _walker()
    seen: set[str] = set()

    res = await walker.walk(str(library_root), seen)

    assert res.ok, res.error
    assert res.data["asset_count"] == 3
    assert res.data["created"] == 3
    assert res.data["folders_created"] == 3
    assert res.data["errors"] == 0
    assert seen == {str(library_root / "a.fbx"), str(library_root / "Sub" / "b.obj"), str(library_root / "Sub" / "Deeper" / "c.glb")}

    repo = walker.repository
    root = repo.get_folder_by_path(str(library_root))
    sub = repo.get_folder_by_path(str(library_root / "Sub"))
    deeper = repo.get_folder_by_path(str(library_root / "Sub" / "Deeper"))
    empty = repo.get_folder_by_path(str(library_root / "Empty"))
    assert root.parent_id is None and root.is_watched is True and root.last_scanned is not None
    assert sub.parent_id == root.id and sub.is_watched is False
    assert deeper.parent_id == sub.id
    assert empty is not None
    assert repo.get_folder_by_path(str(library_root / "node_modules")) is None


@pytest.mark.asyncio
async def test_walk_twice_is_idempotent(library_root: Path) -> None:
    _tree(library_root)
    walker = _walker()

    first = await walker.walk(str(library_root))
    before = {a.filepath: (a.id, a.filesize, a.last_modified, a.tags) for a in walker.repository.list_assets()}
    second = await walker.walk(str(library_root))
    after = {a.filepath: (a.id, a.filesize, a.last_modified, a.tags) for a in walker.repository.list_assets()}

    assert first.data["created"] == 2
    assert second.data["created"] == 0
    assert second.data["unchanged"] == 2
    assert second.data["folders_created"] == 0
    assert before == after
    assert len(walker.repository.list_folders()) == 3


@pytest.mark.asyncio
async def test_walk_of_missing_root_tracks_folder_without_assets(tmp_path: Path) -> None:
    walker = _walker()
    missing = tmp_path / "not_yet"

    res = await walker.walk(str(missing))

    assert res.ok
    assert res.data["asset_count"] == 0
    assert res.data["errors"] == 1
    assert walker.repository.get_folder_by_path(str(missing)).is_watched is True


@pytest.mark.asyncio
async def test_walk_rejects_empty_root() -> None:
    res = await _walker().walk("")
    assert res.ok is False
    assert res.code == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_walk_drains_more_entries_than_the_queue_holds(library_root: Path, monkeypatch) -> None:
    monkeypatch.setattr(fw, "WALK_QUEUE_MAX", 3)
    monkeypatch.setattr(fw, "WALK_DRAIN_BATCH", 2)
    for i in range(12):
        _write(library_root / f"item{i:02d}.obj")
    walker = _walker()

    res = await walker.walk(str(library_root))

    assert res.data["asset_count"] == 12
    assert len(walker.repository.list_assets()) == 12


def test_summarize_counts_supported_files(library_root: Path) -> None:
    _write(library_root / "a.fbx", b"1234")
    _write(library_root / "Sub" / "b.obj", b"12")
    _write(library_root / "notes.txt", b"123456789")

    summary = _walker().summarize(str(library_root))

    assert summary == {"path": str(library_root), "exists": True, "asset_count": 2, "total_size": 6}
    assert _walker().summarize(str(library_root / "missing"))["exists"] is False
