import sys

import pytest
import pytest_asyncio

from repo_root import REPO_ROOT

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


class FakeObserver:
    """Stands in for a watchdog observer; tests drive the handlers directly."""

    def __init__(self):
        self.started = False
        self.stopped = False
        self.joined = False
        self.scheduled = []
        self.unscheduled = []

    def schedule(self, handler, path, recursive=True):
        watch = {"handler": handler, "path": path, "recursive": recursive}
        self.scheduled.append(watch)
        return watch

    def unschedule(self, watch):
        self.unscheduled.append(watch)

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=0):
        _ = timeout
        self.joined = True

    def handler_for(self, path):
        for watch in reversed(self.scheduled):
            if watch["path"] == str(path) and watch not in self.unscheduled:
                return watch["handler"]
        return None


@pytest.fixture
def observer():
    return FakeObserver()


@pytest.fixture
def repository():
    from am3d_backend.adapters.store import MemoryRepository

    return MemoryRepository()


@pytest_asyncio.fixture
async def services(tmp_path, observer):
    from am3d_backend.deps import build_services

    svc_res = build_services(
        thumbnail_dir=tmp_path / "thumbnails",
        watcher_enabled=True,
        observer_factory=lambda: observer,
    )
    assert svc_res.ok, svc_res.error
    svc = svc_res.data
    try:
        yield svc
    finally:
        await svc["library"].close()


@pytest.fixture
def library_root(tmp_path):
    root = tmp_path / "library"
    root.mkdir()
    return root
