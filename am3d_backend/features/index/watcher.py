"""
Live folder watcher.

Each watch root gets its own watchdog handler scheduled on one shared
observer. Handlers run on the observer thread and only translate raw
filesystem events into ``ChangeEvent`` records, which are handed to the event
loop and applied one at a time by a single consumer task.
"""
import asyncio
import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler, FileSystemMovedEvent
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from ...adapters.store import AssetRepository, DuplicatePathError
from ...shared import ErrorCode, Result, get_logger, log_success
from .fs_walker import DirectoryWalker
from .indexer import AssetIndexer
from .path_policy import is_hidden_path, is_supported_asset, normalize_path

logger = get_logger(__name__)

EVENT_CREATED = "created"
EVENT_MODIFIED = "modified"
EVENT_DELETED = "deleted"


class WatchToken:
    """Liveness flag shared by a root's handler and every event it emits."""

    __slots__ = ("root", "active")

    def __init__(self, root: str):
        self.root = root
        self.active = True

    def revoke(self) -> None:
        self.active = False


@dataclass(frozen=True)
class ChangeEvent:
    kind: str
    path: str
    root: str
    token: WatchToken


class RootEventHandler(FileSystemEventHandler):
    """
    Filters raw events for one watch root.

    - Ignores directories (only a fresh walk discovers new subfolders)
    - Ignores hidden paths and unsupported extensions
    - Splits moves into delete(src) + create(dest)
    """

    def __init__(self, root: str, token: WatchToken, emit: Callable[[ChangeEvent], None]):
        super().__init__()
        self.root = root
        self.token = token
        self._emit = emit

    def _accepts(self, path: str) -> bool:
        if not path:
            return False
        if is_hidden_path(path, self.root):
            return False
        return is_supported_asset(path)

    def _push(self, kind: str, raw_path: Any) -> None:
        if not self.token.active:
            return
        path = normalize_path(os.fsdecode(raw_path)) if raw_path else ""
        if not self._accepts(path):
            return
        self._emit(ChangeEvent(kind=kind, path=path, root=self.root, token=self.token))

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._push(EVENT_CREATED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._push(EVENT_MODIFIED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._push(EVENT_DELETED, event.src_path)

    def on_moved(self, event: FileSystemMovedEvent) -> None:
        if event.is_directory:
            return
        self._push(EVENT_DELETED, event.src_path)
        self._push(EVENT_CREATED, event.dest_path)


@dataclass
class _WatchEntry:
    root: str
    token: WatchToken
    watch: Any = None


class FolderWatcher:
    """
    Tracks watch roots and keeps the index in sync with their subtrees.

    Usage:
        watcher = FolderWatcher(walker, indexer, repository)
        await watcher.add_watch_folder("/projects/assets")
        ...
        await watcher.stop()
    """

    def __init__(
        self,
        walker: DirectoryWalker,
        indexer: AssetIndexer,
        repository: AssetRepository,
        observer_factory: Callable[[], Any] | None = None,
        *,
        enabled: bool = True,
        polling: bool = False,
        poll_interval: float = 1.0,
        stop_timeout: float = 2.0,
    ):
        self.walker = walker
        self.indexer = indexer
        self.repository = repository
        self.enabled = bool(enabled)
        self._observer_factory = observer_factory or self._default_observer_factory(polling, poll_interval)
        self._stop_timeout = stop_timeout
        self._observer: Any | None = None
        self._roots: dict[str, _WatchEntry] = {}
        self._transition_lock = asyncio.Lock()
        self._dispatch_lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[ChangeEvent] | None = None
        self._consumer: asyncio.Task | None = None

    @staticmethod
    def _default_observer_factory(polling: bool, poll_interval: float) -> Callable[[], Any]:
        if polling:
            return lambda: PollingObserver(timeout=poll_interval)
        return Observer

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def is_watching(self, path: str) -> bool:
        return normalize_path(path) in self._roots if path else False

    def list_watched_folders(self) -> list[str]:
        return sorted(self._roots)

    async def add_watch_folder(self, path: str) -> Result[dict[str, Any]]:
        """
        Start watching ``path``: record its Folder, walk it once, then subscribe.

        A root that is already watched is left alone. A root that does not
        exist yet stays tracked in the repository but is reported as
        ``WATCH_FAILED``; calling again once it exists starts the watch.
        """
        if not path or not isinstance(path, str) or not path.strip():
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing folder path")
        root = normalize_path(path)

        async with self._transition_lock:
            entry = self._roots.get(root)
            if entry is not None:
                return Result.Ok({"root": root, "watching": entry.watch is not None, "already_watching": True})

            self._track_root(root)
            if not os.path.isdir(root):
                logger.warning("Watch root does not exist (yet): %s", root)
                return Result.Err(ErrorCode.WATCH_FAILED, f"Folder does not exist: {root}", tracked=True)

            scan = await self.walker.walk(root)
            if not scan.ok:
                return scan

            entry = _WatchEntry(root=root, token=WatchToken(root))
            if self.enabled:
                try:
                    entry.watch = self._schedule(entry)
                except OSError as exc:
                    logger.warning("Failed to watch %s: %s", root, exc)
                    return Result.Err(ErrorCode.WATCH_FAILED, f"Cannot watch {root}: {exc}", tracked=True)
            self._roots[root] = entry

        if entry.watch is not None:
            log_success(logger, f"Watcher started for: {root}")
        else:
            logger.info("Watcher disabled; indexed %s without live updates", root)
        return Result.Ok({"root": root, "watching": entry.watch is not None, "scan": scan.data})

    async def remove_watch_folder(self, path: str) -> Result[dict[str, Any]]:
        """
        Stop watching ``path``. Removing an unwatched root is a no-op.

        Indexed assets and descendant folders are kept. Once this returns, no
        event from the removed watch is applied.
        """
        if not path or not isinstance(path, str) or not path.strip():
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing folder path")
        root = normalize_path(path)

        async with self._transition_lock:
            entry = self._roots.pop(root, None)
            if entry is not None:
                entry.token.revoke()
                await self._unschedule(entry)
                # Barrier: wait out an event from this root that is mid-apply.
                async with self._dispatch_lock:
                    pass
                logger.info("Watcher removed: %s", root)

            folder = self.repository.get_folder_by_path(root)
            if folder is not None and folder.is_watched:
                self.repository.update_folder(folder.id, {"is_watched": False})

        return Result.Ok({"root": root, "removed": entry is not None})

    async def wait_idle(self) -> None:
        """Wait until every event handed to the loop so far has been applied."""
        queue = self._queue
        if queue is None:
            return
        # Let pending call_soon_threadsafe hand-offs land in the queue first.
        await asyncio.sleep(0)
        await queue.join()

    async def stop(self) -> None:
        """Tear down every watch, the observer and the consumer task."""
        for entry in self._roots.values():
            entry.token.revoke()
        self._roots.clear()

        observer, self._observer = self._observer, None
        if observer is not None:
            try:
                await asyncio.to_thread(self._stop_observer, observer, self._stop_timeout)
            except Exception as exc:
                logger.debug("Watcher stop error: %s", exc)

        consumer, self._consumer = self._consumer, None
        if consumer is not None:
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass
        self._queue = None
        self._loop = None
        if observer is not None:
            logger.info("File watcher stopped")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _track_root(self, root: str) -> None:
        folder = self.repository.get_folder_by_path(root)
        if folder is not None:
            if not folder.is_watched:
                self.repository.update_folder(folder.id, {"is_watched": True})
            return
        try:
            self.repository.create_folder(
                path=root,
                name=os.path.basename(root) or root,
                parent_id=None,
                is_watched=True,
            )
        except DuplicatePathError:
            pass

    def _ensure_started(self) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
            self._queue = asyncio.Queue()
            self._consumer = self._loop.create_task(self._consume(self._queue))
        if self._observer is None:
            observer = self._observer_factory()
            observer.start()
            self._observer = observer

    def _schedule(self, entry: _WatchEntry) -> Any:
        self._ensure_started()
        handler = RootEventHandler(entry.root, entry.token, self._emit_threadsafe)
        return self._observer.schedule(handler, entry.root, recursive=True)

    async def _unschedule(self, entry: _WatchEntry) -> None:
        observer = self._observer
        if observer is None or entry.watch is None:
            return
        try:
            await asyncio.to_thread(observer.unschedule, entry.watch)
        except (KeyError, OSError) as exc:
            logger.debug("Unschedule failed for %s: %s", entry.root, exc)

    @staticmethod
    def _stop_observer(observer: Any, timeout: float) -> None:
        observer.stop()
        observer.join(timeout=timeout)

    def _emit_threadsafe(self, event: ChangeEvent) -> None:
        """Called from the observer thread."""
        loop, queue = self._loop, self._queue
        if loop is None or queue is None:
            return
        try:
            loop.call_soon_threadsafe(queue.put_nowait, event)
        except RuntimeError:
            # Loop already closed during shutdown.
            logger.debug("Dropped %s event for %s (loop closed)", event.kind, event.path)

    async def _consume(self, queue: "asyncio.Queue[ChangeEvent]") -> None:
        while True:
            event = await queue.get()
            try:
                await self._apply(event)
            except Exception:
                logger.exception("Watcher failed to apply %s event for %s", event.kind, event.path)
            finally:
                queue.task_done()

    async def _apply(self, event: ChangeEvent) -> None:
        async with self._dispatch_lock:
            if not event.token.active:
                return
            if event.kind == EVENT_DELETED:
                res = await self.indexer.remove(event.path)
            else:
                res = await self.indexer.upsert(event.path)
            if not res.ok:
                logger.warning("Watcher %s event for %s failed: %s", event.kind, event.path, res.error)
