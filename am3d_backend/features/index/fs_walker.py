"""
DirectoryWalker - bounded-depth traversal of a watch root.

The traversal itself (``iter_entries``) is a plain generator over an explicit
stack of (path, depth) pairs. ``walk`` runs that generator on a thread-pool
executor, pushing entries into a thread-safe Queue consumed by the event loop,
which materializes Folder rows and hands asset files to the indexer.
"""
import asyncio
import os
import threading
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from queue import Empty, Full, Queue
from typing import Any

from ...adapters.store import AssetRepository, DuplicatePathError
from ...shared import ErrorCode, Result, get_logger, now, timer
from .indexer import ACTION_CREATED, ACTION_SKIPPED, ACTION_UNCHANGED, ACTION_UPDATED, AssetIndexer, FileStat
from .path_policy import MAX_SCAN_DEPTH, is_supported_asset, normalize_path, should_ignore_directory

logger = get_logger(__name__)

_FS_WALK_EXECUTOR = ThreadPoolExecutor(max_workers=2, thread_name_prefix="am3d-fs-walk")

WALK_QUEUE_MAX = 2000
WALK_DRAIN_BATCH = 200
_PUT_POLL_S = 0.1

ErrorSink = Callable[[str, OSError], None]


@dataclass(frozen=True)
class WalkEntry:
    """One discovered directory (``stat`` is None) or supported asset file."""

    path: str
    is_dir: bool
    stat: FileStat | None
    depth: int


class DirectoryWalker:
    """
    Walks a root depth-first and reconciles what it finds into the repository.

    Holds no state between calls; every ``walk`` is a fresh traversal.
    """

    def __init__(self, repository: AssetRepository, indexer: AssetIndexer, max_depth: int = MAX_SCAN_DEPTH):
        self.repository = repository
        self.indexer = indexer
        self.max_depth = max_depth

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def iter_entries(self, root: str, on_error: ErrorSink | None = None) -> Iterator[WalkEntry]:
        """
        Generator - yield subdirectories and supported files below ``root``.

        Symlinked directories are followed; the depth bound is what stops a
        symlink cycle. Unreadable entries are reported to ``on_error`` and
        skipped.
        """
        root = normalize_path(root)
        stack: list[tuple[str, int]] = [(root, 0)]
        while stack:
            current, depth = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as exc:
                _report(on_error, current, exc)
                continue

            subdirs: list[tuple[str, int]] = []
            for entry in entries:
                path = os.path.join(current, entry.name)
                try:
                    if entry.is_dir(follow_symlinks=True):
                        if should_ignore_directory(entry.name):
                            continue
                        yield WalkEntry(path=path, is_dir=True, stat=None, depth=depth + 1)
                        if depth < self.max_depth:
                            subdirs.append((path, depth + 1))
                        continue
                    if entry.name.startswith(".") or not is_supported_asset(entry.name):
                        continue
                    if not entry.is_file(follow_symlinks=True):
                        continue
                    stat = FileStat.from_os_stat(entry.stat(follow_symlinks=True))
                except OSError as exc:
                    _report(on_error, path, exc)
                    continue
                yield WalkEntry(path=path, is_dir=False, stat=stat, depth=depth)

            # Reversed so the stack pops siblings in name order.
            stack.extend(reversed(subdirs))

    def walk_and_enqueue(
        self,
        root: str,
        stop_event: threading.Event,
        q: "Queue[WalkEntry | None]",
        on_error: ErrorSink | None = None,
    ) -> None:
        """Producer running on executor: walks filesystem and pushes entries into queue."""
        try:
            for entry in self.iter_entries(root, on_error):
                if stop_event.is_set() or not _put(q, entry, stop_event):
                    break
        except Exception:
            logger.warning("Filesystem walk failed for %s", root, exc_info=True)
        finally:
            _put(q, None, stop_event)

    @staticmethod
    def drain_queue(q: "Queue[WalkEntry | None]", max_items: int) -> list[WalkEntry | None]:
        """Read one-or-more items from walk queue with bounded non-blocking drain."""
        items: list[WalkEntry | None] = [q.get()]
        limit = max(1, int(max_items or 1))
        while len(items) < limit:
            try:
                items.append(q.get_nowait())
            except Empty:
                break
        return items

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def walk(self, root: str, seen: set[str] | None = None) -> Result[dict[str, Any]]:
        """
        Walk ``root`` once, creating Folder rows and upserting asset files.

        Args:
            root: Directory to walk
            seen: Optional set collecting every asset path the walk observed

        Returns:
            Result with walk statistics
        """
        if not root or not isinstance(root, str):
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing folder path")
        root = normalize_path(root)
        stats: dict[str, Any] = {
            "root": root,
            "asset_count": 0,
            "created": 0,
            "updated": 0,
            "unchanged": 0,
            "skipped": 0,
            "folders_created": 0,
            "errors": 0,
        }
        seen = seen if seen is not None else set()
        self._ensure_root_folder(root)

        walk_errors: list[tuple[str, str]] = []

        def _on_error(path: str, exc: OSError) -> None:
            walk_errors.append((path, str(exc)))

        loop = asyncio.get_running_loop()
        stop_event = threading.Event()
        q: Queue[WalkEntry | None] = Queue(maxsize=WALK_QUEUE_MAX)
        walk_future = loop.run_in_executor(_FS_WALK_EXECUTOR, self.walk_and_enqueue, root, stop_event, q, _on_error)
        try:
            with timer(f"walk {root}", logger):
                done = False
                while not done:
                    for entry in await asyncio.to_thread(self.drain_queue, q, WALK_DRAIN_BATCH):
                        if entry is None:
                            done = True
                            break
                        await self._apply(entry, stats, seen)
        finally:
            stop_event.set()
            try:
                await asyncio.wait_for(walk_future, timeout=2.0)
            except asyncio.TimeoutError:
                logger.debug("Walk producer for %s did not stop in time", root)

        stats["errors"] += len(walk_errors)
        if walk_errors:
            logger.warning("Walk of %s skipped %d unreadable entr%s", root, len(walk_errors), "y" if len(walk_errors) == 1 else "ies")
        return Result.Ok(stats)

    async def _apply(self, entry: WalkEntry, stats: dict[str, Any], seen: set[str]) -> None:
        if entry.is_dir:
            if self._ensure_folder(entry.path):
                stats["folders_created"] += 1
            return

        stats["asset_count"] += 1
        seen.add(entry.path)
        res = await self.indexer.upsert(entry.path, entry.stat)
        if not res.ok:
            stats["errors"] += 1
            return
        action = (res.data or {}).get("action")
        if action in (ACTION_CREATED, ACTION_UPDATED, ACTION_UNCHANGED, ACTION_SKIPPED):
            stats[action] += 1

    def _ensure_root_folder(self, root: str) -> None:
        folder = self.repository.get_folder_by_path(root)
        if folder is not None:
            self.repository.update_folder(folder.id, {"last_scanned": now()})
            return
        try:
            self.repository.create_folder(
                path=root,
                name=os.path.basename(root) or root,
                parent_id=None,
                is_watched=True,
                last_scanned=now(),
            )
        except DuplicatePathError:
            pass

    def _ensure_folder(self, path: str) -> bool:
        """Create the Folder row for ``path`` if missing; True when created."""
        folder = self.repository.get_folder_by_path(path)
        if folder is not None:
            self.repository.update_folder(folder.id, {"last_scanned": now()})
            return False
        parent = self.repository.get_folder_by_path(os.path.dirname(path))
        try:
            self.repository.create_folder(
                path=path,
                name=os.path.basename(path),
                parent_id=parent.id if parent else None,
                is_watched=False,
                last_scanned=now(),
            )
        except DuplicatePathError:
            return False
        return True

    # ------------------------------------------------------------------
    # Read-only summary
    # ------------------------------------------------------------------

    def summarize(self, root: str) -> dict[str, Any]:
        """Count supported files and their total size without touching the index."""
        root = normalize_path(root)
        exists = os.path.isdir(root)
        asset_count = 0
        total_size = 0
        if exists:
            for entry in self.iter_entries(root, lambda p, e: logger.debug("Summary skipped %s: %s", p, e)):
                if entry.is_dir or entry.stat is None:
                    continue
                asset_count += 1
                total_size += entry.stat.size
        return {"path": root, "exists": exists, "asset_count": asset_count, "total_size": total_size}


def _report(on_error: ErrorSink | None, path: str, exc: OSError) -> None:
    logger.warning("Cannot access %s: %s", path, exc)
    if on_error is not None:
        on_error(path, exc)


def _put(q: "Queue[WalkEntry | None]", item: "WalkEntry | None", stop_event: threading.Event) -> bool:
    # Bounded put that gives up once the consumer has gone away.
    while True:
        try:
            q.put(item, timeout=_PUT_POLL_S)
            return True
        except Full:
            if stop_event.is_set():
                return False
