"""
Library service - the operations the HTTP layer (or any other caller) uses.

This service coordinates the specialized components:
- DirectoryWalker: on-demand scans and folder summaries
- AssetIndexer: per-path create/update/remove decisions
- FolderWatcher: live watch roots
- AssetRepository: reads and user edits

Every method returns a Result; nothing here raises for expected failures.
"""
import asyncio
import logging
import os
from pathlib import Path
from typing import Any

from ...adapters.store import AssetRepository, RepositoryError
from ...adapters.thumbnails import PlaceholderThumbnails
from ...shared import ErrorCode, Result, get_logger, log_structured, log_success, ms, sanitize_error_message
from .fs_walker import DirectoryWalker
from .indexer import AssetIndexer
from .path_policy import is_under, normalize_path
from .watcher import FolderWatcher

logger = get_logger(__name__)

MAX_TAG_LENGTH = 100
MAX_TAGS_PER_ASSET = 50
EDITABLE_ASSET_FIELDS = frozenset({"tags", "metadata"})


def sanitize_tags(tags: list[Any]) -> list[str]:
    """Strip, drop empty or oversized entries, de-duplicate keeping order."""
    sanitized: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        if not tag or len(tag) > MAX_TAG_LENGTH:
            continue
        if tag not in sanitized:
            sanitized.append(tag)
    return sanitized


def _missing_path(path: Any) -> bool:
    return not path or not isinstance(path, str) or not path.strip()


class LibraryService:
    """Facade over the index components."""

    def __init__(
        self,
        repository: AssetRepository,
        indexer: AssetIndexer,
        walker: DirectoryWalker,
        watcher: FolderWatcher,
        thumbnails: PlaceholderThumbnails | None = None,
    ):
        self.repository = repository
        self.indexer = indexer
        self.walker = walker
        self.watcher = watcher
        self.thumbnails = thumbnails

    # ------------------------------------------------------------------
    # Scans and watch roots
    # ------------------------------------------------------------------

    async def scan_folder(self, path: str, rebuild: bool = False) -> Result[dict[str, Any]]:
        """
        Walk ``path`` and bring its subtree of the index up to date.

        Assets under the subtree whose files are gone are removed. With
        ``rebuild`` the subtree's assets are dropped first and re-created by
        the walk. Assets outside the subtree are never touched.

        Args:
            path: Root directory to scan
            rebuild: Clear the subtree before walking

        Returns:
            Result with ``asset_count`` and walk statistics
        """
        if _missing_path(path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing folder path")
        root = normalize_path(path)
        if not os.path.isdir(root):
            return Result.Err(ErrorCode.NOT_FOUND, f"Folder does not exist: {root}")

        start = ms()
        cleared = self.repository.delete_assets_under(root) if rebuild else 0
        seen: set[str] = set()
        try:
            walked = await self.walker.walk(root, seen)
            if not walked.ok:
                return walked
            pruned = await self._prune_missing(root, seen)
        except OSError as exc:
            logger.warning("Scan of %s failed: %s", root, exc)
            return Result.Err(ErrorCode.SCAN_FAILED, sanitize_error_message(exc, "Scan failed"))

        stats = dict(walked.data or {})
        stats.update({"cleared": cleared, "removed": pruned, "rebuild": bool(rebuild)})
        duration_ms = ms() - start
        log_structured(logger, logging.DEBUG, "scan_folder", **stats, duration_ms=duration_ms)
        log_success(logger, f"Scanned {root}: {stats['asset_count']} assets in {duration_ms}ms")
        return Result.Ok(stats, duration_ms=duration_ms)

    async def _prune_missing(self, root: str, seen: set[str]) -> int:
        removed = 0
        for asset in self.repository.list_assets_by_folder(root):
            if asset.filepath in seen:
                continue
            exists = await asyncio.to_thread(os.path.exists, asset.filepath)
            if exists:
                # Indexed by the watcher in a place the walk does not descend into.
                continue
            res = await self.indexer.remove(asset.filepath)
            if res.ok and (res.data or {}).get("removed"):
                removed += 1
        return removed

    async def folder_info(self, path: str) -> Result[dict[str, Any]]:
        """Summarize a directory on disk next to what the index holds for it."""
        if _missing_path(path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing folder path")
        root = normalize_path(path)
        summary = await asyncio.to_thread(self.walker.summarize, root)
        folder = self.repository.get_folder_by_path(root)
        summary["indexed_count"] = len(self.repository.list_assets_by_folder(root))
        summary["folder"] = folder.to_dict() if folder else None
        summary["watching"] = self.watcher.is_watching(root)
        return Result.Ok(summary)

    async def add_watch_folder(self, path: str) -> Result[dict[str, Any]]:
        return await self.watcher.add_watch_folder(path)

    async def remove_watch_folder(self, path: str) -> Result[dict[str, Any]]:
        return await self.watcher.remove_watch_folder(path)

    def list_watched_folders(self) -> Result[list[str]]:
        return Result.Ok(self.watcher.list_watched_folders())

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def get_asset(self, asset_id: int) -> Result[dict[str, Any]]:
        asset = self.repository.get_asset(asset_id)
        if asset is None:
            return Result.Err(ErrorCode.NOT_FOUND, f"Asset not found: {asset_id}")
        return Result.Ok(asset.to_dict())

    def list_assets(
        self,
        filetype: str | None = None,
        folder: str | None = None,
        query: str | None = None,
    ) -> Result[list[dict[str, Any]]]:
        """List assets, optionally narrowed by type, folder prefix and search text."""
        if query:
            assets = self.repository.search_assets(query)
        elif folder:
            assets = self.repository.list_assets_by_folder(normalize_path(folder))
        elif filetype:
            assets = self.repository.list_assets_by_type(filetype)
        else:
            assets = self.repository.list_assets()

        if folder and query:
            root = normalize_path(folder)
            assets = [a for a in assets if is_under(a.filepath, root)]
        if filetype and (folder or query):
            wanted = filetype.lower() if filetype.startswith(".") else f".{filetype.lower()}"
            assets = [a for a in assets if a.filetype == wanted]
        return Result.Ok([a.to_dict() for a in assets], total=len(assets))

    def list_assets_by_folder(self, folder_path: str) -> Result[list[dict[str, Any]]]:
        if _missing_path(folder_path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing folder path")
        assets = self.repository.list_assets_by_folder(normalize_path(folder_path))
        return Result.Ok([a.to_dict() for a in assets], total=len(assets))

    def list_assets_by_type(self, filetype: str) -> Result[list[dict[str, Any]]]:
        if not filetype:
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing file type")
        assets = self.repository.list_assets_by_type(filetype)
        return Result.Ok([a.to_dict() for a in assets], total=len(assets))

    def search_assets(self, query: str) -> Result[list[dict[str, Any]]]:
        if not query or not query.strip():
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing search query")
        assets = self.repository.search_assets(query.strip())
        return Result.Ok([a.to_dict() for a in assets], total=len(assets))

    async def update_asset(self, asset_id: int, changes: dict[str, Any]) -> Result[dict[str, Any]]:
        """
        Apply a user edit to ``tags`` and/or ``metadata``.

        Tags are sanitized; metadata replaces the stored blob wholesale. Any
        other field is rejected.
        """
        if not isinstance(changes, dict) or not changes:
            return Result.Err(ErrorCode.INVALID_INPUT, "No changes provided")
        rejected = sorted(set(changes) - EDITABLE_ASSET_FIELDS)
        if rejected:
            return Result.Err(ErrorCode.INVALID_INPUT, f"Fields cannot be edited: {', '.join(rejected)}")

        clean: dict[str, Any] = {}
        if "tags" in changes:
            tags = changes["tags"]
            if not isinstance(tags, list):
                return Result.Err(ErrorCode.INVALID_INPUT, "tags must be a list of strings")
            clean["tags"] = sanitize_tags(tags)[:MAX_TAGS_PER_ASSET]
        if "metadata" in changes:
            metadata = changes["metadata"]
            if not isinstance(metadata, dict):
                return Result.Err(ErrorCode.INVALID_INPUT, "metadata must be an object")
            clean["metadata"] = metadata

        asset = self.repository.get_asset(asset_id)
        if asset is None:
            return Result.Err(ErrorCode.NOT_FOUND, f"Asset not found: {asset_id}")
        async with self.indexer.lock_for_path(asset.filepath):
            try:
                updated = self.repository.update_asset(asset_id, clean)
            except RepositoryError as exc:
                return Result.Err(ErrorCode.UPDATE_FAILED, sanitize_error_message(exc, "Update failed"))
        if updated is None:
            return Result.Err(ErrorCode.NOT_FOUND, f"Asset not found: {asset_id}")
        return Result.Ok(updated.to_dict())

    async def delete_asset(self, asset_id: int) -> Result[dict[str, Any]]:
        """Forget an asset. The file on disk is left alone."""
        asset = self.repository.get_asset(asset_id)
        if asset is None:
            return Result.Err(ErrorCode.NOT_FOUND, f"Asset not found: {asset_id}")
        async with self.indexer.lock_for_path(asset.filepath):
            deleted = self.repository.delete_asset(asset_id)
        if not deleted:
            return Result.Err(ErrorCode.NOT_FOUND, f"Asset not found: {asset_id}")
        return Result.Ok({"deleted": True, "id": asset_id})

    def open_asset(self, asset_id: int) -> Result[Path]:
        """Resolve the backing file of an asset for streaming."""
        asset = self.repository.get_asset(asset_id)
        if asset is None:
            return Result.Err(ErrorCode.NOT_FOUND, f"Asset not found: {asset_id}")
        path = Path(asset.filepath)
        if not path.is_file():
            return Result.Err(ErrorCode.NOT_FOUND, "Asset file is missing on disk", filepath=asset.filepath)
        return Result.Ok(path)

    def open_thumbnail(self, filename: str) -> Result[Path]:
        """Resolve a thumbnail file by name, confined to the thumbnail directory."""
        if self.thumbnails is None:
            return Result.Err(ErrorCode.SERVICE_UNAVAILABLE, "Thumbnails are disabled")
        if not filename or filename != os.path.basename(filename) or filename.startswith("."):
            return Result.Err(ErrorCode.INVALID_INPUT, "Invalid thumbnail name")
        path = self.thumbnails.output_dir / filename
        if not path.is_file():
            return Result.Err(ErrorCode.NOT_FOUND, f"Thumbnail not found: {filename}")
        return Result.Ok(path)

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def get_folder(self, folder_id: int) -> Result[dict[str, Any]]:
        folder = self.repository.get_folder(folder_id)
        if folder is None:
            return Result.Err(ErrorCode.NOT_FOUND, f"Folder not found: {folder_id}")
        return Result.Ok(folder.to_dict())

    def get_folder_by_path(self, path: str) -> Result[dict[str, Any]]:
        if _missing_path(path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing folder path")
        folder = self.repository.get_folder_by_path(normalize_path(path))
        if folder is None:
            return Result.Err(ErrorCode.NOT_FOUND, f"Folder not indexed: {path}")
        return Result.Ok(folder.to_dict())

    def list_folders(self) -> Result[list[dict[str, Any]]]:
        folders = self.repository.list_folders()
        return Result.Ok([f.to_dict() for f in folders], total=len(folders))

    def list_direct_children(self, parent_path: str) -> Result[list[dict[str, Any]]]:
        if _missing_path(parent_path):
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing folder path")
        folders = self.repository.list_direct_children(normalize_path(parent_path))
        return Result.Ok([f.to_dict() for f in folders], total=len(folders))

    async def close(self) -> None:
        await self.watcher.stop()
