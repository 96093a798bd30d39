"""
Asset indexer - the create/update/no-op decision for one filesystem path.

A path is created when unknown, refreshed only when the observed mtime is
strictly newer than the stored one, and otherwise left alone. Tags and
metadata are written once on create and never touched by later refreshes,
since users may have edited them.
"""
import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from ...adapters.store import AssetRepository, RepositoryError
from ...adapters.thumbnails import PlaceholderThumbnails
from ...shared import ErrorCode, Result, format_timestamp, get_logger
from .path_policy import file_extension, is_supported_asset, normalize_path
from .tagging import infer_tags

logger = get_logger(__name__)

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_UNCHANGED = "unchanged"
ACTION_SKIPPED = "skipped"


@dataclass(frozen=True)
class FileStat:
    """The slice of ``os.stat`` the index cares about."""

    size: int
    mtime: float
    birthtime: float

    @classmethod
    def from_os_stat(cls, st: os.stat_result) -> "FileStat":
        birth = getattr(st, "st_birthtime", None)
        return cls(
            size=int(st.st_size),
            mtime=float(st.st_mtime),
            birthtime=float(birth if birth is not None else st.st_ctime),
        )


def stat_file(path: str) -> FileStat:
    return FileStat.from_os_stat(os.stat(path))


def build_metadata(path: str, stat: FileStat) -> dict[str, Any]:
    """Inferred (not parsed) metadata for a newly indexed file."""
    return {
        "directory": os.path.dirname(path),
        "extension": file_extension(path),
        "estimated": True,
        "createdAt": format_timestamp(stat.birthtime),
        "modifiedAt": format_timestamp(stat.mtime),
    }


class AssetIndexer:
    """
    Reconciles one path at a time into the repository.

    Every read-decide-write sequence runs under a per-path lock, so a watcher
    event and a manual scan touching the same file never interleave.
    """

    def __init__(self, repository: AssetRepository, thumbnails: PlaceholderThumbnails | None = None):
        self.repository = repository
        self.thumbnails = thumbnails
        self._path_locks: dict[str, list[Any]] = {}  # path -> [lock, users]

    @asynccontextmanager
    async def lock_for_path(self, path: str) -> AsyncIterator[None]:
        """Async context manager that serializes work per asset path."""
        entry = self._path_locks.get(path)
        if entry is None:
            entry = [asyncio.Lock(), 0]
            self._path_locks[path] = entry
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] <= 0 and self._path_locks.get(path) is entry:
                self._path_locks.pop(path, None)

    async def upsert(self, path: str, stat: FileStat | None = None) -> Result[dict[str, Any]]:
        """
        Create or refresh the Asset for ``path``.

        Args:
            path: Asset file path
            stat: Pre-fetched stat info (the walker passes its own); stat'ed
                here when omitted

        Returns:
            Result with ``action`` (created, updated, unchanged or skipped)
            and the asset dict when one exists
        """
        if not path:
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing asset path")
        filepath = normalize_path(path)
        if not is_supported_asset(filepath):
            return Result.Ok({"action": ACTION_SKIPPED, "filepath": filepath}, reason="unsupported")

        async with self.lock_for_path(filepath):
            if stat is None:
                try:
                    stat = await asyncio.to_thread(stat_file, filepath)
                except OSError as exc:
                    logger.warning("Skipping %s: cannot stat (%s)", filepath, exc)
                    return Result.Ok({"action": ACTION_SKIPPED, "filepath": filepath}, reason="stat_failed")

            existing = self.repository.get_asset_by_path(filepath)
            try:
                if existing is None:
                    return await self._create(filepath, stat)
                if stat.mtime > existing.last_modified:
                    return await self._refresh(existing.id, filepath, stat)
            except RepositoryError as exc:
                logger.warning("Index write rejected for %s: %s", filepath, exc)
                return Result.Err(ErrorCode.CONFLICT, str(exc))
            return Result.Ok({"action": ACTION_UNCHANGED, "asset": existing.to_dict()})

    async def _create(self, filepath: str, stat: FileStat) -> Result[dict[str, Any]]:
        thumbnail_path = await self._thumbnail(filepath)
        asset = self.repository.create_asset(
            filename=os.path.basename(filepath),
            filepath=filepath,
            filesize=stat.size,
            filetype=file_extension(filepath),
            last_modified=stat.mtime,
            thumbnail_path=thumbnail_path,
            tags=infer_tags(filepath),
            metadata=build_metadata(filepath, stat),
        )
        logger.debug("Indexed %s (id=%s)", filepath, asset.id)
        return Result.Ok({"action": ACTION_CREATED, "asset": asset.to_dict()})

    async def _refresh(self, asset_id: int, filepath: str, stat: FileStat) -> Result[dict[str, Any]]:
        thumbnail_path = await self._thumbnail(filepath)
        asset = self.repository.update_asset(
            asset_id,
            {"filesize": stat.size, "last_modified": stat.mtime, "thumbnail_path": thumbnail_path},
        )
        if asset is None:
            # Deleted between the lookup and the write (e.g. through the API).
            return Result.Ok({"action": ACTION_SKIPPED, "filepath": filepath}, reason="vanished")
        logger.debug("Refreshed %s (id=%s)", filepath, asset_id)
        return Result.Ok({"action": ACTION_UPDATED, "asset": asset.to_dict()})

    async def _thumbnail(self, filepath: str) -> str | None:
        if self.thumbnails is None:
            return None
        return await asyncio.to_thread(self.thumbnails.generate, filepath)

    async def remove(self, path: str) -> Result[dict[str, Any]]:
        """Drop the Asset backed by ``path`` if one is indexed."""
        if not path:
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing asset path")
        filepath = normalize_path(path)
        async with self.lock_for_path(filepath):
            asset = self.repository.get_asset_by_path(filepath)
            if asset is None:
                return Result.Ok({"removed": False, "filepath": filepath})
            self.repository.delete_asset(asset.id)
        logger.debug("Removed %s (id=%s)", filepath, asset.id)
        return Result.Ok({"removed": True, "filepath": filepath, "id": asset.id})
