"""
In-memory Asset/Folder repository.

Rows live in insertion-ordered dicts keyed by synthetic id, with a secondary
unique index on the natural key (asset filepath / folder path). Path-keyed
lookups are exact; folder/type/search queries are linear scans.
"""
from __future__ import annotations

import copy
import json
import os
import threading
from dataclasses import fields
from typing import Any

from ...shared import get_logger, now
from .base import AssetRepository, DuplicatePathError, ImmutableFieldError, RepositoryError
from .records import (
    ASSET_IMMUTABLE_FIELDS,
    FOLDER_IMMUTABLE_FIELDS,
    Asset,
    Folder,
    dedupe_tags,
)

logger = get_logger(__name__)

_ASSET_FIELDS = frozenset(f.name for f in fields(Asset))
_FOLDER_FIELDS = frozenset(f.name for f in fields(Folder))


def _folder_prefix(folder_path: str) -> str:
    base = os.path.normpath(folder_path)
    return base if base.endswith(os.sep) else base + os.sep


def _check_changes(changes: dict[str, Any], known: frozenset[str], immutable: frozenset[str]) -> None:
    keys = set(changes or {})
    blocked = keys & immutable
    if blocked:
        raise ImmutableFieldError(blocked)
    unknown = keys - known
    if unknown:
        raise RepositoryError(f"Unknown field(s): {', '.join(sorted(unknown))}")


class MemoryRepository(AssetRepository):
    """
    Process-local repository.

    All access goes through a re-entrant lock so watcher callbacks, scans and
    route handlers never observe a half-applied write.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._assets: dict[int, Asset] = {}
        self._folders: dict[int, Folder] = {}
        self._asset_ids_by_path: dict[str, int] = {}
        self._folder_ids_by_path: dict[str, int] = {}
        self._next_asset_id = 1
        self._next_folder_id = 1

    # ==================== Assets ====================

    def get_asset(self, asset_id: int) -> Asset | None:
        with self._lock:
            asset = self._assets.get(asset_id)
            return copy.deepcopy(asset) if asset else None

    def list_assets(self) -> list[Asset]:
        with self._lock:
            return [copy.deepcopy(a) for a in self._assets.values()]

    def list_assets_by_folder(self, folder_path: str) -> list[Asset]:
        prefix = _folder_prefix(folder_path)
        with self._lock:
            return [copy.deepcopy(a) for a in self._assets.values() if a.filepath.startswith(prefix)]

    def list_assets_by_type(self, filetype: str) -> list[Asset]:
        wanted = str(filetype or "").strip().lower()
        if wanted and not wanted.startswith("."):
            wanted = "." + wanted
        with self._lock:
            return [copy.deepcopy(a) for a in self._assets.values() if a.filetype == wanted]

    def search_assets(self, query: str) -> list[Asset]:
        needle = str(query or "").lower()
        with self._lock:
            return [copy.deepcopy(a) for a in self._assets.values() if self._matches(a, needle)]

    @staticmethod
    def _matches(asset: Asset, needle: str) -> bool:
        if needle in asset.filename.lower():
            return True
        if any(needle in tag.lower() for tag in asset.tags):
            return True
        if asset.metadata:
            blob = json.dumps(asset.metadata, ensure_ascii=False, default=str)
            return needle in blob.lower()
        return False

    def create_asset(
        self,
        *,
        filename: str,
        filepath: str,
        filesize: int,
        filetype: str,
        last_modified: float,
        thumbnail_path: str | None = None,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Asset:
        with self._lock:
            if filepath in self._asset_ids_by_path:
                raise DuplicatePathError(filepath)
            asset_id = self._next_asset_id
            self._next_asset_id += 1
            asset = Asset(
                id=asset_id,
                filename=filename,
                filepath=filepath,
                filesize=int(filesize),
                filetype=filetype,
                last_modified=float(last_modified),
                created_at=now(),
                thumbnail_path=thumbnail_path,
                tags=dedupe_tags(tags),
                metadata=copy.deepcopy(metadata or {}),
            )
            self._assets[asset_id] = asset
            self._asset_ids_by_path[filepath] = asset_id
            return copy.deepcopy(asset)

    def update_asset(self, asset_id: int, changes: dict[str, Any]) -> Asset | None:
        _check_changes(changes, _ASSET_FIELDS, ASSET_IMMUTABLE_FIELDS)
        with self._lock:
            asset = self._assets.get(asset_id)
            if asset is None:
                return None
            for key, value in changes.items():
                if key == "tags":
                    value = dedupe_tags(value)
                elif key == "metadata":
                    value = copy.deepcopy(value or {})
                setattr(asset, key, value)
            return copy.deepcopy(asset)

    def delete_asset(self, asset_id: int) -> bool:
        with self._lock:
            asset = self._assets.pop(asset_id, None)
            if asset is None:
                return False
            self._asset_ids_by_path.pop(asset.filepath, None)
            return True

    def get_asset_by_path(self, filepath: str) -> Asset | None:
        with self._lock:
            asset_id = self._asset_ids_by_path.get(filepath)
            if asset_id is None:
                return None
            return copy.deepcopy(self._assets[asset_id])

    def delete_assets_under(self, folder_path: str) -> int:
        prefix = _folder_prefix(folder_path)
        with self._lock:
            doomed = [a.id for a in self._assets.values() if a.filepath.startswith(prefix)]
            for asset_id in doomed:
                self.delete_asset(asset_id)
        if doomed:
            logger.debug("Cleared %d asset(s) under %s", len(doomed), folder_path)
        return len(doomed)

    # ==================== Folders ====================

    def get_folder(self, folder_id: int) -> Folder | None:
        with self._lock:
            folder = self._folders.get(folder_id)
            return copy.deepcopy(folder) if folder else None

    def list_folders(self) -> list[Folder]:
        with self._lock:
            return [copy.deepcopy(f) for f in self._folders.values()]

    def get_folder_by_path(self, path: str) -> Folder | None:
        with self._lock:
            folder_id = self._folder_ids_by_path.get(path)
            if folder_id is None:
                return None
            return copy.deepcopy(self._folders[folder_id])

    def list_direct_children(self, parent_path: str) -> list[Folder]:
        parent = os.path.normpath(parent_path)
        with self._lock:
            return [
                copy.deepcopy(f)
                for f in self._folders.values()
                if f.path != parent and os.path.dirname(f.path) == parent
            ]

    def create_folder(
        self,
        *,
        path: str,
        name: str,
        parent_id: int | None = None,
        is_watched: bool = False,
        last_scanned: float | None = None,
    ) -> Folder:
        with self._lock:
            if path in self._folder_ids_by_path:
                raise DuplicatePathError(path)
            folder_id = self._next_folder_id
            self._next_folder_id += 1
            folder = Folder(
                id=folder_id,
                path=path,
                name=name,
                parent_id=parent_id,
                is_watched=bool(is_watched),
                last_scanned=last_scanned,
            )
            self._folders[folder_id] = folder
            self._folder_ids_by_path[path] = folder_id
            return copy.deepcopy(folder)

    def update_folder(self, folder_id: int, changes: dict[str, Any]) -> Folder | None:
        _check_changes(changes, _FOLDER_FIELDS, FOLDER_IMMUTABLE_FIELDS)
        with self._lock:
            folder = self._folders.get(folder_id)
            if folder is None:
                return None
            for key, value in changes.items():
                setattr(folder, key, value)
            return copy.deepcopy(folder)

    def delete_folder(self, folder_id: int) -> bool:
        with self._lock:
            folder = self._folders.pop(folder_id, None)
            if folder is None:
                return False
            self._folder_ids_by_path.pop(folder.path, None)
            return True
