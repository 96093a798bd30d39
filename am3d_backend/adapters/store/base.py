"""
Repository contract.

The engine only ever reaches records through these operations; a durable
backend can replace ``MemoryRepository`` as long as it keeps path uniqueness.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .records import Asset, Folder


class RepositoryError(Exception):
    """Base class for repository contract violations."""


class DuplicatePathError(RepositoryError):
    """Raised when a create would break the unique path (natural key) index."""

    def __init__(self, path: str):
        super().__init__(f"Path already indexed: {path}")
        self.path = path


class ImmutableFieldError(RepositoryError):
    """Raised when an update targets an identity field."""

    def __init__(self, fields: set[str]):
        super().__init__(f"Immutable field(s): {', '.join(sorted(fields))}")
        self.fields = fields


class AssetRepository(ABC):
    """Storage-engine-agnostic Asset/Folder store."""

    # ==================== Assets ====================

    @abstractmethod
    def get_asset(self, asset_id: int) -> Asset | None: ...

    @abstractmethod
    def list_assets(self) -> list[Asset]: ...

    @abstractmethod
    def list_assets_by_folder(self, folder_path: str) -> list[Asset]: ...

    @abstractmethod
    def list_assets_by_type(self, filetype: str) -> list[Asset]: ...

    @abstractmethod
    def search_assets(self, query: str) -> list[Asset]: ...

    @abstractmethod
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
    ) -> Asset: ...

    @abstractmethod
    def update_asset(self, asset_id: int, changes: dict[str, Any]) -> Asset | None: ...

    @abstractmethod
    def delete_asset(self, asset_id: int) -> bool: ...

    @abstractmethod
    def get_asset_by_path(self, filepath: str) -> Asset | None: ...

    @abstractmethod
    def delete_assets_under(self, folder_path: str) -> int: ...

    # ==================== Folders ====================

    @abstractmethod
    def get_folder(self, folder_id: int) -> Folder | None: ...

    @abstractmethod
    def list_folders(self) -> list[Folder]: ...

    @abstractmethod
    def get_folder_by_path(self, path: str) -> Folder | None: ...

    @abstractmethod
    def list_direct_children(self, parent_path: str) -> list[Folder]: ...

    @abstractmethod
    def create_folder(
        self,
        *,
        path: str,
        name: str,
        parent_id: int | None = None,
        is_watched: bool = False,
        last_scanned: float | None = None,
    ) -> Folder: ...

    @abstractmethod
    def update_folder(self, folder_id: int, changes: dict[str, Any]) -> Folder | None: ...

    @abstractmethod
    def delete_folder(self, folder_id: int) -> bool: ...
