"""
Asset/Folder record stores.
"""
from .base import AssetRepository, DuplicatePathError, ImmutableFieldError, RepositoryError
from .memory import MemoryRepository
from .records import Asset, Folder

__all__ = [
    "Asset",
    "Folder",
    "AssetRepository",
    "MemoryRepository",
    "RepositoryError",
    "DuplicatePathError",
    "ImmutableFieldError",
]
