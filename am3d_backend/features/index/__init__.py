"""Filesystem index: walking, watching and reconciling 3D asset files."""
from .fs_walker import DirectoryWalker, WalkEntry
from .indexer import AssetIndexer, FileStat
from .service import LibraryService
from .watcher import ChangeEvent, FolderWatcher, RootEventHandler

__all__ = [
    "AssetIndexer",
    "ChangeEvent",
    "DirectoryWalker",
    "FileStat",
    "FolderWatcher",
    "LibraryService",
    "RootEventHandler",
    "WalkEntry",
]
