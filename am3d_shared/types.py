"""
Shared types, enums, and constants.
"""
from enum import Enum
from typing import Final


# Error codes
class ErrorCode(str, Enum):
    """Standardized error codes (string enum)."""

    # Client / validation
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_JSON = "INVALID_JSON"
    NOT_FOUND = "NOT_FOUND"

    # Filesystem / watcher
    WATCH_FAILED = "WATCH_FAILED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Index operations
    CONFLICT = "CONFLICT"
    UPDATE_FAILED = "UPDATE_FAILED"
    SCAN_FAILED = "SCAN_FAILED"


# One canonical set of indexable 3D formats, shared by the walker and the watcher.
MODEL_EXTENSIONS: Final[frozenset[str]] = frozenset({
    ".obj",
    ".fbx",
    ".gltf",
    ".glb",
    ".usd",
    ".usda",
    ".usdc",
    ".blend",
    ".ma",
    ".mb",
    ".max",
    ".c4d",
    ".hip",
    ".hiplc",
    ".uasset",
})

# Build output, caches and version-control metadata (compared lower-cased).
IGNORED_DIR_NAMES: Final[frozenset[str]] = frozenset({
    "node_modules",
    ".git",
    ".svn",
    "temp",
    "tmp",
    "cache",
    "build",
    "dist",
    "output",
    ".vscode",
    ".idea",
    "thumbs",
    "__pycache__",
})
