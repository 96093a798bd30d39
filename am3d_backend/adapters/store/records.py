"""
Asset and Folder records.

Timestamps are POSIX seconds (float). Records handed out by a repository are
copies; mutating one never changes the stored row.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Final

# Fields a caller may never change through update_asset/update_folder.
ASSET_IMMUTABLE_FIELDS: Final[frozenset[str]] = frozenset({"id", "filepath", "created_at"})
FOLDER_IMMUTABLE_FIELDS: Final[frozenset[str]] = frozenset({"id", "path"})


@dataclass
class Asset:
    """One tracked 3D file, keyed naturally by its absolute ``filepath``."""

    id: int
    filename: str
    filepath: str
    filesize: int
    filetype: str
    last_modified: float
    created_at: float
    thumbnail_path: str | None = None
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Folder:
    """One directory node, watched root or discovered descendant."""

    id: int
    path: str
    name: str
    parent_id: int | None = None
    is_watched: bool = False
    last_scanned: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def dedupe_tags(tags: Any) -> list[str]:
    """Normalize a tag collection to a list of unique, non-empty strings."""
    out: list[str] = []
    for tag in tags or []:
        if not isinstance(tag, str):
            continue
        value = tag.strip()
        if value and value not in out:
            out.append(value)
    return out
