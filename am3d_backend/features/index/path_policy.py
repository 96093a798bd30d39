"""
Path policy: which files are indexable, which directories are skipped, and how
deep a walk may go. Pure functions, shared by the walker and the watcher.
"""
from __future__ import annotations

import os
from pathlib import PurePath
from typing import Final

from ...shared import IGNORED_DIR_NAMES, MODEL_EXTENSIONS

# Directories deeper than this below a watch root are listed but not entered.
MAX_SCAN_DEPTH: Final[int] = 10


def file_extension(path: str) -> str:
    """Lower-cased extension including the dot (``""`` when there is none)."""
    return os.path.splitext(str(path or ""))[1].lower()


def is_supported_asset(path: str) -> bool:
    return file_extension(path) in MODEL_EXTENSIONS


def should_ignore_directory(name: str) -> bool:
    name = str(name or "")
    if not name or name.startswith("."):
        return True
    return name.lower() in IGNORED_DIR_NAMES


def normalize_path(path: str) -> str:
    """Absolute, normalized form used as the natural key (symlinks are kept)."""
    return os.path.abspath(os.path.normpath(os.path.expanduser(str(path))))


def is_hidden_path(path: str, root: str | None = None) -> bool:
    """True when any component of ``path`` below ``root`` is a dotfile."""
    target = PurePath(path)
    if root:
        try:
            target = target.relative_to(root)
        except ValueError:
            pass
    return any(part.startswith(".") and part not in (".", "..") for part in target.parts)


def is_under(path: str, root: str) -> bool:
    """Path-boundary aware containment check (``/a/bc`` is not under ``/a/b``)."""
    if not path or not root:
        return False
    if path == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)
