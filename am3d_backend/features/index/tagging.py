"""
Tag inference from file location and naming.

Tags are heuristics only: nothing here opens the file. The same path always
yields the same tags.
"""
from __future__ import annotations

import os
import re
from typing import Final

from .path_policy import file_extension

FORMAT_TAGS: Final[dict[str, str]] = {
    ".fbx": "fbx",
    ".obj": "obj",
    ".blend": "blender",
    ".gltf": "gltf",
    ".glb": "gltf",
    ".ma": "maya",
    ".mb": "maya",
    ".usd": "usd",
    ".usda": "usd",
    ".usdc": "usd",
    ".hip": "houdini",
    ".hiplc": "houdini",
    ".uasset": "unreal",
    ".max": "3dsmax",
    ".c4d": "cinema4d",
}

# Substring of any path segment -> tag
SEGMENT_TAGS: Final[tuple[tuple[str, str], ...]] = (
    ("character", "character"),
    ("environment", "environment"),
    ("vehicle", "vehicle"),
    ("building", "building"),
    ("prop", "prop"),
    ("weapon", "weapon"),
    ("texture", "textured"),
    ("anim", "animation"),
    ("rig", "rigged"),
)

# Substring of the bare file name -> tag
NAME_TAGS: Final[tuple[tuple[str, str], ...]] = (
    ("low", "lowpoly"),
    ("high", "highpoly"),
    ("rig", "rigged"),
    ("anim", "animation"),
    ("_v", "versioned"),
    ("version", "versioned"),
)

_SEP_RE = re.compile(r"[\\/]+")


def infer_tags(path: str) -> list[str]:
    """
    Derive tags for an asset path.

    Args:
        path: Absolute path of the asset file

    Returns:
        Unique tags in rule order (format first, then folders, then file name)
    """
    tags: list[str] = []

    def _add(tag: str) -> None:
        if tag not in tags:
            tags.append(tag)

    ext = file_extension(path)
    fmt = FORMAT_TAGS.get(ext)
    if fmt:
        _add(fmt)

    segments = [s for s in _SEP_RE.split(str(path).lower()) if s]
    for needle, tag in SEGMENT_TAGS:
        if any(needle in segment for segment in segments):
            _add(tag)

    stem = os.path.basename(str(path))
    if ext:
        stem = stem[: -len(ext)]
    stem = stem.lower()
    for needle, tag in NAME_TAGS:
        if needle in stem:
            _add(tag)

    return tags
