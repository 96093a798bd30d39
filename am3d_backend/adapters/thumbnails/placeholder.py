"""
Placeholder thumbnails for 3D assets.

Real rendering needs a scene, lights and a camera; until then every asset gets
a flat tile labelled with its format so the UI has something to show.
"""
from __future__ import annotations

import hashlib
import os
import threading
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from ...shared import get_logger

logger = get_logger(__name__)

BACKGROUND = (243, 244, 246)
PANEL = (178, 182, 189)
LABEL = (55, 65, 81)
SUBLABEL = (107, 114, 128)
THUMB_SUFFIX = "_thumb.png"


class PlaceholderThumbnails:
    """
    Writes ``<stem>_<ext>_<digest>_thumb.png`` into a fixed output directory.

    The digest is taken over the full asset path, so ``hero.fbx`` and
    ``hero.obj``, or two ``hero.fbx`` in different folders, never share a tile.
    """

    def __init__(self, output_dir: Path | str, size: int = 256):
        self.output_dir = Path(output_dir)
        self.size = max(32, int(size))
        self._dir_ready = False
        self._lock = threading.Lock()

    def thumbnail_path_for(self, asset_path: str) -> Path:
        path = Path(asset_path)
        stem = path.stem or "asset"
        ext = path.suffix.lower().lstrip(".") or "none"
        digest = hashlib.sha1(os.fsencode(asset_path)).hexdigest()[:8]
        return self.output_dir / f"{stem}_{ext}_{digest}{THUMB_SUFFIX}"

    def generate(self, asset_path: str) -> str | None:
        """Render the placeholder for ``asset_path``; ``None`` on any failure."""
        try:
            target = self.thumbnail_path_for(asset_path)
            ext = os.path.splitext(asset_path)[1].lower()
            with self._lock:
                self._ensure_dir()
                self._render(ext).save(target, format="PNG")
            return str(target)
        except Exception as exc:
            logger.warning("Thumbnail generation failed for %s: %s", asset_path, exc)
            return None

    def _ensure_dir(self) -> None:
        if self._dir_ready:
            return
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._dir_ready = True

    def _render(self, ext: str) -> Image.Image:
        size = self.size
        image = Image.new("RGB", (size, size), BACKGROUND)
        draw = ImageDraw.Draw(image)
        inset = size // 4
        draw.rectangle((inset, inset, size - inset, size - inset), fill=PANEL)

        font = ImageFont.load_default()
        label = (ext.lstrip(".") or "?").upper()
        self._draw_centered(draw, size, label, size * 0.5, font, LABEL)
        self._draw_centered(draw, size, "3D Asset", size * 0.62, font, SUBLABEL)
        return image

    @staticmethod
    def _draw_centered(draw: ImageDraw.ImageDraw, canvas: int, text: str, y: float, font, fill) -> None:
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        width = right - left
        x = (canvas - width) / 2
        draw.text((x, y - (bottom - top) / 2), text, font=font, fill=fill)
