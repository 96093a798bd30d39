"""Placeholder thumbnail generation."""
from .placeholder import PlaceholderThumbnails

__all__ = ["PlaceholderThumbnails"]
