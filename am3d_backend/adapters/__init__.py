"""Adapters for storage and thumbnail generation."""
