"""HTTP routes for the 3D asset index."""
from .registry import create_app, register_routes

__all__ = ["create_app", "register_routes"]
