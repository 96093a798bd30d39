"""Route handler modules."""
from .assets import register_asset_routes
from .folders import register_folder_routes

__all__ = ["register_asset_routes", "register_folder_routes"]
