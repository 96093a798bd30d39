"""
Core route utilities.
"""
from .request_json import _read_json
from .response import _json_response, status_for
from .services import APP_KEY_SERVICES, _require_library

__all__ = [
    "APP_KEY_SERVICES",
    "_json_response",
    "_read_json",
    "_require_library",
    "status_for",
]
