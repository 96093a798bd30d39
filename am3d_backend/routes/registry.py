"""
Route registration and application assembly.
"""
from typing import Any

from aiohttp import web

from am3d_backend.deps import build_services
from am3d_backend.observability import ensure_observability
from am3d_backend.shared import get_logger

from .core import APP_KEY_SERVICES
from .handlers import register_asset_routes, register_folder_routes

logger = get_logger(__name__)

_APP_KEY_ROUTES_REGISTERED: web.AppKey[bool] = web.AppKey("_am3d_routes_registered", bool)


def register_all_routes() -> web.RouteTableDef:
    """Collect every handler module into one fresh RouteTableDef."""
    routes = web.RouteTableDef()
    register_asset_routes(routes)
    register_folder_routes(routes)
    return routes


def register_routes(app: web.Application, services: dict[str, Any]) -> None:
    """
    Attach services, middleware and routes to an aiohttp application.

    The watcher is stopped when the application shuts down.
    """
    if app.get(_APP_KEY_ROUTES_REGISTERED):
        logger.debug("register_routes(app) skipped: routes already registered on this app")
        return
    app[APP_KEY_SERVICES] = services
    ensure_observability(app)
    app.add_routes(register_all_routes())
    app.on_cleanup.append(_on_cleanup)
    app[_APP_KEY_ROUTES_REGISTERED] = True


async def _on_cleanup(app: web.Application) -> None:
    library = app[APP_KEY_SERVICES].get("library")
    if library is not None:
        await library.close()


def create_app(services: dict[str, Any] | None = None, **build_kwargs: Any) -> web.Application:
    """
    Build an aiohttp application serving the index.

    Args:
        services: Pre-built services (default: ``build_services(**build_kwargs)``)

    Raises:
        RuntimeError: when services cannot be built
    """
    if services is None:
        built = build_services(**build_kwargs)
        if not built.ok:
            raise RuntimeError(built.error or "Failed to initialize services")
        services = built.data
    app = web.Application()
    register_routes(app, services)
    return app
