"""
Standalone server entry point (``am3d-server``).
"""
import argparse
from collections.abc import Sequence

from aiohttp import web

from .config import HTTP_HOST, HTTP_PORT
from .routes import create_app
from .routes.core import APP_KEY_SERVICES
from .shared import get_logger

logger = get_logger(__name__)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index and watch folders of 3D assets over HTTP.")
    parser.add_argument("--host", default=HTTP_HOST, help=f"Bind address (default: {HTTP_HOST})")
    parser.add_argument("--port", type=int, default=HTTP_PORT, help=f"Bind port (default: {HTTP_PORT})")
    parser.add_argument(
        "--watch",
        action="append",
        default=[],
        metavar="DIR",
        help="Folder to index and watch on startup (repeatable)",
    )
    return parser.parse_args(argv)


def build_app(watch: Sequence[str] = ()) -> web.Application:
    app = create_app()
    roots = [p for p in watch if p]

    async def _watch_on_startup(app: web.Application) -> None:
        library = app[APP_KEY_SERVICES]["library"]
        for root in roots:
            res = await library.add_watch_folder(root)
            if not res.ok:
                logger.warning("Could not watch %s: %s", root, res.error)

    if roots:
        app.on_startup.append(_watch_on_startup)
    return app


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    app = build_app(args.watch)
    logger.info("Serving on http://%s:%s", args.host, args.port)
    web.run_app(app, host=args.host, port=args.port, print=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
