"""
Dependency injection - builds services.
Simple, debug-friendly DI without framework magic.
"""
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .adapters.store import AssetRepository, MemoryRepository
from .adapters.thumbnails import PlaceholderThumbnails
from .config import (
    THUMBNAIL_DIR,
    THUMBNAIL_SIZE,
    WATCHER_ENABLED,
    WATCHER_POLL_INTERVAL_S,
    WATCHER_POLLING,
    WATCHER_STOP_TIMEOUT_S,
)
from .features.index import AssetIndexer, DirectoryWalker, FolderWatcher, LibraryService
from .shared import ErrorCode, Result, get_logger, log_success

logger = get_logger(__name__)


def build_services(
    repository: AssetRepository | None = None,
    *,
    thumbnail_dir: Path | str | None = None,
    thumbnails_enabled: bool = True,
    watcher_enabled: bool | None = None,
    observer_factory: Callable[[], Any] | None = None,
) -> Result[dict[str, Any]]:
    """
    Build all services (DI container).

    Args:
        repository: Repository to use (default: a fresh MemoryRepository)
        thumbnail_dir: Placeholder output directory (default: config.THUMBNAIL_DIR)
        thumbnails_enabled: Disable to index without writing thumbnails
        watcher_enabled: Override config.WATCHER_ENABLED
        observer_factory: Factory for the watchdog observer (tests pass a fake)

    Returns:
        Result[dict] of service instances
    """
    logger.info("Building services...")
    try:
        repo = repository if repository is not None else MemoryRepository()
        thumbnails = (
            PlaceholderThumbnails(thumbnail_dir or THUMBNAIL_DIR, size=THUMBNAIL_SIZE)
            if thumbnails_enabled
            else None
        )
        indexer = AssetIndexer(repo, thumbnails)
        walker = DirectoryWalker(repo, indexer)
        watcher = FolderWatcher(
            walker,
            indexer,
            repo,
            observer_factory=observer_factory,
            enabled=WATCHER_ENABLED if watcher_enabled is None else watcher_enabled,
            polling=WATCHER_POLLING,
            poll_interval=WATCHER_POLL_INTERVAL_S,
            stop_timeout=WATCHER_STOP_TIMEOUT_S,
        )
        library = LibraryService(repo, indexer, walker, watcher, thumbnails)
    except (OSError, ValueError) as exc:
        logger.error("Failed to initialize services: %s", exc)
        return Result.Err(ErrorCode.SERVICE_UNAVAILABLE, f"Failed to initialize services: {exc}")

    if not watcher.enabled:
        logger.warning("File watcher disabled - watch roots are indexed once without live updates")
    log_success(logger, "All services initialized")
    return Result.Ok(
        {
            "repository": repo,
            "thumbnails": thumbnails,
            "indexer": indexer,
            "walker": walker,
            "watcher": watcher,
            "library": library,
        }
    )
