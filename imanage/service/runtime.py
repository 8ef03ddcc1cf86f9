from __future__ import annotations

import threading
from typing import Optional
from urllib.parse import urlparse, urlunparse

from imanage.config import StoreBackend, get_settings, reset_settings_cache
from imanage.logging import get_logger
from imanage.service.deletion import DeleteResolver
from imanage.service.records import RecordService
from imanage.service.references import build_reference_registry
from imanage.storage.common import EntityStore
from imanage.storage.memory import MemoryStore
from imanage.storage.sqlite import SqliteStore

logger = get_logger(__name__)


def _mask_url_password(url: Optional[str]) -> Optional[str]:
    """Replace the password component of a DSN with ``***`` for logging."""
    if not url:
        return url
    parsed = urlparse(url)
    if not parsed.password:
        return url
    netloc = parsed.hostname or ""
    if parsed.port:
        netloc = f"{netloc}:{parsed.port}"
    netloc = f"{parsed.username or ''}:***@{netloc}"
    return urlunparse(
        (parsed.scheme, netloc, parsed.path, parsed.params, parsed.query, parsed.fragment)
    )


def build_store(settings) -> EntityStore:
    backend = settings.store_backend
    if backend is StoreBackend.MEMORY:
        return MemoryStore()
    if backend is StoreBackend.SQLITE:
        return SqliteStore(settings.sqlite_path)
    # psycopg needs libpq at import time; only load it when selected
    from imanage.storage.postgres import PostgresStore

    return PostgresStore(settings.database_url)


class Runtime:
    """Holds singleton service instances for the FastAPI app."""

    def __init__(self, store: Optional[EntityStore] = None):
        self.settings = get_settings()
        store_type = "injected" if store is not None else self.settings.store_backend.value
        logger.info(
            "runtime_init_started",
            store_type=store_type,
            test_mode=self.settings.test_mode,
        )

        try:
            self.store = store if store is not None else build_store(self.settings)
        except Exception as exc:
            logger.error(
                "runtime_store_init_failed",
                store_type=store_type,
                database_url=_mask_url_password(self.settings.database_url),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise
        logger.info("runtime_store_initialized", store_type=store_type)

        # finders are bound once; the registry is never mutated afterwards
        self.references = build_reference_registry(self.store.find_by)
        self.resolver = DeleteResolver(self.store, self.references)
        self.records = RecordService(self.store, self.resolver)
        logger.info("runtime_ready", reference_finders=len(self.references))


runtime: Runtime | None = None
_runtime_lock = threading.Lock()


def get_runtime() -> Runtime:
    """Get or create the Runtime singleton in a thread-safe manner.

    Uses double-checked locking:
    - First check without lock (fast path for existing runtime)
    - Second check with lock to prevent a race during creation
    """
    global runtime
    if runtime is not None:
        return runtime
    with _runtime_lock:
        if runtime is None:
            runtime = Runtime()
        return runtime


def reset_runtime_for_tests(store: Optional[EntityStore] = None) -> Runtime:
    """Reinitialize the runtime singleton for isolated test runs."""

    global runtime

    with _runtime_lock:
        reset_settings_cache()
        settings = get_settings()
        if not settings.test_mode:
            raise RuntimeError("runtime reset is only allowed in TEST_MODE")
        runtime = Runtime(store=store)
        return runtime
