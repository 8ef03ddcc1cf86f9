from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from imanage.api.error_handling import register_exception_handlers
from imanage.api.routes import router
from imanage.config import Settings
from imanage.logging import get_logger, set_correlation_id

logger = get_logger(__name__)

_settings = Settings.from_env()

__version__ = "0.1.0"
__build__ = _settings.build_sha

HEALTH_CHECK_TIMEOUT_SECONDS = 3


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the runtime (and with it the store schema) before serving."""
    from imanage.service.runtime import get_runtime

    runtime = get_runtime()
    logger.info(
        "app_started",
        version=__version__,
        build=__build__,
        store=type(runtime.store).__name__,
    )
    yield
    close = getattr(runtime.store, "close", None)
    if callable(close):
        close()
    logger.info("app_stopped")


app = FastAPI(title="iManage Back Office", version=__version__, lifespan=lifespan)


def _allowed_origins() -> List[str]:
    return _settings.cors_allow_origins


app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=_settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID", "API-Version"],
    max_age=3600,
)


@app.middleware("http")
async def add_correlation_id(request, call_next):
    """Tag each request with a correlation ID.

    The ID comes from the ``X-Request-ID`` header when the client sends one,
    otherwise a new UUID. It is bound for structured logging and echoed back
    in the response header.
    """
    client_request_id = request.headers.get("X-Request-ID")
    correlation_id = set_correlation_id(client_request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = correlation_id
    return response


@app.middleware("http")
async def add_api_version_header(request, call_next):
    response = await call_next(request)
    response.headers.setdefault("API-Version", __version__)
    if request.url.path.startswith("/api/") or request.url.path == "/healthz":
        response.headers.setdefault("Cache-Control", "no-store")
    return response


register_exception_handlers(app)
app.include_router(router)


@app.get("/healthz")
async def health() -> Dict[str, Any]:
    """Report store connectivity and build information."""
    from imanage.service.runtime import get_runtime

    checks: Dict[str, Dict[str, Any]] = {}
    runtime = get_runtime()
    store_type = type(runtime.store).__name__
    try:
        db_ok = await asyncio.wait_for(
            asyncio.to_thread(runtime.store.verify_connection), HEALTH_CHECK_TIMEOUT_SECONDS
        )
    except asyncio.TimeoutError:
        logger.error(
            "health_check_timeout", component="database", timeout=HEALTH_CHECK_TIMEOUT_SECONDS
        )
        db_ok = False
    except Exception as exc:
        logger.error("health_check_database_failed", error=str(exc))
        db_ok = False
    checks["database"] = {"status": "healthy" if db_ok else "unhealthy", "type": store_type}

    return {
        "status": "healthy" if db_ok else "unhealthy",
        "checks": checks,
        "version": __version__,
        "build": __build__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
