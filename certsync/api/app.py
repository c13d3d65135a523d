"""FastAPI application factory for certsync.

Usage::

    from certsync.api.app import create_app

    app = create_app(orchestrator=orchestrator, config=config)

Serves liveness and readiness probes, the last cycle report and the
Prometheus metrics endpoint.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from certsync.api.routes import router

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(orchestrator: Any, runner: Any = None, config: Any = None) -> FastAPI:
    """Create and configure the certsync FastAPI application.

    Args:
        orchestrator: SyncOrchestrator whose ``last_report`` backs /status.
        runner:       Optional PeriodicRunner; liveness fails once it has died.
        config:       CertSyncConfig, used for status metadata.
    """
    from certsync import __version__

    app = FastAPI(
        title="certsync",
        summary="Kubernetes TLS secret replication",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=f"{_API_PREFIX}/openapi.json",
    )

    app.state.orchestrator = orchestrator
    app.state.runner = runner
    app.state.config = config

    app.include_router(router)
    app.mount("/metrics", make_asgi_app())

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content={"error": "INTERNAL_ERROR", "detail": "An unexpected error occurred."},
        )

    return app
