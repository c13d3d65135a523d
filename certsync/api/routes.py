"""HTTP routes for certsync."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/healthz")
async def healthz(request: Request) -> JSONResponse:
    runner = request.app.state.runner
    if runner is not None and not runner.running:
        return JSONResponse(status_code=503, content={"status": "sync loop not running"})
    return JSONResponse(content={"status": "ok"})


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Ready once a cycle has completed without a cycle-level error."""
    report = request.app.state.orchestrator.last_report
    if report is None:
        return JSONResponse(status_code=503, content={"status": "no cycle completed yet"})
    if report.error:
        return JSONResponse(status_code=503, content={"status": "last cycle failed", "error": report.error})
    return JSONResponse(content={"status": "ready"})


@router.get("/api/v1/status")
async def status(request: Request) -> JSONResponse:
    from certsync import __version__

    orchestrator = request.app.state.orchestrator
    config = request.app.state.config
    report = orchestrator.last_report
    return JSONResponse(
        content={
            "version": __version__,
            "operator_name": getattr(config, "operator_name", ""),
            "destinations": [d.kind for d in orchestrator.destinations],
            "cache_entries": len(orchestrator.cache),
            "last_cycle": report.to_dict() if report is not None else None,
        }
    )
