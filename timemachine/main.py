"""FastAPI application factory for the time machine.

Run with: uvicorn timemachine.main:app --reload
"""

from __future__ import annotations

import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app as make_metrics_app

from timemachine import __version__
from timemachine.api.timeline import router as timeline_router
from timemachine.common.config import get_settings
from timemachine.common.exceptions import TimeMachineError
from timemachine.common.logging import get_logger
from timemachine.common.metrics import set_app_info
from timemachine.common.middleware import RequestContextMiddleware, request_id_var

logger = get_logger("SYSTEM")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Time Machine",
        version=__version__,
        description="Merged trading timelines for replay",
    )

    app.add_middleware(RequestContextMiddleware)

    # ─── Exception Handlers ───

    @app.exception_handler(TimeMachineError)
    async def time_machine_error_handler(request: Request, exc: TimeMachineError) -> JSONResponse:
        """Return structured JSON for domain errors that escaped a route."""
        logger.error(
            f"{type(exc).__name__}: {exc}",
            extra={"data": {"path": str(request.url), "context": exc.context}},
        )
        return JSONResponse(
            status_code=400,
            content={"error": type(exc).__name__, "message": exc.args[0]},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions — log traceback, return 500."""
        rid = request_id_var.get("")
        logger.error(
            f"Unhandled {type(exc).__name__}: {exc}",
            extra={
                "data": {
                    "path": str(request.url),
                    "request_id": rid,
                    "traceback": traceback.format_exc(),
                }
            },
        )
        body: dict = {
            "error": "InternalServerError",
            "message": "An unexpected error occurred",
        }
        if rid:
            body["request_id"] = rid
        return JSONResponse(status_code=500, content=body)

    # ─── Health ───

    @app.get("/health")
    async def health_check() -> dict:
        """Liveness probe — confirms the process is running."""
        return {"status": "ok", "version": __version__}

    # ─── Prometheus Metrics ───

    app.mount("/metrics", make_metrics_app())
    set_app_info(version=__version__, environment=get_settings().environment)

    # ─── Router Mounting ───

    app.include_router(timeline_router, prefix="/api/timeline", tags=["timeline"])

    return app


app = create_app()
