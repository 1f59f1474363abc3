from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from models.schemas import ErrorDetail
from validation_tool import __version__
from validation_tool.context import ServiceContext
from validation_tool.engine import ENGINE_NAME
from validation_tool.errors import ValidatorError

from .routers import check, config, health
from .utils.executors import PoolSaturatedError, WorkerPool, WorkerTimeoutError

logger = logging.getLogger(__name__)


def create_app(
    context: ServiceContext,
    *,
    gui_enabled: bool = True,
    pool: WorkerPool | None = None,
) -> FastAPI:
    app = FastAPI(title=ENGINE_NAME, version=__version__)
    app.state.context = context
    app.state.pool = pool or WorkerPool()
    app.state.gui_enabled = gui_enabled

    app.include_router(check.router)
    app.include_router(health.router)
    app.include_router(config.router)
    _register_exception_handlers(app)

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # pragma: no cover - FastAPI lifecycle
        worker_pool: WorkerPool = app.state.pool
        worker_pool.shutdown()

    return app


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorDetail(code=code, message=message).model_dump())


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PoolSaturatedError)
    async def _saturated(_request: Request, exc: PoolSaturatedError) -> JSONResponse:
        logger.warning("Rejecting request: %s", exc)
        return _error(503, "POOL_SATURATED", str(exc))

    @app.exception_handler(WorkerTimeoutError)
    async def _timeout(_request: Request, exc: WorkerTimeoutError) -> JSONResponse:
        logger.warning("Request timed out: %s", exc)
        return _error(504, "TIMEOUT", str(exc))

    @app.exception_handler(ValidatorError)
    async def _processing(_request: Request, exc: ValidatorError) -> JSONResponse:
        logger.error("Check failed: %s", exc)
        return _error(422, exc.code, str(exc))


__all__ = ["create_app"]
