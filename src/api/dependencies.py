"""FastAPI dependency providers for application services."""

from __future__ import annotations

from fastapi import HTTPException, Request

from api.utils.executors import WorkerPool
from validation_tool.context import ServiceContext


def get_context(request: Request) -> ServiceContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=503, detail="CONTEXT_UNAVAILABLE")
    return context


def get_pool(request: Request) -> WorkerPool:
    pool = getattr(request.app.state, "pool", None)
    if pool is None:
        raise HTTPException(status_code=503, detail="POOL_UNAVAILABLE")
    return pool


def gui_enabled(request: Request) -> bool:
    return bool(getattr(request.app.state, "gui_enabled", False))


__all__ = ["get_context", "get_pool", "gui_enabled"]
