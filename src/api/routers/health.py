from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_context, get_pool
from api.utils.executors import WorkerPool
from models.schemas import ApplicationInfo, HealthStatus, WorkerPoolStatus
from validation_tool import __version__
from validation_tool.context import ServiceContext
from validation_tool.engine import ENGINE_NAME

router = APIRouter(prefix="/server", tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthStatus)
def health(
    context: ServiceContext = Depends(get_context),
    pool: WorkerPool = Depends(get_pool),
) -> HealthStatus:
    return HealthStatus(
        status="UP",
        application=ApplicationInfo(name=ENGINE_NAME, version=__version__),
        uptime_seconds=round(context.uptime_seconds, 3),
        scenarios_loaded=sum(len(configuration.scenarios) for configuration in context.configurations),
        worker_pool=WorkerPoolStatus(
            size=pool.size,
            pending=pool.pending,
            max_pending=pool.max_pending,
            timeout_s=pool.timeout_s,
        ),
    )


__all__ = ["router"]
