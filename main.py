from fastapi import FastAPI, HTTPException

from api.app import create_app
from api.utils.executors import WorkerPool
from validation_tool import __version__
from validation_tool.config import load_config
from validation_tool.context import ServiceContext, resolve_locations
from validation_tool.engine import ENGINE_NAME
from validation_tool.errors import ConfigurationError
from validation_tool.settings import get_settings


def _build_app() -> FastAPI:
    settings = get_settings()
    cfg = load_config(settings.config_path)
    if not settings.scenario_paths:
        raise ConfigurationError("INVALID_SCENARIO", "Set VALIDATOR_SCENARIOS to enable the daemon")
    context = ServiceContext.from_locations(resolve_locations(settings.scenario_paths, settings.repository))
    gui = cfg.daemon.gui if settings.gui is None else settings.gui
    pool = WorkerPool(
        cfg.daemon.workers,
        max_pending=cfg.daemon.queue_limit,
        timeout_s=cfg.daemon.request_timeout_s,
    )
    return create_app(context, gui_enabled=gui, pool=pool)


try:
    app = _build_app()
except ConfigurationError as exc:
    app = FastAPI(title=ENGINE_NAME, version=__version__)
    reason = str(exc)

    @app.get("/")
    async def daemon_unavailable() -> dict[str, str]:
        raise HTTPException(status_code=503, detail=f"Daemon not configured: {reason}")
