"""HTTP daemon providing the check over HTTP."""

from __future__ import annotations

import logging
import socket

import uvicorn
from fastapi import FastAPI

from api.app import create_app
from api.utils.executors import WorkerPool

from .config import DEFAULT_HOST, DEFAULT_PORT, DaemonConfig
from .context import ServiceContext
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class _Server(uvicorn.Server):
    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            logger.info("Server http://%s:%d started", self.config.host, self.config.port)


class Daemon:
    """Binds the HTTP application to a socket and serves until terminated."""

    def __init__(self, options: DaemonConfig) -> None:
        self._options = options

    @property
    def host(self) -> str:
        return self._options.host.strip() or DEFAULT_HOST

    @property
    def port(self) -> int:
        return self._options.port if self._options.port > 0 else DEFAULT_PORT

    def create_app(self, context: ServiceContext) -> FastAPI:
        pool = WorkerPool(
            self._options.workers,
            max_pending=self._options.queue_limit,
            timeout_s=self._options.request_timeout_s,
        )
        logger.info("Worker pool with %d thread(s)", pool.size)
        return create_app(context, gui_enabled=self._options.gui, pool=pool)

    def start_server(self, context: ServiceContext) -> None:
        app = self.create_app(context)
        server = _Server(uvicorn.Config(app, host=self.host, port=self.port, log_config=None))
        try:
            server.run()
        except SystemExit as exc:
            # uvicorn exits the process when it can not bind
            if exc.code:
                raise ConfigurationError(
                    "DAEMON_START", f"Can not start server on {self.host}:{self.port}"
                ) from exc
        finally:
            app.state.pool.shutdown()


__all__ = ["Daemon"]
