from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


CONFIG_FILE = Path("config.toml")
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080


@dataclass(slots=True)
class DaemonConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    workers: int = 0
    gui: bool = True
    queue_limit: int = 0
    request_timeout_s: float = 0.0


@dataclass(slots=True)
class ReportConfig:
    prefix: str = ""
    postfix: str = "report"


@dataclass(slots=True)
class AppConfig:
    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    report: ReportConfig = field(default_factory=ReportConfig)


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _build_daemon(data: Mapping[str, object] | None) -> DaemonConfig:
    if not data:
        return DaemonConfig()
    return DaemonConfig(
        host=str(data.get("host", DEFAULT_HOST)),
        port=int(data.get("port", DEFAULT_PORT)),
        workers=int(data.get("workers", 0)),
        gui=bool(data.get("gui", True)),
        queue_limit=int(data.get("queue_limit", 0)),
        request_timeout_s=float(data.get("request_timeout_s", 0.0)),
    )


def _build_report(data: Mapping[str, object] | None) -> ReportConfig:
    if not data:
        return ReportConfig()
    return ReportConfig(
        prefix=str(data.get("prefix", "")),
        postfix=str(data.get("postfix", "report")),
    )


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_FILE
    raw = _read_toml(path)
    daemon_data = raw.get("daemon") if isinstance(raw, Mapping) else None
    report_data = raw.get("report") if isinstance(raw, Mapping) else None
    return AppConfig(
        daemon=_build_daemon(daemon_data if isinstance(daemon_data, Mapping) else None),
        report=_build_report(report_data if isinstance(report_data, Mapping) else None),
    )


def dump_config(config: AppConfig) -> str:
    payload = {
        "daemon": {
            "host": config.daemon.host,
            "port": config.daemon.port,
            "workers": config.daemon.workers,
            "gui": config.daemon.gui,
            "queue_limit": config.daemon.queue_limit,
            "request_timeout_s": config.daemon.request_timeout_s,
        },
        "report": {
            "prefix": config.report.prefix,
            "postfix": config.report.postfix,
        },
    }
    return json.dumps(payload, indent=2)


__all__ = [
    "AppConfig",
    "DaemonConfig",
    "ReportConfig",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "dump_config",
    "load_config",
]
