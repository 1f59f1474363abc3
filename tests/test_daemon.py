from __future__ import annotations

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
import uvicorn
from fastapi.testclient import TestClient

from api.app import create_app
from api.routers.check import RootHandler, is_xml_content_type, prefers_html, select_root_handler
from api.utils.executors import PoolSaturatedError, WorkerPool, WorkerTimeoutError, default_pool_size
from validation_tool.cli import main_program
from validation_tool.config import DEFAULT_HOST, DEFAULT_PORT, DaemonConfig
from validation_tool.context import ServiceContext, resolve_locations
from validation_tool.core import RunOptions
from validation_tool.daemon import Daemon
from validation_tool.errors import ConfigurationError, ValidatorError
from validation_tool.models import ReturnOutcome

FIXTURES = Path(__file__).parent / "fixtures" / "simple"
XML_HEADERS = {"Content-Type": "application/xml"}


def build_context() -> ServiceContext:
    return ServiceContext.from_locations(
        resolve_locations([FIXTURES / "scenarios.toml"], FIXTURES / "repository")
    )


def build_client(gui: bool = True, pool: WorkerPool | None = None) -> TestClient:
    return TestClient(create_app(build_context(), gui_enabled=gui, pool=pool or WorkerPool(2)))


def read_input(name: str) -> bytes:
    path = FIXTURES / "input" / name
    if not path.exists():
        path = FIXTURES / name
    return path.read_bytes()


class FailingPool(WorkerPool):
    def __init__(self, error: Exception) -> None:
        super().__init__(1)
        self._error = error

    async def run(self, func, /, *args, **kwargs):
        raise self._error


def test_valid_document_returns_200() -> None:
    client = build_client()
    response = client.post("/", content=read_input("valid.xml"), headers=XML_HEADERS)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert b"urn:xml-validation-tool:report:1" in response.content
    assert b"accept" in response.content


def test_rejected_document_returns_406() -> None:
    client = build_client()
    response = client.post("/", content=read_input("rule-violation.xml"), headers=XML_HEADERS)
    assert response.status_code == 406
    assert b"reject" in response.content


def test_unknown_document_returns_406() -> None:
    client = build_client()
    response = client.post("/", content=read_input("unknown.xml"), headers=XML_HEADERS)
    assert response.status_code == 406
    assert b"noScenarioMatched" in response.content


def test_malformed_document_returns_400() -> None:
    client = build_client()
    response = client.post("/", content=b"<simple><name>", headers=XML_HEADERS)
    assert response.status_code == 400


def test_empty_body_returns_400() -> None:
    client = build_client()
    response = client.post("/", content=b"", headers=XML_HEADERS)
    assert response.status_code == 400
    assert response.json()["detail"] == "EMPTY_INPUT"


def test_multipart_returns_400() -> None:
    client = build_client()
    response = client.post("/", files={"file": ("valid.xml", read_input("valid.xml"), "application/xml")})
    assert response.status_code == 400
    assert response.json()["detail"] == "MULTIPART_NOT_SUPPORTED"


def test_unsupported_content_type_returns_400() -> None:
    client = build_client()
    response = client.post("/", content=b"{}", headers={"Content-Type": "application/json"})
    assert response.status_code == 400


def test_html_report_on_request() -> None:
    client = build_client()
    response = client.post(
        "/", content=read_input("valid.xml"), headers={**XML_HEADERS, "Accept": "text/html"}
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Accepted" in response.text


def test_gui_served_on_get() -> None:
    client = build_client()
    response = client.get("/")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Simple document" in response.text


def test_get_without_gui_is_not_allowed() -> None:
    client = build_client(gui=False)
    response = client.get("/")
    assert response.status_code == 405


def test_health() -> None:
    client = build_client(pool=WorkerPool(3, max_pending=10, timeout_s=2.5))
    response = client.get("/server/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "UP"
    assert payload["application"]["version"] == "1.0.0"
    assert payload["scenarios_loaded"] == 1
    assert payload["worker_pool"] == {"size": 3, "pending": 0, "max_pending": 10, "timeout_s": 2.5}


def test_config() -> None:
    client = build_client(gui=False)
    response = client.get("/server/config")
    assert response.status_code == 200
    payload = response.json()
    assert payload["gui_enabled"] is False
    assert payload["configurations"][0]["name"] == "Simple test scenarios"
    assert payload["configurations"][0]["scenarios"] == ["Simple document"]


@pytest.mark.parametrize(
    ("error", "status", "code"),
    [
        (PoolSaturatedError("2 calls pending, limit is 2"), 503, "POOL_SATURATED"),
        (WorkerTimeoutError("Call did not finish within 1s"), 504, "TIMEOUT"),
        (ValidatorError("PROCESSING_ERROR", "HTML rendering failed"), 422, "PROCESSING_ERROR"),
    ],
)
def test_pool_errors_map_to_status(error: Exception, status: int, code: str) -> None:
    client = build_client(pool=FailingPool(error))
    response = client.post("/", content=read_input("valid.xml"), headers=XML_HEADERS)
    assert response.status_code == status
    assert response.json()["code"] == code


def test_select_root_handler() -> None:
    assert select_root_handler("GET", None, gui=True) is RootHandler.GUI
    assert select_root_handler("HEAD", None, gui=True) is RootHandler.GUI
    assert select_root_handler("GET", None, gui=False) is RootHandler.CHECK
    assert select_root_handler("POST", None, gui=True) is RootHandler.CHECK
    assert select_root_handler("GET", "application/xml", gui=True) is RootHandler.CHECK


def test_content_negotiation_helpers() -> None:
    assert is_xml_content_type(None)
    assert is_xml_content_type("text/xml; charset=utf-8")
    assert is_xml_content_type("application/invoice+xml")
    assert not is_xml_content_type("application/json")
    assert prefers_html("text/html,application/xhtml+xml")
    assert not prefers_html("application/xml")
    assert not prefers_html(None)


def test_pool_size_defaults_to_cpu_count() -> None:
    pool = WorkerPool()
    try:
        assert pool.size == default_pool_size()
        assert pool.size >= 1
        assert pool.max_pending == 0
        assert pool.timeout_s is None
    finally:
        pool.shutdown()
    explicit = WorkerPool(4)
    try:
        assert explicit.size == 4
    finally:
        explicit.shutdown()


def test_pool_rejects_when_backlog_is_full() -> None:
    pool = WorkerPool(1, max_pending=1)
    release = threading.Event()

    async def scenario() -> bool:
        first = asyncio.ensure_future(pool.run(release.wait, 5))
        await asyncio.sleep(0)
        assert pool.pending == 1
        with pytest.raises(PoolSaturatedError):
            await pool.run(lambda: None)
        release.set()
        return await first

    try:
        assert asyncio.run(scenario()) is True
    finally:
        pool.shutdown(wait=True)
    assert pool.pending == 0


def test_pool_times_out_slow_calls() -> None:
    pool = WorkerPool(1, timeout_s=0.05)

    async def scenario() -> None:
        await pool.run(time.sleep, 0.5)

    try:
        with pytest.raises(WorkerTimeoutError):
            asyncio.run(scenario())
    finally:
        pool.shutdown(wait=True)


def test_daemon_defaults() -> None:
    daemon = Daemon(DaemonConfig(host=" ", port=0))
    assert daemon.host == DEFAULT_HOST
    assert daemon.port == DEFAULT_PORT
    custom = Daemon(DaemonConfig(host="0.0.0.0", port=9090, workers=2, gui=False))
    assert custom.host == "0.0.0.0"
    assert custom.port == 9090
    app = custom.create_app(build_context())
    assert app.state.pool.size == 2
    assert app.state.gui_enabled is False
    app.state.pool.shutdown()


def test_concurrent_requests_get_their_own_verdict() -> None:
    client = build_client(pool=WorkerPool(8))
    expected = {
        "valid.xml": 200,
        "warning.xml": 200,
        "rule-violation.xml": 406,
        "schema-invalid.xml": 406,
        "unknown.xml": 406,
    }
    bodies = {name: read_input(name) for name in expected}
    requests = [name for name in expected for _ in range(20)]

    def post(name: str) -> tuple[str, int]:
        response = client.post("/", content=bodies[name], headers=XML_HEADERS)
        return name, response.status_code

    with ThreadPoolExecutor(max_workers=16) as executor:
        outcomes = list(executor.map(post, requests))
    mismatches = [(name, status) for name, status in outcomes if status != expected[name]]
    assert mismatches == []
    assert len(outcomes) == 100


def test_bind_failure_is_a_configuration_error(monkeypatch) -> None:
    def refuse(self, sockets=None) -> None:
        raise SystemExit(1)

    monkeypatch.setattr(uvicorn.Server, "run", refuse)
    with pytest.raises(ConfigurationError) as excinfo:
        Daemon(DaemonConfig(port=9)).start_server(build_context())
    assert excinfo.value.code == "DAEMON_START"


def test_daemon_mode_bind_failure_exit_code(monkeypatch) -> None:
    def refuse(self, sockets=None) -> None:
        raise SystemExit(1)

    monkeypatch.setattr(uvicorn.Server, "run", refuse)
    options = RunOptions(scenarios=[FIXTURES / "scenarios.toml"], repository=FIXTURES / "repository")
    outcome = main_program(options, DaemonConfig(port=9))
    assert outcome == ReturnOutcome.configuration_error()
    assert outcome.exit_code == 255
