from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.dependencies import get_context, get_pool, gui_enabled
from api.routers.gui import render_gui
from api.utils.executors import WorkerPool
from validation_tool.context import ServiceContext
from validation_tool.engine import CheckEngine
from validation_tool.models import Input, Result
from validation_tool.report import html_elements, serialize, serialize_html

logger = logging.getLogger(__name__)

router = APIRouter(tags=["check"])

INPUT_NAME = "supplied-document"
XML_MEDIA_TYPE = "application/xml"
HTML_MEDIA_TYPE = "text/html"
_XML_MEDIA_TYPES = {"application/xml", "text/xml", "application/octet-stream"}


class RootHandler(str, Enum):
    GUI = "gui"
    CHECK = "check"


def _media_type(value: str | None) -> str:
    return (value or "").split(";", 1)[0].strip().lower()


def is_xml_content_type(value: str | None) -> bool:
    media = _media_type(value)
    return not media or media in _XML_MEDIA_TYPES or media.endswith("+xml")


def select_root_handler(method: str, content_type: str | None, *, gui: bool) -> RootHandler:
    """Pick the handler for ``/``: browser navigation gets the GUI, anything else is a check."""

    if gui and method.upper() in {"GET", "HEAD"} and not _media_type(content_type):
        return RootHandler.GUI
    return RootHandler.CHECK


def prefers_html(accept: str | None) -> bool:
    first = (accept or "").split(",", 1)[0]
    return _media_type(first) == HTML_MEDIA_TYPE


@dataclass(slots=True)
class CheckResponse:
    result: Result
    body: bytes
    media_type: str

    @property
    def status_code(self) -> int:
        if not self.result.well_formed:
            return 400
        return 200 if self.result.acceptable else 406


def check_and_serialize(engine: CheckEngine, document: Input, html: bool = False) -> CheckResponse:
    result = engine.check(document)
    if html:
        rendered = html_elements(result.report)
        if rendered:
            return CheckResponse(result, serialize_html(rendered[0]), HTML_MEDIA_TYPE)
    return CheckResponse(result, serialize(result.report), XML_MEDIA_TYPE)


async def handle_check(request: Request, context: ServiceContext, pool: WorkerPool) -> Response:
    if request.method != "POST":
        raise HTTPException(status_code=405, detail="METHOD_NOT_ALLOWED", headers={"Allow": "POST"})
    content_type = request.headers.get("content-type")
    if _media_type(content_type).startswith("multipart/"):
        raise HTTPException(status_code=400, detail="MULTIPART_NOT_SUPPORTED")
    if not is_xml_content_type(content_type):
        raise HTTPException(status_code=400, detail="UNSUPPORTED_CONTENT_TYPE")
    body = await request.body()
    if not body.strip():
        raise HTTPException(status_code=400, detail="EMPTY_INPUT")

    document = Input.from_bytes(body, name=INPUT_NAME)
    response = await pool.run(
        check_and_serialize, context.engine, document, prefers_html(request.headers.get("accept"))
    )
    logger.debug(
        "Checked %d bytes: scenario=%s acceptable=%s",
        len(body),
        response.result.scenario,
        response.result.acceptable,
    )
    return Response(content=response.body, status_code=response.status_code, media_type=response.media_type)


@router.api_route("/", methods=["GET", "HEAD", "POST"], summary="Check a document or open the GUI")
async def root(
    request: Request,
    context: ServiceContext = Depends(get_context),
    pool: WorkerPool = Depends(get_pool),
    gui: bool = Depends(gui_enabled),
) -> Response:
    handler = select_root_handler(request.method, request.headers.get("content-type"), gui=gui)
    if handler is RootHandler.GUI:
        return render_gui(context)
    return await handle_check(request, context, pool)


__all__ = [
    "CheckResponse",
    "RootHandler",
    "check_and_serialize",
    "handle_check",
    "is_xml_content_type",
    "prefers_html",
    "router",
    "select_root_handler",
]
