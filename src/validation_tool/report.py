"""Report documents produced for every check."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Iterable

from lxml import etree

from .models import Input, Message

REPORT_NS = "urn:xml-validation-tool:report:1"
XHTML_NS = "http://www.w3.org/1999/xhtml"
NSMAP = {"rep": REPORT_NS}


def _q(tag: str) -> str:
    return f"{{{REPORT_NS}}}{tag}"


def _engine(parent: etree._Element, name: str, version: str) -> None:
    engine = etree.SubElement(parent, _q("engine"))
    etree.SubElement(engine, _q("name")).text = name
    etree.SubElement(engine, _q("version")).text = version


def _identification(parent: etree._Element, document: Input) -> None:
    ident = etree.SubElement(parent, _q("documentIdentification"))
    etree.SubElement(ident, _q("documentHash"), algorithm="SHA-256").text = document.digest
    etree.SubElement(ident, _q("documentReference")).text = document.name


def _step(parent: etree._Element, step_id: str, valid: bool, messages: Iterable[Message]) -> None:
    element = etree.SubElement(parent, _q("validationStepResult"), id=step_id, valid=str(valid).lower())
    for message in messages:
        attributes = {"level": message.level}
        if message.location:
            attributes["location"] = message.location
        if message.code:
            attributes["code"] = message.code
        if message.line is not None:
            attributes["line"] = str(message.line)
        etree.SubElement(element, _q("message"), **attributes).text = message.text


def build_report_input(
    document: Input,
    *,
    engine_name: str,
    engine_version: str,
    scenario: str | None,
    steps: Iterable[tuple[str, bool, list[Message]]],
) -> etree._Element:
    """Collect the raw validation results for *document* before assessment."""

    root = etree.Element(_q("reportInput"), nsmap=NSMAP)
    _engine(root, engine_name, engine_version)
    etree.SubElement(root, _q("timestamp")).text = datetime.now(timezone.utc).isoformat()
    _identification(root, document)
    if scenario is None:
        etree.SubElement(root, _q("noScenarioMatched"))
    else:
        etree.SubElement(root, _q("scenarioMatched"), name=scenario)
    for step_id, valid, messages in steps:
        _step(root, step_id, valid, messages)
    return root


def build_report(report_input: etree._Element, *, acceptable: bool) -> etree._Element:
    report = etree.Element(_q("report"), nsmap=NSMAP, valid=str(acceptable).lower())
    for child in report_input:
        report.append(copy.deepcopy(child))
    assessment = etree.SubElement(report, _q("assessment"))
    etree.SubElement(assessment, _q("accept" if acceptable else "reject"))
    return report


def attach_html(report: etree._Element, html: etree._Element) -> None:
    extension = report.find(_q("extension"))
    if extension is None:
        extension = etree.SubElement(report, _q("extension"))
    extension.append(html)


def html_elements(report: etree._Element) -> list[etree._Element]:
    return list(report.iter(f"{{{XHTML_NS}}}html"))


def serialize(element: etree._Element) -> bytes:
    return etree.tostring(element, pretty_print=True, xml_declaration=True, encoding="UTF-8")


def serialize_html(element: etree._Element) -> bytes:
    return etree.tostring(element, method="html", pretty_print=True, encoding="UTF-8")


__all__ = [
    "REPORT_NS",
    "XHTML_NS",
    "NSMAP",
    "attach_html",
    "build_report",
    "build_report_input",
    "html_elements",
    "serialize",
    "serialize_html",
]
