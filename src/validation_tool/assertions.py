"""XPath assertions evaluated against generated reports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from lxml import etree

from .errors import ConfigurationError
from .report import NSMAP

logger = logging.getLogger(__name__)

ASSERTIONS_NS = "urn:xml-validation-tool:assertions:1"


@dataclass(frozen=True, slots=True)
class Assertion:
    report_doc: str
    test: str
    description: str


@dataclass(frozen=True, slots=True)
class AssertionFailure:
    assertion: Assertion
    report_doc: str


@dataclass(frozen=True, slots=True)
class Assertions:
    """Assertions grouped by the name of the document whose report they test."""

    items: tuple[Assertion, ...]
    namespaces: Mapping[str, str] = field(default_factory=lambda: dict(NSMAP))

    def for_document(self, name: str) -> list[Assertion]:
        return [item for item in self.items if item.report_doc == name]

    def evaluate(self, name: str, report: etree._Element) -> list[AssertionFailure]:
        failures: list[AssertionFailure] = []
        for assertion in self.for_document(name):
            try:
                outcome = report.xpath(assertion.test, namespaces=dict(self.namespaces))
            except etree.XPathError as exc:
                logger.error("Assertion '%s' can not be evaluated: %s", assertion.test, exc)
                outcome = False
            if not outcome:
                failures.append(AssertionFailure(assertion=assertion, report_doc=name))
        return failures


def _ns(tag: str) -> str:
    return f"{{{ASSERTIONS_NS}}}{tag}"


def load_assertions(path: Path) -> Assertions:
    if not path.is_file():
        raise ConfigurationError("ASSERTIONS_LOAD", f"Assertions file not found: {path}")
    try:
        root = etree.parse(str(path)).getroot()
    except etree.XMLSyntaxError as exc:
        raise ConfigurationError("ASSERTIONS_LOAD", f"Invalid assertions file {path}: {exc}") from exc
    namespaces = dict(NSMAP)
    for element in root.iter(_ns("namespace")):
        prefix = element.get("prefix")
        if prefix and element.text:
            namespaces[prefix] = element.text.strip()
    items = []
    for element in root.iter(_ns("assertion")):
        report_doc = element.get("report-doc")
        test = element.get("test")
        if not report_doc or not test:
            raise ConfigurationError(
                "ASSERTIONS_LOAD", f"Assertion in {path} needs 'report-doc' and 'test' attributes"
            )
        items.append(Assertion(report_doc=report_doc, test=test, description=(element.text or "").strip()))
    logger.info("Loaded %d assertion(s) from %s", len(items), path)
    return Assertions(items=tuple(items), namespaces=namespaces)


__all__ = ["Assertion", "AssertionFailure", "Assertions", "ASSERTIONS_NS", "load_assertions"]
