from __future__ import annotations

import logging
from typing import Sequence

from lxml import etree

from . import __version__
from .errors import ValidatorError
from .models import Input, Message, Result
from .report import NSMAP, attach_html, build_report, build_report_input
from .scenarios import Configuration, Scenario

logger = logging.getLogger(__name__)

ENGINE_NAME = "XML Validation Tool"
SVRL_NS = "http://purl.oclc.org/dsdl/svrl"

_LEVELS = {
    "warning": "warning",
    "warn": "warning",
    "info": "info",
    "information": "info",
}


def _parser() -> etree.XMLParser:
    # Parsers are not shareable between threads.
    return etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=False)


def _svrl_messages(svrl: etree._ElementTree, step_id: str) -> list[Message]:
    messages: list[Message] = []
    ns = {"svrl": SVRL_NS}
    for entry in svrl.xpath("//svrl:failed-assert | //svrl:successful-report", namespaces=ns):
        text_el = entry.find("svrl:text", namespaces=ns)
        text = text_el.text.strip() if text_el is not None and text_el.text else ""
        if not text:
            text = (entry.text or "").strip() or f"Assertion failed (test: {entry.get('test', '')})"
        role = (entry.get("role") or entry.get("flag") or "").lower()
        messages.append(
            Message(
                step=step_id,
                level=_LEVELS.get(role, "error"),  # type: ignore[arg-type]
                text=text,
                location=entry.get("location"),
                code=entry.get("id"),
            )
        )
    return messages


class CheckEngine:
    """Checks documents against the scenarios of one or more configurations.

    Instances hold only immutable, compiled artefacts and may be shared by
    concurrently running requests.
    """

    def __init__(self, configurations: Sequence[Configuration]) -> None:
        if not configurations:
            raise ValueError("At least one configuration is required")
        self._configurations = tuple(configurations)

    @property
    def configurations(self) -> tuple[Configuration, ...]:
        return self._configurations

    def check(self, document: Input) -> Result:
        try:
            tree = etree.ElementTree(etree.fromstring(document.content, _parser()))
        except (etree.XMLSyntaxError, ValueError) as exc:
            logger.debug("%s is not well-formed: %s", document.name, exc)
            return self._not_well_formed(document, exc)

        scenario = self._find_scenario(tree)
        if scenario is None:
            logger.debug("No scenario matched %s", document.name)
            report_input = self._report_input(document, None, [("val-xml", True, [])])
            return Result(
                input=document,
                acceptable=False,
                report=build_report(report_input, acceptable=False),
                report_input=report_input,
            )
        return self._run_scenario(document, tree, scenario)

    def _find_scenario(self, tree: etree._ElementTree) -> Scenario | None:
        for configuration in self._configurations:
            scenario = configuration.find_scenario(tree)
            if scenario is not None:
                return scenario
        return None

    def _not_well_formed(self, document: Input, exc: Exception) -> Result:
        entries = list(getattr(exc, "error_log", None) or [])
        messages = [
            Message(step="val-xml", level="error", text=entry.message, line=entry.line) for entry in entries
        ] or [Message(step="val-xml", level="error", text=str(exc) or "Document is empty")]
        report_input = self._report_input(document, None, [("val-xml", False, messages)])
        return Result(
            input=document,
            acceptable=False,
            report=build_report(report_input, acceptable=False),
            report_input=report_input,
            well_formed=False,
            messages=messages,
        )

    def _run_scenario(self, document: Input, tree: etree._ElementTree, scenario: Scenario) -> Result:
        steps: list[tuple[str, bool, list[Message]]] = [("val-xml", True, [])]
        messages: list[Message] = []
        schema_valid: bool | None = None

        if scenario.schema is not None:
            schema_messages = [
                Message(step="val-xsd", level="error", text=entry.message, line=entry.line)
                for entry in scenario.schema.validate(tree)
            ]
            schema_valid = not schema_messages
            steps.append(("val-xsd", schema_valid, schema_messages))
            messages.extend(schema_messages)

        # Business rules only make sense on schema-valid documents.
        if schema_valid is not False:
            for index, rules in enumerate(scenario.schematron, start=1):
                step_id = f"val-sch.{index}"
                rule_messages = _svrl_messages(rules.run(tree), step_id)
                steps.append((step_id, not any(m.level == "error" for m in rule_messages), rule_messages))
                messages.extend(rule_messages)

        report_input = self._report_input(document, scenario.name, steps)
        acceptable = self._assess(scenario, report_input, messages)
        report = build_report(report_input, acceptable=acceptable)
        if scenario.html_stylesheet is not None:
            self._render_html(scenario.name, scenario.html_stylesheet, report)
        return Result(
            input=document,
            acceptable=acceptable,
            report=report,
            report_input=report_input,
            scenario=scenario.name,
            schema_valid=schema_valid,
            messages=messages,
        )

    def _assess(self, scenario: Scenario, report_input: etree._Element, messages: list[Message]) -> bool:
        if any(message.level == "error" for message in messages):
            return False
        if scenario.accept_match is None:
            return True
        namespaces = dict(scenario.namespaces)
        namespaces.setdefault("rep", NSMAP["rep"])
        return bool(report_input.xpath(scenario.accept_match, namespaces=namespaces))

    def _render_html(self, scenario: str, stylesheet: etree.XSLT, report: etree._Element) -> None:
        try:
            html = stylesheet(etree.ElementTree(report))
        except etree.XSLTApplyError as exc:
            raise ValidatorError(
                "PROCESSING_ERROR", f"HTML rendering failed for scenario '{scenario}': {exc}"
            ) from exc
        root = html.getroot()
        if root is not None:
            attach_html(report, root)

    def _report_input(
        self, document: Input, scenario: str | None, steps: list[tuple[str, bool, list[Message]]]
    ) -> etree._Element:
        return build_report_input(
            document,
            engine_name=ENGINE_NAME,
            engine_version=__version__,
            scenario=scenario,
            steps=steps,
        )


__all__ = ["CheckEngine", "ENGINE_NAME"]
