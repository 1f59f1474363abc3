"""Post-check steps applied to every result of a batch run.

Steps run in registration order and are folded without catching errors: the
first failing step aborts the whole batch run, and the run then ends with the
configuration error outcome whatever the cause of the failure was.
"""

from __future__ import annotations

import logging
import sys
import tracemalloc
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from .assertions import AssertionFailure, Assertions
from .errors import ValidatorError
from .models import Input, Result
from .report import html_elements, serialize, serialize_html
from .utils import atomic_write_bytes, slugify, stem_of

try:
    import resource
except ImportError:  # pragma: no cover - Windows
    resource = None

logger = logging.getLogger(__name__)

DEFAULT_POSTFIX = "report"


@dataclass(slots=True)
class CheckContext:
    """Per-run context shared by all steps."""

    output_directory: Path
    console: Console
    assertion_failures: list[AssertionFailure] = field(default_factory=list)
    assertions_checked: int = 0


class CheckStep(Protocol):
    name: str

    def apply(self, result: Result, context: CheckContext) -> None:  # pragma: no cover - interface
        ...


def write_output(target: Path, data: bytes, result: Result) -> None:
    """Write *data* to *target* unless that would replace the checked document."""

    location = result.input.location
    if location is not None and target.resolve() == location.resolve():
        raise ValidatorError(
            "INVALID_OUTPUT_DIR", f"Refusing to overwrite input document {location} with its output"
        )
    atomic_write_bytes(target, data)


@dataclass(frozen=True, slots=True)
class NamingStrategy:
    """Report file names; an empty postfix falls back to the default."""

    prefix: str = ""
    postfix: str = DEFAULT_POSTFIX

    def name_for(self, document: Input, result: Result) -> str:
        parts = [self.prefix, slugify(stem_of(document.name)), self.postfix or DEFAULT_POSTFIX]
        return "-".join(part for part in parts if part) + ".xml"


@dataclass(frozen=True, slots=True)
class ExtractHtmlContent:
    name: str = "extract-html"

    def apply(self, result: Result, context: CheckContext) -> None:
        stem = slugify(stem_of(result.input.name))
        for index, element in enumerate(html_elements(result.report), start=1):
            suffix = "" if index == 1 else f"-{index}"
            target = context.output_directory / f"{stem}{suffix}.html"
            write_output(target, serialize_html(element), result)
            logger.debug("Wrote HTML content to %s", target)


@dataclass(frozen=True, slots=True)
class SerializeReport:
    naming: NamingStrategy = field(default_factory=NamingStrategy)
    name: str = "serialize-report"

    def apply(self, result: Result, context: CheckContext) -> None:
        target = context.output_directory / self.naming.name_for(result.input, result)
        write_output(target, serialize(result.report), result)
        logger.debug("Wrote report to %s", target)


@dataclass(frozen=True, slots=True)
class SerializeReportInput:
    name: str = "serialize-report-input"

    def apply(self, result: Result, context: CheckContext) -> None:
        stem = slugify(stem_of(result.input.name))
        target = context.output_directory / f"{stem}-reportInput.xml"
        write_output(target, serialize(result.report_input), result)


@dataclass(frozen=True, slots=True)
class PrintReport:
    name: str = "print-report"

    def apply(self, result: Result, context: CheckContext) -> None:
        text = serialize(result.report).decode("utf-8")
        context.console.print(Syntax(text, "xml", word_wrap=True))


@dataclass(frozen=True, slots=True)
class CheckAssertion:
    assertions: Assertions
    name: str = "check-assertions"

    def apply(self, result: Result, context: CheckContext) -> None:
        document = result.input.name
        expected = self.assertions.for_document(document)
        if not expected:
            logger.warning("Can not find assertions for %s", document)
            return
        failures = self.assertions.evaluate(document, result.report)
        for failure in failures:
            logger.error("Assertion mismatch: %s", failure.assertion.description or failure.assertion.test)
        context.assertions_checked += len(expected)
        context.assertion_failures.extend(failures)
        if failures:
            context.console.print(f"[red]Assertion check for {escape(document)}: {len(failures)} failed[/red]")
        else:
            context.console.print(f"[green]Assertion check for {escape(document)} successful[/green]")


def _max_rss_mb() -> float | None:
    if resource is None:
        return None
    usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # kilobytes on Linux, bytes on macOS
    return usage / (1024 * 1024 if sys.platform == "darwin" else 1024)


@dataclass(frozen=True, slots=True)
class PrintMemoryStats:
    """Traced Python memory plus the process peak, which includes libxml2 allocations."""

    name: str = "memory-stats"

    def __post_init__(self) -> None:
        if not tracemalloc.is_tracing():
            tracemalloc.start()

    def apply(self, result: Result, context: CheckContext) -> None:
        current, peak = tracemalloc.get_traced_memory()
        line = (
            f"Memory after {escape(result.input.name)}: current={current / 1024 / 1024:.2f}MB "
            f"peak={peak / 1024 / 1024:.2f}MB"
        )
        max_rss = _max_rss_mb()
        if max_rss is not None:
            line += f" max-rss={max_rss:.2f}MB"
        context.console.print(line)


class StepPipeline:
    """Immutable, ordered sequence of steps."""

    def __init__(self, steps: Sequence[CheckStep]) -> None:
        self._steps: tuple[CheckStep, ...] = tuple(steps)

    @property
    def steps(self) -> tuple[CheckStep, ...]:
        return self._steps

    @property
    def names(self) -> list[str]:
        return [step.name for step in self._steps]

    def apply(self, result: Result, context: CheckContext) -> None:
        for step in self._steps:
            step.apply(result, context)


@dataclass(frozen=True, slots=True)
class StepOptions:
    extract_html: bool = False
    serialize_input: bool = False
    print_report: bool = False
    print_memory_stats: bool = False
    assertions: Assertions | None = None
    naming: NamingStrategy = field(default_factory=NamingStrategy)


def build_pipeline(options: StepOptions) -> StepPipeline:
    steps: list[CheckStep] = []
    if options.extract_html:
        steps.append(ExtractHtmlContent())
    steps.append(SerializeReport(naming=options.naming))
    if options.serialize_input:
        steps.append(SerializeReportInput())
    if options.print_report:
        steps.append(PrintReport())
    if options.assertions is not None:
        steps.append(CheckAssertion(assertions=options.assertions))
    if options.print_memory_stats:
        steps.append(PrintMemoryStats())
    return StepPipeline(steps)


__all__ = [
    "CheckContext",
    "CheckStep",
    "CheckAssertion",
    "ExtractHtmlContent",
    "NamingStrategy",
    "PrintMemoryStats",
    "PrintReport",
    "SerializeReport",
    "SerializeReportInput",
    "StepOptions",
    "StepPipeline",
    "build_pipeline",
    "write_output",
]
