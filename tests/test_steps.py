from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest
from rich.console import Console

from validation_tool.assertions import load_assertions
from validation_tool.engine import CheckEngine
from validation_tool.errors import ConfigurationError, ValidatorError
from validation_tool.models import Input, Result
from validation_tool.scenarios import load_configuration
from validation_tool.steps import (
    CheckAssertion,
    CheckContext,
    ExtractHtmlContent,
    NamingStrategy,
    PrintMemoryStats,
    SerializeReport,
    StepOptions,
    StepPipeline,
    build_pipeline,
)

FIXTURES = Path(__file__).parent / "fixtures" / "simple"


def build_result(name: str = "valid.xml") -> Result:
    engine = CheckEngine([load_configuration(FIXTURES / "scenarios.toml", FIXTURES / "repository")])
    return engine.check(Input.from_path(FIXTURES / "input" / name))


def build_context(tmp_path: Path) -> CheckContext:
    return CheckContext(output_directory=tmp_path, console=Console(record=True, width=200))


@dataclass
class RecordingStep:
    name: str
    calls: list[str] = field(default_factory=list)
    fail: bool = False

    def apply(self, result: Result, context: CheckContext) -> None:
        self.calls.append(self.name)
        if self.fail:
            raise RuntimeError(f"{self.name} failed")


def test_naming_strategy() -> None:
    result = build_result()
    assert NamingStrategy().name_for(result.input, result) == "valid-report.xml"
    assert NamingStrategy(prefix="pre", postfix="post").name_for(result.input, result) == "pre-valid-post.xml"
    assert NamingStrategy(postfix="").name_for(result.input, result) == "valid-report.xml"


def test_output_never_replaces_input(tmp_path: Path) -> None:
    source = tmp_path / "valid.html"
    source.write_bytes((FIXTURES / "input" / "valid.xml").read_bytes())
    engine = CheckEngine([load_configuration(FIXTURES / "scenarios.toml", FIXTURES / "repository")])
    result = engine.check(Input.from_path(source))
    with pytest.raises(ValidatorError) as excinfo:
        ExtractHtmlContent().apply(result, build_context(tmp_path))
    assert excinfo.value.code == "INVALID_OUTPUT_DIR"
    assert b"<simple" in source.read_bytes()


def test_memory_stats_line(tmp_path: Path) -> None:
    context = build_context(tmp_path)
    PrintMemoryStats().apply(build_result(), context)
    output = context.console.export_text()
    assert "Memory after valid.xml" in output
    assert "peak=" in output


def test_pipeline_order() -> None:
    options = StepOptions(
        extract_html=True,
        serialize_input=True,
        print_report=True,
        print_memory_stats=True,
        assertions=load_assertions(FIXTURES / "assertions.xml"),
    )
    assert build_pipeline(options).names == [
        "extract-html",
        "serialize-report",
        "serialize-report-input",
        "print-report",
        "check-assertions",
        "memory-stats",
    ]
    assert build_pipeline(StepOptions()).names == ["serialize-report"]


def test_pipeline_stops_at_first_failure(tmp_path: Path) -> None:
    calls: list[str] = []
    first = RecordingStep("first", calls)
    broken = RecordingStep("broken", calls, fail=True)
    last = RecordingStep("last", calls)
    pipeline = StepPipeline([first, broken, last])
    with pytest.raises(RuntimeError):
        pipeline.apply(build_result(), build_context(tmp_path))
    assert calls == ["first", "broken"]


def test_serialize_report_writes_file(tmp_path: Path) -> None:
    result = build_result()
    SerializeReport().apply(result, build_context(tmp_path))
    written = tmp_path / "valid-report.xml"
    assert written.exists()
    content = written.read_bytes()
    assert content.startswith(b"<?xml")
    assert b"urn:xml-validation-tool:report:1" in content


def test_extract_html_writes_page(tmp_path: Path) -> None:
    ExtractHtmlContent().apply(build_result(), build_context(tmp_path))
    page = tmp_path / "valid.html"
    assert page.exists()
    assert b"Accepted" in page.read_bytes()


def test_check_assertions_collects_failures(tmp_path: Path) -> None:
    assertions = load_assertions(FIXTURES / "assertions.xml")
    context = build_context(tmp_path)
    step = CheckAssertion(assertions=assertions)
    step.apply(build_result("valid.xml"), context)
    assert context.assertion_failures == []
    step.apply(build_result("rule-violation.xml"), context)
    assert len(context.assertion_failures) == 1
    assert context.assertion_failures[0].report_doc == "rule-violation.xml"
    step.apply(build_result("warning.xml"), context)
    assert len(context.assertion_failures) == 1
    assert context.assertions_checked == 3
    assert "1 failed" in context.console.export_text()


def test_load_assertions_rejects_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        load_assertions(tmp_path / "missing.xml")
    assert excinfo.value.code == "ASSERTIONS_LOAD"
