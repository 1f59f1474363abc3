from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .assertions import load_assertions
from .context import ServiceContext, resolve_locations
from .discovery import determine_targets
from .errors import ConfigurationError
from .models import BatchResult, BatchSummary, Input, Result, ReturnOutcome
from .scenarios import Configuration
from .steps import CheckContext, NamingStrategy, StepOptions, StepPipeline, build_pipeline

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL_S = 5.0

Clock = Callable[[], float]


@dataclass(slots=True)
class RunOptions:
    """Options of a single batch run."""

    scenarios: list[Path]
    targets: list[Path] = field(default_factory=list)
    repository: Path | None = None
    output_directory: Path | None = None
    extract_html: bool = False
    serialize_input: bool = False
    print_report: bool = False
    print_memory_stats: bool = False
    assertions: Path | None = None
    report_prefix: str = ""
    report_postfix: str = "report"
    debug: bool = False


class BatchOrchestrator:
    """Checks inputs one after another and aggregates their results."""

    def __init__(
        self,
        context: ServiceContext,
        pipeline: StepPipeline,
        check_context: CheckContext,
        *,
        progress_interval: float = PROGRESS_INTERVAL_S,
        clock: Clock = time.monotonic,
    ) -> None:
        self._context = context
        self._pipeline = pipeline
        self._check_context = check_context
        self._progress_interval = progress_interval
        self._clock = clock

    def check_input(self, document: Input) -> Result:
        result = self._context.engine.check(document)
        self._pipeline.apply(result, self._check_context)
        return result

    def run(self, inputs: Sequence[Input]) -> BatchResult:
        console = self._check_context.console
        results: dict[str, Result] = {}
        summary = BatchSummary(total=len(inputs))
        start = self._clock()
        tick = start
        console.print(f"\nProcessing of {len(inputs)} objects started")
        for document in inputs:
            if document.name in results:
                logger.warning("Duplicate input name %s, the earlier result is replaced", document.name)
                summary.duplicates.append(document.name)
            results[document.name] = self.check_input(document)
            now = self._clock()
            if now - tick > self._progress_interval:
                tick = now
                console.print(f"{len(results)}/{len(inputs)} objects processed")
        summary.elapsed_ms = (self._clock() - start) * 1000
        summary.acceptable = sum(1 for result in results.values() if result.acceptable)
        summary.rejected = len(results) - summary.acceptable
        console.print(f"Processing of {len(inputs)} objects completed in {summary.elapsed_ms:.0f}ms")
        return BatchResult(results=results, summary=summary)


def determine_output_directory(path: Path | None) -> Path:
    if path is None:
        return Path.cwd()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except (FileExistsError, NotADirectoryError) as exc:
        raise ConfigurationError("INVALID_OUTPUT_DIR", f"Invalid target directory {path} specified") from exc
    except OSError as exc:
        raise ConfigurationError(
            "INVALID_OUTPUT_DIR", f"Invalid target directory {path} specified: {exc}"
        ) from exc
    if not path.is_dir():
        raise ConfigurationError("INVALID_OUTPUT_DIR", f"Invalid target directory {path} specified")
    return path


def print_scenarios(configurations: Sequence[Configuration], console: Console) -> None:
    for configuration in configurations:
        console.print(
            f'Loaded "{escape(configuration.name)}" by {escape(configuration.author)} '
            f"from {escape(configuration.date)}"
        )
        console.print("\nThe following scenarios are available:")
        for name in configuration.scenario_names:
            console.print(f"  [green]* {escape(name)}[/green]")


def print_results(batch: BatchResult, console: Console) -> None:
    table = Table(title="Results")
    table.add_column("Document")
    table.add_column("Scenario")
    table.add_column("Schema")
    table.add_column("Errors", justify="right")
    table.add_column("Warnings", justify="right")
    table.add_column("Acceptance")
    for name, result in batch.results.items():
        if not result.well_formed:
            schema = "[red]not well-formed[/red]"
        elif result.schema_valid is None:
            schema = "-"
        else:
            schema = "[green]valid[/green]" if result.schema_valid else "[red]invalid[/red]"
        table.add_row(
            escape(name),
            escape(result.scenario) if result.scenario else "[yellow]none[/yellow]",
            schema,
            str(result.error_count),
            str(result.warning_count),
            "[green]ACCEPT[/green]" if result.acceptable else "[red]REJECT[/red]",
        )
    console.print(table)
    summary = batch.summary
    console.print(
        f"Acceptable: {summary.acceptable}  Rejected: {summary.rejected}  Total: {summary.total}"
    )
    if summary.duplicates:
        names = escape(", ".join(summary.duplicates))
        console.print(f"[yellow]Duplicate input names: {names}[/yellow]")


def print_assertion_summary(context: CheckContext, console: Console) -> None:
    failed = len(context.assertion_failures)
    style = "red" if failed else "green"
    console.print(f"[{style}]{failed} of {context.assertions_checked} assertions failed[/{style}]")


def process_actions(
    options: RunOptions,
    *,
    console: Console,
    stdin: BinaryIO | None = None,
) -> ReturnOutcome:
    start = time.perf_counter()
    locations = resolve_locations(options.scenarios, options.repository)
    targets = determine_targets(options.targets, stdin)
    context = ServiceContext.from_locations(locations)
    print_scenarios(context.configurations, console)

    output_directory = determine_output_directory(options.output_directory)
    step_options = StepOptions(
        extract_html=options.extract_html,
        serialize_input=options.serialize_input,
        print_report=options.print_report,
        print_memory_stats=options.print_memory_stats,
        assertions=load_assertions(options.assertions) if options.assertions else None,
        naming=NamingStrategy(prefix=options.report_prefix, postfix=options.report_postfix),
    )
    pipeline = build_pipeline(step_options)
    logger.debug("Step pipeline: %s", ", ".join(pipeline.names))
    logger.info("Setup completed in %.0fms", (time.perf_counter() - start) * 1000)

    check_context = CheckContext(output_directory, console)
    orchestrator = BatchOrchestrator(context, pipeline, check_context)
    batch = orchestrator.run(targets)
    print_results(batch, console)
    if step_options.assertions is not None:
        print_assertion_summary(check_context, console)
    logger.info("Processing %d object(s) completed in %.0fms", len(targets), batch.summary.elapsed_ms)
    return batch.outcome()


__all__ = [
    "BatchOrchestrator",
    "RunOptions",
    "determine_output_directory",
    "print_assertion_summary",
    "print_results",
    "print_scenarios",
    "process_actions",
]
