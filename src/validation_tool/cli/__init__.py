from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import BinaryIO

import typer
from rich.console import Console
from rich.markup import escape

from .. import __version__
from ..config import AppConfig, DaemonConfig, dump_config, load_config
from ..context import ServiceContext, resolve_locations
from ..core import RunOptions, print_scenarios, process_actions
from ..daemon import Daemon
from ..engine import ENGINE_NAME
from ..logging import configure_logging
from ..models import ReturnOutcome
from ..settings import get_settings

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(help="Check XML documents against validation scenarios", add_completion=False)


def greeting() -> None:
    console.print(f"{ENGINE_NAME} version {__version__}")


def start_daemon_mode(options: RunOptions, daemon: DaemonConfig) -> None:
    locations = resolve_locations(options.scenarios, options.repository)
    context = ServiceContext.from_locations(locations)
    print_scenarios(context.configurations, console)
    console.print("\nStarting daemon mode ...")
    Daemon(daemon).start_server(context)


def main_program(
    options: RunOptions,
    daemon: DaemonConfig | None = None,
    *,
    stdin: BinaryIO | None = None,
) -> ReturnOutcome:
    """Run either daemon mode or a batch run and map failures to an outcome."""

    greeting()
    try:
        if daemon is not None:
            start_daemon_mode(options, daemon)
            return ReturnOutcome.daemon_mode()
        return process_actions(options, console=console, stdin=stdin)
    except Exception as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        if options.debug:
            logger.exception("Processing aborted: %s", exc)
        else:
            logger.error("Processing aborted: %s", exc)
        return ReturnOutcome.configuration_error()


def _daemon_config(
    cfg: AppConfig,
    *,
    host: str | None,
    port: int | None,
    threads: int | None,
    disable_gui: bool,
    queue_limit: int | None,
    request_timeout: float | None,
) -> DaemonConfig:
    return DaemonConfig(
        host=host or cfg.daemon.host,
        port=port if port is not None else cfg.daemon.port,
        workers=threads if threads is not None else cfg.daemon.workers,
        gui=cfg.daemon.gui and not disable_gui,
        queue_limit=queue_limit if queue_limit is not None else cfg.daemon.queue_limit,
        request_timeout_s=request_timeout if request_timeout is not None else cfg.daemon.request_timeout_s,
    )


@app.command()
def check(
    targets: list[Path] = typer.Argument(None, help="Files or directories to check"),
    scenarios: list[Path] = typer.Option(..., "--scenarios", "-s", help="Scenario definition file"),
    repository: Path | None = typer.Option(None, "--repository", "-r", help="Repository directory"),
    output_directory: Path | None = typer.Option(None, "--output-directory", "-o", help="Output directory"),
    html: bool = typer.Option(False, "--html", "-h", help="Extract HTML content from reports"),
    serialize_report_input: bool = typer.Option(
        False, "--serialize-report-input", help="Write the report input document"
    ),
    print_report: bool = typer.Option(False, "--print", "-p", help="Print the report"),
    memory_stats: bool = typer.Option(False, "--memory-stats", "-m", help="Print memory statistics"),
    check_assertions: Path | None = typer.Option(
        None, "--check-assertions", "-c", help="Assertions file to check reports against"
    ),
    report_prefix: str | None = typer.Option(None, "--report-prefix", help="Report file name prefix"),
    report_postfix: str | None = typer.Option(None, "--report-postfix", help="Report file name postfix"),
    daemon: bool = typer.Option(False, "--daemon", "-D", help="Start the HTTP daemon"),
    host: str | None = typer.Option(None, "--host", "-H", help="Daemon host"),
    port: int | None = typer.Option(None, "--port", "-P", min=1, max=65535, help="Daemon port"),
    threads: int | None = typer.Option(None, "--threads", "-T", min=0, help="Daemon worker threads"),
    disable_gui: bool = typer.Option(False, "--disable-gui", "-G", help="Disable the daemon GUI"),
    queue_limit: int | None = typer.Option(
        None, "--queue-limit", min=0, help="Maximum pending daemon requests (0: unbounded)"
    ),
    request_timeout: float | None = typer.Option(
        None, "--request-timeout", min=0, help="Daemon request timeout in seconds (0: none)"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Debug output"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    configure_logging(debug, err_console)
    cfg = load_config(config or get_settings().config_path)
    logger.debug("Tool configuration:\n%s", dump_config(cfg))
    options = RunOptions(
        scenarios=list(scenarios),
        targets=list(targets or []),
        repository=repository,
        output_directory=output_directory,
        extract_html=html,
        serialize_input=serialize_report_input,
        print_report=print_report,
        print_memory_stats=memory_stats,
        assertions=check_assertions,
        report_prefix=report_prefix or cfg.report.prefix,
        report_postfix=report_postfix or cfg.report.postfix,
        debug=debug,
    )
    daemon_config = None
    if daemon:
        daemon_config = _daemon_config(
            cfg,
            host=host,
            port=port,
            threads=threads,
            disable_gui=disable_gui,
            queue_limit=queue_limit,
            request_timeout=request_timeout,
        )
    stdin = sys.stdin.buffer if sys.stdin is not None and not daemon else None
    outcome = main_program(options, daemon_config, stdin=stdin)
    raise typer.Exit(outcome.exit_code)


if __name__ == "__main__":
    app()
