"""Resolution of check targets from paths and piped input."""

from __future__ import annotations

import logging
import select
from pathlib import Path
from typing import BinaryIO, Sequence

from .errors import ConfigurationError
from .models import Input
from .utils import iter_xml_files

logger = logging.getLogger(__name__)

STDIN_NAME = "stdin"


def determine_target(path: Path) -> list[Input]:
    if path.is_dir():
        return list_directory_targets(path)
    if path.exists():
        return [Input.from_path(path)]
    logger.warning("The specified test target %s does not exist. Will be ignored", path)
    return []


def list_directory_targets(directory: Path) -> list[Input]:
    try:
        return [Input.from_path(path) for path in iter_xml_files(directory)]
    except OSError as exc:
        raise ConfigurationError(
            "NO_TARGETS", f"Can not list directory content of {directory}: {exc}"
        ) from exc


def is_piped(stream: BinaryIO | None) -> bool:
    """Return whether *stream* is a non-interactive stream with data waiting."""

    if stream is None:
        return False
    try:
        if stream.isatty():
            return False
    except ValueError:
        return False
    try:
        ready, _, _ = select.select([stream], [], [], 0)
    except (OSError, ValueError):
        # No pollable descriptor (in-memory streams, Windows files).
        return True
    return bool(ready)


def read_from_pipe(stream: BinaryIO) -> Input | None:
    document = Input.from_stream(stream, STDIN_NAME)
    if not document.content:
        return None
    return document


def determine_targets(paths: Sequence[Path], stdin: BinaryIO | None = None) -> list[Input]:
    """Collect inputs from *paths* in argument order, piped input last."""

    targets: list[Input] = []
    for path in paths:
        targets.extend(determine_target(path))
    if stdin is not None and is_piped(stdin):
        piped = read_from_pipe(stdin)
        if piped is not None:
            targets.append(piped)
    if not targets:
        raise ConfigurationError("NO_TARGETS", "No test targets found. Nothing to check. Will quit now!")
    return targets


__all__ = [
    "STDIN_NAME",
    "determine_target",
    "determine_targets",
    "is_piped",
    "list_directory_targets",
    "read_from_pipe",
]
