"""Domain models for document checks and batch runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from hashlib import sha256
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Literal

if TYPE_CHECKING:
    from lxml import etree

MAX_FAILED_EXIT_CODE = 254
CONFIGURATION_ERROR_EXIT_CODE = 255


@dataclass(frozen=True, slots=True)
class Input:
    """A named document whose content has been read exactly once."""

    name: str
    content: bytes
    location: Path | None = None

    @classmethod
    def from_path(cls, path: Path) -> Input:
        return cls(name=path.name, content=path.read_bytes(), location=path)

    @classmethod
    def from_stream(cls, stream: BinaryIO, name: str) -> Input:
        return cls(name=name, content=stream.read())

    @classmethod
    def from_bytes(cls, content: bytes, name: str) -> Input:
        return cls(name=name, content=content)

    @property
    def digest(self) -> str:
        return sha256(self.content).hexdigest()


@dataclass(frozen=True, slots=True)
class Message:
    """A single finding reported by one validation step."""

    step: str
    level: Literal["error", "warning", "info"]
    text: str
    location: str | None = None
    code: str | None = None
    line: int | None = None


@dataclass(slots=True)
class Result:
    """Outcome of checking one input."""

    input: Input
    acceptable: bool
    report: etree._Element
    report_input: etree._Element
    scenario: str | None = None
    well_formed: bool = True
    schema_valid: bool | None = None
    messages: list[Message] = field(default_factory=list)

    @property
    def scenario_matched(self) -> bool:
        return self.scenario is not None

    @property
    def error_count(self) -> int:
        return sum(1 for message in self.messages if message.level == "error")

    @property
    def warning_count(self) -> int:
        return sum(1 for message in self.messages if message.level == "warning")


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    DAEMON_MODE = "daemon_mode"
    CONFIGURATION_ERROR = "configuration_error"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ReturnOutcome:
    """Terminal status of a run."""

    kind: OutcomeKind
    failed: int = 0

    @classmethod
    def success(cls) -> ReturnOutcome:
        return cls(OutcomeKind.SUCCESS)

    @classmethod
    def daemon_mode(cls) -> ReturnOutcome:
        return cls(OutcomeKind.DAEMON_MODE)

    @classmethod
    def configuration_error(cls) -> ReturnOutcome:
        return cls(OutcomeKind.CONFIGURATION_ERROR)

    @classmethod
    def failed_with(cls, count: int) -> ReturnOutcome:
        if count <= 0:
            raise ValueError("A failed outcome needs at least one rejected document")
        return cls(OutcomeKind.FAILED, failed=count)

    @property
    def exit_code(self) -> int:
        if self.kind is OutcomeKind.CONFIGURATION_ERROR:
            return CONFIGURATION_ERROR_EXIT_CODE
        if self.kind is OutcomeKind.FAILED:
            return min(self.failed, MAX_FAILED_EXIT_CODE)
        return 0


@dataclass(slots=True)
class BatchSummary:
    total: int = 0
    acceptable: int = 0
    rejected: int = 0
    duplicates: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0


@dataclass(slots=True)
class BatchResult:
    """Aggregate results of a batch run keyed by input name."""

    results: dict[str, Result]
    summary: BatchSummary

    @property
    def successful(self) -> bool:
        return all(result.acceptable for result in self.results.values())

    @property
    def not_acceptable_count(self) -> int:
        return sum(1 for result in self.results.values() if not result.acceptable)

    def outcome(self) -> ReturnOutcome:
        if self.successful:
            return ReturnOutcome.success()
        return ReturnOutcome.failed_with(self.not_acceptable_count)


__all__ = [
    "Input",
    "Message",
    "Result",
    "OutcomeKind",
    "ReturnOutcome",
    "BatchSummary",
    "BatchResult",
]
