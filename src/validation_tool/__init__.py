"""Conformance checking of XML documents against validation scenarios."""

__version__ = "1.0.0"

from .context import ServiceContext
from .core import BatchOrchestrator, RunOptions, process_actions
from .engine import CheckEngine
from .models import BatchResult, Input, Result, ReturnOutcome
from .scenarios import Configuration, load_configuration

__all__ = [
    "__version__",
    "BatchOrchestrator",
    "BatchResult",
    "CheckEngine",
    "Configuration",
    "Input",
    "Result",
    "ReturnOutcome",
    "RunOptions",
    "ServiceContext",
    "load_configuration",
    "process_actions",
]
