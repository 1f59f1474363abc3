from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .engine import CheckEngine
from .scenarios import Configuration, determine_definition, determine_repository, load_configuration

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScenarioLocations:
    definitions: tuple[Path, ...]
    repository: Path | None = None


def resolve_locations(scenarios: Sequence[Path], repository: Path | None) -> ScenarioLocations:
    """Check scenario and repository locations without reading them."""

    return ScenarioLocations(
        definitions=tuple(determine_definition(path) for path in scenarios),
        repository=determine_repository(repository),
    )


def load_configurations(locations: ScenarioLocations) -> list[Configuration]:
    configurations = []
    for definition in locations.definitions:
        logger.info("Loading scenarios from %s", definition)
        logger.info("Using repository %s", locations.repository)
        configurations.append(load_configuration(definition, locations.repository))
    return configurations


@dataclass(frozen=True, slots=True)
class ServiceContext:
    """Everything a check needs, built once at startup and shared read-only."""

    configurations: tuple[Configuration, ...]
    engine: CheckEngine
    started_at: float = field(default_factory=time.time)

    @classmethod
    def create(cls, configurations: Sequence[Configuration]) -> ServiceContext:
        configs = tuple(configurations)
        return cls(configurations=configs, engine=CheckEngine(configs))

    @classmethod
    def from_locations(cls, locations: ScenarioLocations) -> ServiceContext:
        return cls.create(load_configurations(locations))

    @property
    def uptime_seconds(self) -> float:
        return max(0.0, time.time() - self.started_at)


__all__ = [
    "ScenarioLocations",
    "ServiceContext",
    "load_configurations",
    "resolve_locations",
]
