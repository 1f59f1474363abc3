"""Scenario definitions and the configuration bundle they form."""

from __future__ import annotations

import logging
import threading
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from lxml import etree
from lxml.isoschematron import Schematron

from .errors import ConfigurationError
from .utils import resolve_relative

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SchematronRules:
    """A compiled ISO Schematron validator.

    The validator XSLT is applied directly so that every call gets its own
    SVRL result tree; ``Schematron.validate`` keeps the last report on the
    instance.
    """

    name: str
    transform: etree.XSLT

    @classmethod
    def load(cls, path: Path) -> SchematronRules:
        schematron = Schematron(etree.parse(str(path)), store_xslt=True)
        return cls(name=path.name, transform=etree.XSLT(schematron.validator_xslt))

    def run(self, document: etree._ElementTree) -> etree._ElementTree:
        return self.transform(document)


@dataclass(frozen=True, slots=True)
class XmlSchema:
    """Compiled XML Schema; validation runs under a lock because lxml stores
    the error log on the schema object."""

    name: str
    schema: etree.XMLSchema
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @classmethod
    def load(cls, path: Path) -> XmlSchema:
        return cls(name=path.name, schema=etree.XMLSchema(etree.parse(str(path))))

    def validate(self, document: etree._ElementTree) -> list[etree._LogEntry]:
        with self._lock:
            if self.schema.validate(document):
                return []
            return list(self.schema.error_log)


@dataclass(frozen=True, slots=True)
class Scenario:
    name: str
    match: str
    namespaces: Mapping[str, str]
    description: str = ""
    schema: XmlSchema | None = None
    schematron: tuple[SchematronRules, ...] = ()
    html_stylesheet: etree.XSLT | None = None
    accept_match: str | None = None

    def matches(self, document: etree._ElementTree) -> bool:
        return bool(document.xpath(self.match, namespaces=dict(self.namespaces)))


@dataclass(frozen=True, slots=True)
class Configuration:
    """Immutable bundle of scenarios loaded from one definition file."""

    name: str
    author: str
    date: str
    scenarios: tuple[Scenario, ...]
    source: Path
    description: str = ""

    @property
    def scenario_names(self) -> list[str]:
        return [scenario.name for scenario in self.scenarios]

    def find_scenario(self, document: etree._ElementTree) -> Scenario | None:
        for scenario in self.scenarios:
            if scenario.matches(document):
                return scenario
        return None


def determine_definition(path: Path) -> Path:
    if path.is_file():
        return path.resolve()
    raise ConfigurationError(
        "INVALID_SCENARIO",
        f"Not a valid path for scenario definition specified: '{path.absolute()}'",
    )


def determine_repository(path: Path | None) -> Path | None:
    if path is None:
        return None
    if path.is_dir():
        return path.resolve()
    raise ConfigurationError(
        "INVALID_REPOSITORY",
        f"Not a valid path for repository definition specified: '{path.absolute()}'",
    )


def _read_toml(path: Path) -> Mapping[str, object]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError("SCENARIO_LOAD", f"Invalid scenario definition {path}: {exc}") from exc


def _string_map(value: object | None) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): str(v) for k, v in value.items()}


def _string_list(value: object | None) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(item) for item in value]
    raise ConfigurationError("SCENARIO_LOAD", f"Expected a string or a list of strings, got {value!r}")


class _ArtefactLoader:
    def __init__(self, definition: Path, repository: Path | None) -> None:
        self._roots = [repository, definition.parent] if repository else [definition.parent]

    def resolve(self, location: str) -> Path:
        path = resolve_relative(Path(location), self._roots)
        if not path.is_file():
            raise ConfigurationError("SCENARIO_LOAD", f"Scenario artefact not found: {location}")
        return path

    def schema(self, location: str) -> XmlSchema:
        path = self.resolve(location)
        try:
            return XmlSchema.load(path)
        except (etree.XMLSyntaxError, etree.XMLSchemaParseError) as exc:
            raise ConfigurationError("SCENARIO_LOAD", f"Can not load schema {path}: {exc}") from exc

    def schematron(self, location: str) -> SchematronRules:
        path = self.resolve(location)
        try:
            return SchematronRules.load(path)
        except (etree.XMLSyntaxError, etree.SchematronParseError, etree.XSLTParseError) as exc:
            raise ConfigurationError("SCENARIO_LOAD", f"Can not load schematron {path}: {exc}") from exc

    def stylesheet(self, location: str) -> etree.XSLT:
        path = self.resolve(location)
        try:
            return etree.XSLT(etree.parse(str(path)))
        except (etree.XMLSyntaxError, etree.XSLTParseError) as exc:
            raise ConfigurationError("SCENARIO_LOAD", f"Can not load stylesheet {path}: {exc}") from exc


def _compile_xpath(expression: str, namespaces: Mapping[str, str], scenario: str) -> str:
    try:
        etree.XPath(expression, namespaces=dict(namespaces))
    except etree.XPathSyntaxError as exc:
        raise ConfigurationError(
            "SCENARIO_LOAD", f"Invalid XPath '{expression}' in scenario '{scenario}': {exc}"
        ) from exc
    return expression


def _build_scenario(
    data: Mapping[str, object], namespaces: Mapping[str, str], loader: _ArtefactLoader
) -> Scenario:
    name = str(data.get("name") or "").strip()
    if not name:
        raise ConfigurationError("SCENARIO_LOAD", "Every scenario needs a name")
    match = data.get("match")
    if not match:
        raise ConfigurationError("SCENARIO_LOAD", f"Scenario '{name}' has no match expression")
    scoped = dict(namespaces)
    scoped.update(_string_map(data.get("namespaces")))
    schema_location = data.get("schema")
    html_location = data.get("html")
    accept = data.get("accept")
    return Scenario(
        name=name,
        match=_compile_xpath(str(match), scoped, name),
        namespaces=scoped,
        description=str(data.get("description", "")),
        schema=loader.schema(str(schema_location)) if schema_location else None,
        schematron=tuple(loader.schematron(item) for item in _string_list(data.get("schematron"))),
        html_stylesheet=loader.stylesheet(str(html_location)) if html_location else None,
        accept_match=_compile_xpath(str(accept), scoped, name) if accept else None,
    )


def load_configuration(definition: Path, repository: Path | None = None) -> Configuration:
    """Load the scenarios of *definition*, resolving artefacts against
    *repository* first and the definition's directory second."""

    raw = _read_toml(definition)
    namespaces = _string_map(raw.get("namespaces"))
    loader = _ArtefactLoader(definition, repository)
    entries = raw.get("scenario")
    if not isinstance(entries, list) or not entries:
        raise ConfigurationError("SCENARIO_LOAD", f"No scenarios defined in {definition}")
    scenarios = tuple(
        _build_scenario(entry, namespaces, loader) for entry in entries if isinstance(entry, Mapping)
    )
    configuration = Configuration(
        name=str(raw.get("name", definition.stem)),
        author=str(raw.get("author", "unknown")),
        date=str(raw.get("date", "")),
        description=str(raw.get("description", "")),
        scenarios=scenarios,
        source=definition,
    )
    logger.debug("Loaded %d scenario(s) from %s", len(scenarios), definition)
    return configuration


__all__ = [
    "Configuration",
    "Scenario",
    "SchematronRules",
    "XmlSchema",
    "determine_definition",
    "determine_repository",
    "load_configuration",
]
