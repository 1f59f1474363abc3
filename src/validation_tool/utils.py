from __future__ import annotations

import os
import re
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Iterator


SAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def slugify(value: str, max_length: int = 120) -> str:
    normalized = SAFE_FILENAME_RE.sub("-", value.strip())
    normalized = re.sub("-+", "-", normalized)
    normalized = normalized.replace("-.", ".")
    normalized = normalized.strip("-._")
    if not normalized:
        normalized = "document"
    if len(normalized) > max_length:
        normalized = normalized[:max_length]
    return normalized


def stem_of(name: str) -> str:
    """Return *name* without directories and without its last extension."""

    base = Path(name).name
    stem, dot, _ = base.rpartition(".")
    return stem if dot and stem else base


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("wb", delete=False, dir=path.parent) as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
    os.replace(tmp.name, path)


def iter_xml_files(directory: Path) -> Iterator[Path]:
    """Yield direct children of *directory* ending in ``.xml``, sorted by name."""

    for path in sorted(directory.iterdir(), key=lambda p: p.name):
        if path.is_file() and path.name.lower().endswith(".xml"):
            yield path


def resolve_relative(path: Path, roots: Iterable[Path]) -> Path:
    """Resolve *path* against the first root in which it exists."""

    if path.is_absolute():
        return path
    candidates = list(roots)
    for root in candidates:
        resolved = (root / path).resolve()
        if resolved.exists():
            return resolved
    base = candidates[0] if candidates else Path.cwd()
    return (base / path).resolve()
