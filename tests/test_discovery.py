from __future__ import annotations

import io
from pathlib import Path

import pytest

from validation_tool.discovery import STDIN_NAME, determine_targets, is_piped, list_directory_targets
from validation_tool.errors import ConfigurationError


def build_tree(root: Path) -> Path:
    root.mkdir()
    (root / "b.xml").write_bytes(b"<b/>")
    (root / "a.XML").write_bytes(b"<a/>")
    (root / "notes.txt").write_text("ignored", encoding="utf-8")
    (root / "nested.xml").mkdir()
    sub = root / "sub"
    sub.mkdir()
    (sub / "deep.xml").write_bytes(b"<deep/>")
    return root


def test_directory_lists_direct_xml_children(tmp_path: Path) -> None:
    root = build_tree(tmp_path / "docs")
    names = [item.name for item in list_directory_targets(root)]
    assert names == ["a.XML", "b.xml"]


def test_targets_keep_argument_order(tmp_path: Path) -> None:
    root = build_tree(tmp_path / "docs")
    single = tmp_path / "single.xml"
    single.write_bytes(b"<single/>")
    targets = determine_targets([single, root])
    assert [item.name for item in targets] == ["single.xml", "a.XML", "b.xml"]
    assert targets[0].content == b"<single/>"
    assert targets[0].location == single


def test_missing_path_is_ignored(tmp_path: Path) -> None:
    existing = tmp_path / "doc.xml"
    existing.write_bytes(b"<doc/>")
    targets = determine_targets([tmp_path / "missing.xml", existing])
    assert [item.name for item in targets] == ["doc.xml"]


def test_nothing_to_check_fails(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        determine_targets([tmp_path / "missing.xml"])
    assert excinfo.value.code == "NO_TARGETS"


def test_empty_directory_fails(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        determine_targets([tmp_path])


def test_piped_input_is_appended_last(tmp_path: Path) -> None:
    existing = tmp_path / "doc.xml"
    existing.write_bytes(b"<doc/>")
    targets = determine_targets([existing], io.BytesIO(b"<piped/>"))
    assert [item.name for item in targets] == ["doc.xml", STDIN_NAME]
    assert targets[-1].content == b"<piped/>"


def test_empty_pipe_is_not_a_target() -> None:
    with pytest.raises(ConfigurationError):
        determine_targets([], io.BytesIO(b""))


def test_is_piped() -> None:
    assert not is_piped(None)
    assert is_piped(io.BytesIO(b"<x/>"))
