from pathlib import Path

from validation_tool.utils import atomic_write_bytes, iter_xml_files, resolve_relative, slugify, stem_of


def test_slugify_basic() -> None:
    assert slugify("Hello World!.xml") == "Hello-World.xml"
    assert slugify("???") == "document"


def test_stem_of() -> None:
    assert stem_of("invoice.xml") == "invoice"
    assert stem_of("dir/archive.tar.xml") == "archive.tar"
    assert stem_of("stdin") == "stdin"
    assert stem_of(".hidden") == ".hidden"


def test_atomic_write_replaces_content(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "out.txt"
    atomic_write_bytes(target, b"first")
    atomic_write_bytes(target, b"second")
    assert target.read_text(encoding="utf-8") == "second"
    assert [path.name for path in target.parent.iterdir()] == ["out.txt"]


def test_iter_xml_files_sorted(tmp_path: Path) -> None:
    for name in ("c.xml", "a.xml", "b.txt"):
        (tmp_path / name).write_text("<x/>", encoding="utf-8")
    assert [path.name for path in iter_xml_files(tmp_path)] == ["a.xml", "c.xml"]


def test_resolve_relative_prefers_first_root(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (second / "rules.sch").write_text("", encoding="utf-8")
    assert resolve_relative(Path("rules.sch"), [first, second]) == (second / "rules.sch").resolve()
    (first / "rules.sch").write_text("", encoding="utf-8")
    assert resolve_relative(Path("rules.sch"), [first, second]) == (first / "rules.sch").resolve()
