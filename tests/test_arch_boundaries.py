from __future__ import annotations

import ast
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

# Entry points and orchestration: they may import anything below them.
# Format/restore building blocks must NEVER import these.
ORCH_PREFIXES: tuple[str, ...] = (
    "mdpack.cli",
    "mdpack.__main__",
    "mdpack.packer",
    "mdpack.verify",
    "mdpack.pack_report",
)

PACKAGE_ROOT = "mdpack"


@dataclass(frozen=True)
class ImportEdge:
    src: str
    dst: str
    file: Path
    lineno: int


def _is_orch(mod: str) -> bool:
    return any(mod == p or mod.startswith(p + ".") for p in ORCH_PREFIXES)


def _module_name_from_path(src_dir: Path, py_file: Path) -> str | None:
    rel = py_file.relative_to(src_dir)
    parts = list(rel.parts)
    if not parts or parts[0] != PACKAGE_ROOT:
        return None
    parts[-1] = py_file.stem
    return ".".join(parts)


def _iter_import_edges(src_dir: Path) -> Iterable[ImportEdge]:
    for py in sorted(src_dir.rglob("*.py")):
        mod = _module_name_from_path(src_dir, py)
        if not mod:
            continue

        tree = ast.parse(py.read_text(encoding="utf-8"), filename=str(py))
        for node in ast.walk(tree):
            names: list[str] = []
            if isinstance(node, ast.Import):
                names = [a.name for a in node.names]
            elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
                names = [node.module]
            for name in names:
                if name == PACKAGE_ROOT or name.startswith(PACKAGE_ROOT + "."):
                    yield ImportEdge(src=mod, dst=name, file=py, lineno=getattr(node, "lineno", 0))


def test_building_blocks_do_not_import_orchestrators() -> None:
    src_dir = Path(__file__).resolve().parents[1] / "src"
    assert src_dir.is_dir(), f"Expected src/ directory at: {src_dir}"

    violations = [
        e for e in _iter_import_edges(src_dir) if e.src != e.dst and not _is_orch(e.src) and _is_orch(e.dst)
    ]
    if violations:
        lines = ["Forbidden imports detected (LOW -> ORCH):"]
        for v in violations:
            lines.append(f"  {v.file}:{v.lineno}  {v.src}  ->  {v.dst}")
        raise AssertionError("\n".join(lines))


def test_no_relative_imports() -> None:
    src_dir = Path(__file__).resolve().parents[1] / "src" / PACKAGE_ROOT
    for py in sorted(src_dir.rglob("*.py")):
        tree = ast.parse(py.read_text(encoding="utf-8"), filename=str(py))
        for node in ast.walk(tree):
            if isinstance(node, ast.ImportFrom):
                assert node.level == 0, f"{py}:{node.lineno} relative import"
