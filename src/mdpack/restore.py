"""File writer: materialize decoded entries under a restore root.

Security invariant: nothing is ever written outside the restore root.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from mdpack.errors import IoError, MalformedArchive, PathEscape

_DRIVE_RE = re.compile(r"^[A-Za-z]:")


@dataclass(frozen=True)
class PlannedFile:
    rel: str
    target: Path
    data: bytes


def normalize_relative(rel: str, root: Path) -> str:
    """Normalize a slash-separated entry path, or raise PathEscape."""
    if not rel or "\x00" in rel:
        raise PathEscape(rel, root)
    if rel.startswith("/") or _DRIVE_RE.match(rel):
        raise PathEscape(rel, root)
    norm = posixpath.normpath(rel)
    if norm in (".", "..") or norm.startswith("../"):
        raise PathEscape(rel, root)
    return norm


def resolve_target(root: Path, rel: str) -> Path:
    base = Path(root).resolve()
    norm = normalize_relative(rel, base)
    target = base.joinpath(*norm.split("/"))
    # symlinks already present under root must not lead outside of it
    resolved = target.resolve()
    if resolved != base and base not in resolved.parents:
        raise PathEscape(rel, base)
    return target


def check_layout(rels: Iterable[str], root: Path) -> list[str]:
    """Normalize every entry path and check that they fit in one tree.

    Raises PathEscape for an escaping path, MalformedArchive for duplicates
    after normalization and for a path used both as a file and as a directory.
    """
    files: dict[str, str] = {}
    dirs: dict[str, str] = {}
    out: list[str] = []
    for rel in rels:
        norm = normalize_relative(rel, root)
        other = files.get(norm)
        if other is not None:
            raise MalformedArchive(f"duplicate path after normalization: {rel} / {other}")
        if norm in dirs:
            raise MalformedArchive(f"path is both a file and a directory: {rel} / {dirs[norm]}")
        parts = norm.split("/")
        for i in range(1, len(parts)):
            parent = "/".join(parts[:i])
            if parent in files:
                raise MalformedArchive(f"path is both a file and a directory: {files[parent]} / {rel}")
            dirs.setdefault(parent, rel)
        files[norm] = rel
        out.append(norm)
    return out


def plan_files(root: Path, items: Iterable[tuple[str, bytes]]) -> list[PlannedFile]:
    """Resolve every target up front; raise before anything touches the disk."""
    items = list(items)
    check_layout((rel for rel, _ in items), Path(root).resolve())
    return [PlannedFile(rel=rel, target=resolve_target(root, rel), data=data) for rel, data in items]


def write_files(planned: Iterable[PlannedFile]) -> list[str]:
    """Create parent dirs (idempotent) and overwrite each target, in order."""
    written: list[str] = []
    for pf in planned:
        try:
            pf.target.parent.mkdir(parents=True, exist_ok=True)
            with pf.target.open("wb") as fp:
                fp.write(pf.data)
        except OSError as e:
            raise IoError(f"cannot write {pf.rel}: {e}") from e
        written.append(pf.rel)
    return written
