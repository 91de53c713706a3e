"""pack / revert: the two pipelines end to end.

Packer:   walker -> eligibility -> codec.encode -> ArchiveWriter
Restorer: read_archive -> parse_archive -> codec.decode -> restore.write_files

Failure policy:
  - pack: per-file problems (unreadable, undecodable, odd path) are recorded
    on the result and never abort; only the archive file itself is fatal.
  - revert: everything is parsed, decoded and path-checked before the first
    write, so a malformed archive never leaves a half-restored tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from mdpack.archive import (
    ArchiveWriter,
    Entry,
    check_relative_path,
    parse_archive,
    partial_path,
    read_archive,
)
from mdpack.codec import NotText, decode_content, encode_content
from mdpack.config import PackConfig
from mdpack.eligibility import REASON_BINARY, Exclude, classify
from mdpack.errors import IoError, UsageError
from mdpack.restore import plan_files, write_files
from mdpack.walker import iter_files, relative_posix

REASON_UNREADABLE = "unreadable"
REASON_BAD_PATH = "bad_path"


@dataclass(frozen=True)
class PackedFile:
    rel: str
    kind: str
    encoding: str
    size: int


@dataclass(frozen=True)
class SkippedFile:
    rel: str
    reason: str
    detail: str = ""


@dataclass
class ArchiveResult:
    archive_path: Path
    entries: list[PackedFile] = field(default_factory=list)
    skipped: list[SkippedFile] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def files_ok(self) -> int:
        return len(self.entries)

    @property
    def files_skipped(self) -> int:
        return len(self.skipped)

    @property
    def total_bytes(self) -> int:
        return sum(e.size for e in self.entries)


@dataclass
class RestoreResult:
    archive_path: Path
    target_root: Path
    restored: list[str] = field(default_factory=list)


def _read_file(p: Path) -> bytes:
    with p.open("rb") as fp:
        return fp.read()


def pack(
    root_directory: Path | str = ".",
    *,
    config: PackConfig | None = None,
    output: Path | str | None = None,
    verbose: bool = False,
) -> ArchiveResult:
    cfg = config or PackConfig()
    root = Path(root_directory)
    if not root.is_dir():
        raise UsageError(f"root is not a directory: {root}")
    root = root.resolve()

    out_path = Path(output) if output is not None else root / cfg.archive_name
    # the archive itself and its in-progress sibling
    own_files = {out_path.resolve(), partial_path(out_path).resolve()}
    result = ArchiveResult(archive_path=out_path)

    def _skip(rel: str, reason: str, detail: str = "", *, warn: bool = False) -> None:
        result.skipped.append(SkippedFile(rel=rel, reason=reason, detail=detail))
        if warn:
            result.warnings.append(f"skipped {rel}: {detail or reason}")

    def _walk_error(e: OSError) -> None:
        where = Path(e.filename) if e.filename else root
        try:
            rel = relative_posix(root, where)
        except ValueError:
            rel = str(where)
        _skip(rel, REASON_UNREADABLE, f"{type(e).__name__}: {e.strerror or e}", warn=True)

    with ArchiveWriter(out_path, text_encoding=cfg.text_encoding) as w:
        for p in iter_files(root, cfg, onerror=_walk_error):
            rel = relative_posix(root, p)
            if p in own_files:
                continue
            try:
                check_relative_path(rel, text_encoding=cfg.text_encoding)
            except ValueError as e:
                _skip(rel, REASON_BAD_PATH, str(e), warn=True)
                continue

            try:
                size = int(p.stat().st_size)
                decision = classify(p, size, cfg, root=root)
                if isinstance(decision, Exclude):
                    _skip(rel, decision.reason, decision.detail)
                    continue
                data = _read_file(p)
            except OSError as e:
                _skip(rel, REASON_UNREADABLE, f"{type(e).__name__}: {e.strerror or e}", warn=True)
                continue

            try:
                encoding, content = encode_content(data, decision.kind, text_encoding=cfg.text_encoding)
            except NotText as e:
                _skip(rel, REASON_BINARY, str(e))
                continue

            w.append(Entry(relative_path=rel, encoding=encoding, content=content))
            result.entries.append(PackedFile(rel=rel, kind=decision.kind, encoding=encoding, size=len(data)))

    if verbose:
        print(f"pack: files_ok={result.files_ok} files_skipped={result.files_skipped} total_in={result.total_bytes}")
        print(f"pack: archive -> {out_path}")
    return result


def revert(
    archive_path: Path | str = "all_content.md",
    *,
    target_root: Path | str | None = None,
    config: PackConfig | None = None,
    verbose: bool = False,
) -> RestoreResult:
    cfg = config or PackConfig()
    ap = Path(archive_path)
    root = Path(target_root) if target_root is not None else ap.resolve().parent

    entries = parse_archive(read_archive(ap, text_encoding=cfg.text_encoding))
    decoded = [
        (
            e.relative_path,
            decode_content(e.encoding, e.content, text_encoding=cfg.text_encoding, rel=e.relative_path),
        )
        for e in entries
    ]
    planned = plan_files(root, decoded)

    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoError(f"cannot create restore root {root}: {e}") from e
    restored = write_files(planned)

    if verbose:
        print(f"revert: files_ok={len(restored)}")
        print(f"revert: restored -> {root}")
    return RestoreResult(archive_path=ap, target_root=root, restored=restored)
