"""Archive verification.

Light (default): the archive parses, every entry decodes, every path stays
inside a restore root and no two paths collide. Nothing is written.

With ``against``: additionally compare each decoded entry with the file at the
same relative path under a directory (e.g. the tree that was packed).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from mdpack.archive import parse_archive, read_archive
from mdpack.codec import decode_content
from mdpack.config import PackConfig
from mdpack.errors import ContentMismatch
from mdpack.restore import check_layout, resolve_target


@dataclass
class VerifyReport:
    archive_path: Path
    entries: int = 0
    total_bytes: int = 0
    encodings: dict[str, int] = field(default_factory=dict)
    compared: int = 0


def verify_archive(
    archive_path: Path | str,
    *,
    against: Path | str | None = None,
    config: PackConfig | None = None,
) -> VerifyReport:
    cfg = config or PackConfig()
    ap = Path(archive_path)
    entries = parse_archive(read_archive(ap, text_encoding=cfg.text_encoding))

    rep = VerifyReport(archive_path=ap)
    ref_root = Path(against).resolve() if against is not None else None
    # path checks are lexical only when there is no reference tree
    check_root = ref_root if ref_root is not None else ap.resolve().parent

    decoded = [
        (e, decode_content(e.encoding, e.content, text_encoding=cfg.text_encoding, rel=e.relative_path))
        for e in entries
    ]
    # the same duplicate and file/directory checks revert runs before writing
    check_layout((e.relative_path for e in entries), check_root)

    for e, data in decoded:
        rep.entries += 1
        rep.total_bytes += len(data)
        rep.encodings[e.encoding] = rep.encodings.get(e.encoding, 0) + 1

        if ref_root is None:
            continue
        ref = resolve_target(ref_root, e.relative_path)
        if not ref.is_file():
            raise ContentMismatch(f"missing in {ref_root}: {e.relative_path}")
        if ref.read_bytes() != data:
            raise ContentMismatch(f"content differs: {e.relative_path}")
        rep.compared += 1

    return rep
