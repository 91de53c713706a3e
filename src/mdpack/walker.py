"""Directory walker.

Yields absolute file paths in a deterministic order (sorted per directory).
Ignored directories are pruned *before* descending; symlinked directories are
never followed, so link cycles cannot loop.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from pathlib import Path

from mdpack.config import PackConfig


def iter_files(
    root: Path,
    config: PackConfig | None = None,
    *,
    onerror: Callable[[OSError], None] | None = None,
) -> Iterator[Path]:
    """Yield files under root. Directories that cannot be listed go to ``onerror``."""
    cfg = config or PackConfig()
    top = Path(root).resolve()
    ignored = set(cfg.ignored_dirs)

    for dirpath, dirnames, filenames in os.walk(top, topdown=True, onerror=onerror, followlinks=False):
        # in-place edit: os.walk only descends into what stays in dirnames
        dirnames[:] = sorted(d for d in dirnames if d not in ignored)
        base = Path(dirpath)
        for name in sorted(filenames):
            yield base / name


def relative_posix(root: Path, p: Path) -> str:
    return Path(p).relative_to(Path(root).resolve()).as_posix()
