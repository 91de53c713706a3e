"""Eligibility filter: include/exclude decision per file.

Precedence (first match wins):
  1. path under an ignored directory (the walker prunes these already; the
     filter re-checks so it stays correct when used on its own)
  2. file name == archive name (no self-inclusion on re-pack)
  3. file name matches an ignored glob (``*.lock``)
  4. size > max_file_size, unless the extension is size-exempt (svg)
  5. content is neither text nor an included image -> binary

Kinds of included files:
  - ``text``: extension allow-list, or no extension and the content sniffs as text
  - ``svg``: textual markup, exempt from the size cap
  - ``image``: png/jpg/jpeg, included as base64
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Final, Union

from mdpack.config import PackConfig

KIND_TEXT: Final[str] = "text"
KIND_SVG: Final[str] = "svg"
KIND_IMAGE: Final[str] = "image"

REASON_IGNORED_DIR: Final[str] = "ignored_dir"
REASON_ARCHIVE_NAME: Final[str] = "archive_name"
REASON_IGNORED_GLOB: Final[str] = "ignored_glob"
REASON_TOO_LARGE: Final[str] = "too_large"
REASON_BINARY: Final[str] = "binary"

SNIFF_SAMPLE_SIZE: Final[int] = 8192
SNIFF_MAX_CONTROL_RATIO: Final[float] = 0.30

# control bytes that still show up in ordinary text: \b \t \n \f \r and ESC (ANSI colors)
_TEXT_CONTROLS: Final[frozenset[int]] = frozenset({0x08, 0x09, 0x0A, 0x0C, 0x0D, 0x1B})


@dataclass(frozen=True)
class Include:
    kind: str


@dataclass(frozen=True)
class Exclude:
    reason: str
    detail: str = ""


Decision = Union[Include, Exclude]


def is_probably_text(
    data: bytes,
    *,
    sample_size: int = SNIFF_SAMPLE_SIZE,
    max_control_ratio: float = SNIFF_MAX_CONTROL_RATIO,
) -> bool:
    """Heuristic text sniff over the first ``sample_size`` bytes.

    Rule:
      - empty input is text
      - any NUL byte in the sample -> binary
      - count control bytes (< 0x20 or 0x7F) other than backspace, tab,
        newline, form feed, carriage return and ESC; if they make up more than
        ``max_control_ratio`` of the sample -> binary
      - otherwise text (bytes >= 0x80 count as printable: multi-byte encodings)
    """
    sample = data[:sample_size]
    if not sample:
        return True
    if b"\x00" in sample:
        return False
    controls = sum(1 for b in sample if (b < 0x20 or b == 0x7F) and b not in _TEXT_CONTROLS)
    return (controls / len(sample)) <= max_control_ratio


def file_extension(name: str) -> str:
    """Lower-case extension without dot; dotfiles like ``.gitignore`` map to ``gitignore``."""
    suffix = PurePosixPath(name).suffix
    if suffix:
        return suffix[1:].lower()
    if name.startswith(".") and name.count(".") == 1:
        return name[1:].lower()
    return ""


def _under_ignored_dir(path: Path, root: Path | None, ignored: tuple[str, ...]) -> str | None:
    parts = path.parts[:-1]
    if root is not None:
        try:
            parts = path.relative_to(root).parts[:-1]
        except ValueError:
            pass
    for part in parts:
        if part in ignored:
            return part
    return None


def _read_sample(path: Path, n: int) -> bytes:
    with Path(path).open("rb") as fp:
        return fp.read(n)


def classify(
    path: Path,
    size: int,
    config: PackConfig | None = None,
    *,
    root: Path | None = None,
    head: bytes | None = None,
) -> Decision:
    """Decide inclusion for one file.

    ``head`` may carry the first bytes of the file; when it is needed and not
    given, it is read from ``path`` (OSError propagates to the caller).
    """
    cfg = config or PackConfig()
    p = Path(path)
    name = p.name

    hit = _under_ignored_dir(p, root, cfg.ignored_dirs)
    if hit is not None:
        return Exclude(REASON_IGNORED_DIR, hit)

    if name == cfg.archive_name:
        return Exclude(REASON_ARCHIVE_NAME, name)

    for pattern in cfg.ignored_globs:
        if fnmatch.fnmatchcase(name, pattern):
            return Exclude(REASON_IGNORED_GLOB, pattern)

    ext = file_extension(name)

    if size > cfg.max_file_size and ext not in cfg.size_exempt_extensions:
        return Exclude(REASON_TOO_LARGE, f"{size} > {cfg.max_file_size}")

    if ext in cfg.image_extensions:
        return Include(KIND_IMAGE)
    if ext and ext in cfg.size_exempt_extensions:
        return Include(KIND_SVG)
    if ext and ext in cfg.text_extensions:
        return Include(KIND_TEXT)

    if not ext:
        # extension-less well-known names (Dockerfile, ...)
        if name.lower() in cfg.text_extensions:
            return Include(KIND_TEXT)
        sample = head if head is not None else _read_sample(p, SNIFF_SAMPLE_SIZE)
        if is_probably_text(sample):
            return Include(KIND_TEXT)
        return Exclude(REASON_BINARY, "content sniff")

    return Exclude(REASON_BINARY, f"extension .{ext}")
