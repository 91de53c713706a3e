"""Archive format: one Markdown-compatible text file, length-framed entries.

This is *not* a container with an index: entries are simply concatenated.

Entry layout:
  ###  trxx:<relative_path> [<encoding>]
  <blank>
  <fence><lang> length=<N>
  <N characters of content, verbatim>
  <fence>
  <blank>

- ``###  trxx:`` at the start of a line is the reserved header prefix.
- ``<fence>`` is >= 4 backticks and longer than any backtick run opening a
  line inside the content, so Markdown viewers keep the block intact.
- ``N`` is the content length in characters. The parser consumes exactly N
  characters, so header/fence look-alikes inside the content are harmless.
- The file is read/written with ``newline=""``: CR/LF bytes are preserved.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Final, Iterable

from mdpack.codec import ENC_BASE64, ENCODINGS
from mdpack.eligibility import file_extension
from mdpack.errors import IoError, MalformedArchive

HEADER_PREFIX: Final[str] = "###  trxx:"
MIN_FENCE: Final[int] = 4

_HEADER_RE: Final = re.compile(r"^###  trxx:(?P<rel>.+) \[(?P<enc>[A-Za-z0-9_]+)\]$")
_FENCE_RE: Final = re.compile(r"^(?P<fence>`{4,})(?P<lang>[^`\s]*) length=(?P<n>\d+)$")
_LINE_BACKTICKS_RE: Final = re.compile(r"^(`+)", re.MULTILINE)

# cosmetic fence info string; unknown extensions get no tag
_LANG_BY_EXT: Final[dict[str, str]] = {
    "rs": "rust",
    "json": "json",
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "hpp": "cpp",
    "c": "c",
    "h": "c",
    "cs": "csharp",
    "go": "go",
    "rb": "ruby",
    "php": "php",
    "html": "html",
    "htm": "html",
    "css": "css",
    "md": "markdown",
    "yaml": "yaml",
    "yml": "yaml",
    "toml": "toml",
    "sh": "bash",
    "bash": "bash",
    "sql": "sql",
    "vue": "vue",
    "jsx": "jsx",
    "tsx": "tsx",
    "lua": "lua",
    "xml": "xml",
    "svg": "xml",
    "conf": "conf",
    "ini": "ini",
    "txt": "text",
    "bat": "batch",
    "cmd": "batch",
    "ps1": "powershell",
    "env": "dotenv",
    "gitignore": "gitignore",
    "dockerfile": "dockerfile",
}


@dataclass(frozen=True)
class Entry:
    relative_path: str
    encoding: str
    content: str


def language_tag(rel: str, encoding: str) -> str:
    if encoding == ENC_BASE64:
        return "base64"
    name = rel.rsplit("/", 1)[-1]
    ext = file_extension(name) or name.lower()
    return _LANG_BY_EXT.get(ext, "")


def fence_for(content: str) -> str:
    longest = max((len(m.group(1)) for m in _LINE_BACKTICKS_RE.finditer(content)), default=0)
    return "`" * max(MIN_FENCE, longest + 1)


def check_relative_path(rel: str, *, text_encoding: str = "utf-8") -> None:
    """Paths the header line can carry unambiguously."""
    if not rel:
        raise ValueError("empty relative path")
    if "\n" in rel or "\r" in rel:
        raise ValueError(f"line break in path: {rel!r}")
    try:
        rel.encode(text_encoding)
    except UnicodeEncodeError as e:
        raise ValueError(f"path not representable in {text_encoding}: {rel!r}") from e


def render_entry(entry: Entry) -> str:
    check_relative_path(entry.relative_path)
    if entry.encoding not in ENCODINGS:
        raise ValueError(f"unknown encoding: {entry.encoding}")
    fence = fence_for(entry.content)
    lang = language_tag(entry.relative_path, entry.encoding)
    return (
        f"{HEADER_PREFIX}{entry.relative_path} [{entry.encoding}]\n"
        "\n"
        f"{fence}{lang} length={len(entry.content)}\n"
        f"{entry.content}\n"
        f"{fence}\n"
        "\n"
    )


def partial_path(path: Path) -> Path:
    """Sibling file the writer fills before it replaces ``path``."""
    p = Path(path)
    return p.with_name(f".{p.name}.partial")


class ArchiveWriter:
    """Append-only writer. One writer owns the output file at a time.

    Entries go to a ``.partial`` sibling; ``close`` moves it over ``path`` with
    ``os.replace``. A writer left through an exception discards the partial
    file, so a failed run never clobbers an existing archive.
    """

    def __init__(self, path: Path, *, text_encoding: str = "utf-8"):
        self.path = Path(path)
        self.tmp_path = partial_path(self.path)
        try:
            self._fp: IO[str] = self.tmp_path.open("w", encoding=text_encoding, newline="")
        except OSError as e:
            raise IoError(f"cannot write archive {self.path}: {e}") from e
        self._seen: set[str] = set()
        self._closed = False
        self.count = 0

    def append(self, entry: Entry) -> None:
        if self._closed:
            raise ValueError("ArchiveWriter: append on closed writer")
        if entry.relative_path in self._seen:
            raise ValueError(f"ArchiveWriter: duplicate path {entry.relative_path}")
        chunk = render_entry(entry)
        try:
            self._fp.write(chunk)
        except UnicodeEncodeError as e:
            raise ValueError(f"ArchiveWriter: entry not representable: {entry.relative_path!r}") from e
        except OSError as e:
            raise IoError(f"cannot write archive {self.path}: {e}") from e
        self._seen.add(entry.relative_path)
        self.count += 1

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._fp.close()
            os.replace(self.tmp_path, self.path)
        except OSError as e:
            self.tmp_path.unlink(missing_ok=True)
            raise IoError(f"cannot write archive {self.path}: {e}") from e

    def abort(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._fp.close()
        finally:
            self.tmp_path.unlink(missing_ok=True)

    def __enter__(self) -> "ArchiveWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.abort()
        else:
            self.close()


def write_archive(entries: Iterable[Entry], path: Path, *, text_encoding: str = "utf-8") -> int:
    with ArchiveWriter(path, text_encoding=text_encoding) as w:
        for e in entries:
            w.append(e)
        return w.count


def read_archive(path: Path, *, text_encoding: str = "utf-8") -> str:
    p = Path(path)
    try:
        with p.open("r", encoding=text_encoding, newline="") as fp:
            return fp.read()
    except UnicodeDecodeError as e:
        raise MalformedArchive(f"archive is not valid {text_encoding}: {p} (pos={e.start})") from e
    except OSError as e:
        raise IoError(f"cannot read archive {p}: {e}") from e


class _Cursor:
    """Forward-only reader over the archive text with 1-based line tracking."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.lineno = 1

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek_line(self) -> str:
        end = self.text.find("\n", self.pos)
        return self.text[self.pos :] if end < 0 else self.text[self.pos : end]

    def read_line(self) -> str | None:
        if self.at_end():
            return None
        end = self.text.find("\n", self.pos)
        if end < 0:
            line = self.text[self.pos :]
            self.pos = len(self.text)
        else:
            line = self.text[self.pos : end]
            self.pos = end + 1
            self.lineno += 1
        # tolerate CRLF on structural lines only
        return line[:-1] if line.endswith("\r") else line

    def take(self, n: int) -> str:
        chunk = self.text[self.pos : self.pos + n]
        self.pos += len(chunk)
        self.lineno += chunk.count("\n")
        return chunk


def _is_blank(line: str) -> bool:
    return line.strip(" \t\r") == ""


def parse_archive(text: str) -> list[Entry]:
    """Single forward pass: archive text -> entries, or MalformedArchive."""
    cur = _Cursor(text)
    entries: list[Entry] = []
    first_seen: dict[str, tuple[int, str]] = {}

    while True:
        while not cur.at_end() and _is_blank(cur.peek_line()):
            cur.read_line()
        if cur.at_end():
            break

        header_lineno = cur.lineno
        line = cur.read_line() or ""
        if not line.startswith(HEADER_PREFIX):
            raise MalformedArchive(f"expected entry header '{HEADER_PREFIX}...'", lineno=header_lineno)
        m = _HEADER_RE.match(line)
        if m is None:
            raise MalformedArchive("malformed entry header (expected '<path> [<encoding>]')", lineno=header_lineno)
        rel = m.group("rel")
        enc = m.group("enc")
        if enc not in ENCODINGS:
            raise MalformedArchive(f"unknown encoding {enc!r} for {rel}", lineno=header_lineno)

        prev = first_seen.get(rel)
        if prev is not None:
            prev_line, prev_enc = prev
            what = "duplicate path" if prev_enc == enc else f"duplicate path with conflicting encoding ({prev_enc} vs {enc})"
            raise MalformedArchive(f"{what}: {rel} (first at line {prev_line})", lineno=header_lineno)
        first_seen[rel] = (header_lineno, enc)

        blank_lineno = cur.lineno
        line = cur.read_line()
        if line is None:
            raise MalformedArchive(f"truncated entry after header: {rel}", lineno=blank_lineno)
        if not _is_blank(line):
            raise MalformedArchive(f"expected blank line after header of {rel}", lineno=blank_lineno)

        fence_lineno = cur.lineno
        line = cur.read_line()
        if line is None:
            raise MalformedArchive(f"truncated entry (missing opening fence): {rel}", lineno=fence_lineno)
        fm = _FENCE_RE.match(line)
        if fm is None:
            raise MalformedArchive(f"expected opening fence with 'length=' for {rel}", lineno=fence_lineno)
        fence = fm.group("fence")
        length = int(fm.group("n"))

        content_lineno = cur.lineno
        content = cur.take(length)
        if len(content) != length:
            raise MalformedArchive(
                f"truncated content block for {rel} (declared {length} chars, got {len(content)})",
                lineno=content_lineno,
            )
        if cur.take(1) != "\n":
            raise MalformedArchive(f"content block of {rel} does not end at declared length", lineno=cur.lineno)

        close_lineno = cur.lineno
        line = cur.read_line()
        if line != fence:
            raise MalformedArchive(f"missing closing fence for {rel}", lineno=close_lineno)

        entries.append(Entry(relative_path=rel, encoding=enc, content=content))

    return entries
