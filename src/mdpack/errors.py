"""Typed errors for mdpack.

Single source of truth for exit codes lives here.

Policy:
- Errors are small and boring.
- The CLI maps errors to stable exit codes (see EXIT_* constants).
- docs/exit_codes.md is generated from this module (scripts/gen_exit_codes_md.py).
- Per-file problems while packing are NOT errors: they become warnings on the
  pack result. Everything that touches the archive itself is fatal.
"""

from __future__ import annotations

from dataclasses import dataclass

# -------------------------
# Exit codes (single source)
# -------------------------

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_GENERIC = 10
EXIT_IO = 11
EXIT_MALFORMED_ARCHIVE = 12
EXIT_MALFORMED_ENCODING = 13
EXIT_PATH_ESCAPE = 14
EXIT_CONTENT_MISMATCH = 15


@dataclass(frozen=True, slots=True)
class ExitCodeInfo:
    code: int
    name: str
    description: str


EXIT_CODES: tuple[ExitCodeInfo, ...] = (
    ExitCodeInfo(EXIT_OK, "OK", "Success (individual files may have been skipped with warnings)"),
    ExitCodeInfo(EXIT_USAGE, "USAGE", "Usage/config error (invalid args, invalid config, root is not a directory)"),
    ExitCodeInfo(EXIT_GENERIC, "GENERIC", "Generic failure (unexpected error)"),
    ExitCodeInfo(EXIT_IO, "IO", "Archive file cannot be read or written"),
    ExitCodeInfo(EXIT_MALFORMED_ARCHIVE, "MALFORMED_ARCHIVE", "Archive structure is broken (header, fence, truncation, duplicate path)"),
    ExitCodeInfo(EXIT_MALFORMED_ENCODING, "MALFORMED_ENCODING", "Entry payload cannot be decoded (invalid base64, unknown encoding)"),
    ExitCodeInfo(EXIT_PATH_ESCAPE, "PATH_ESCAPE", "Entry path resolves outside the restore root"),
    ExitCodeInfo(EXIT_CONTENT_MISMATCH, "CONTENT_MISMATCH", "verify --against found a missing or different file"),
)

# For convenience (fast lookup)
_EXIT_CODE_BY_NAME: dict[str, int] = {e.name: e.code for e in EXIT_CODES}
_EXIT_CODE_BY_CODE: dict[int, ExitCodeInfo] = {e.code: e for e in EXIT_CODES}


def exit_code_info(code: int) -> ExitCodeInfo | None:
    return _EXIT_CODE_BY_CODE.get(int(code))


def exit_code_by_name(name: str) -> int | None:
    return _EXIT_CODE_BY_NAME.get(name)


def render_exit_codes_markdown() -> str:
    """Render docs/exit_codes.md content."""
    lines: list[str] = []
    lines.append("# Exit codes\n")
    lines.append("> GENERATED FILE - do not edit manually.\n")
    lines.append("> Source of truth: `src/mdpack/errors.py` (EXIT_CODES).\n")
    lines.append("> Regenerate: `python scripts/gen_exit_codes_md.py`.\n\n")
    lines.append("These are the CLI exit codes you can rely on.\n\n")
    lines.append("| Code | Name | Meaning |\n")
    lines.append("|---:|---|---|\n")
    for e in sorted(EXIT_CODES, key=lambda x: x.code):
        lines.append(f"| {e.code} | `{e.name}` | {e.description} |\n")
    lines.append("\n## Notes\n")
    lines.append("- Internal errors extend `MdpackError` and carry an `exit_code`.\n")
    lines.append("- `--debug` re-raises errors to show full stack traces.\n")
    lines.append("- `pack` exits 0 even when files were skipped; skips are printed as warnings.\n")
    lines.append(
        "- `--json` on `verify` prints a JSON object to stdout (ok) or stderr (error), and returns the same exit code.\n"
    )
    return "".join(lines)


# ---------------
# Typed exceptions
# ---------------


class MdpackError(Exception):
    """Base error for mdpack."""

    exit_code: int = EXIT_GENERIC


class UsageError(MdpackError):
    exit_code = EXIT_USAGE


class IoError(MdpackError):
    """Unreadable/unwritable path. Fatal only for the archive file itself."""

    exit_code = EXIT_IO


class MalformedArchive(MdpackError):
    exit_code = EXIT_MALFORMED_ARCHIVE

    def __init__(self, message: str, *, lineno: int | None = None) -> None:
        self.lineno = lineno
        if lineno is not None:
            message = f"line {lineno}: {message}"
        super().__init__(message)


class MalformedEncoding(MdpackError):
    exit_code = EXIT_MALFORMED_ENCODING

    def __init__(self, message: str, *, rel: str | None = None) -> None:
        self.rel = rel
        if rel is not None:
            message = f"{rel}: {message}"
        super().__init__(message)


class PathEscape(MdpackError):
    exit_code = EXIT_PATH_ESCAPE

    def __init__(self, rel: str, root: object) -> None:
        self.rel = rel
        super().__init__(f"entry path escapes restore root {root}: {rel!r}")


class ContentMismatch(MdpackError):
    exit_code = EXIT_CONTENT_MISMATCH
