"""Pack configuration (eligibility policy) and its JSON loader.

Schema id: ``mdpack.config.v1``

Design goals:
  - Explicit: the policy is a value passed around, never module-level state
  - Strict: unknown keys are errors
  - Minimal: only the knobs the walker/filter/codec actually read
"""

from __future__ import annotations

import codecs
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

SCHEMA_ID = "mdpack.config.v1"

DEFAULT_ARCHIVE_NAME = "all_content.md"
DEFAULT_MAX_FILE_SIZE = 1024 * 1024  # 1 MiB

DEFAULT_IGNORED_DIRS: tuple[str, ...] = ("target", "node_modules", ".git")
DEFAULT_IGNORED_GLOBS: tuple[str, ...] = ("*.lock",)

DEFAULT_TEXT_EXTENSIONS: tuple[str, ...] = (
    "txt", "md", "rs", "js", "ts", "json", "yaml", "yml",
    "toml", "css", "html", "htm", "xml", "conf", "cfg",
    "ini", "log", "sh", "bash", "py", "java", "cpp", "c",
    "h", "hpp", "cs", "go", "rb", "php", "sql", "vue",
    "jsx", "tsx", "gitignore", "env", "rc", "editorconfig",
    "gradle", "properties", "bat", "cmd", "ps1", "dockerfile",
    "config", "template", "vim", "lua", "svg",
)
DEFAULT_IMAGE_EXTENSIONS: tuple[str, ...] = ("png", "jpg", "jpeg")
DEFAULT_SIZE_EXEMPT_EXTENSIONS: tuple[str, ...] = ("svg",)


class ConfigError(ValueError):
    pass


def _norm_ext(ext: str) -> str:
    return ext.strip().lstrip(".").lower()


@dataclass(frozen=True)
class PackConfig:
    archive_name: str = DEFAULT_ARCHIVE_NAME
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    ignored_dirs: tuple[str, ...] = DEFAULT_IGNORED_DIRS
    ignored_globs: tuple[str, ...] = DEFAULT_IGNORED_GLOBS
    text_extensions: tuple[str, ...] = DEFAULT_TEXT_EXTENSIONS
    image_extensions: tuple[str, ...] = DEFAULT_IMAGE_EXTENSIONS
    size_exempt_extensions: tuple[str, ...] = DEFAULT_SIZE_EXEMPT_EXTENSIONS
    text_encoding: str = "utf-8"

    def __post_init__(self) -> None:
        # accept any iterable/'.ext' spelling, store normalized tuples
        for name in ("text_extensions", "image_extensions", "size_exempt_extensions"):
            v = getattr(self, name)
            object.__setattr__(self, name, tuple(_norm_ext(x) for x in v))
        for name in ("ignored_dirs", "ignored_globs"):
            object.__setattr__(self, name, tuple(getattr(self, name)))


def _read_json_text(arg: str) -> str:
    s = arg.strip()
    if not s:
        raise ConfigError("config: empty input")
    if s.startswith("@"):  # @file.json
        p = Path(s[1:]).expanduser()
        if not p.is_file():
            raise ConfigError(f"config: file not found: {p}")
        return p.read_text(encoding="utf-8")
    return s


def _expect_type(name: str, v: Any, t: type) -> Any:
    # bool is an int subclass; never accept it where a number is expected
    if not isinstance(v, t) or (t is int and isinstance(v, bool)):
        raise ConfigError(f"config: '{name}' must be {t.__name__}")
    return v


def _ensure_allowed_keys(obj_name: str, obj: Mapping[str, Any], allowed: Iterable[str]) -> None:
    allowed_set = set(allowed)
    extra = [k for k in obj.keys() if k not in allowed_set]
    if extra:
        raise ConfigError(f"config: unsupported keys in {obj_name}: {', '.join(sorted(extra))}")


def _parse_str_list(name: str, v: Any) -> tuple[str, ...]:
    _expect_type(name, v, list)
    out: list[str] = []
    for x in v:
        if not isinstance(x, str) or not x.strip():
            raise ConfigError(f"config: '{name}' must be a list of non-empty strings")
        out.append(x.strip())
    return tuple(out)


_LIST_KEYS = (
    "ignored_dirs",
    "ignored_globs",
    "text_extensions",
    "image_extensions",
    "size_exempt_extensions",
)


def pack_config_from_dict(obj: Any) -> PackConfig:
    _expect_type("root", obj, dict)
    _ensure_allowed_keys(
        "root", obj, ["spec", "archive_name", "max_file_size", "text_encoding", *_LIST_KEYS]
    )

    if obj.get("spec") != SCHEMA_ID:
        raise ConfigError(f"config: spec must be '{SCHEMA_ID}'")

    kwargs: dict[str, Any] = {}

    archive_name = obj.get("archive_name")
    if archive_name is not None:
        _expect_type("archive_name", archive_name, str)
        if not archive_name.strip() or "/" in archive_name or "\\" in archive_name:
            raise ConfigError("config: archive_name must be a plain file name")
        kwargs["archive_name"] = archive_name.strip()

    max_file_size = obj.get("max_file_size")
    if max_file_size is not None:
        _expect_type("max_file_size", max_file_size, int)
        if max_file_size <= 0:
            raise ConfigError("config: max_file_size must be > 0")
        kwargs["max_file_size"] = max_file_size

    text_encoding = obj.get("text_encoding")
    if text_encoding is not None:
        _expect_type("text_encoding", text_encoding, str)
        try:
            codecs.lookup(text_encoding)
        except LookupError as e:
            raise ConfigError(f"config: unknown text_encoding: {text_encoding}") from e
        kwargs["text_encoding"] = text_encoding

    for key in _LIST_KEYS:
        if obj.get(key) is not None:
            kwargs[key] = _parse_str_list(key, obj[key])

    return PackConfig(**kwargs)


def load_pack_config(arg: str | None) -> PackConfig:
    """Load and validate a pack config from '@file.json' or inline JSON (None -> defaults)."""
    if arg is None:
        return PackConfig()
    text = _read_json_text(arg)
    try:
        obj = json.loads(text)
    except Exception as e:
        raise ConfigError(f"config: invalid JSON: {e}") from e
    return pack_config_from_dict(obj)
