from __future__ import annotations

import json
from pathlib import Path

import pytest

from mdpack.config import SCHEMA_ID, ConfigError, PackConfig, load_pack_config


def test_defaults() -> None:
    cfg = load_pack_config(None)
    assert cfg == PackConfig()
    assert cfg.archive_name == "all_content.md"
    assert cfg.max_file_size == 1024 * 1024
    assert cfg.ignored_dirs == ("target", "node_modules", ".git")
    assert cfg.ignored_globs == ("*.lock",)
    assert "svg" in cfg.text_extensions
    assert cfg.image_extensions == ("png", "jpg", "jpeg")
    assert cfg.size_exempt_extensions == ("svg",)


def test_extensions_are_normalized() -> None:
    cfg = PackConfig(text_extensions=[".PY", "md "], image_extensions=(".GIF",))
    assert cfg.text_extensions == ("py", "md")
    assert cfg.image_extensions == ("gif",)


def test_load_inline_json() -> None:
    spec = {
        "spec": SCHEMA_ID,
        "archive_name": "snapshot.md",
        "max_file_size": 2048,
        "ignored_dirs": ["dist", ".venv"],
        "ignored_globs": ["*.lock", "*.min.js"],
        "image_extensions": [".png", "gif"],
    }
    cfg = load_pack_config(json.dumps(spec))
    assert cfg.archive_name == "snapshot.md"
    assert cfg.max_file_size == 2048
    assert cfg.ignored_dirs == ("dist", ".venv")
    assert cfg.ignored_globs == ("*.lock", "*.min.js")
    assert cfg.image_extensions == ("png", "gif")
    # untouched keys keep defaults
    assert cfg.text_encoding == "utf-8"


def test_load_from_file(tmp_path: Path) -> None:
    p = tmp_path / "cfg.json"
    p.write_text(json.dumps({"spec": SCHEMA_ID, "text_encoding": "latin-1"}), encoding="utf-8")
    cfg = load_pack_config("@" + str(p))
    assert cfg.text_encoding == "latin-1"


@pytest.mark.parametrize(
    "bad",
    [
        "",
        "not json",
        "[]",
        "{}",
        '{"spec":"mdpack.config.v0"}',
        '{"spec":"mdpack.config.v1","wat":1}',
        '{"spec":"mdpack.config.v1","max_file_size":0}',
        '{"spec":"mdpack.config.v1","max_file_size":true}',
        '{"spec":"mdpack.config.v1","max_file_size":"1MiB"}',
        '{"spec":"mdpack.config.v1","ignored_dirs":"node_modules"}',
        '{"spec":"mdpack.config.v1","ignored_globs":[""]}',
        '{"spec":"mdpack.config.v1","archive_name":"sub/x.md"}',
        '{"spec":"mdpack.config.v1","text_encoding":"no-such-codec"}',
        "@/definitely/missing/file.json",
    ],
)
def test_rejects_invalid_config(bad: str) -> None:
    with pytest.raises(ConfigError):
        load_pack_config(bad)
