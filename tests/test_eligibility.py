from __future__ import annotations

from pathlib import Path

import pytest

from mdpack.config import PackConfig
from mdpack.eligibility import (
    KIND_IMAGE,
    KIND_SVG,
    KIND_TEXT,
    REASON_ARCHIVE_NAME,
    REASON_BINARY,
    REASON_IGNORED_DIR,
    REASON_IGNORED_GLOB,
    REASON_TOO_LARGE,
    Exclude,
    Include,
    classify,
    file_extension,
    is_probably_text,
)

MIB = 1024 * 1024


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"hello world\n",
        b"tab\tseparated\r\nlines\n",
        "unicødé ✓\n".encode("utf-8"),
        b"\x1b[31mred\x1b[0m\n",
    ],
)
def test_is_probably_text_accepts_text(data: bytes) -> None:
    assert is_probably_text(data)


@pytest.mark.parametrize(
    "data",
    [
        b"abc\x00def",
        b"\x00",
        bytes(range(1, 32)) * 4,
    ],
)
def test_is_probably_text_rejects_binary(data: bytes) -> None:
    assert not is_probably_text(data)


def test_is_probably_text_control_ratio_threshold() -> None:
    # 3 control bytes out of 10 -> exactly at the default 0.30 limit: still text
    assert is_probably_text(b"\x01\x02\x03abcdefg")
    # 4 out of 10 -> binary
    assert not is_probably_text(b"\x01\x02\x03\x04abcdef")
    assert is_probably_text(b"\x01\x02\x03\x04abcdef", max_control_ratio=0.5)


def test_is_probably_text_only_looks_at_sample() -> None:
    data = b"a" * 100 + b"\x00"
    assert not is_probably_text(data)
    assert is_probably_text(data, sample_size=100)


def test_file_extension() -> None:
    assert file_extension("main.RS") == "rs"
    assert file_extension("archive.tar.gz") == "gz"
    assert file_extension(".gitignore") == "gitignore"
    assert file_extension(".env") == "env"
    assert file_extension("Makefile") == ""
    assert file_extension(".config.json") == "json"


def test_classify_kinds(tmp_path: Path) -> None:
    cfg = PackConfig()
    assert classify(tmp_path / "a.py", 10, cfg) == Include(KIND_TEXT)
    assert classify(tmp_path / "logo.PNG", 10, cfg) == Include(KIND_IMAGE)
    assert classify(tmp_path / "photo.jpeg", 10, cfg) == Include(KIND_IMAGE)
    assert classify(tmp_path / "icon.svg", 10, cfg) == Include(KIND_SVG)
    assert classify(tmp_path / ".gitignore", 10, cfg) == Include(KIND_TEXT)
    assert classify(tmp_path / "Dockerfile", 10, cfg) == Include(KIND_TEXT)

    d = classify(tmp_path / "blob.bin", 10, cfg)
    assert isinstance(d, Exclude) and d.reason == REASON_BINARY


def test_classify_no_extension_sniffs_content(tmp_path: Path) -> None:
    (tmp_path / "README").write_text("plain words\n", encoding="utf-8")
    (tmp_path / "payload").write_bytes(b"\x7fELF\x00\x00\x01")

    assert classify(tmp_path / "README", 12) == Include(KIND_TEXT)
    d = classify(tmp_path / "payload", 7)
    assert isinstance(d, Exclude) and d.reason == REASON_BINARY

    # head given: the file is not touched at all
    assert classify(tmp_path / "missing", 5, head=b"hello") == Include(KIND_TEXT)


def test_classify_size_boundary() -> None:
    cfg = PackConfig()
    p = Path("src/big.txt")
    assert classify(p, MIB, cfg) == Include(KIND_TEXT)
    d = classify(p, MIB + 1, cfg)
    assert isinstance(d, Exclude) and d.reason == REASON_TOO_LARGE

    # images are capped too, svg is not
    d = classify(Path("big.png"), MIB + 1, cfg)
    assert isinstance(d, Exclude) and d.reason == REASON_TOO_LARGE
    assert classify(Path("big.svg"), 50 * MIB, cfg) == Include(KIND_SVG)


def test_classify_size_cap_is_configurable() -> None:
    cfg = PackConfig(max_file_size=16)
    assert classify(Path("a.txt"), 16, cfg) == Include(KIND_TEXT)
    d = classify(Path("a.txt"), 17, cfg)
    assert isinstance(d, Exclude) and d.reason == REASON_TOO_LARGE


def test_classify_precedence(tmp_path: Path) -> None:
    cfg = PackConfig()
    root = tmp_path

    # ignored dir beats everything, even a valid text file
    d = classify(root / "node_modules" / "pkg" / "index.js", 10, cfg, root=root)
    assert isinstance(d, Exclude) and d.reason == REASON_IGNORED_DIR

    d = classify(root / "sub" / "all_content.md", 10, cfg, root=root)
    assert isinstance(d, Exclude) and d.reason == REASON_ARCHIVE_NAME

    d = classify(root / "Cargo.lock", MIB * 5, cfg, root=root)
    assert isinstance(d, Exclude) and d.reason == REASON_IGNORED_GLOB


def test_classify_ignored_dir_only_checked_below_root(tmp_path: Path) -> None:
    root = tmp_path / "target"
    # the root itself may be called "target": only components below it count
    assert classify(root / "a.txt", 1, root=root) == Include(KIND_TEXT)
    d = classify(root / "target" / "a.txt", 1, root=root)
    assert isinstance(d, Exclude) and d.reason == REASON_IGNORED_DIR


def test_classify_custom_archive_name() -> None:
    cfg = PackConfig(archive_name="snapshot.md")
    assert classify(Path("all_content.md"), 1, cfg) == Include(KIND_TEXT)
    d = classify(Path("snapshot.md"), 1, cfg)
    assert isinstance(d, Exclude) and d.reason == REASON_ARCHIVE_NAME
