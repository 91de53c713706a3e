from __future__ import annotations

import base64
import os

import pytest

from mdpack.codec import ENC_BASE64, ENC_PLAIN_TEXT, NotText, decode_content, encode_content
from mdpack.errors import MalformedEncoding


def test_text_kinds_are_stored_verbatim() -> None:
    data = "café\r\n<svg/>\n".encode("utf-8")
    assert encode_content(data, "text") == (ENC_PLAIN_TEXT, "café\r\n<svg/>\n")
    assert encode_content(data, "svg") == (ENC_PLAIN_TEXT, "café\r\n<svg/>\n")
    assert decode_content(ENC_PLAIN_TEXT, "café\r\n<svg/>\n") == data


def test_image_is_base64_without_wrapping() -> None:
    data = b"\x89PNG\r\n\x1a\n" + os.urandom(4096)
    enc, content = encode_content(data, "image")
    assert enc == ENC_BASE64
    assert "\n" not in content
    assert content == base64.b64encode(data).decode("ascii")
    assert decode_content(enc, content) == data


def test_undecodable_text_raises_not_text() -> None:
    with pytest.raises(NotText):
        encode_content(b"\xff\xfe\xfa", "text")


def test_other_text_encoding() -> None:
    data = "città".encode("latin-1")
    enc, content = encode_content(data, "text", text_encoding="latin-1")
    assert content == "città"
    assert decode_content(enc, content, text_encoding="latin-1") == data


def test_invalid_base64_is_malformed_encoding() -> None:
    with pytest.raises(MalformedEncoding) as ei:
        decode_content(ENC_BASE64, "not*base64!", rel="img/a.png")
    assert ei.value.rel == "img/a.png"
    assert "img/a.png" in str(ei.value)

    # wrong padding must not be silently truncated
    with pytest.raises(MalformedEncoding):
        decode_content(ENC_BASE64, "AAA")


def test_unknown_encoding_is_malformed_encoding() -> None:
    with pytest.raises(MalformedEncoding):
        decode_content("hex", "00ff")
