"""Content encoder/decoder.

text/svg -> ``text``: bytes decoded with the configured text encoding, stored verbatim
image    -> ``base64``: standard alphabet, no line wrapping
"""

from __future__ import annotations

import base64
import binascii
from typing import Final

from mdpack.eligibility import KIND_IMAGE, KIND_SVG, KIND_TEXT
from mdpack.errors import MalformedEncoding

ENC_PLAIN_TEXT: Final[str] = "text"
ENC_BASE64: Final[str] = "base64"

ENCODINGS: Final[tuple[str, ...]] = (ENC_PLAIN_TEXT, ENC_BASE64)


class NotText(ValueError):
    """Raised when a text-classified file does not decode with the text encoding."""


def encode_content(data: bytes, kind: str, *, text_encoding: str = "utf-8") -> tuple[str, str]:
    if kind in (KIND_TEXT, KIND_SVG):
        try:
            return ENC_PLAIN_TEXT, data.decode(text_encoding)
        except UnicodeDecodeError as e:
            raise NotText(f"not valid {text_encoding} (pos={e.start})") from e
    if kind == KIND_IMAGE:
        return ENC_BASE64, base64.b64encode(data).decode("ascii")
    raise ValueError(f"unknown content kind: {kind}")


def decode_content(
    encoding: str, content: str, *, text_encoding: str = "utf-8", rel: str | None = None
) -> bytes:
    if encoding == ENC_PLAIN_TEXT:
        try:
            return content.encode(text_encoding)
        except UnicodeEncodeError as e:
            raise MalformedEncoding(f"text not representable in {text_encoding}: {e}", rel=rel) from e
    if encoding == ENC_BASE64:
        try:
            return base64.b64decode(content.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise MalformedEncoding(f"invalid base64 payload: {e}", rel=rel) from e
    raise MalformedEncoding(f"unknown encoding: {encoding!r}", rel=rel)
