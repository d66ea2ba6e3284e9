"""Byte-level detection of text encoding and line ending style."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Union

from .models import LineEnding, LineEndingInfo, TextEncoding

POWERSHELL_EXTENSIONS = frozenset({".ps1", ".psm1", ".psd1", ".ps1xml"})

_UTF7_SIGNATURE_TAILS = (b"8", b"9", b"+", b"/")

# A wide encoding must be decoded before CR/LF bytes can be counted.
_WIDE_ENCODINGS = frozenset(
    {TextEncoding.UTF16_LE, TextEncoding.UTF16_BE, TextEncoding.UTF32_LE, TextEncoding.UTF32_BE}
)


def is_powershell_file(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in POWERSHELL_EXTENSIONS


def detect_encoding(data: bytes) -> TextEncoding:
    """Sniff the encoding of ``data``.

    BOMs win (UTF-32 is checked before UTF-16 since their LE marks share a
    prefix). Without a BOM, any byte >= 0x80 means UTF-8, otherwise ASCII.
    """
    if data.startswith(b"\xff\xfe\x00\x00"):
        return TextEncoding.UTF32_LE
    if data.startswith(b"\x00\x00\xfe\xff"):
        return TextEncoding.UTF32_BE
    if data.startswith(b"\xef\xbb\xbf"):
        return TextEncoding.UTF8_BOM
    if data.startswith(b"\xff\xfe"):
        return TextEncoding.UTF16_LE
    if data.startswith(b"\xfe\xff"):
        return TextEncoding.UTF16_BE
    if data.startswith(b"+/v") and data[3:4] in _UTF7_SIGNATURE_TAILS:
        return TextEncoding.UTF7
    if any(b >= 0x80 for b in data):
        return TextEncoding.UTF8
    return TextEncoding.ASCII


def decode_text(data: bytes, encoding: TextEncoding) -> str:
    """Decode ``data`` as ``encoding``, dropping the BOM.

    Raises:
        UnicodeDecodeError: When the bytes are not valid in ``encoding``.
    """
    bom = encoding.bom
    if bom and data.startswith(bom):
        data = data[len(bom):]
    text = data.decode(encoding.codec)
    if encoding is TextEncoding.UTF7 and text.startswith("\ufeff"):
        text = text[1:]
    return text


def encode_text(text: str, encoding: TextEncoding, *, errors: str = "strict") -> bytes:
    """Encode ``text`` as ``encoding``, prefixing its BOM.

    Raises:
        UnicodeEncodeError: When ``errors`` is strict and ``text`` holds
            characters ``encoding`` cannot represent.
    """
    return encoding.bom + text.encode(encoding.codec, errors=errors)


def classify_line_endings(text: str) -> LineEndingInfo:
    """Count CRLF, lone LF and lone CR in ``text`` and classify the style."""
    crlf = text.count("\r\n")
    lf = text.count("\n") - crlf
    cr = text.count("\r") - crlf
    present = [kind for kind, n in ((LineEnding.CRLF, crlf), (LineEnding.LF, lf), (LineEnding.CR, cr)) if n]
    if not present:
        kind = LineEnding.NONE
    elif len(present) > 1:
        kind = LineEnding.MIXED
    else:
        kind = present[0]
    has_final = text.endswith("\n") or text.endswith("\r")
    return LineEndingInfo(kind=kind, has_final_newline=has_final, crlf=crlf, lf=lf, cr=cr)


def detect_line_ending(data: bytes) -> LineEndingInfo:
    """Classify the line endings of raw file bytes.

    ASCII-compatible encodings are scanned byte-wise; UTF-16/UTF-32 content is
    decoded first so that the zero bytes of a wide newline are not misread.
    """
    encoding = detect_encoding(data)
    if encoding in _WIDE_ENCODINGS or encoding is TextEncoding.UTF7:
        try:
            return classify_line_endings(decode_text(data, encoding))
        except UnicodeDecodeError:
            pass
    # latin-1 maps every byte 1:1 so CR/LF positions are preserved.
    return classify_line_endings(data.decode("latin-1"))


_NEWLINE_RE = re.compile(r"\r\n|\r|\n")


def convert_line_endings(text: str, newline: str) -> tuple[str, int]:
    """Rewrite every line break in ``text`` as ``newline``.

    Returns the new text and how many breaks actually changed form.
    """
    changed = 0

    def _sub(match: "re.Match[str]") -> str:
        nonlocal changed
        if match.group(0) != newline:
            changed += 1
        return newline

    return _NEWLINE_RE.sub(_sub, text), changed


__all__ = [
    "POWERSHELL_EXTENSIONS",
    "is_powershell_file",
    "detect_encoding",
    "decode_text",
    "encode_text",
    "classify_line_endings",
    "detect_line_ending",
    "convert_line_endings",
]
