"""Data models for line ending / encoding normalization."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


class LineEnding(str, Enum):
    """Detected (or requested) line ending style."""

    CRLF = "CRLF"
    LF = "LF"
    CR = "CR"
    MIXED = "Mixed"
    NONE = "None"

    @property
    def newline(self) -> str:
        """Literal newline sequence for CRLF/LF/CR; empty otherwise."""
        return {"CRLF": "\r\n", "LF": "\n", "CR": "\r"}.get(self.value, "")


class TextEncoding(str, Enum):
    """Text encodings the normalizer can detect and (mostly) write."""

    ASCII = "ascii"
    UTF8 = "utf8"
    UTF8_BOM = "utf8bom"
    UTF16_LE = "utf16le"
    UTF16_BE = "utf16be"
    UTF32_LE = "utf32le"
    UTF32_BE = "utf32be"
    UTF7 = "utf7"

    @property
    def codec(self) -> str:
        return _CODECS[self]

    @property
    def bom(self) -> bytes:
        return _BOMS.get(self, b"")

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_CODECS = {
    TextEncoding.ASCII: "ascii",
    TextEncoding.UTF8: "utf-8",
    TextEncoding.UTF8_BOM: "utf-8",
    TextEncoding.UTF16_LE: "utf-16-le",
    TextEncoding.UTF16_BE: "utf-16-be",
    TextEncoding.UTF32_LE: "utf-32-le",
    TextEncoding.UTF32_BE: "utf-32-be",
    TextEncoding.UTF7: "utf-7",
}

_BOMS = {
    TextEncoding.UTF8_BOM: b"\xef\xbb\xbf",
    TextEncoding.UTF16_LE: b"\xff\xfe",
    TextEncoding.UTF16_BE: b"\xfe\xff",
    TextEncoding.UTF32_LE: b"\xff\xfe\x00\x00",
    TextEncoding.UTF32_BE: b"\x00\x00\xfe\xff",
}

_DISPLAY_NAMES = {
    TextEncoding.ASCII: "us-ascii",
    TextEncoding.UTF8: "utf-8",
    TextEncoding.UTF8_BOM: "utf-8-bom",
    TextEncoding.UTF16_LE: "utf-16",
    TextEncoding.UTF16_BE: "utf-16BE",
    TextEncoding.UTF32_LE: "utf-32",
    TextEncoding.UTF32_BE: "utf-32BE",
    TextEncoding.UTF7: "utf-7",
}


@dataclass(frozen=True)
class LineEndingInfo:
    """Line ending classification of a text plus the raw counts behind it."""

    kind: LineEnding
    has_final_newline: bool
    crlf: int = 0
    lf: int = 0
    cr: int = 0


@dataclass(frozen=True)
class NormalizationOptions:
    """Options for :func:`normalize_file`.

    ``line_ending`` / ``target_encoding`` of ``None`` keep the file's current
    style. Backups go next to the file (``<name><backup_suffix>``) unless a
    ``backup_root`` is given, in which case the path relative to
    ``project_root`` is mirrored underneath it.
    """

    line_ending: Optional[LineEnding] = LineEnding.CRLF
    target_encoding: Optional[TextEncoding] = None
    prefer_utf8_bom_for_powershell: bool = True
    ensure_final_newline: bool = False
    create_backup: bool = False
    backup_root: Optional[Path] = None
    project_root: Optional[Path] = None
    backup_suffix: str = ".bak"
    rollback_on_mismatch: bool = True

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None, **overrides: Any) -> "NormalizationOptions":
        """Build options from the ``normalization`` config section."""
        from modforge.core.config.domains import NormalizationConfig

        cfg = NormalizationConfig(config)
        line_ending = None if cfg.line_ending == "keep" else LineEnding(cfg.line_ending.upper())
        encoding = None if cfg.encoding == "keep" else TextEncoding(cfg.encoding)
        values: Dict[str, Any] = {
            "line_ending": line_ending,
            "target_encoding": encoding,
            "prefer_utf8_bom_for_powershell": cfg.prefer_utf8_bom_for_powershell,
            "ensure_final_newline": cfg.ensure_final_newline,
            "create_backup": cfg.create_backups,
            "backup_suffix": cfg.backup_suffix,
            "rollback_on_mismatch": cfg.rollback_on_mismatch,
        }
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True)
class NormalizationResult:
    """Outcome of normalizing one file.

    ``encoding`` names the encoding used to write the file (or the current
    one when nothing was written). ``error`` is set when the file could not
    be processed or when a verification mismatch was detected.
    """

    path: Path
    changed: bool
    replacements: int
    encoding: str
    encoding_before: Optional[str] = None
    line_ending_before: Optional[LineEnding] = None
    backup_path: Optional[Path] = None
    rolled_back: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = [
    "LineEnding",
    "TextEncoding",
    "LineEndingInfo",
    "NormalizationOptions",
    "NormalizationResult",
]
