"""Line ending and text encoding normalization."""
from __future__ import annotations

from .detection import (
    POWERSHELL_EXTENSIONS,
    classify_line_endings,
    convert_line_endings,
    decode_text,
    detect_encoding,
    detect_line_ending,
    encode_text,
    is_powershell_file,
)
from .models import (
    LineEnding,
    LineEndingInfo,
    NormalizationOptions,
    NormalizationResult,
    TextEncoding,
)
from .normalizer import normalize_file, normalize_files

__all__ = [
    "POWERSHELL_EXTENSIONS",
    "LineEnding",
    "LineEndingInfo",
    "NormalizationOptions",
    "NormalizationResult",
    "TextEncoding",
    "classify_line_endings",
    "convert_line_endings",
    "decode_text",
    "detect_encoding",
    "detect_line_ending",
    "encode_text",
    "is_powershell_file",
    "normalize_file",
    "normalize_files",
]
