"""Formatting pipeline: preprocessing, external formatter, normalization."""
from __future__ import annotations

from .formatter import (
    DEFAULT_COMMAND,
    PSSA_NOT_FOUND,
    SKIPPED_NO_RUNTIME,
    SKIPPED_TIMEOUT,
    ExternalFormatter,
    encode_settings,
    parse_output,
)
from .models import (
    CheckStatus,
    FormatterResult,
    FormattingSummary,
    format_part_plain,
    is_error_message,
    is_skipped_message,
    leading_token,
    worst,
)
from .pipeline import FormatOptions, FormattingPipeline
from .preprocess import PreprocessOptions, preprocess_file, preprocess_text, scan_script

__all__ = [
    "DEFAULT_COMMAND",
    "PSSA_NOT_FOUND",
    "SKIPPED_NO_RUNTIME",
    "SKIPPED_TIMEOUT",
    "CheckStatus",
    "ExternalFormatter",
    "FormatOptions",
    "FormatterResult",
    "FormattingPipeline",
    "FormattingSummary",
    "PreprocessOptions",
    "encode_settings",
    "format_part_plain",
    "is_error_message",
    "is_skipped_message",
    "leading_token",
    "parse_output",
    "preprocess_file",
    "preprocess_text",
    "scan_script",
    "worst",
]
