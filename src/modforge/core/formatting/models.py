"""Formatting result records and summary classification."""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Union

ERROR_PREFIX = "Error:"
SKIPPED_PREFIX = "Skipped:"
NO_RESULT = "No result returned"

# Tool failures that surface without the standard "Error:" prefix.
FAILURE_MARKERS = ("PSSA_NOT_FOUND", "failed (exit")


class CheckStatus(str, Enum):
    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"


def path_key(path: Union[str, Path]) -> str:
    """Comparison key for a file path: OS case normalization, then casefold."""
    return os.path.normcase(str(path)).casefold()


@dataclass(frozen=True)
class FormatterResult:
    """Per-file outcome of a formatting run."""

    path: Path
    changed: bool
    message: str


def leading_token(message: Optional[str]) -> str:
    """The part of ``message`` before any ``;`` diagnostic suffix, stripped."""
    if not message or not message.strip():
        return ""
    return message.split(";", 1)[0].strip()


def is_skipped_message(message: Optional[str]) -> bool:
    return leading_token(message).lower().startswith(SKIPPED_PREFIX.lower())


def is_error_message(message: Optional[str]) -> bool:
    """True for error messages; a skipped message is never an error."""
    token = leading_token(message)
    if not token or is_skipped_message(token):
        return False
    lowered = token.lower()
    if lowered.startswith(ERROR_PREFIX.lower()) or lowered == NO_RESULT.lower():
        return True
    return any(marker.lower() in lowered for marker in FAILURE_MARKERS)


def worst(a: CheckStatus, b: CheckStatus) -> CheckStatus:
    """The more severe of two statuses (fail > warning > pass)."""
    if CheckStatus.FAIL in (a, b):
        return CheckStatus.FAIL
    if CheckStatus.WARNING in (a, b):
        return CheckStatus.WARNING
    return CheckStatus.PASS


@dataclass(frozen=True)
class FormattingSummary:
    """Aggregate counts over a set of :class:`FormatterResult`.

    Build with :meth:`from_results`; ``status`` is always derived from the
    counts.
    """

    total: int = 0
    changed: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def status(self) -> CheckStatus:
        if self.errors > 0:
            return CheckStatus.FAIL
        if self.skipped > 0:
            return CheckStatus.WARNING
        return CheckStatus.PASS

    @classmethod
    def from_results(cls, results: Optional[Iterable[Optional[FormatterResult]]]) -> "FormattingSummary":
        total = changed = skipped = errors = 0
        for result in results or ():
            if result is None:
                continue
            total += 1
            if result.changed:
                changed += 1
            if is_skipped_message(result.message):
                skipped += 1
            elif is_error_message(result.message):
                errors += 1
        return cls(total=total, changed=changed, skipped=skipped, errors=errors)


def format_part_plain(label: Optional[str], summary: Optional[FormattingSummary]) -> str:
    """Render e.g. ``"Scripts 1/3 (skipped 1, errors 1)"`` for log lines."""
    label = label or ""
    if summary is None:
        return f"{label} 0/0"
    extras = []
    if summary.skipped:
        extras.append(f"skipped {summary.skipped}")
    if summary.errors:
        extras.append(f"errors {summary.errors}")
    suffix = f" ({', '.join(extras)})" if extras else ""
    return f"{label} {summary.changed}/{summary.total}{suffix}"


__all__ = [
    "ERROR_PREFIX",
    "SKIPPED_PREFIX",
    "NO_RESULT",
    "FAILURE_MARKERS",
    "CheckStatus",
    "FormatterResult",
    "path_key",
    "FormattingSummary",
    "leading_token",
    "is_error_message",
    "is_skipped_message",
    "worst",
    "format_part_plain",
]
