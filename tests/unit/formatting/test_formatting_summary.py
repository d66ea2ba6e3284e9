"""Tests for formatter result classification and summaries."""
from __future__ import annotations

from pathlib import Path

import pytest

from modforge.core.formatting import (
    CheckStatus,
    FormatterResult,
    FormattingSummary,
    format_part_plain,
    is_error_message,
    is_skipped_message,
    worst,
)


def _result(changed: bool, message: str) -> FormatterResult:
    return FormatterResult(Path("x.ps1"), changed, message)


class TestMessageClassification:
    """Skip/error detection on result messages."""

    @pytest.mark.parametrize(
        "message",
        [
            "Error: boom",
            "error: lower case",
            "No result returned",
            "PSSA_NOT_FOUND formatter failed (exit 3)",
            "formatter failed (exit 2): something",
            "Error: normalization failed: x; pre=0; fmt=1; norm=0",
        ],
    )
    def test_errors(self, message: str) -> None:
        assert is_error_message(message)
        assert not is_skipped_message(message)

    @pytest.mark.parametrize(
        "message",
        ["Skipped: Timeout", "skipped: No PowerShell runtime", "Skipped: Error while probing; pre=0"],
    )
    def test_skips_are_never_errors(self, message: str) -> None:
        assert is_skipped_message(message)
        assert not is_error_message(message)

    @pytest.mark.parametrize("message", ["Formatted", "Unchanged", "Changed; pre=1; fmt=0; norm=0", "", None, "   "])
    def test_neither(self, message) -> None:
        assert not is_error_message(message)
        assert not is_skipped_message(message)


class TestFormattingSummary:
    def test_mixed_batch_fails(self) -> None:
        summary = FormattingSummary.from_results(
            [
                _result(True, "Formatted"),
                _result(False, "Skipped: Timeout"),
                _result(False, "Error: x"),
            ]
        )

        assert (summary.total, summary.changed, summary.skipped, summary.errors) == (3, 1, 1, 1)
        assert summary.status is CheckStatus.FAIL

    def test_skips_only_warn(self) -> None:
        summary = FormattingSummary.from_results([_result(False, "Skipped: Timeout"), _result(False, "Unchanged")])
        assert summary.status is CheckStatus.WARNING

    def test_clean_batch_passes(self) -> None:
        summary = FormattingSummary.from_results([_result(True, "Formatted"), _result(False, "Unchanged")])
        assert summary.status is CheckStatus.PASS
        assert summary.changed == 1

    def test_empty_and_none_inputs(self) -> None:
        assert FormattingSummary.from_results(None) == FormattingSummary()
        assert FormattingSummary.from_results([None, _result(False, "Unchanged")]).total == 1
        assert FormattingSummary().status is CheckStatus.PASS


def test_worst_orders_fail_over_warning_over_pass() -> None:
    assert worst(CheckStatus.PASS, CheckStatus.WARNING) is CheckStatus.WARNING
    assert worst(CheckStatus.FAIL, CheckStatus.WARNING) is CheckStatus.FAIL
    assert worst(CheckStatus.PASS, CheckStatus.PASS) is CheckStatus.PASS


def test_format_part_plain() -> None:
    summary = FormattingSummary(total=3, changed=1, skipped=1, errors=1)

    assert format_part_plain("Scripts", summary) == "Scripts 1/3 (skipped 1, errors 1)"
    assert format_part_plain("Scripts", FormattingSummary(total=2, changed=2)) == "Scripts 2/2"
    assert format_part_plain("Scripts", None) == "Scripts 0/0"
