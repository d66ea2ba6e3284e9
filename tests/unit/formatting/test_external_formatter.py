"""Tests for the out-of-process formatter driver.

A small Python script stands in for the PowerShell runtime and speaks the
same line protocol.
"""
from __future__ import annotations

import base64
import json
import sys
import textwrap
from pathlib import Path

from modforge.core.formatting import (
    SKIPPED_NO_RUNTIME,
    SKIPPED_TIMEOUT,
    ExternalFormatter,
    encode_settings,
    parse_output,
)

PROTOCOL_SCRIPT = """
import base64, sys
args = sys.argv[1:]
settings, files = args[0], args[2:]
for f in files:
    if f.endswith("bad.ps1"):
        print("ERROR::" + f + "::parse failed")
        continue
    if f.endswith("quiet.ps1"):
        continue
    with open(f, encoding="utf-8", newline="") as fh:
        data = fh.read()
    if settings:
        with open(f + ".settings", "w", encoding="utf-8") as fh:
            fh.write(base64.b64decode(settings).decode("utf-8"))
    new = data.replace("\\t", "    ")
    if new != data:
        with open(f, "w", encoding="utf-8", newline="") as fh:
            fh.write(new)
        print("FORMATTED::" + f)
    else:
        print("UNCHANGED::" + f)
"""


def _formatter(tmp_path: Path, body: str) -> ExternalFormatter:
    script = tmp_path / "fake_formatter.py"
    script.write_text(textwrap.dedent(body), encoding="utf-8")
    return ExternalFormatter(command=[sys.executable, str(script)])


def _scripts(tmp_path: Path, **files: str) -> list:
    paths = []
    for name, text in files.items():
        path = tmp_path / f"{name}.ps1"
        path.write_text(text, encoding="utf-8")
        paths.append(path)
    return paths


class TestProtocol:
    """Per-file results parsed from the child's output."""

    def test_results_in_input_order(self, tmp_path) -> None:
        formatter = _formatter(tmp_path, PROTOCOL_SCRIPT)
        tabbed, clean, bad, quiet = _scripts(
            tmp_path, tabbed="if ($x) {\n\tGet-Thing\n}\n", clean="Get-Thing\n", bad="{", quiet="x"
        )

        results = formatter.format_files([tabbed, clean, bad, quiet])

        assert [r.path for r in results] == [tabbed, clean, bad, quiet]
        assert [(r.changed, r.message) for r in results] == [
            (True, "Formatted"),
            (False, "Unchanged"),
            (False, "Error: parse failed"),
            (False, "No result returned"),
        ]
        assert tabbed.read_text(encoding="utf-8") == "if ($x) {\n    Get-Thing\n}\n"

    def test_duplicate_inputs_collapse(self, tmp_path) -> None:
        formatter = _formatter(tmp_path, PROTOCOL_SCRIPT)
        (clean,) = _scripts(tmp_path, clean="Get-Thing\n")

        results = formatter.format_files([clean, str(clean)])

        assert len(results) == 1

    def test_settings_are_passed_as_base64_json(self, tmp_path) -> None:
        formatter = _formatter(tmp_path, PROTOCOL_SCRIPT)
        (clean,) = _scripts(tmp_path, clean="Get-Thing\n")

        formatter.format_files([clean], settings={"IncludeRules": ["PSUseConsistentIndentation"]})

        written = json.loads(Path(str(clean) + ".settings").read_text(encoding="utf-8"))
        assert written == {"IncludeRules": ["PSUseConsistentIndentation"]}

    def test_empty_input(self, tmp_path) -> None:
        assert _formatter(tmp_path, PROTOCOL_SCRIPT).format_files([]) == []


class TestProcessFailures:
    """Process-level failures become per-file messages."""

    def test_timeout_skips_every_file(self, tmp_path) -> None:
        formatter = _formatter(tmp_path, "import time\ntime.sleep(30)\n")
        files = _scripts(tmp_path, a="x", b="y")

        results = formatter.format_files(files, timeout=0.5)

        assert [r.message for r in results] == [SKIPPED_TIMEOUT, SKIPPED_TIMEOUT]
        assert not any(r.changed for r in results)

    def test_missing_runtime(self, tmp_path) -> None:
        formatter = ExternalFormatter(command=[str(tmp_path / "no-such-pwsh")])
        files = _scripts(tmp_path, a="x")

        assert formatter.format_files(files)[0].message == SKIPPED_NO_RUNTIME

    def test_exit_127_means_no_runtime(self, tmp_path) -> None:
        formatter = _formatter(tmp_path, "import sys\nsys.exit(127)\n")
        files = _scripts(tmp_path, a="x")

        assert formatter.format_files(files)[0].message == SKIPPED_NO_RUNTIME

    def test_missing_analyzer_is_an_error(self, tmp_path) -> None:
        formatter = _formatter(tmp_path, "import sys\nprint('PSSA_NOT_FOUND')\nsys.exit(3)\n")
        files = _scripts(tmp_path, a="x")

        (result,) = formatter.format_files(files)

        assert result.message == "Error: PSSA_NOT_FOUND formatter failed (exit 3)"

    def test_nonzero_exit_uses_last_stderr_line(self, tmp_path) -> None:
        body = "import sys\nsys.stderr.write('first\\nModule load failed\\n')\nsys.exit(2)\n"
        formatter = _formatter(tmp_path, body)
        files = _scripts(tmp_path, a="x")

        (result,) = formatter.format_files(files)

        assert result.message == "Error: formatter failed (exit 2): Module load failed"


def test_encode_settings() -> None:
    assert encode_settings(None) == ""
    assert encode_settings("") == ""
    assert base64.b64decode(encode_settings({"b": 1, "a": 2})) == b'{"a": 2, "b": 1}'


def test_parse_output_ignores_noise() -> None:
    parsed = parse_output("WARNING: something\nFORMATTED::C:/A.ps1\nERROR::::no path\nUNCHANGED::b.ps1\r\n")

    assert set(parsed) == {"c:/a.ps1", "b.ps1"}
    assert parsed["c:/a.ps1"].changed is True


def test_default_command_materializes_bundled_script(tmp_path) -> None:
    formatter = ExternalFormatter()
    script = formatter._materialize_script()
    try:
        assert script is not None
        assert "Invoke-Formatter" in script.read_text(encoding="utf-8")
        argv = formatter.build_command(["a.ps1"], "", script)
        assert argv[0] == "pwsh"
        assert argv[-3:] == ["", "--", "a.ps1"]
        assert str(script) in argv
    finally:
        if script is not None:
            script.unlink()


def test_reported_paths_match_case_insensitively(tmp_path) -> None:
    body = "import sys\nfor f in sys.argv[3:]:\n    print('UNCHANGED::' + f.upper())\n"
    formatter = _formatter(tmp_path, body)
    files = _scripts(tmp_path, a="x")

    assert formatter.format_files(files)[0].message == "Unchanged"
