"""Out-of-process formatter invocation.

The whole batch goes to one child process:

    <command...> <base64 settings json | ''> -- <file> [<file> ...]

which reports one line per file (``FORMATTED::<path>``,
``UNCHANGED::<path>`` or ``ERROR::<path>::<message>``). By default the
command is ``pwsh`` running the bundled PSScriptAnalyzer script; any
``{script}`` placeholder in a configured command is replaced with that
script's path.
"""
from __future__ import annotations

import base64
import json
import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from modforge.core.utils.subprocess import run_with_timeout
from modforge.data import get_data_path

from .models import NO_RESULT, FormatterResult, path_key

SCRIPT_PLACEHOLDER = "{script}"
DEFAULT_COMMAND = ("pwsh", "-NoProfile", "-NonInteractive", "-File", SCRIPT_PLACEHOLDER)
DEFAULT_TIMEOUT_SECONDS = 120.0

EXIT_TOOL_MISSING = 3
EXIT_TIMEOUT = 124
EXIT_NO_RUNTIME = 127

PSSA_NOT_FOUND = "PSSA_NOT_FOUND"
SKIPPED_NO_RUNTIME = "Skipped: No PowerShell runtime"
SKIPPED_TIMEOUT = "Skipped: Timeout"

_FORMATTED = "FORMATTED::"
_UNCHANGED = "UNCHANGED::"
_ERROR = "ERROR::"


def encode_settings(settings: Union[None, str, Mapping[str, Any]]) -> str:
    """Base64 of the UTF-8 settings JSON; empty when there are none."""
    if settings is None:
        return ""
    payload = settings if isinstance(settings, str) else json.dumps(dict(settings), sort_keys=True)
    if not payload:
        return ""
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def parse_output(stdout: str) -> Dict[str, FormatterResult]:
    """Map each reported path (case-insensitively) to its result."""
    results: Dict[str, FormatterResult] = {}
    for line in (stdout or "").splitlines():
        line = line.strip("\r\n")
        if line.startswith(_FORMATTED):
            path = line[len(_FORMATTED):]
            results[path_key(path)] = FormatterResult(Path(path), True, "Formatted")
        elif line.startswith(_UNCHANGED):
            path = line[len(_UNCHANGED):]
            results[path_key(path)] = FormatterResult(Path(path), False, "Unchanged")
        elif line.startswith(_ERROR):
            path, sep, message = line[len(_ERROR):].partition("::")
            if sep and path:
                results[path_key(path)] = FormatterResult(Path(path), False, f"Error: {message}")
    return results


def _failure_detail(proc: subprocess.CompletedProcess) -> str:
    stdout = proc.stdout or ""
    if PSSA_NOT_FOUND in stdout:
        return f"{PSSA_NOT_FOUND} formatter failed (exit {proc.returncode})"
    stderr_lines = [ln.strip() for ln in (proc.stderr or "").splitlines() if ln.strip()]
    detail = stderr_lines[-1] if stderr_lines else "no diagnostic output"
    return f"formatter failed (exit {proc.returncode}): {detail}"


class ExternalFormatter:
    """Runs a formatter command over a batch of files."""

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.command = list(command) if command else list(DEFAULT_COMMAND)
        self.logger = logger or logging.getLogger(__name__)

    def _materialize_script(self) -> Optional[Path]:
        if not any(SCRIPT_PLACEHOLDER in part for part in self.command):
            return None
        source = get_data_path("formatter", "format_files.ps1")
        fd, name = tempfile.mkstemp(prefix="modforge_format_", suffix=".ps1")
        os.close(fd)
        shutil.copyfile(str(source), name)
        return Path(name)

    def build_command(self, files: Sequence[str], settings_b64: str, script: Optional[Path]) -> List[str]:
        argv = [part.replace(SCRIPT_PLACEHOLDER, str(script)) if script else part for part in self.command]
        return argv + [settings_b64, "--", *files]

    def format_files(
        self,
        files: Iterable[Union[str, Path]],
        settings: Union[None, str, Mapping[str, Any]] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> List[FormatterResult]:
        """Format ``files`` in one child process.

        Returns exactly one result per distinct input path, in input order.
        Process-level failures are reported per file, never raised.
        """
        unique: List[str] = []
        seen = set()
        for f in files:
            k = path_key(f)
            if k not in seen:
                seen.add(k)
                unique.append(str(f))
        if not unique:
            return []

        def every(message: str) -> List[FormatterResult]:
            return [FormatterResult(Path(p), False, message) for p in unique]

        script = self._materialize_script()
        try:
            argv = self.build_command(unique, encode_settings(settings), script)
            try:
                proc = run_with_timeout(argv, timeout=timeout)
            except subprocess.TimeoutExpired:
                self.logger.warning("Formatter timed out after %ss; skipping %d file(s)", timeout, len(unique))
                return every(SKIPPED_TIMEOUT)
            except FileNotFoundError:
                self.logger.warning("Formatter runtime %r not found; skipping formatting", argv[0])
                return every(SKIPPED_NO_RUNTIME)
            except OSError as exc:
                self.logger.warning("Formatter could not start: %s", exc)
                return every(f"Error: formatter could not start: {exc}")
        finally:
            if script is not None:
                try:
                    script.unlink()
                except OSError:
                    # Best-effort cleanup of the temp script
                    pass

        if proc.returncode == EXIT_NO_RUNTIME:
            self.logger.warning("No PowerShell runtime available; skipping formatting")
            return every(SKIPPED_NO_RUNTIME)
        if proc.returncode == EXIT_TIMEOUT:
            self.logger.warning("Formatter reported a timeout; skipping")
            return every(SKIPPED_TIMEOUT)

        parsed = parse_output(proc.stdout or "")
        missing = NO_RESULT
        if proc.returncode != 0:
            missing = f"Error: {_failure_detail(proc)}"
            self.logger.warning("Formatter exited with code %s", proc.returncode)

        results = []
        for p in unique:
            found = parsed.get(path_key(p))
            if found is None:
                results.append(FormatterResult(Path(p), False, missing))
            else:
                results.append(FormatterResult(Path(p), found.changed, found.message))
        return results


__all__ = [
    "DEFAULT_COMMAND",
    "DEFAULT_TIMEOUT_SECONDS",
    "EXIT_TOOL_MISSING",
    "EXIT_TIMEOUT",
    "EXIT_NO_RUNTIME",
    "PSSA_NOT_FOUND",
    "SKIPPED_NO_RUNTIME",
    "SKIPPED_TIMEOUT",
    "ExternalFormatter",
    "encode_settings",
    "parse_output",
]
