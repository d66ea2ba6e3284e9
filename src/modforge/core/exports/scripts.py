"""Static discovery of script-defined functions."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Iterator, List, Union

from .models import normalize_names

logger = logging.getLogger(__name__)

# Exported commands use the Verb-Noun shape; other names are private helpers.
_DECLARATION_RE = re.compile(
    r"(?i)(?:function|filter|workflow)\s+(?:(?:global|script|local|private):)?(\w+-\w[\w.-]*)"
)
_KEYWORD_RE = re.compile(r"(?i)(?<![\w$-])(?:function|filter|workflow)(?=\s)")


def _top_level_positions(text: str) -> Iterator[int]:
    """Yield offsets of declaration keywords that sit at brace depth 0.

    Comments and quoted strings are skipped so braces inside them do not
    count.
    """
    depth = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if text.startswith("<#", i):
            close = text.find("#>", i + 2)
            i = n if close < 0 else close + 2
            continue
        if ch == "#":
            while i < n and text[i] not in "\r\n":
                i += 1
            continue
        if text.startswith(("@'", '@"'), i):
            quote = text[i + 1]
            close = re.compile(r"[\r\n]" + re.escape(quote) + "@").search(text, i + 2)
            i = n if close is None else close.end()
            continue
        if ch in "'\"":
            i += 1
            while i < n:
                if ch == '"' and text[i] == "`":
                    i += 2
                    continue
                if text[i] == ch:
                    if i + 1 < n and text[i + 1] == ch:
                        i += 2
                        continue
                    break
                i += 1
            i += 1
            continue
        if ch == "`":
            i += 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth = max(0, depth - 1)
        elif depth == 0 and ch.isalpha():
            m = _KEYWORD_RE.match(text, i)
            if m and (i == 0 or not (text[i - 1].isalnum() or text[i - 1] in "_-$")):
                yield i
                i = m.end()
                continue
            while i < n and (text[i].isalnum() or text[i] in "_-"):
                i += 1
            continue
        i += 1


def functions_in_text(text: str) -> List[str]:
    """Return function names declared at the top level of ``text``."""
    names = []
    for pos in _top_level_positions(text):
        m = _DECLARATION_RE.match(text, pos)
        if m:
            names.append(m.group(1))
    return names


def detect_script_functions(files: Iterable[Union[str, Path]]) -> List[str]:
    """Collect top-level function names from script files.

    Missing or unreadable files are skipped. Nested functions are not
    reported.
    """
    found: List[str] = []
    for file in files:
        if file is None or not str(file).strip():
            continue
        path = Path(file)
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8-sig", errors="replace")
        except OSError as exc:
            logger.debug("Skipping unreadable script %s: %s", path, exc)
            continue
        found.extend(functions_in_text(text))
    return normalize_names(found)


__all__ = ["functions_in_text", "detect_script_functions"]
