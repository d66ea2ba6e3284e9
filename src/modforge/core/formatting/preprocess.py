"""In-process text preprocessing applied before the external formatter.

Comment removal works on a light tokenizer that understands PowerShell
strings, here-strings and comments, so ``#`` inside a string is left alone.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from modforge.core.file_io.utils import atomic_write_bytes
from modforge.core.normalization.detection import (
    classify_line_endings,
    decode_text,
    detect_encoding,
    encode_text,
)

Span = Tuple[int, int]

_PARAM_RE = re.compile(r"(?i)param\s*\(")
_REQUIRES_RE = re.compile(r"(?i)#requires\b")
# '#' only opens a comment at the start of a token.
_COMMENT_OPENERS = " \t\r\n;({[,|=&"


@dataclass(frozen=True)
class PreprocessOptions:
    remove_comments: bool = False
    remove_comments_in_param_block: bool = False
    remove_comments_before_param_block: bool = False
    remove_empty_lines: bool = False
    remove_all_empty_lines: bool = False

    @property
    def enabled(self) -> bool:
        return any(
            (
                self.remove_comments,
                self.remove_comments_in_param_block,
                self.remove_comments_before_param_block,
                self.remove_empty_lines,
                self.remove_all_empty_lines,
            )
        )


@dataclass(frozen=True)
class ScriptLayout:
    comments: List[Span]
    param_block: Optional[Span]


def _skip_string(text: str, i: int) -> int:
    quote = text[i]
    n = len(text)
    i += 1
    while i < n:
        ch = text[i]
        if quote == '"' and ch == "`":
            i += 2
            continue
        if ch == quote:
            if i + 1 < n and text[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return n


def _matching_paren(text: str, open_pos: int) -> int:
    """Offset just past the ``)`` matching the ``(`` at ``open_pos``."""
    depth = 0
    i = open_pos
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in "'\"":
            i = _skip_string(text, i)
            continue
        if ch == "#" and (i == 0 or text[i - 1] in _COMMENT_OPENERS):
            while i < n and text[i] not in "\r\n":
                i += 1
            continue
        if text.startswith("<#", i):
            close = text.find("#>", i + 2)
            i = n if close < 0 else close + 2
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return n


def scan_script(text: str) -> ScriptLayout:
    """Locate comment spans and the script-level ``param(...)`` block."""
    comments: List[Span] = []
    param_block: Optional[Span] = None
    depth = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if text.startswith("<#", i):
            close = text.find("#>", i + 2)
            end = n if close < 0 else close + 2
            comments.append((i, end))
            i = end
            continue
        if ch == "#" and (i == 0 or text[i - 1] in _COMMENT_OPENERS):
            start = i
            while i < n and text[i] not in "\r\n":
                i += 1
            comments.append((start, i))
            continue
        if text.startswith(("@'", '@"'), i):
            close = re.compile(r"[\r\n]" + re.escape(text[i + 1]) + "@").search(text, i + 2)
            i = n if close is None else close.end()
            continue
        if ch in "'\"":
            i = _skip_string(text, i)
            continue
        if ch == "`":
            i += 2
            continue
        if ch in "{(":
            depth += 1
        elif ch in "})":
            depth = max(0, depth - 1)
        elif param_block is None and depth == 0 and ch in "pP" and (i == 0 or not (text[i - 1].isalnum() or text[i - 1] in "_-$")):
            m = _PARAM_RE.match(text, i)
            if m:
                end = _matching_paren(text, m.end() - 1)
                param_block = (i, end)
        i += 1
    return ScriptLayout(comments=comments, param_block=param_block)


def _remove_spans(text: str, spans: List[Span]) -> str:
    for start, end in sorted(spans, reverse=True):
        # Drop horizontal whitespace between code and a trailing comment.
        while start > 0 and text[start - 1] in " \t":
            start -= 1
        text = text[:start] + text[end:]
    return text


def remove_comments(text: str, options: PreprocessOptions) -> str:
    layout = scan_script(text)
    selected: List[Span] = []
    for start, end in layout.comments:
        if _REQUIRES_RE.match(text, start):
            continue
        if options.remove_comments:
            selected.append((start, end))
            continue
        if layout.param_block is None:
            continue
        p_start, p_end = layout.param_block
        if options.remove_comments_before_param_block and end <= p_start:
            selected.append((start, end))
        elif options.remove_comments_in_param_block and start >= p_start and end <= p_end:
            selected.append((start, end))
    return _remove_spans(text, selected) if selected else text


def collapse_empty_lines(text: str, remove_all: bool) -> str:
    """Collapse runs of blank lines to one, or drop them all."""
    info = classify_line_endings(text)
    newline = "\n" if info.lf > info.crlf else "\r\n"
    final = ""
    body = text
    for nl in ("\r\n", "\n", "\r"):
        if body.endswith(nl):
            final = newline
            body = body[: -len(nl)]
            break
    out: List[str] = []
    previous_empty = False
    for line in re.split(r"\r\n|\n|\r", body):
        empty = not line.strip()
        if empty and (remove_all or previous_empty):
            continue
        out.append(line)
        previous_empty = empty
    return newline.join(out) + final


def preprocess_text(text: str, options: PreprocessOptions) -> str:
    if options.remove_comments or options.remove_comments_in_param_block or options.remove_comments_before_param_block:
        text = remove_comments(text, options)
    if options.remove_all_empty_lines or options.remove_empty_lines:
        text = collapse_empty_lines(text, remove_all=options.remove_all_empty_lines)
    return text


def preprocess_file(path: Union[str, Path], options: PreprocessOptions) -> bool:
    """Preprocess ``path`` in place, keeping its encoding.

    Returns whether the file changed.

    Raises:
        OSError: When the file cannot be read or written.
        UnicodeDecodeError: When the file is not valid in its detected encoding.
    """
    path = Path(path)
    raw = path.read_bytes()
    encoding = detect_encoding(raw)
    text = decode_text(raw, encoding)
    new_text = preprocess_text(text, options)
    if new_text == text:
        return False
    atomic_write_bytes(path, encode_text(new_text, encoding))
    return True


__all__ = [
    "PreprocessOptions",
    "ScriptLayout",
    "scan_script",
    "remove_comments",
    "collapse_empty_lines",
    "preprocess_text",
    "preprocess_file",
]
