"""Span-tagged parser for PowerShell data files (``.psd1``).

Only the data-language subset found in module manifests is supported:
nested hashtables, arrays (``@(...)`` and bare comma lists), quoted and
here-strings, numbers, ``$variables``, bare words and ``[type]`` casts.
Comments and whitespace are skipped but every node keeps the ``start`` /
``end`` character offsets of its source text so that a value can be
replaced without touching anything around it.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Union

from modforge.core.exceptions import ManifestParseError


# Token kinds
HASH_OPEN = "HASH_OPEN"  # @{
ARRAY_OPEN = "ARRAY_OPEN"  # @(
PAREN_OPEN = "PAREN_OPEN"
PAREN_CLOSE = "PAREN_CLOSE"
BRACE_CLOSE = "BRACE_CLOSE"
COMMA = "COMMA"
SEMI = "SEMI"
EQUALS = "EQUALS"
NEWLINE = "NEWLINE"
STRING = "STRING"
NUMBER = "NUMBER"
VARIABLE = "VARIABLE"
WORD = "WORD"
TYPE = "TYPE"
EOF = "EOF"


@dataclass(frozen=True)
class Token:
    kind: str
    value: Any
    start: int
    end: int


_NUMBER_RE = re.compile(r"[+-]?(?:0x[0-9a-fA-F]+|\d+(?:\.\d+)*(?:[eE][+-]?\d+)?)(?:[kKmMgGtTpP][bB])?(?![\w.-])")
_WORD_RE = re.compile(r"[^\s=;,(){}\[\]'\"#]+")
_VARIABLE_RE = re.compile(r"\$(?:\{[^}]*\}|[\w:?]+)")
_TYPE_RE = re.compile(r"\[[^\]\r\n]+\]")
_HERE_HEADER_RE = re.compile(r"[ \t]*(\r\n|\n|\r)")

# Smart quotes are valid PowerShell string delimiters.
_SINGLE_QUOTES = "'\u2018\u2019\u201a\u201b"
_DOUBLE_QUOTES = '"\u201c\u201d\u201e'

_BACKTICK_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "0": "\0", "a": "\a", "b": "\b", "f": "\f", "v": "\v", "e": "\x1b"}


class Lexer:
    """Turn PSD1 text into :class:`Token` objects, skipping comments."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def _error(self, message: str, offset: Optional[int] = None) -> ManifestParseError:
        return ManifestParseError(message, offset=self.pos if offset is None else offset)

    def tokens(self) -> Iterator[Token]:
        text = self.text
        n = len(text)
        while True:
            self._skip_blank()
            if self.pos >= n:
                yield Token(EOF, None, n, n)
                return
            start = self.pos
            ch = text[start]

            if ch in "\r\n":
                end = start + (2 if text.startswith("\r\n", start) else 1)
                self.pos = end
                yield Token(NEWLINE, None, start, end)
            elif text.startswith("@{", start):
                self.pos += 2
                yield Token(HASH_OPEN, None, start, self.pos)
            elif text.startswith("@(", start):
                self.pos += 2
                yield Token(ARRAY_OPEN, None, start, self.pos)
            elif text.startswith("@'", start) or text.startswith('@"', start):
                yield self._here_string()
            elif ch in _SINGLE_QUOTES:
                yield self._single_quoted()
            elif ch in _DOUBLE_QUOTES:
                yield self._double_quoted()
            elif ch == "(":
                self.pos += 1
                yield Token(PAREN_OPEN, None, start, self.pos)
            elif ch == ")":
                self.pos += 1
                yield Token(PAREN_CLOSE, None, start, self.pos)
            elif ch == "}":
                self.pos += 1
                yield Token(BRACE_CLOSE, None, start, self.pos)
            elif ch == ",":
                self.pos += 1
                yield Token(COMMA, None, start, self.pos)
            elif ch == ";":
                self.pos += 1
                yield Token(SEMI, None, start, self.pos)
            elif ch == "=":
                self.pos += 1
                yield Token(EQUALS, None, start, self.pos)
            elif ch == "$":
                m = _VARIABLE_RE.match(text, start)
                if not m:
                    raise self._error("Invalid variable reference")
                self.pos = m.end()
                yield Token(VARIABLE, m.group(0)[1:], start, self.pos)
            elif ch == "[":
                m = _TYPE_RE.match(text, start)
                if not m:
                    raise self._error("Unterminated type literal")
                self.pos = m.end()
                yield Token(TYPE, m.group(0)[1:-1].strip(), start, self.pos)
            else:
                m = _NUMBER_RE.match(text, start)
                if m:
                    self.pos = m.end()
                    yield Token(NUMBER, m.group(0), start, self.pos)
                    continue
                m = _WORD_RE.match(text, start)
                if not m:
                    raise self._error(f"Unexpected character {ch!r}")
                self.pos = m.end()
                yield Token(WORD, m.group(0), start, self.pos)

    def _skip_blank(self) -> None:
        text = self.text
        n = len(text)
        while self.pos < n:
            ch = text[self.pos]
            if ch in " \t\f\v\ufeff\u00a0":
                self.pos += 1
            elif ch == "`" and text.startswith(("`\r\n", "`\n", "`\r"), self.pos):
                # Line continuation
                self.pos += 3 if text.startswith("`\r\n", self.pos) else 2
            elif text.startswith("<#", self.pos):
                close = text.find("#>", self.pos + 2)
                if close < 0:
                    raise self._error("Unterminated block comment")
                self.pos = close + 2
            elif ch == "#":
                while self.pos < n and text[self.pos] not in "\r\n":
                    self.pos += 1
            else:
                return

    def _single_quoted(self) -> Token:
        text = self.text
        start = self.pos
        i = start + 1
        parts: List[str] = []
        while i < len(text):
            ch = text[i]
            if ch in _SINGLE_QUOTES:
                if i + 1 < len(text) and text[i + 1] in _SINGLE_QUOTES:
                    parts.append(ch)
                    i += 2
                    continue
                self.pos = i + 1
                return Token(STRING, "".join(parts), start, self.pos)
            parts.append(ch)
            i += 1
        raise self._error("Unterminated string", start)

    def _double_quoted(self) -> Token:
        text = self.text
        start = self.pos
        i = start + 1
        parts: List[str] = []
        while i < len(text):
            ch = text[i]
            if ch == "`" and i + 1 < len(text):
                nxt = text[i + 1]
                parts.append(_BACKTICK_ESCAPES.get(nxt, nxt))
                i += 2
                continue
            if ch in _DOUBLE_QUOTES:
                if i + 1 < len(text) and text[i + 1] in _DOUBLE_QUOTES:
                    parts.append(ch)
                    i += 2
                    continue
                self.pos = i + 1
                return Token(STRING, "".join(parts), start, self.pos)
            parts.append(ch)
            i += 1
        raise self._error("Unterminated string", start)

    def _here_string(self) -> Token:
        text = self.text
        start = self.pos
        quote = text[start + 1]
        header = _HERE_HEADER_RE.match(text, start + 2)
        if not header:
            raise self._error("Here-string header must end the line", start)
        # The closer is a newline followed by the quote and '@' at line start;
        # for an empty body that newline is the header's own.
        closer = re.compile(r"(?:\r\n|\n|\r)" + re.escape(quote) + "@").search(text, header.start(1))
        if not closer:
            raise self._error("Unterminated here-string", start)
        body_start = header.end()
        body = text[body_start:closer.start()] if closer.start() > header.start(1) else ""
        self.pos = closer.end()
        return Token(STRING, body, start, self.pos)


@dataclass
class Node:
    start: int
    end: int


@dataclass
class ScalarNode(Node):
    """A literal value. ``kind`` is one of string, number, variable, word."""

    value: Any = None
    kind: str = "string"
    cast: Optional[str] = None

    @property
    def text_value(self) -> Optional[str]:
        if self.kind == "variable":
            return None
        return str(self.value)


@dataclass
class ArrayNode(Node):
    items: List[Node] = field(default_factory=list)


@dataclass
class Entry:
    key: str
    key_start: int
    key_end: int
    value: Node


@dataclass
class HashtableNode(Node):
    entries: List[Entry] = field(default_factory=list)

    def get_entry(self, key: str) -> Optional[Entry]:
        """Return the first entry whose key equals ``key`` case-insensitively."""
        wanted = key.casefold()
        for entry in self.entries:
            if entry.key.casefold() == wanted:
                return entry
        return None

    def get(self, key: str) -> Optional[Node]:
        entry = self.get_entry(key)
        return entry.value if entry is not None else None


ValueNode = Union[ScalarNode, ArrayNode, HashtableNode]


class Parser:
    """Recursive-descent parser over :class:`Lexer` tokens."""

    def __init__(self, text: str) -> None:
        self.text = text
        self._tokens = list(Lexer(text).tokens())
        self._i = 0

    @property
    def _tok(self) -> Token:
        return self._tokens[self._i]

    def _advance(self) -> Token:
        tok = self._tokens[self._i]
        if tok.kind != EOF:
            self._i += 1
        return tok

    def _expect(self, kind: str) -> Token:
        tok = self._tok
        if tok.kind != kind:
            raise ManifestParseError(f"Expected {kind}, found {tok.kind}", offset=tok.start)
        return self._advance()

    def _skip(self, *kinds: str) -> None:
        while self._tok.kind in kinds:
            self._advance()

    def parse_document(self) -> HashtableNode:
        self._skip(NEWLINE, SEMI)
        if self._tok.kind != HASH_OPEN:
            raise ManifestParseError("Manifest must contain a single hashtable", offset=self._tok.start)
        root = self._hashtable()
        self._skip(NEWLINE, SEMI)
        if self._tok.kind != EOF:
            raise ManifestParseError("Unexpected content after manifest hashtable", offset=self._tok.start)
        return root

    def _hashtable(self) -> HashtableNode:
        open_tok = self._expect(HASH_OPEN)
        entries: List[Entry] = []
        while True:
            self._skip(NEWLINE, SEMI)
            tok = self._tok
            if tok.kind == BRACE_CLOSE:
                close = self._advance()
                return HashtableNode(open_tok.start, close.end, entries)
            if tok.kind not in (WORD, STRING, NUMBER):
                raise ManifestParseError(f"Expected hashtable key, found {tok.kind}", offset=tok.start)
            key_tok = self._advance()
            self._expect(EQUALS)
            self._skip(NEWLINE)
            value = self._value()
            entries.append(Entry(str(key_tok.value), key_tok.start, key_tok.end, value))
            if self._tok.kind not in (NEWLINE, SEMI, BRACE_CLOSE):
                raise ManifestParseError(
                    f"Expected newline or ';' after value of '{key_tok.value}'", offset=self._tok.start
                )

    def _value(self) -> ValueNode:
        """A single element or a bare comma list (which becomes an array)."""
        first = self._element()
        if self._tok.kind != COMMA:
            return first
        items: List[Node] = [first]
        while self._tok.kind == COMMA:
            self._advance()
            self._skip(NEWLINE)
            items.append(self._element())
        return ArrayNode(first.start, items[-1].end, items)

    def _element(self) -> ValueNode:
        tok = self._tok
        if tok.kind == TYPE:
            self._advance()
            inner = self._element()
            if isinstance(inner, ScalarNode):
                return ScalarNode(tok.start, inner.end, inner.value, inner.kind, cast=str(tok.value))
            inner.start = tok.start
            return inner
        if tok.kind == HASH_OPEN:
            return self._hashtable()
        if tok.kind == ARRAY_OPEN:
            return self._array()
        if tok.kind == PAREN_OPEN:
            self._advance()
            self._skip(NEWLINE)
            inner = self._value()
            self._skip(NEWLINE)
            close = self._expect(PAREN_CLOSE)
            inner.start, inner.end = tok.start, close.end
            return inner
        if tok.kind in (STRING, NUMBER, VARIABLE, WORD):
            self._advance()
            kind = {STRING: "string", NUMBER: "number", VARIABLE: "variable", WORD: "word"}[tok.kind]
            return ScalarNode(tok.start, tok.end, tok.value, kind)
        raise ManifestParseError(f"Expected a value, found {tok.kind}", offset=tok.start)

    def _array(self) -> ArrayNode:
        open_tok = self._expect(ARRAY_OPEN)
        items: List[Node] = []
        while True:
            # Commas, semicolons and newlines all separate items inside @( ).
            self._skip(NEWLINE, SEMI, COMMA)
            if self._tok.kind == PAREN_CLOSE:
                close = self._advance()
                return ArrayNode(open_tok.start, close.end, items)
            items.append(self._element())


def parse_manifest(text: str) -> HashtableNode:
    """Parse manifest ``text`` into its root :class:`HashtableNode`.

    Raises:
        ManifestParseError: If the text is not a well-formed data file.
    """
    return Parser(text).parse_document()


def node_to_python(node: Node) -> Any:
    """Convert a node into plain Python values (dict / list / scalar)."""
    if isinstance(node, HashtableNode):
        return {e.key: node_to_python(e.value) for e in node.entries}
    if isinstance(node, ArrayNode):
        return [node_to_python(i) for i in node.items]
    if isinstance(node, ScalarNode):
        if node.kind == "variable":
            lowered = str(node.value).lower()
            if lowered == "true":
                return True
            if lowered == "false":
                return False
            if lowered == "null":
                return None
        return node.value
    return None


__all__ = [
    "Token",
    "Lexer",
    "Parser",
    "Node",
    "ScalarNode",
    "ArrayNode",
    "Entry",
    "HashtableNode",
    "ValueNode",
    "parse_manifest",
    "node_to_python",
]
