"""Canonical PSD1 renderings of replacement values."""
from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from .models import RequiredModule

_REQUIRED_MODULE_KEYS = ("Guid", "ModuleName", "ModuleVersion", "RequiredVersion", "MaximumVersion")
_KEY_WIDTH = max(len(k) for k in _REQUIRED_MODULE_KEYS)
_RECORD_INDENT = " " * 12
_RECORD_CLOSE_INDENT = " " * 8


def quote(value: Optional[str]) -> str:
    """Single-quote ``value``, doubling embedded quotes."""
    return "'" + (value or "").replace("'", "''") + "'"


def render_string_array(values: Iterable[str]) -> str:
    return "@(" + ", ".join(quote(v) for v in values) + ")"


def render_bool(value: bool) -> str:
    return "$true" if value else "$false"


def render_hashtable_array(items: Iterable[Mapping[str, Optional[str]]]) -> str:
    """Render link-style records as ``@(@{ Name = 'a'; Link = 'b' }, ...)``."""
    parts = []
    for item in items:
        pairs = "; ".join(f"{key} = {quote(value)}" for key, value in item.items())
        parts.append("@{ " + pairs + " }")
    return "@(" + ", ".join(parts) + ")"


def render_required_modules(modules: Sequence[RequiredModule], newline: str = "\r\n") -> str:
    """Render ``RequiredModules`` as a multi-line array literal.

    Entries with a version become aligned ``@{ ... }`` records; entries
    without one are written as their quoted name. Blank names are dropped.
    """
    out = []
    for module in modules:
        if module is None or not (module.module_name or "").strip():
            continue
        if not module.has_version:
            out.append(quote(module.module_name))
            continue
        values = {
            "Guid": module.guid,
            "ModuleName": module.module_name,
            "ModuleVersion": module.module_version,
            "RequiredVersion": module.required_version,
            "MaximumVersion": module.maximum_version,
        }
        lines = ["@{"]
        for key in _REQUIRED_MODULE_KEYS:
            value = values[key]
            if value is None or not value.strip():
                continue
            lines.append(f"{_RECORD_INDENT}{key.ljust(_KEY_WIDTH)} = {quote(value)}")
        out.append(newline.join(lines) + newline + _RECORD_CLOSE_INDENT + "}")
    if not out:
        return "@()"
    return "@(" + ", ".join(out) + ")"


__all__ = [
    "quote",
    "render_string_array",
    "render_bool",
    "render_hashtable_array",
    "render_required_modules",
]
