"""Export set and type metadata records."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple


def normalize_names(names: Iterable[Optional[str]]) -> List[str]:
    """Drop blank names, dedupe case-insensitively and sort case-insensitively.

    The first spelling seen for a name wins.
    """
    seen = {}
    for name in names:
        if name is None:
            continue
        name = name.strip()
        if not name:
            continue
        seen.setdefault(name.casefold(), name)
    return sorted(seen.values(), key=lambda n: (n.casefold(), n))


@dataclass(frozen=True)
class ExportSet:
    """The public command surface of a module.

    Each list is normalized on construction: blank names dropped, duplicates
    removed and the rest sorted, all case-insensitively.
    """

    functions: Tuple[str, ...] = ()
    cmdlets: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for attr in ("functions", "cmdlets", "aliases"):
            object.__setattr__(self, attr, tuple(normalize_names(getattr(self, attr))))


@dataclass(frozen=True)
class AttributeInfo:
    """A custom attribute applied to a type.

    ``ctor_params`` holds the constructor's parameter element types as
    ``"string"`` or ``"string[]"`` when the signature could be read, and is
    empty otherwise.
    """

    type_full_name: str
    blob: bytes = b""
    ctor_params: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TypeInfo:
    """A type definition reduced to what command classification needs."""

    full_name: str
    base_full_name: Optional[str] = None
    attributes: Tuple[AttributeInfo, ...] = field(default_factory=tuple)


__all__ = ["normalize_names", "ExportSet", "AttributeInfo", "TypeInfo"]
