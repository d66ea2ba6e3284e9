"""Manifest editing value types."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class EditOutcome(str, Enum):
    """Result of a single manifest edit."""

    CHANGED = "changed"
    UNCHANGED = "unchanged"
    FILE_NOT_FOUND = "file_not_found"
    KEY_NOT_FOUND = "key_not_found"
    PARSE_ERROR = "parse_error"
    IO_ERROR = "io_error"

    @property
    def changed(self) -> bool:
        return self is EditOutcome.CHANGED


@dataclass(frozen=True)
class RequiredModule:
    """One ``RequiredModules`` entry.

    ``module_version`` is the minimum version, ``required_version`` an exact
    pin. An entry with no version fields renders as the bare module name.
    """

    module_name: str
    module_version: Optional[str] = None
    required_version: Optional[str] = None
    maximum_version: Optional[str] = None
    guid: Optional[str] = None

    @property
    def has_version(self) -> bool:
        return any(
            v and v.strip() for v in (self.module_version, self.required_version, self.maximum_version)
        )


__all__ = ["EditOutcome", "RequiredModule"]
