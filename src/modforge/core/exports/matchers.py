"""Classification of type definitions as PowerShell command types."""
from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional

from .metadata import BlobError, parse_alias_args, parse_string_args
from .models import AttributeInfo, TypeInfo

logger = logging.getLogger(__name__)

CMDLET_ATTRIBUTE = "System.Management.Automation.CmdletAttribute"
ALIAS_ATTRIBUTE = "System.Management.Automation.AliasAttribute"
COMMAND_BASE_TYPES = frozenset(
    {
        "System.Management.Automation.Cmdlet",
        "System.Management.Automation.PSCmdlet",
    }
)

# Guards against cyclic or absurdly deep base chains in corrupt metadata.
_MAX_BASE_DEPTH = 64


def build_type_index(types: Iterable[TypeInfo]) -> dict:
    """Index ``types`` by full name; the first definition of a name wins."""
    index: dict = {}
    for t in types:
        index.setdefault(t.full_name, t)
    return index


class CommandTypeMatcher:
    """Decides which types are commands and what they export.

    Two strategies are tried in order: an explicit ``CmdletAttribute``
    (which also yields the ``Verb-Noun`` name) and then a walk up the base
    type chain looking for ``Cmdlet`` / ``PSCmdlet``. Base types are looked
    up by full name in ``type_index``, which should cover the assembly and
    its siblings.
    """

    def __init__(self, type_index: Optional[Mapping[str, TypeInfo]] = None) -> None:
        self.type_index: Mapping[str, TypeInfo] = type_index or {}

    @staticmethod
    def _attributes(t: TypeInfo, name: str) -> List[AttributeInfo]:
        return [a for a in t.attributes if a.type_full_name == name]

    def command_name(self, t: TypeInfo) -> Optional[str]:
        """``Verb-Noun`` from the type's ``CmdletAttribute``, if decodable."""
        for attribute in self._attributes(t, CMDLET_ATTRIBUTE):
            try:
                verb, noun = parse_string_args(attribute.blob, 2)
            except (BlobError, UnicodeDecodeError) as exc:
                logger.debug("Undecodable CmdletAttribute on %s: %s", t.full_name, exc)
                continue
            if verb and noun and verb.strip() and noun.strip():
                return f"{verb.strip()}-{noun.strip()}"
        return None

    def derives_from_command_base(self, t: TypeInfo) -> bool:
        seen = set()
        base = t.base_full_name
        depth = 0
        while base and depth < _MAX_BASE_DEPTH:
            if base in COMMAND_BASE_TYPES:
                return True
            if base in seen:
                return False
            seen.add(base)
            parent = self.type_index.get(base)
            if parent is None:
                return False
            base = parent.base_full_name
            depth += 1
        return False

    def is_command_type(self, t: TypeInfo) -> bool:
        if self._attributes(t, CMDLET_ATTRIBUTE):
            return True
        return self.derives_from_command_base(t)

    def aliases(self, t: TypeInfo) -> List[str]:
        """Alias names declared on ``t``; empty unless ``t`` is a command type."""
        if not self.is_command_type(t):
            return []
        names: List[str] = []
        for attribute in self._attributes(t, ALIAS_ATTRIBUTE):
            try:
                names.extend(parse_alias_args(attribute))
            except (BlobError, UnicodeDecodeError) as exc:
                logger.debug("Undecodable AliasAttribute on %s: %s", t.full_name, exc)
        return names


__all__ = [
    "CMDLET_ATTRIBUTE",
    "ALIAS_ATTRIBUTE",
    "COMMAND_BASE_TYPES",
    "build_type_index",
    "CommandTypeMatcher",
]
