"""Builders for fake assembly metadata used by export detection tests."""
from __future__ import annotations

import struct
from pathlib import Path
from typing import Dict, List

from modforge.core.exports import ALIAS_ATTRIBUTE, CMDLET_ATTRIBUTE, AttributeInfo, TypeInfo

PROLOG = b"\x01\x00"
NO_NAMED_ARGS = b"\x00\x00"


def ser_string(value: str) -> bytes:
    data = value.encode("utf-8")
    assert len(data) < 0x80
    return bytes([len(data)]) + data


def cmdlet_attribute(verb: str, noun: str) -> AttributeInfo:
    blob = PROLOG + ser_string(verb) + ser_string(noun) + NO_NAMED_ARGS
    return AttributeInfo(CMDLET_ATTRIBUTE, blob, ("string", "string"))


def alias_attribute(*names: str, signature: bool = True) -> AttributeInfo:
    if len(names) == 1 and not signature:
        return AttributeInfo(ALIAS_ATTRIBUTE, PROLOG + ser_string(names[0]) + NO_NAMED_ARGS)
    blob = PROLOG + struct.pack("<I", len(names)) + b"".join(ser_string(n) for n in names) + NO_NAMED_ARGS
    return AttributeInfo(ALIAS_ATTRIBUTE, blob, ("string[]",) if signature else ())


class FakeReader:
    """Metadata reader keyed by file name; unknown names raise like a bad load."""

    def __init__(self, assemblies: Dict[str, List[TypeInfo]]) -> None:
        self.assemblies = assemblies
        self.calls: List[str] = []

    def __call__(self, path: Path) -> List[TypeInfo]:
        self.calls.append(path.name)
        if path.name not in self.assemblies:
            raise RuntimeError("Assembly with same name is already loaded")
        return self.assemblies[path.name]


def touch_assemblies(directory: Path, *names: str) -> List[Path]:
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for name in names:
        path = directory / name
        path.write_bytes(b"MZ")
        paths.append(path)
    return paths
