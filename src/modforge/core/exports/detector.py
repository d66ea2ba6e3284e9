"""Export detection for scripts and compiled assemblies."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .matchers import CommandTypeMatcher, build_type_index
from .metadata import MetadataReader, read_assembly_types, sibling_assemblies
from .models import ExportSet, TypeInfo, normalize_names
from .scripts import detect_script_functions

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class BinaryExportScanner:
    """Scans assemblies for cmdlets and aliases.

    Metadata for each file is read at most once per scanner, so scanning
    cmdlets and aliases over the same set shares the work. A file that
    cannot be read contributes nothing.
    """

    def __init__(self, reader: Optional[MetadataReader] = None) -> None:
        self.reader: MetadataReader = reader or read_assembly_types
        self._cache: Dict[Path, Optional[List[TypeInfo]]] = {}

    def _types(self, path: Path) -> Optional[List[TypeInfo]]:
        key = path.resolve()
        if key not in self._cache:
            try:
                self._cache[key] = list(self.reader(path))
            except Exception as exc:
                # Includes "already loaded" style failures from custom readers.
                logger.warning("Skipping assembly %s: %s", path, exc)
                self._cache[key] = None
        return self._cache[key]

    def _matcher_for(self, path: Path, own: List[TypeInfo]) -> CommandTypeMatcher:
        pool = list(own)
        for sibling in sibling_assemblies(path):
            pool.extend(self._types(sibling) or [])
        return CommandTypeMatcher(build_type_index(pool))

    def _scan(self, assemblies: Iterable[PathLike]) -> Iterable[Tuple[CommandTypeMatcher, List[TypeInfo]]]:
        for assembly in assemblies:
            if assembly is None or not str(assembly).strip():
                continue
            path = Path(assembly)
            if not path.is_file():
                continue
            types = self._types(path)
            if not types:
                continue
            yield self._matcher_for(path, types), types

    def cmdlets(self, assemblies: Iterable[PathLike]) -> List[str]:
        names: List[Optional[str]] = []
        for matcher, types in self._scan(assemblies):
            names.extend(matcher.command_name(t) for t in types)
        return normalize_names(names)

    def aliases(self, assemblies: Iterable[PathLike]) -> List[str]:
        names: List[str] = []
        for matcher, types in self._scan(assemblies):
            for t in types:
                names.extend(matcher.aliases(t))
        return normalize_names(names)


def detect_binary_cmdlets(assemblies: Iterable[PathLike], reader: Optional[MetadataReader] = None) -> List[str]:
    """``Verb-Noun`` names of the cmdlets declared in ``assemblies``."""
    return BinaryExportScanner(reader).cmdlets(assemblies)


def detect_binary_aliases(assemblies: Iterable[PathLike], reader: Optional[MetadataReader] = None) -> List[str]:
    """Aliases declared on command types in ``assemblies``."""
    return BinaryExportScanner(reader).aliases(assemblies)


def detect_exports(
    script_files: Iterable[PathLike] = (),
    assemblies: Iterable[PathLike] = (),
    reader: Optional[MetadataReader] = None,
) -> ExportSet:
    """Compute the full export set of a module."""
    assemblies = list(assemblies)
    scanner = BinaryExportScanner(reader)
    return ExportSet(
        functions=detect_script_functions(script_files),
        cmdlets=scanner.cmdlets(assemblies),
        aliases=scanner.aliases(assemblies),
    )


__all__ = [
    "BinaryExportScanner",
    "detect_binary_cmdlets",
    "detect_binary_aliases",
    "detect_exports",
]
