"""Version folder parsing, ordering and target version resolution."""
from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple, Union

from .models import InstallationStrategy

_VERSION_RE = re.compile(r"^\d+(?:\.\d+){1,3}$")


def parse_version(name: str) -> Optional[Tuple[int, ...]]:
    """Numeric segments of a 2 to 4 part dotted version, else ``None``."""
    if not name or not _VERSION_RE.match(name.strip()):
        return None
    return tuple(int(part) for part in name.strip().split("."))


def is_version_folder(name: str) -> bool:
    return parse_version(name) is not None


def version_sort_key(name: str) -> Tuple[int, int, int, int]:
    """Sort key padding versions to four segments (``1.2`` == ``1.2.0.0``)."""
    parts = list(parse_version(name) or ())[:4]
    parts += [0] * (4 - len(parts))
    return parts[0], parts[1], parts[2], parts[3]


def sort_versions_descending(names: Iterable[str]) -> List[str]:
    return sorted(names, key=lambda n: (version_sort_key(n), n), reverse=True)


def existing_versions(roots: Iterable[Union[str, Path]], name: str) -> Set[str]:
    """Case-folded names of every folder under ``<root>/<name>`` across roots."""
    found: Set[str] = set()
    for root in roots:
        module_root = Path(root) / name
        if not module_root.is_dir():
            continue
        for entry in module_root.iterdir():
            if entry.is_dir():
                found.add(entry.name.casefold())
    return found


def resolve_target_version(
    roots: Sequence[Union[str, Path]],
    name: str,
    base_version: str,
    strategy: InstallationStrategy,
) -> str:
    """Choose the destination folder version.

    ``EXACT`` returns ``base_version``. ``AUTO_REVISION`` returns
    ``base_version`` when no root has that folder yet, and otherwise the
    smallest unused ``base.N`` (N >= 1) across all roots. A four-part base
    keeps its first three parts as the stem and starts above its own
    revision.
    """
    strategy = InstallationStrategy(strategy)
    if strategy is InstallationStrategy.EXACT:
        return base_version

    existing = existing_versions(roots, name)
    if base_version.casefold() not in existing:
        return base_version

    stem = base_version
    revision = 1
    parts = parse_version(base_version)
    if parts is not None and len(parts) == 4:
        stem = ".".join(str(p) for p in parts[:3])
        revision = parts[3] + 1
    while f"{stem}.{revision}".casefold() in existing:
        revision += 1
    return f"{stem}.{revision}"


def default_module_roots() -> List[Path]:
    """Per-user module roots for the current platform."""
    roots: List[Path] = []
    if sys.platform.startswith("win"):
        documents = Path(os.environ.get("USERPROFILE") or Path.home()) / "Documents"
        roots.append(documents / "PowerShell" / "Modules")
        roots.append(documents / "WindowsPowerShell" / "Modules")
    else:
        data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
        roots.append(Path(data_home) / "powershell" / "Modules")
    return roots


__all__ = [
    "parse_version",
    "is_version_folder",
    "version_sort_key",
    "sort_versions_descending",
    "existing_versions",
    "resolve_target_version",
    "default_module_roots",
]
