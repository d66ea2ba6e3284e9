"""Detection and handling of legacy flat module installs.

A flat install keeps the module's files directly in ``<root>/<name>``
instead of a ``<root>/<name>/<version>`` folder.
"""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Optional

from modforge.core.file_io.utils import remove_tree
from modforge.core.manifest import try_get_top_level_string

from .models import LegacyFlatHandling
from .versions import is_version_folder

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".tmp_install_"


def flat_manifest_path(module_root: Path, name: str, extension: str = "psd1") -> Path:
    return module_root / f"{name}.{extension.lstrip('.')}"


def is_legacy_flat(module_root: Path, name: str, extension: str = "psd1") -> bool:
    return flat_manifest_path(module_root, name, extension).is_file()


def _flat_entries(module_root: Path) -> List[Path]:
    return [
        entry
        for entry in sorted(module_root.iterdir())
        if not (entry.is_dir() and is_version_folder(entry.name)) and not entry.name.startswith(TEMP_PREFIX)
    ]


def handle_legacy_flat(
    module_root: Path,
    name: str,
    handling: LegacyFlatHandling,
    *,
    extension: str = "psd1",
    log: Optional[logging.Logger] = None,
) -> Optional[str]:
    """Apply ``handling`` to a flat install under ``module_root``.

    Returns the version a ``CONVERT`` moved the flat files into, which the
    caller must keep out of pruning; ``None`` otherwise.
    """
    log = log or logger
    handling = LegacyFlatHandling(handling)
    if handling is LegacyFlatHandling.IGNORE or not is_legacy_flat(module_root, name, extension):
        return None

    if handling is LegacyFlatHandling.WARN:
        log.warning("Legacy flat install of %s found in %s; leaving it in place", name, module_root)
        return None

    if handling is LegacyFlatHandling.DELETE:
        for entry in _flat_entries(module_root):
            remove_tree(entry)
        log.info("Removed legacy flat install of %s from %s", name, module_root)
        return None

    version = try_get_top_level_string(flat_manifest_path(module_root, name, extension), "ModuleVersion")
    if not version or not is_version_folder(version.strip()):
        log.warning("Cannot convert legacy flat install of %s in %s: no usable ModuleVersion", name, module_root)
        return None
    version = version.strip()
    target = module_root / version
    if target.exists():
        log.warning("Cannot convert legacy flat install of %s: %s already exists", name, target)
        return None
    target.mkdir(parents=True)
    for entry in _flat_entries(module_root):
        shutil.move(str(entry), str(target / entry.name))
    log.info("Converted legacy flat install of %s into %s", name, target)
    return version


__all__ = ["TEMP_PREFIX", "flat_manifest_path", "is_legacy_flat", "handle_legacy_flat"]
