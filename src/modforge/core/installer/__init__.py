"""Versioned module installation with retention pruning."""
from __future__ import annotations

from .installer import ModuleInstaller
from .legacy import handle_legacy_flat, is_legacy_flat
from .models import (
    AUTO_VERSION,
    InstallationStrategy,
    LegacyFlatHandling,
    ModuleInstallerOptions,
    ModuleInstallerResult,
    ModuleInstallSpec,
)
from .versions import (
    default_module_roots,
    is_version_folder,
    parse_version,
    resolve_target_version,
    sort_versions_descending,
    version_sort_key,
)

__all__ = [
    "AUTO_VERSION",
    "InstallationStrategy",
    "LegacyFlatHandling",
    "ModuleInstaller",
    "ModuleInstallerOptions",
    "ModuleInstallerResult",
    "ModuleInstallSpec",
    "default_module_roots",
    "handle_legacy_flat",
    "is_legacy_flat",
    "is_version_folder",
    "parse_version",
    "resolve_target_version",
    "sort_versions_descending",
    "version_sort_key",
]
