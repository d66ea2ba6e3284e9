"""Versioned installation of a staged module into one or more roots."""
from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple, Union

from modforge.core.exceptions import InstallError
from modforge.core.file_io.utils import copy_tree, ensure_directory, remove_tree
from modforge.core.manifest import try_get_top_level_string, try_set_top_level_module_version

from .legacy import TEMP_PREFIX, handle_legacy_flat
from .models import (
    AUTO_VERSION,
    ModuleInstallerOptions,
    ModuleInstallerResult,
    ModuleInstallSpec,
)
from .versions import default_module_roots, is_version_folder, resolve_target_version, sort_versions_descending

PathLike = Union[str, Path]


def _dedupe_roots(roots: Sequence[PathLike]) -> List[Path]:
    seen = set()
    out = []
    for root in roots:
        key = os.path.normcase(os.path.abspath(str(root))).casefold()
        if key not in seen:
            seen.add(key)
            out.append(Path(root))
    return out


class ModuleInstaller:
    """Installs staged module trees as ``<root>/<name>/<version>``.

    Roots are processed in order. A failure while copying into a root
    raises :class:`InstallError`; roots finished before it stay installed.
    Pruning failures are logged and reported, never raised.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def resolve_roots(self, options: ModuleInstallerOptions) -> List[Path]:
        roots = _dedupe_roots(options.roots or default_module_roots())
        if not roots:
            raise InstallError("No module roots could be resolved")
        return roots

    def _validate(self, staging: Path, name: str, version: str, options: ModuleInstallerOptions) -> None:
        if not staging.is_dir():
            raise InstallError(f"Staging path not found: {staging}", module_name=name, context={"staging": str(staging)})
        if not name or not name.strip():
            raise InstallError("Module name is required")
        if not version or not version.strip():
            raise InstallError("Module version is required", module_name=name)
        if options.keep_versions < 1:
            raise InstallError(f"keep_versions must be >= 1 (got {options.keep_versions})", module_name=name)

    def _prepare_roots(
        self, roots: Sequence[Path], name: str, options: ModuleInstallerOptions
    ) -> Dict[Path, Optional[str]]:
        """Create each ``<root>/<name>`` and apply the legacy flat handling.

        Returns the version each root's flat install was moved to, if any.
        """
        pinned: Dict[Path, Optional[str]] = {}
        for root in roots:
            module_root = Path(root) / name
            try:
                ensure_directory(module_root)
                pinned[root] = handle_legacy_flat(
                    module_root,
                    name,
                    options.legacy_flat_handling,
                    extension=options.manifest_extension,
                    log=self.logger,
                )
            except OSError as exc:
                self.logger.error("Cannot prepare %s: %s", module_root, exc)
                raise InstallError(f"Cannot prepare {module_root}: {exc}", module_name=name, root=str(root)) from exc
        return pinned

    def _copy_and_prune(
        self,
        staging: Path,
        roots: Sequence[Path],
        name: str,
        resolved: str,
        options: ModuleInstallerOptions,
        pinned: Dict[Path, Optional[str]],
    ) -> ModuleInstallerResult:
        self.logger.info("Installing %s %s (strategy %s) into %d root(s)", name, resolved, options.strategy.value, len(roots))

        installed: List[Path] = []
        pruned: List[Path] = []
        failed: List[Path] = []
        for root in roots:
            module_root = Path(root) / name
            installed.append(self._install_into(staging, module_root, resolved, name))

            keep: Set[str] = {resolved.casefold()}
            if pinned.get(root):
                keep.add(pinned[root].casefold())
            removed, not_removed = self.prune(module_root, options, keep)
            pruned.extend(removed)
            failed.extend(not_removed)

        return ModuleInstallerResult(
            version=resolved,
            installed_paths=tuple(installed),
            pruned_paths=tuple(pruned),
            failed_prunes=tuple(failed),
        )

    def install_from_staging(
        self,
        staging_path: PathLike,
        name: str,
        version: str,
        options: Optional[ModuleInstallerOptions] = None,
    ) -> ModuleInstallerResult:
        """Copy ``staging_path`` into every root and prune old versions.

        Legacy flat installs are handled before the target version is
        resolved, so a converted flat version counts as installed.

        Raises:
            InstallError: For a missing staging path, blank name or version,
                ``keep_versions < 1``, no roots, or a failed copy.
        """
        options = options or ModuleInstallerOptions()
        staging = Path(staging_path)
        self._validate(staging, name, version, options)

        name = name.strip()
        roots = self.resolve_roots(options)
        pinned = self._prepare_roots(roots, name, options)
        resolved = resolve_target_version(roots, name, version.strip(), options.strategy)
        return self._copy_and_prune(staging, roots, name, resolved, options, pinned)

    def _install_into(self, staging: Path, module_root: Path, version: str, name: str) -> Path:
        final = module_root / version
        temp = module_root / f"{TEMP_PREFIX}{uuid.uuid4().hex}"
        try:
            copy_tree(staging, temp)
            if final.exists():
                # EXACT reinstall: the folder must match the new build exactly.
                remove_tree(final)
            os.replace(str(temp), str(final))
        except OSError as exc:
            self.logger.error("Install of %s %s into %s failed: %s", name, version, module_root, exc)
            if temp.exists():
                try:
                    remove_tree(temp)
                except OSError as cleanup_exc:
                    self.logger.warning("Could not remove temporary folder %s: %s", temp, cleanup_exc)
            raise InstallError(
                f"Failed to install {name} {version} into {module_root}: {exc}",
                module_name=name,
                root=str(module_root.parent),
            ) from exc
        self.logger.debug("Installed %s", final)
        return final

    def prune(
        self,
        module_root: Path,
        options: ModuleInstallerOptions,
        keep: Set[str],
    ) -> Tuple[List[Path], List[Path]]:
        """Delete version folders beyond ``options.keep_versions``.

        Folders named in ``keep`` (case-folded) or in the preserve list are
        never deleted. Returns (deleted, failed) paths.
        """
        if not module_root.is_dir():
            return [], []
        versions = [e.name for e in module_root.iterdir() if e.is_dir() and is_version_folder(e.name)]
        removed: List[Path] = []
        failed: List[Path] = []
        for name in sort_versions_descending(versions)[options.keep_versions:]:
            if name.casefold() in keep or options.is_preserved(name):
                continue
            path = module_root / name
            try:
                remove_tree(path)
            except OSError as exc:
                self.logger.warning("Could not prune %s: %s", path, exc)
                failed.append(path)
                continue
            removed.append(path)
        if removed:
            self.logger.info("Pruned %d old version(s) from %s", len(removed), module_root)
        return removed, failed

    def install(self, spec: ModuleInstallSpec) -> ModuleInstallerResult:
        """Install from a :class:`ModuleInstallSpec`.

        Resolves an ``"auto"`` version from the staged manifest and, when
        requested, writes the resolved version into that manifest before
        copying. The order matches :meth:`install_from_staging`: legacy
        flat installs are handled first, then the version is resolved.
        """
        version = spec.version.strip() if spec.version else ""
        if version.casefold() == AUTO_VERSION:
            version = (try_get_top_level_string(spec.manifest_path, "ModuleVersion") or "").strip()
            if not version:
                raise InstallError(
                    f"Version 'auto' needs a readable ModuleVersion in {spec.manifest_path}",
                    module_name=spec.name,
                )

        options = spec.to_options()
        staging = Path(spec.staging_path)
        self._validate(staging, spec.name, version, options)

        name = spec.name.strip()
        roots = self.resolve_roots(options)
        pinned = self._prepare_roots(roots, name, options)
        resolved = resolve_target_version(roots, name, version, spec.strategy)
        if spec.update_manifest_to_resolved_version:
            if try_set_top_level_module_version(spec.manifest_path, resolved):
                self.logger.debug("Set ModuleVersion %s in %s", resolved, spec.manifest_path)
        return self._copy_and_prune(staging, roots, name, resolved, options, pinned)


__all__ = ["ModuleInstaller"]
