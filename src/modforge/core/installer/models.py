"""Installer option and result records."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple, Union

AUTO_VERSION = "auto"


class InstallationStrategy(str, Enum):
    """How the destination folder version is chosen."""

    EXACT = "exact"
    AUTO_REVISION = "auto_revision"


class LegacyFlatHandling(str, Enum):
    """What to do with a module installed without a version folder."""

    WARN = "warn"
    CONVERT = "convert"
    DELETE = "delete"
    IGNORE = "ignore"


def _version_set(values: Iterable[str]) -> FrozenSet[str]:
    return frozenset(v.strip().casefold() for v in values if v and v.strip())


@dataclass(frozen=True)
class ModuleInstallerOptions:
    """Options for :meth:`ModuleInstaller.install_from_staging`.

    ``roots`` empty means the platform default module roots.
    ``preserve_versions`` is matched case-insensitively.
    """

    roots: Tuple[Path, ...] = ()
    strategy: InstallationStrategy = InstallationStrategy.EXACT
    keep_versions: int = 3
    legacy_flat_handling: LegacyFlatHandling = LegacyFlatHandling.WARN
    preserve_versions: FrozenSet[str] = frozenset()
    manifest_extension: str = "psd1"

    def __post_init__(self) -> None:
        object.__setattr__(self, "roots", tuple(Path(r) for r in self.roots))
        object.__setattr__(self, "strategy", InstallationStrategy(self.strategy))
        object.__setattr__(self, "legacy_flat_handling", LegacyFlatHandling(self.legacy_flat_handling))
        object.__setattr__(self, "preserve_versions", _version_set(self.preserve_versions))

    def is_preserved(self, version: str) -> bool:
        return version.casefold() in self.preserve_versions


@dataclass(frozen=True)
class ModuleInstallSpec:
    """Everything one install call needs.

    ``version`` may be ``"auto"`` to take ``ModuleVersion`` from the staged
    manifest.
    """

    name: str
    version: str
    staging_path: Path
    strategy: InstallationStrategy = InstallationStrategy.EXACT
    keep_versions: int = 3
    roots: Tuple[Path, ...] = ()
    legacy_flat_handling: LegacyFlatHandling = LegacyFlatHandling.WARN
    preserve_versions: FrozenSet[str] = frozenset()
    update_manifest_to_resolved_version: bool = True
    manifest_extension: str = "psd1"

    def __post_init__(self) -> None:
        object.__setattr__(self, "staging_path", Path(self.staging_path))
        object.__setattr__(self, "roots", tuple(Path(r) for r in self.roots))
        object.__setattr__(self, "strategy", InstallationStrategy(self.strategy))
        object.__setattr__(self, "legacy_flat_handling", LegacyFlatHandling(self.legacy_flat_handling))
        object.__setattr__(self, "preserve_versions", _version_set(self.preserve_versions))

    @property
    def manifest_path(self) -> Path:
        return self.staging_path / f"{self.name}.{self.manifest_extension.lstrip('.')}"

    def to_options(self, strategy: Optional[InstallationStrategy] = None) -> ModuleInstallerOptions:
        return ModuleInstallerOptions(
            roots=self.roots,
            strategy=strategy or self.strategy,
            keep_versions=self.keep_versions,
            legacy_flat_handling=self.legacy_flat_handling,
            preserve_versions=self.preserve_versions,
            manifest_extension=self.manifest_extension,
        )

    @classmethod
    def from_config(
        cls,
        name: str,
        version: str,
        staging_path: Union[str, Path],
        config: Optional[Dict[str, Any]] = None,
        **overrides: Any,
    ) -> "ModuleInstallSpec":
        """Build a ``ModuleInstallSpec`` with defaults from the ``installer`` section."""
        from modforge.core.config.domains import InstallerConfig

        cfg = InstallerConfig(config)
        values: Dict[str, Any] = {
            "strategy": cfg.strategy,
            "keep_versions": cfg.keep_versions,
            "roots": tuple(cfg.roots),
            "legacy_flat_handling": cfg.legacy_flat_handling,
            "preserve_versions": frozenset(cfg.preserve_versions),
            "update_manifest_to_resolved_version": cfg.update_manifest_to_resolved_version,
            "manifest_extension": cfg.manifest_extension,
        }
        values.update(overrides)
        return cls(name=name, version=version, staging_path=Path(staging_path), **values)


@dataclass(frozen=True)
class ModuleInstallerResult:
    """Outcome of one install call."""

    version: str
    installed_paths: Tuple[Path, ...] = field(default_factory=tuple)
    pruned_paths: Tuple[Path, ...] = field(default_factory=tuple)
    failed_prunes: Tuple[Path, ...] = field(default_factory=tuple)


__all__ = [
    "AUTO_VERSION",
    "InstallationStrategy",
    "LegacyFlatHandling",
    "ModuleInstallerOptions",
    "ModuleInstallSpec",
    "ModuleInstallerResult",
]
