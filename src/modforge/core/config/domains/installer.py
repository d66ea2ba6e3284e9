"""Domain-specific configuration for the module installer."""
from __future__ import annotations

from functools import cached_property
from pathlib import Path
from typing import List

from ..base import BaseDomainConfig


class InstallerConfig(BaseDomainConfig):
    """Typed access to the ``installer`` section."""

    def _config_section(self) -> str:
        return "installer"

    @cached_property
    def strategy(self) -> str:
        return str(self.section.get("strategy", "exact"))

    @cached_property
    def keep_versions(self) -> int:
        return int(self.section.get("keep_versions", 3))

    @cached_property
    def legacy_flat_handling(self) -> str:
        return str(self.section.get("legacy_flat_handling", "warn"))

    @cached_property
    def preserve_versions(self) -> List[str]:
        return [str(v) for v in self.section.get("preserve_versions") or []]

    @cached_property
    def update_manifest_to_resolved_version(self) -> bool:
        return bool(self.section.get("update_manifest_to_resolved_version", True))

    @cached_property
    def manifest_extension(self) -> str:
        return str(self.section.get("manifest_extension", "psd1")).lstrip(".")

    @cached_property
    def roots(self) -> List[Path]:
        return [Path(r).expanduser() for r in self.section.get("roots") or []]


__all__ = ["InstallerConfig"]
