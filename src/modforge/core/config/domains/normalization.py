"""Domain-specific configuration for line ending / encoding normalization."""
from __future__ import annotations

from functools import cached_property

from ..base import BaseDomainConfig


class NormalizationConfig(BaseDomainConfig):
    """Typed access to the ``normalization`` section."""

    def _config_section(self) -> str:
        return "normalization"

    @cached_property
    def line_ending(self) -> str:
        return str(self.section.get("line_ending", "crlf")).lower()

    @cached_property
    def encoding(self) -> str:
        return str(self.section.get("encoding", "utf8bom")).lower()

    @cached_property
    def prefer_utf8_bom_for_powershell(self) -> bool:
        return bool(self.section.get("prefer_utf8_bom_for_powershell", True))

    @cached_property
    def ensure_final_newline(self) -> bool:
        return bool(self.section.get("ensure_final_newline", True))

    @cached_property
    def create_backups(self) -> bool:
        return bool(self.section.get("create_backups", False))

    @cached_property
    def backup_suffix(self) -> str:
        return str(self.section.get("backup_suffix", ".bak"))

    @cached_property
    def rollback_on_mismatch(self) -> bool:
        return bool(self.section.get("rollback_on_mismatch", True))


__all__ = ["NormalizationConfig"]
