"""Domain-specific configuration for the formatting pipeline."""
from __future__ import annotations

import shlex
from functools import cached_property
from typing import Any, Dict, List, Optional

from ..base import BaseDomainConfig


class FormattingConfig(BaseDomainConfig):
    """Typed access to the ``formatting`` section."""

    def _config_section(self) -> str:
        return "formatting"

    @cached_property
    def timeout_seconds(self) -> float:
        return float(self.section.get("timeout_seconds", 120))

    @cached_property
    def command(self) -> Optional[List[str]]:
        raw = self.section.get("command")
        if raw is None:
            return None
        if isinstance(raw, str):
            return shlex.split(raw)
        return [str(p) for p in raw]

    @cached_property
    def remove_comments(self) -> bool:
        return bool(self.section.get("remove_comments", False))

    @cached_property
    def remove_comments_in_param_block(self) -> bool:
        return bool(self.section.get("remove_comments_in_param_block", False))

    @cached_property
    def remove_comments_before_param_block(self) -> bool:
        return bool(self.section.get("remove_comments_before_param_block", False))

    @cached_property
    def remove_empty_lines(self) -> bool:
        return bool(self.section.get("remove_empty_lines", False))

    @cached_property
    def remove_all_empty_lines(self) -> bool:
        return bool(self.section.get("remove_all_empty_lines", False))

    @cached_property
    def normalize(self) -> bool:
        return bool(self.section.get("normalize", True))

    @cached_property
    def settings(self) -> Dict[str, Any]:
        data = self.section.get("settings") or {}
        return dict(data) if isinstance(data, dict) else {}


__all__ = ["FormattingConfig"]
