"""Base class for domain-specific configuration accessors.

Provides a standardized pattern for all domain configs with:
- Explicit config injection (no ambient discovery)
- Type-safe section access
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from functools import cached_property
from typing import Any, Dict, Optional


class BaseDomainConfig(ABC):
    """Abstract base class for domain-specific configuration accessors.

    Usage:
        class MyConfig(BaseDomainConfig):
            def _config_section(self) -> str:
                return "mySection"

            @cached_property
            def my_setting(self) -> str:
                return self.section.get("my_setting", "default")

        cfg = MyConfig(load_config(Path("modforge.yaml")))
        print(cfg.my_setting)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        """Initialize domain config.

        Args:
            config: Loaded configuration dict. Uses bundled defaults if None.
        """
        if config is None:
            from .manager import load_defaults

            config = load_defaults()
        self._config = config

    @abstractmethod
    def _config_section(self) -> str:
        """Return the top-level config key for this domain."""
        ...

    @cached_property
    def section(self) -> Dict[str, Any]:
        """Get this domain's configuration section (empty dict if absent)."""
        data = self._config.get(self._config_section(), {})
        return data if isinstance(data, dict) else {}

    @property
    def full_config(self) -> Dict[str, Any]:
        """Get the full configuration dict."""
        return self._config


__all__ = ["BaseDomainConfig"]
