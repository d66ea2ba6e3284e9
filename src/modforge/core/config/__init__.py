"""modforge configuration system.

Usage:
    from modforge.core.config import load_config
    from modforge.core.config.domains import InstallerConfig

    config = load_config(Path("modforge.yaml"))   # defaults when path is None
    installer = InstallerConfig(config)
    keep = installer.keep_versions
"""
from __future__ import annotations

from .base import BaseDomainConfig
from .domains import FormattingConfig, InstallerConfig, NormalizationConfig
from .manager import load_config, load_defaults, validate_config

__all__ = [
    "BaseDomainConfig",
    "FormattingConfig",
    "InstallerConfig",
    "NormalizationConfig",
    "load_config",
    "load_defaults",
    "validate_config",
]
