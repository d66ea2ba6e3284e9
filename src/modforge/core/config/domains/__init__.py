"""Domain-specific configuration accessors."""
from __future__ import annotations

from .formatting import FormattingConfig
from .installer import InstallerConfig
from .normalization import NormalizationConfig

__all__ = ["FormattingConfig", "InstallerConfig", "NormalizationConfig"]
