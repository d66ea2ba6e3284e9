"""
modforge - build-and-release engine for packaged PowerShell modules

Stages builds, computes a module's public command surface, edits its
manifest in place, normalizes text encoding, runs an external formatter
and installs the result into versioned destination trees.
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
