"""
File I/O helpers for modforge core.

Atomic byte writes, backups, and directory tree copy/removal used by the
installer, manifest editor and normalizer.
"""
from __future__ import annotations

from . import utils  # noqa: F401
from .utils import (
    atomic_write_bytes,
    copy_tree,
    ensure_directory,
    ensure_parent_dir,
    make_backup_path,
    read_yaml,
    remove_tree,
)

__all__ = [
    "utils",
    "atomic_write_bytes",
    "copy_tree",
    "ensure_directory",
    "ensure_parent_dir",
    "make_backup_path",
    "read_yaml",
    "remove_tree",
]
