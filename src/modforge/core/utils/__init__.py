"""Shared utilities for modforge core (merging, subprocess execution)."""
from __future__ import annotations

from .merge import deep_merge
from .subprocess import run_with_timeout, terminate_process_tree

__all__ = ["deep_merge", "run_with_timeout", "terminate_process_tree"]
