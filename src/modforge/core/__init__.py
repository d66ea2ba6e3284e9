"""modforge core library package.

Subpackages:
- installer: versioned, idempotent module installation with pruning
- manifest: formatting-preserving PSD1 edits
- exports: script and binary export detection
- formatting: external formatter pipeline and summaries
- normalization: line ending / encoding normalization
- config: YAML defaults, schema validation and domain accessors
- file_io, utils: atomic writes, tree copies, merging and timed subprocesses
"""

from . import exceptions  # noqa: F401

__all__ = ["exceptions"]
