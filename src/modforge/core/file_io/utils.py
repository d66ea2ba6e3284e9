"""File I/O utilities for modforge core.

Single source of truth for filesystem access patterns:
- Atomic byte writes with fsync + rename
- YAML reads with consistent error handling
- Backup path computation (in place or mirrored under a backup root)
- Directory tree copy and best-effort removal
"""
from __future__ import annotations

import os
import shutil
import stat
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

import yaml


PathLike = Union[str, Path]

_DEFAULT_SENTINEL: object = object()


def ensure_parent_dir(path: Path) -> None:
    """Ensure the parent directory for ``path`` exists."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def ensure_directory(path: PathLike, create: bool = True) -> Path:
    """Ensure directory exists.

    Args:
        path: Directory path to check/create
        create: If True, create directory if missing; if False, raise if missing

    Returns:
        Path: The directory path (guaranteed to exist if create=True)

    Raises:
        FileNotFoundError: If create=False and directory doesn't exist
        NotADirectoryError: If the path exists but is a file
    """
    path = Path(path)

    if path.exists():
        if not path.is_dir():
            raise NotADirectoryError(f"Path exists but is not a directory: {path}")
        return path

    if create:
        path.mkdir(parents=True, exist_ok=True)
        return path
    raise FileNotFoundError(f"Directory does not exist: {path}")


def atomic_write_bytes(path: PathLike, data: bytes) -> None:
    """Write ``data`` to ``path`` atomically using a temp file + fsync + rename.

    - Parent directory is created if missing
    - Data is written to a temporary file in the same directory
    - File is fsync'd then atomically replaced
    - Any leftover temp file is cleaned up on failure
    """
    path = Path(path)
    ensure_parent_dir(path)

    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile("wb", dir=str(path.parent), delete=False) as f:
            tmp_path = Path(f.name)
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            shutil.copymode(str(path), str(tmp_path))
        os.replace(str(tmp_path), str(path))
    finally:
        if tmp_path is not None and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                # Best-effort cleanup; never fail callers on temp removal
                pass


def read_yaml(path: PathLike, default: Any = _DEFAULT_SENTINEL) -> Any:
    """Read a YAML file.

    When ``default`` is provided, a missing or invalid file returns it;
    otherwise errors propagate (fail closed).
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        if default is _DEFAULT_SENTINEL:
            raise
        return default
    if data is None and default is not _DEFAULT_SENTINEL:
        return default
    return data


def make_backup_path(
    file: PathLike,
    *,
    backup_root: Optional[PathLike] = None,
    project_root: Optional[PathLike] = None,
    suffix: str = ".bak",
) -> Path:
    """Return where a backup of ``file`` should live.

    Without ``backup_root`` the backup sits next to the file with ``suffix``.
    With a ``backup_root`` the file's path relative to ``project_root`` is
    mirrored underneath it; files outside ``project_root`` fall back to their
    bare name.
    """
    file = Path(file)
    if backup_root is None:
        return file.with_name(file.name + suffix)

    relative: Path
    if project_root is not None:
        try:
            relative = file.resolve().relative_to(Path(project_root).resolve())
        except ValueError:
            relative = Path(file.name)
    else:
        relative = Path(file.name)
    return Path(backup_root) / relative


def copy_tree(source: PathLike, destination: PathLike) -> None:
    """Copy the directory tree ``source`` into ``destination`` (created if missing)."""
    shutil.copytree(str(source), str(destination), dirs_exist_ok=True)


def _clear_readonly(func, path, _exc) -> None:  # type: ignore[no-untyped-def]
    os.chmod(path, stat.S_IWRITE)
    func(path)


def remove_tree(path: PathLike) -> None:
    """Remove a directory tree or a single file.

    Read-only entries are made writable and retried once. Errors after that
    propagate to the caller, which decides whether the failure is fatal.
    """
    path = Path(path)
    if path.is_dir() and not path.is_symlink():
        if sys.version_info >= (3, 12):
            shutil.rmtree(str(path), onexc=_clear_readonly)
        else:
            shutil.rmtree(str(path), onerror=_clear_readonly)
    elif path.exists() or path.is_symlink():
        path.unlink()


__all__ = [
    "PathLike",
    "ensure_parent_dir",
    "ensure_directory",
    "atomic_write_bytes",
    "read_yaml",
    "make_backup_path",
    "copy_tree",
    "remove_tree",
]
