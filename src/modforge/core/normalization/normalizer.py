"""Line ending and encoding normalization of text files.

A file is decoded from its detected encoding, rewritten with the requested
newline sequence, encoded with the target encoding, written atomically and
then re-read. If the re-read text does not match what was intended the
original bytes are restored.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from modforge.core.file_io.utils import atomic_write_bytes, ensure_parent_dir, make_backup_path

from .detection import (
    classify_line_endings,
    convert_line_endings,
    decode_text,
    detect_encoding,
    encode_text,
    is_powershell_file,
)
from .models import NormalizationOptions, NormalizationResult, TextEncoding

logger = logging.getLogger(__name__)


def _choose_encoding(path: Path, current: TextEncoding, options: NormalizationOptions) -> TextEncoding:
    if options.target_encoding is not None:
        return options.target_encoding
    if options.prefer_utf8_bom_for_powershell and is_powershell_file(path):
        return TextEncoding.UTF8_BOM
    if current is TextEncoding.UTF7:
        # UTF-7 is read but never written back.
        return TextEncoding.UTF8_BOM
    return current


def _write_backup(path: Path, original: bytes, options: NormalizationOptions) -> Path:
    backup = make_backup_path(
        path,
        backup_root=options.backup_root,
        project_root=options.project_root,
        suffix=options.backup_suffix,
    )
    ensure_parent_dir(backup)
    backup.write_bytes(original)
    return backup


def normalize_file(
    path: Union[str, Path],
    options: Optional[NormalizationOptions] = None,
) -> NormalizationResult:
    """Normalize line endings and encoding of a single file.

    Never raises for per-file problems; they are reported through
    ``NormalizationResult.error``. When the file cannot be decoded, or the
    target encoding cannot represent its text while rollback is enabled, the
    file is left untouched.
    """
    path = Path(path)
    options = options or NormalizationOptions()

    try:
        original = path.read_bytes()
    except OSError as exc:
        return NormalizationResult(path=path, changed=False, replacements=0, encoding="", error=f"Read failed: {exc}")

    current = detect_encoding(original)
    try:
        text = decode_text(original, current)
    except UnicodeDecodeError as exc:
        return NormalizationResult(
            path=path,
            changed=False,
            replacements=0,
            encoding=current.display_name,
            encoding_before=current.display_name,
            error=f"Decode failed as {current.display_name}: {exc.reason}",
        )

    before = classify_line_endings(text)
    replacements = 0
    new_text = text
    newline = options.line_ending.newline if options.line_ending is not None else ""
    if newline:
        new_text, replacements = convert_line_endings(text, newline)
    if options.ensure_final_newline and new_text and not new_text.endswith(("\n", "\r")):
        new_text += newline or (before.kind.newline or "\r\n")
        replacements += 1

    target = _choose_encoding(path, current, options)
    rolled_back = False
    error: Optional[str] = None
    try:
        new_bytes = encode_text(new_text, target)
    except UnicodeEncodeError as exc:
        if options.rollback_on_mismatch:
            logger.warning("%s: %s cannot represent the text; file left unchanged", path, target.display_name)
            return NormalizationResult(
                path=path,
                changed=False,
                replacements=0,
                encoding=current.display_name,
                encoding_before=current.display_name,
                line_ending_before=before.kind,
                rolled_back=True,
                error=f"Encoding {target.display_name} cannot represent character at {exc.start}",
            )
        new_bytes = encode_text(new_text, target, errors="replace")
        error = f"Lossy write: {target.display_name} cannot represent character at {exc.start}"

    if new_bytes == original:
        return NormalizationResult(
            path=path,
            changed=False,
            replacements=0,
            encoding=target.display_name,
            encoding_before=current.display_name,
            line_ending_before=before.kind,
        )

    backup_path: Optional[Path] = None
    try:
        if options.create_backup:
            backup_path = _write_backup(path, original, options)
        atomic_write_bytes(path, new_bytes)
    except OSError as exc:
        return NormalizationResult(
            path=path,
            changed=False,
            replacements=0,
            encoding=current.display_name,
            encoding_before=current.display_name,
            line_ending_before=before.kind,
            backup_path=backup_path,
            error=f"Write failed: {exc}",
        )

    if error is None:
        mismatch = _verify(path, new_text, target)
        if mismatch is not None:
            error = f"Verification mismatch: {mismatch}"
            if options.rollback_on_mismatch:
                try:
                    atomic_write_bytes(path, original)
                except OSError as exc:
                    logger.error(
                        "%s: verification failed (%s) and the original could not be restored: %s", path, mismatch, exc
                    )
                    error = f"{error}; rollback failed: {exc}"
                else:
                    rolled_back = True
                    logger.warning("%s: verification failed (%s); original restored", path, mismatch)

    changed = not rolled_back
    return NormalizationResult(
        path=path,
        changed=changed,
        replacements=replacements if changed else 0,
        encoding=(target if changed else current).display_name,
        encoding_before=current.display_name,
        line_ending_before=before.kind,
        backup_path=backup_path,
        rolled_back=rolled_back,
        error=error,
    )


def _verify(path: Path, expected: str, encoding: TextEncoding) -> Optional[str]:
    """Re-read ``path`` and return a description of any difference from ``expected``."""
    try:
        written = path.read_bytes()
    except OSError as exc:
        return f"re-read failed: {exc}"
    try:
        actual = decode_text(written, encoding)
    except UnicodeDecodeError as exc:
        return f"re-decode failed: {exc.reason}"
    if actual != expected:
        return "content differs after write"
    return None


def normalize_files(
    paths: Iterable[Union[str, Path]],
    options: Optional[NormalizationOptions] = None,
) -> List[NormalizationResult]:
    """Normalize each of ``paths`` in order; one result per input path."""
    options = options or NormalizationOptions()
    results = [normalize_file(p, options) for p in paths]
    changed = sum(1 for r in results if r.changed)
    if results:
        logger.debug("Normalized %d file(s), %d changed", len(results), changed)
    return results


__all__ = ["normalize_file", "normalize_files"]
