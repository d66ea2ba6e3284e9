"""Three-stage formatting pipeline: preprocess, external format, normalize."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from modforge.core.normalization import NormalizationOptions, NormalizationResult, normalize_file

from .formatter import DEFAULT_TIMEOUT_SECONDS, ExternalFormatter
from .models import (
    NO_RESULT,
    FormatterResult,
    FormattingSummary,
    format_part_plain,
    is_error_message,
    is_skipped_message,
    path_key,
)
from .preprocess import PreprocessOptions, preprocess_file

Normalizer = Callable[[Path, NormalizationOptions], NormalizationResult]


@dataclass(frozen=True)
class FormatOptions:
    """Options for :meth:`FormattingPipeline.format`."""

    preprocess: PreprocessOptions = field(default_factory=PreprocessOptions)
    settings: Union[None, str, Mapping[str, Any]] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    command: Optional[Sequence[str]] = None
    normalize: bool = True
    normalization: NormalizationOptions = field(default_factory=NormalizationOptions)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None, **overrides: Any) -> "FormatOptions":
        """Build options from the ``formatting`` and ``normalization`` sections."""
        from modforge.core.config.domains import FormattingConfig

        cfg = FormattingConfig(config)
        values: Dict[str, Any] = {
            "preprocess": PreprocessOptions(
                remove_comments=cfg.remove_comments,
                remove_comments_in_param_block=cfg.remove_comments_in_param_block,
                remove_comments_before_param_block=cfg.remove_comments_before_param_block,
                remove_empty_lines=cfg.remove_empty_lines,
                remove_all_empty_lines=cfg.remove_all_empty_lines,
            ),
            "settings": cfg.settings or None,
            "timeout_seconds": cfg.timeout_seconds,
            "command": cfg.command,
            "normalize": cfg.normalize,
            "normalization": NormalizationOptions.from_config(cfg.full_config),
        }
        values.update(overrides)
        return cls(**values)


def _flag(value: bool) -> str:
    return "1" if value else "0"


class FormattingPipeline:
    """Runs preprocessing, one external formatter call and normalization.

    Each result message starts with the formatter outcome and carries a
    ``; pre=<0|1>; fmt=<0|1>; norm=<0|1>`` suffix recording which stage
    changed the file.
    """

    def __init__(
        self,
        formatter: Optional[ExternalFormatter] = None,
        normalizer: Optional[Normalizer] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._formatter = formatter
        self.normalizer: Normalizer = normalizer or normalize_file

    def _formatter_for(self, options: FormatOptions) -> ExternalFormatter:
        if self._formatter is not None:
            return self._formatter
        return ExternalFormatter(command=options.command, logger=self.logger)

    def format(self, files: Iterable[Union[str, Path]], options: Optional[FormatOptions] = None) -> List[FormatterResult]:
        options = options or FormatOptions()
        paths: List[Path] = []
        seen = set()
        for f in files:
            p = Path(f)
            key = path_key(p)
            if key not in seen:
                seen.add(key)
                paths.append(p)
        if not paths:
            return []

        pre_changed: Dict[Path, bool] = {p: False for p in paths}
        failed: Dict[Path, str] = {}

        # Stage 1
        if options.preprocess.enabled:
            for p in paths:
                try:
                    pre_changed[p] = preprocess_file(p, options.preprocess)
                except (OSError, UnicodeError) as exc:
                    failed[p] = f"Error: preprocessing failed: {exc}"
                    self.logger.warning("Preprocessing failed for %s: %s", p, exc)

        # Stage 2
        to_format = [p for p in paths if p not in failed]
        formatted: Dict[str, FormatterResult] = {}
        if to_format:
            batch = self._formatter_for(options).format_files(
                to_format, settings=options.settings, timeout=options.timeout_seconds
            )
            formatted = {path_key(r.path): r for r in batch}

        # Stage 3
        results: List[FormatterResult] = []
        for p in paths:
            if p in failed:
                results.append(FormatterResult(p, pre_changed[p], f"{failed[p]}; pre=0; fmt=0; norm=0"))
                continue
            fmt = formatted.get(path_key(p)) or FormatterResult(p, False, NO_RESULT)
            norm_changed = False
            message = fmt.message
            if options.normalize and not (is_error_message(message) or is_skipped_message(message)):
                outcome = self.normalizer(p, options.normalization)
                norm_changed = outcome.changed
                if outcome.error and not outcome.rolled_back:
                    message = f"Error: normalization failed: {outcome.error}"
            changed = pre_changed[p] or fmt.changed or norm_changed
            if message == "Unchanged" and changed:
                message = "Changed"
            suffix = f"; pre={_flag(pre_changed[p])}; fmt={_flag(fmt.changed)}; norm={_flag(norm_changed)}"
            results.append(FormatterResult(p, changed, message + suffix))

        self.logger.info(format_part_plain("Formatting", FormattingSummary.from_results(results)))
        return results


__all__ = ["FormatOptions", "FormattingPipeline", "Normalizer"]
