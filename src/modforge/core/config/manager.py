"""
modforge configuration loading (YAML, schema-validated, explicit paths only).
"""
from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema

from modforge.core.exceptions import ConfigError
from modforge.core.file_io.utils import read_yaml as read_yaml_file
from modforge.core.utils.merge import deep_merge
from modforge.data import read_yaml

logger = logging.getLogger(__name__)

_DEFAULTS_FILE = "defaults.yaml"
_SCHEMA_FILE = "config.schema.yaml"


def load_defaults() -> Dict[str, Any]:
    """Return a copy of the bundled defaults."""
    return copy.deepcopy(read_yaml("config", _DEFAULTS_FILE) or {})


def validate_config(config: Dict[str, Any]) -> None:
    """Validate ``config`` against the bundled JSON schema.

    Raises:
        ConfigError: With every violation listed, path first.
    """
    schema = read_yaml("schemas", _SCHEMA_FILE)
    validator_cls = jsonschema.validators.validator_for(schema)
    validator = validator_cls(schema)
    errors = sorted(validator.iter_errors(config), key=lambda e: list(e.path))
    if not errors:
        return
    details = []
    for err in errors:
        location = ".".join(str(p) for p in err.path) or "<root>"
        details.append(f"{location}: {err.message}")
    raise ConfigError(
        "Invalid modforge configuration: " + "; ".join(details),
        context={"errors": details},
    )


def load_config(path: Optional[Path] = None, *, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Load configuration: bundled defaults < ``path`` < ``overrides``.

    Only the explicitly supplied file is read; nothing is discovered from
    the environment or the working directory.

    Raises:
        ConfigError: If ``path`` is missing, unreadable, not a mapping, or the
            merged result fails schema validation.
    """
    config = load_defaults()

    if path is not None:
        path = Path(path)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}", context={"path": str(path)})
        try:
            data = read_yaml_file(path)
        except Exception as exc:
            raise ConfigError(f"Failed to read config {path}: {exc}", context={"path": str(path)}) from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config root must be a mapping: {path}", context={"path": str(path)})
        logger.debug("Loaded config overlay from %s", path)
        config = deep_merge(config, data)

    if overrides:
        config = deep_merge(config, overrides)

    validate_config(config)
    return config


__all__ = ["load_config", "load_defaults", "validate_config"]
