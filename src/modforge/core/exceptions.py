from __future__ import annotations

from typing import Any, Dict, Mapping


class ModforgeError(Exception):
    """Base exception for modforge."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class InstallError(ModforgeError, RuntimeError):
    """Raised when an install cannot proceed (missing staging path, no roots, ...)."""

    def __init__(
        self,
        message: str = "",
        *,
        module_name: str | None = None,
        root: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if module_name:
            ctx["module_name"] = module_name
        if root:
            ctx["root"] = root
        ModforgeError.__init__(self, message, context=ctx)
        RuntimeError.__init__(self, message)


class ManifestParseError(ModforgeError, ValueError):
    """Raised by the manifest parser on malformed input."""

    def __init__(self, message: str = "", *, offset: int | None = None, context: Mapping[str, Any] | None = None) -> None:
        ctx = dict(context or {})
        if offset is not None:
            ctx["offset"] = offset
        ModforgeError.__init__(self, message, context=ctx)
        ValueError.__init__(self, message)

    @property
    def offset(self) -> int | None:
        return self.context.get("offset")


class ConfigError(ModforgeError, ValueError):
    """Raised when configuration fails to load or validate."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        ModforgeError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


__all__ = [
    "ModforgeError",
    "InstallError",
    "ManifestParseError",
    "ConfigError",
]
