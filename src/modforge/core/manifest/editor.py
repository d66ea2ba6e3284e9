"""Surgical, formatting-preserving edits to module manifests.

Every setter locates an existing key through the span-tagged parse tree and
splices a rendered value over exactly that value's source span. Keys are
never created. The ``try_*`` functions collapse :class:`EditOutcome` to a
boolean that is ``True`` only when the file content changed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from modforge.core.exceptions import ManifestParseError
from modforge.core.file_io.utils import atomic_write_bytes
from modforge.core.normalization.detection import (
    classify_line_endings,
    decode_text,
    detect_encoding,
    encode_text,
)
from modforge.core.normalization.models import TextEncoding

from .models import EditOutcome, RequiredModule
from .parser import ArrayNode, HashtableNode, Node, ScalarNode, parse_manifest
from .render import (
    quote,
    render_bool,
    render_hashtable_array,
    render_required_modules,
    render_string_array,
)

if TYPE_CHECKING:
    from modforge.core.exports.models import ExportSet

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

PSDATA_PATH: Tuple[str, ...] = ("PrivateData", "PSData")


@dataclass
class _Document:
    text: str
    encoding: TextEncoding
    newline: str
    root: HashtableNode


def _write_encoding(encoding: TextEncoding, text: str) -> TextEncoding:
    if encoding is TextEncoding.ASCII and not text.isascii():
        return TextEncoding.UTF8
    if encoding is TextEncoding.UTF7:
        return TextEncoding.UTF8_BOM
    return encoding


def _resolve(root: HashtableNode, keys: Sequence[str]) -> Optional[Node]:
    node: Optional[Node] = root
    for key in keys:
        if not isinstance(node, HashtableNode):
            return None
        node = node.get(key)
        if node is None:
            return None
    return node


def _scalar_text(node: Optional[Node]) -> Optional[str]:
    if isinstance(node, ScalarNode) and node.kind != "variable":
        return str(node.value)
    return None


def _string_items(node: Optional[Node]) -> Optional[List[str]]:
    if isinstance(node, ArrayNode):
        return [str(item.value) for item in node.items if isinstance(item, ScalarNode) and item.kind != "variable"]
    single = _scalar_text(node)
    if single is not None:
        return [single]
    return None


_VERSION_KEYS = ("ModuleVersion", "RequiredVersion", "MaximumVersion")
UNKNOWN_MODULE = "<unknown>"


def _required_module_items(node: Node) -> List[Node]:
    return list(node.items) if isinstance(node, ArrayNode) else [node]


def _contains(values: Iterable[str], item: str) -> bool:
    wanted = item.casefold()
    return any(v.casefold() == wanted for v in values)


def _required_module_from_node(node: Node) -> Optional[RequiredModule]:
    if isinstance(node, HashtableNode):
        name = _scalar_text(node.get("ModuleName"))
        if not name or not name.strip():
            return None
        return RequiredModule(
            module_name=name,
            module_version=_scalar_text(node.get("ModuleVersion")),
            required_version=_scalar_text(node.get("RequiredVersion")),
            maximum_version=_scalar_text(node.get("MaximumVersion")),
            guid=_scalar_text(node.get("Guid")),
        )
    name = _scalar_text(node)
    if name and name.strip():
        return RequiredModule(module_name=name)
    return None


class ManifestEditor:
    """Edits one manifest file.

    The file is re-read for every operation so that consecutive edits see
    each other's results.
    """

    def __init__(self, path: PathLike) -> None:
        self.path = Path(path)

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------
    def _load(self) -> Union[_Document, EditOutcome]:
        if not self.path.is_file():
            return EditOutcome.FILE_NOT_FOUND
        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            logger.debug("Cannot read manifest %s: %s", self.path, exc)
            return EditOutcome.IO_ERROR
        encoding = detect_encoding(raw)
        try:
            text = decode_text(raw, encoding)
        except UnicodeDecodeError as exc:
            logger.debug("Cannot decode manifest %s: %s", self.path, exc)
            return EditOutcome.PARSE_ERROR
        try:
            root = parse_manifest(text)
        except ManifestParseError as exc:
            logger.debug("Cannot parse manifest %s: %s", self.path, exc)
            return EditOutcome.PARSE_ERROR
        info = classify_line_endings(text)
        newline = "\n" if info.lf > info.crlf else "\r\n"
        return _Document(text=text, encoding=encoding, newline=newline, root=root)

    def _save(self, doc: _Document, new_text: str) -> EditOutcome:
        encoding = _write_encoding(doc.encoding, new_text)
        try:
            atomic_write_bytes(self.path, encode_text(new_text, encoding))
        except (OSError, UnicodeEncodeError) as exc:
            logger.debug("Cannot write manifest %s: %s", self.path, exc)
            return EditOutcome.IO_ERROR
        return EditOutcome.CHANGED

    # ------------------------------------------------------------------
    # Core splice
    # ------------------------------------------------------------------
    def set_value(self, keys: Sequence[str], render: Callable[[str], str]) -> EditOutcome:
        """Replace the value at ``keys`` with ``render(newline)``.

        ``render`` receives the file's newline sequence so multi-line
        renderings match the surrounding text.
        """
        doc = self._load()
        if isinstance(doc, EditOutcome):
            return doc
        node = _resolve(doc.root, keys)
        if node is None:
            return EditOutcome.KEY_NOT_FOUND
        new_text = doc.text[: node.start] + render(doc.newline) + doc.text[node.end :]
        if new_text == doc.text:
            return EditOutcome.UNCHANGED
        outcome = self._save(doc, new_text)
        if outcome is EditOutcome.CHANGED:
            logger.debug("Updated %s in %s", ".".join(keys), self.path)
        return outcome

    def get_node(self, keys: Sequence[str]) -> Optional[Node]:
        doc = self._load()
        if isinstance(doc, EditOutcome):
            return None
        return _resolve(doc.root, keys)

    # ------------------------------------------------------------------
    # Top level
    # ------------------------------------------------------------------
    def set_top_level_string(self, key: str, value: str) -> EditOutcome:
        return self.set_value((key,), lambda _nl: quote(value))

    def set_top_level_string_array(self, key: str, values: Iterable[str]) -> EditOutcome:
        rendered = render_string_array(list(values))
        return self.set_value((key,), lambda _nl: rendered)

    def set_module_version(self, version: str) -> EditOutcome:
        return self.set_top_level_string("ModuleVersion", version)

    def set_required_modules(self, modules: Sequence[RequiredModule]) -> EditOutcome:
        modules = list(modules)
        return self.set_value(("RequiredModules",), lambda nl: render_required_modules(modules, nl))

    def upsert_required_module(self, module: RequiredModule) -> EditOutcome:
        """Replace the entry with the same module name, or append ``module``."""
        current = self.get_required_modules()
        if current is None:
            return self._missing_outcome()
        wanted = module.module_name.casefold()
        updated = [module if m.module_name.casefold() == wanted else m for m in current]
        if not any(m.module_name.casefold() == wanted for m in current):
            updated.append(module)
        return self.set_required_modules(updated)

    def remove_required_module(self, name: str) -> EditOutcome:
        current = self.get_required_modules()
        if current is None:
            return self._missing_outcome()
        updated = [m for m in current if m.module_name.casefold() != name.casefold()]
        if len(updated) == len(current):
            return EditOutcome.UNCHANGED
        return self.set_required_modules(updated)

    def add_to_top_level_string_array(self, key: str, item: str) -> EditOutcome:
        """Append ``item`` unless the array already holds it (case-insensitive)."""
        current = self.get_top_level_string_array(key)
        if current is None:
            return self._missing_outcome()
        if _contains(current, item):
            return EditOutcome.UNCHANGED
        return self.set_top_level_string_array(key, current + [item])

    def remove_from_top_level_string_array(self, key: str, item: str) -> EditOutcome:
        current = self.get_top_level_string_array(key)
        if current is None:
            return self._missing_outcome()
        updated = [v for v in current if v.casefold() != item.casefold()]
        if len(updated) == len(current):
            return EditOutcome.UNCHANGED
        return self.set_top_level_string_array(key, updated)

    def _missing_outcome(self) -> EditOutcome:
        # Distinguishes an unreadable file from a key that is absent.
        doc = self._load()
        if isinstance(doc, EditOutcome):
            return doc
        return EditOutcome.KEY_NOT_FOUND

    # ------------------------------------------------------------------
    # PrivateData.PSData
    # ------------------------------------------------------------------
    def set_psdata_string(self, key: str, value: str) -> EditOutcome:
        return self.set_value(PSDATA_PATH + (key,), lambda _nl: quote(value))

    def set_psdata_string_array(self, key: str, values: Iterable[str]) -> EditOutcome:
        rendered = render_string_array(list(values))
        return self.set_value(PSDATA_PATH + (key,), lambda _nl: rendered)

    def set_psdata_bool(self, key: str, value: bool) -> EditOutcome:
        return self.set_value(PSDATA_PATH + (key,), lambda _nl: render_bool(value))

    def set_psdata_sub_string(self, parent_key: str, key: str, value: str) -> EditOutcome:
        return self.set_value(PSDATA_PATH + (parent_key, key), lambda _nl: quote(value))

    def set_psdata_sub_string_array(self, parent_key: str, key: str, values: Iterable[str]) -> EditOutcome:
        rendered = render_string_array(list(values))
        return self.set_value(PSDATA_PATH + (parent_key, key), lambda _nl: rendered)

    def set_psdata_sub_bool(self, parent_key: str, key: str, value: bool) -> EditOutcome:
        return self.set_value(PSDATA_PATH + (parent_key, key), lambda _nl: render_bool(value))

    def set_psdata_sub_hashtable_array(
        self,
        parent_key: str,
        key: str,
        items: Iterable[Mapping[str, Optional[str]]],
    ) -> EditOutcome:
        rendered = render_hashtable_array(list(items))
        return self.set_value(PSDATA_PATH + (parent_key, key), lambda _nl: rendered)

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------
    def get_top_level_string(self, key: str) -> Optional[str]:
        return _scalar_text(self.get_node((key,)))

    def get_top_level_string_array(self, key: str) -> Optional[List[str]]:
        return _string_items(self.get_node((key,)))

    def get_psdata_string(self, key: str) -> Optional[str]:
        return _scalar_text(self.get_node(PSDATA_PATH + (key,)))

    def get_required_modules(self) -> Optional[List[RequiredModule]]:
        node = self.get_node(("RequiredModules",))
        if node is None:
            return None
        items = _required_module_items(node)
        return [m for m in (_required_module_from_node(i) for i in items) if m is not None]

    def get_invalid_required_module_specs(self) -> Optional[List[str]]:
        """Names of hashtable ``RequiredModules`` entries with no version field.

        An entry without a readable ``ModuleName`` is reported as
        ``"<unknown>"``. Returns ``None`` when the key is absent or the file
        cannot be read.
        """
        node = self.get_node(("RequiredModules",))
        if node is None:
            return None
        invalid: List[str] = []
        for item in _required_module_items(node):
            if not isinstance(item, HashtableNode):
                continue
            if any(item.get(k) is not None for k in _VERSION_KEYS):
                continue
            name = (_scalar_text(item.get("ModuleName")) or "").strip() or UNKNOWN_MODULE
            if not _contains(invalid, name):
                invalid.append(name)
        return invalid


# ----------------------------------------------------------------------
# Boolean wrappers
# ----------------------------------------------------------------------
def try_set_top_level_string(path: PathLike, key: str, value: str) -> bool:
    return ManifestEditor(path).set_top_level_string(key, value).changed


def try_set_top_level_string_array(path: PathLike, key: str, values: Iterable[str]) -> bool:
    return ManifestEditor(path).set_top_level_string_array(key, values).changed


def try_set_top_level_module_version(path: PathLike, version: str) -> bool:
    return ManifestEditor(path).set_module_version(version).changed


def try_set_psdata_string(path: PathLike, key: str, value: str) -> bool:
    return ManifestEditor(path).set_psdata_string(key, value).changed


def try_set_psdata_string_array(path: PathLike, key: str, values: Iterable[str]) -> bool:
    return ManifestEditor(path).set_psdata_string_array(key, values).changed


def try_set_psdata_bool(path: PathLike, key: str, value: bool) -> bool:
    return ManifestEditor(path).set_psdata_bool(key, value).changed


def try_set_psdata_sub_string(path: PathLike, parent_key: str, key: str, value: str) -> bool:
    return ManifestEditor(path).set_psdata_sub_string(parent_key, key, value).changed


def try_set_psdata_sub_string_array(path: PathLike, parent_key: str, key: str, values: Iterable[str]) -> bool:
    return ManifestEditor(path).set_psdata_sub_string_array(parent_key, key, values).changed


def try_set_psdata_sub_bool(path: PathLike, parent_key: str, key: str, value: bool) -> bool:
    return ManifestEditor(path).set_psdata_sub_bool(parent_key, key, value).changed


def try_set_psdata_sub_hashtable_array(
    path: PathLike,
    parent_key: str,
    key: str,
    items: Iterable[Mapping[str, Optional[str]]],
) -> bool:
    return ManifestEditor(path).set_psdata_sub_hashtable_array(parent_key, key, items).changed


def try_set_required_modules(path: PathLike, records: Sequence[RequiredModule]) -> bool:
    return ManifestEditor(path).set_required_modules(records).changed


def try_upsert_required_module(path: PathLike, module: RequiredModule) -> bool:
    return ManifestEditor(path).upsert_required_module(module).changed


def try_remove_required_module(path: PathLike, name: str) -> bool:
    return ManifestEditor(path).remove_required_module(name).changed


def try_add_to_top_level_string_array(path: PathLike, key: str, item: str) -> bool:
    return ManifestEditor(path).add_to_top_level_string_array(key, item).changed


def try_remove_from_top_level_string_array(path: PathLike, key: str, item: str) -> bool:
    return ManifestEditor(path).remove_from_top_level_string_array(key, item).changed


def try_set_exports(path: PathLike, exports: "ExportSet") -> bool:
    """Write an ``ExportSet`` into the three ``*ToExport`` keys.

    Each key is edited independently; returns ``True`` if any changed.
    """
    editor = ManifestEditor(path)
    outcomes = [
        editor.set_top_level_string_array("FunctionsToExport", exports.functions),
        editor.set_top_level_string_array("CmdletsToExport", exports.cmdlets),
        editor.set_top_level_string_array("AliasesToExport", exports.aliases),
    ]
    return any(o.changed for o in outcomes)


def try_get_top_level_string(path: PathLike, key: str) -> Optional[str]:
    return ManifestEditor(path).get_top_level_string(key)


def try_get_top_level_string_array(path: PathLike, key: str) -> Optional[List[str]]:
    return ManifestEditor(path).get_top_level_string_array(key)


def try_get_psdata_string(path: PathLike, key: str) -> Optional[str]:
    return ManifestEditor(path).get_psdata_string(key)


def try_get_required_modules(path: PathLike) -> Optional[List[RequiredModule]]:
    return ManifestEditor(path).get_required_modules()


def try_get_invalid_required_module_specs(path: PathLike) -> Optional[List[str]]:
    return ManifestEditor(path).get_invalid_required_module_specs()


__all__ = [
    "ManifestEditor",
    "PSDATA_PATH",
    "try_set_top_level_string",
    "try_set_top_level_string_array",
    "try_set_top_level_module_version",
    "try_set_psdata_string",
    "try_set_psdata_string_array",
    "try_set_psdata_bool",
    "try_set_psdata_sub_string",
    "try_set_psdata_sub_string_array",
    "try_set_psdata_sub_bool",
    "try_set_psdata_sub_hashtable_array",
    "try_set_required_modules",
    "try_upsert_required_module",
    "try_remove_required_module",
    "try_add_to_top_level_string_array",
    "try_remove_from_top_level_string_array",
    "try_set_exports",
    "try_get_top_level_string",
    "try_get_top_level_string_array",
    "try_get_psdata_string",
    "try_get_required_modules",
    "try_get_invalid_required_module_specs",
]
