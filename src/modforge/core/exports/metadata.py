"""Read .NET type metadata from compiled assemblies without loading them.

The PE file is parsed with ``dnfile``; nothing inside it is executed. Each
type definition becomes a :class:`TypeInfo` carrying its base type's full
name and the raw blobs of its custom attributes.
"""
from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

import dnfile
from dnfile import mdtable

from modforge.core.exceptions import ModforgeError

from .models import AttributeInfo, TypeInfo

logger = logging.getLogger(__name__)

MetadataReader = Callable[[Path], List[TypeInfo]]

# ECMA-335 element types used by attribute constructor signatures
ELEMENT_TYPE_STRING = 0x0E
ELEMENT_TYPE_SZARRAY = 0x1D
_SIG_HASTHIS = 0x20


class AssemblyLoadError(ModforgeError):
    """Raised when a file cannot be read as a .NET assembly."""


class BlobError(ValueError):
    """Raised for a truncated or malformed metadata blob."""


def _text(value: Any) -> str:
    if value is None:
        return ""
    inner = getattr(value, "value", value)
    if isinstance(inner, bytes):
        return inner.decode("utf-8", errors="replace")
    return str(inner)


def _blob(value: Any) -> bytes:
    if value is None:
        return b""
    inner = getattr(value, "value", value)
    if isinstance(inner, (bytes, bytearray)):
        return bytes(inner)
    return b""


def _join(namespace: str, name: str) -> str:
    return f"{namespace}.{name}" if namespace else name


# ----------------------------------------------------------------------
# Blob decoding
# ----------------------------------------------------------------------
def read_compressed_uint(data: bytes, pos: int) -> Tuple[int, int]:
    """Decode an ECMA-335 compressed unsigned integer at ``pos``."""
    if pos >= len(data):
        raise BlobError("Truncated compressed integer")
    first = data[pos]
    if first & 0x80 == 0:
        return first, pos + 1
    if first & 0xC0 == 0x80:
        if pos + 2 > len(data):
            raise BlobError("Truncated compressed integer")
        return ((first & 0x3F) << 8) | data[pos + 1], pos + 2
    if pos + 4 > len(data):
        raise BlobError("Truncated compressed integer")
    value = ((first & 0x1F) << 24) | (data[pos + 1] << 16) | (data[pos + 2] << 8) | data[pos + 3]
    return value, pos + 4


def read_ser_string(data: bytes, pos: int) -> Tuple[Optional[str], int]:
    """Decode a SerString (0xFF marks a null string)."""
    if pos < len(data) and data[pos] == 0xFF:
        return None, pos + 1
    length, pos = read_compressed_uint(data, pos)
    end = pos + length
    if end > len(data):
        raise BlobError("Truncated string")
    return data[pos:end].decode("utf-8"), end


def _check_prolog(blob: bytes) -> int:
    if len(blob) < 2 or struct.unpack_from("<H", blob, 0)[0] != 0x0001:
        raise BlobError("Missing custom attribute prolog")
    return 2


def read_string_array(data: bytes, pos: int) -> Tuple[List[str], int]:
    if pos + 4 > len(data):
        raise BlobError("Truncated array length")
    (count,) = struct.unpack_from("<I", data, pos)
    pos += 4
    if count == 0xFFFFFFFF:
        return [], pos
    if count > len(data):
        raise BlobError("Array length exceeds blob size")
    values = []
    for _ in range(count):
        value, pos = read_ser_string(data, pos)
        if value is not None:
            values.append(value)
    return values, pos


def parse_string_args(blob: bytes, count: int) -> List[Optional[str]]:
    """Decode ``count`` leading string constructor arguments."""
    pos = _check_prolog(blob)
    values: List[Optional[str]] = []
    for _ in range(count):
        value, pos = read_ser_string(blob, pos)
        values.append(value)
    return values


def parse_alias_args(attribute: AttributeInfo) -> List[str]:
    """Decode the alias names from an ``AliasAttribute`` blob.

    Uses the constructor signature when known. Otherwise the blob is read as
    a ``string[]`` first and as a single string when that does not fit.
    """
    blob = attribute.blob
    pos = _check_prolog(blob)
    if attribute.ctor_params[:1] == ("string[]",):
        return read_string_array(blob, pos)[0]
    if attribute.ctor_params[:1] == ("string",):
        value, _ = read_ser_string(blob, pos)
        return [value] if value else []
    try:
        values, end = read_string_array(blob, pos)
        if end + 2 <= len(blob):
            return values
    except (BlobError, UnicodeDecodeError):
        pass
    value, _ = read_ser_string(blob, pos)
    return [value] if value else []


def parse_ctor_params(signature: bytes) -> Tuple[str, ...]:
    """Classify the parameters of a method signature as string / string[]."""
    if not signature:
        return ()
    try:
        pos = 0
        flags = signature[pos]
        pos += 1
        if flags & 0x10:  # generic
            _, pos = read_compressed_uint(signature, pos)
        count, pos = read_compressed_uint(signature, pos)
        pos += 1  # return type (void for constructors)
        params = []
        for _ in range(count):
            if pos >= len(signature):
                break
            code = signature[pos]
            if code == ELEMENT_TYPE_STRING:
                params.append("string")
                pos += 1
            elif code == ELEMENT_TYPE_SZARRAY and pos + 1 < len(signature) and signature[pos + 1] == ELEMENT_TYPE_STRING:
                params.append("string[]")
                pos += 2
            else:
                params.append("other")
                break
        return tuple(params)
    except BlobError:
        return ()


# ----------------------------------------------------------------------
# dnfile reader
# ----------------------------------------------------------------------
def _type_ref_name(row: Any) -> Optional[str]:
    if isinstance(row, (mdtable.TypeDefRow, mdtable.TypeRefRow)):
        return _join(_text(row.TypeNamespace), _text(row.TypeName))
    return None


def _coded_row(index: Any) -> Any:
    """The row a coded index points at, or ``None`` for a nil reference.

    Row indexes are 1-based; 0 means "no row" (e.g. the ``Extends`` of an
    interface) and must not reach dnfile, which would wrap it to the last row.
    """
    if index is None or not getattr(index, "row_index", 0):
        return None
    try:
        return index.row
    except (AttributeError, IndexError):
        return None


def _attribute_type(ctor_row: Any, method_owner: Callable[[Any], Optional[str]]) -> Optional[str]:
    if isinstance(ctor_row, mdtable.MemberRefRow):
        return _type_ref_name(_coded_row(getattr(ctor_row, "Class", None)))
    if isinstance(ctor_row, mdtable.MethodDefRow):
        return method_owner(ctor_row)
    return None


def read_assembly_types(path: Union[str, Path]) -> List[TypeInfo]:
    """Read every type definition of the assembly at ``path``.

    Raises:
        AssemblyLoadError: If the file is not a readable .NET assembly.
    """
    path = Path(path)
    try:
        pe = dnfile.dnPE(str(path))
    except Exception as exc:  # pefile raises several unrelated types
        raise AssemblyLoadError(f"Cannot read {path}: {exc}", context={"path": str(path)}) from exc
    try:
        net = getattr(pe, "net", None)
        tables = getattr(net, "mdtables", None) if net is not None else None
        if tables is None or getattr(tables, "TypeDef", None) is None:
            raise AssemblyLoadError(f"{path} has no .NET metadata", context={"path": str(path)})
        return _collect_types(tables)
    finally:
        pe.close()


def _collect_types(tables: Any) -> List[TypeInfo]:
    type_rows = list(tables.TypeDef.rows)

    # MethodDef row -> owning type name via TypeDef.MethodList ranges
    method_owners = {}
    for row in type_rows:
        owner = _join(_text(row.TypeNamespace), _text(row.TypeName))
        for method in getattr(row, "MethodList", None) or []:
            target = getattr(method, "row", method)
            method_owners[id(target)] = owner

    attributes_by_type = {}
    custom_attributes = getattr(tables, "CustomAttribute", None)
    for ca in (custom_attributes.rows if custom_attributes is not None else []):
        parent = _coded_row(getattr(ca, "Parent", None))
        if not isinstance(parent, mdtable.TypeDefRow):
            continue
        ctor = _coded_row(getattr(ca, "Type", None))
        type_name = _attribute_type(ctor, lambda r: method_owners.get(id(r)))
        if not type_name:
            continue
        signature = _blob(getattr(ctor, "Signature", None))
        attributes_by_type.setdefault(id(parent), []).append(
            AttributeInfo(type_full_name=type_name, blob=_blob(ca.Value), ctor_params=parse_ctor_params(signature))
        )

    types = []
    for row in type_rows:
        name = _join(_text(row.TypeNamespace), _text(row.TypeName))
        base = _type_ref_name(_coded_row(getattr(row, "Extends", None)))
        types.append(TypeInfo(full_name=name, base_full_name=base, attributes=tuple(attributes_by_type.get(id(row), ()))))
    return types


def sibling_assemblies(path: Union[str, Path]) -> Sequence[Path]:
    """Other ``.dll`` files in the same directory as ``path``."""
    path = Path(path)
    try:
        return sorted(p for p in path.parent.glob("*.dll") if p.is_file() and p.name.lower() != path.name.lower())
    except OSError:
        return []


__all__ = [
    "MetadataReader",
    "AssemblyLoadError",
    "BlobError",
    "read_compressed_uint",
    "read_ser_string",
    "read_string_array",
    "parse_string_args",
    "parse_alias_args",
    "parse_ctor_params",
    "read_assembly_types",
    "sibling_assemblies",
]
