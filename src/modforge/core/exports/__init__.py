"""Discovery of a module's exported functions, cmdlets and aliases."""
from __future__ import annotations

from .detector import BinaryExportScanner, detect_binary_aliases, detect_binary_cmdlets, detect_exports
from .matchers import ALIAS_ATTRIBUTE, CMDLET_ATTRIBUTE, COMMAND_BASE_TYPES, CommandTypeMatcher, build_type_index
from .metadata import AssemblyLoadError, MetadataReader, read_assembly_types
from .models import AttributeInfo, ExportSet, TypeInfo, normalize_names
from .scripts import detect_script_functions, functions_in_text

__all__ = [
    "ALIAS_ATTRIBUTE",
    "AssemblyLoadError",
    "AttributeInfo",
    "BinaryExportScanner",
    "CMDLET_ATTRIBUTE",
    "COMMAND_BASE_TYPES",
    "CommandTypeMatcher",
    "ExportSet",
    "MetadataReader",
    "TypeInfo",
    "build_type_index",
    "detect_binary_aliases",
    "detect_binary_cmdlets",
    "detect_exports",
    "detect_script_functions",
    "functions_in_text",
    "normalize_names",
    "read_assembly_types",
]
