"""Module manifest (``.psd1``) parsing and in-place editing."""
from __future__ import annotations

from .editor import (
    ManifestEditor,
    try_add_to_top_level_string_array,
    try_get_invalid_required_module_specs,
    try_get_psdata_string,
    try_get_required_modules,
    try_get_top_level_string,
    try_get_top_level_string_array,
    try_remove_from_top_level_string_array,
    try_remove_required_module,
    try_set_exports,
    try_set_psdata_bool,
    try_set_psdata_string,
    try_set_psdata_string_array,
    try_set_psdata_sub_bool,
    try_set_psdata_sub_hashtable_array,
    try_set_psdata_sub_string,
    try_set_psdata_sub_string_array,
    try_set_required_modules,
    try_set_top_level_module_version,
    try_set_top_level_string,
    try_set_top_level_string_array,
    try_upsert_required_module,
)
from .models import EditOutcome, RequiredModule
from .parser import ArrayNode, HashtableNode, ScalarNode, node_to_python, parse_manifest

__all__ = [
    "ArrayNode",
    "EditOutcome",
    "HashtableNode",
    "ManifestEditor",
    "RequiredModule",
    "ScalarNode",
    "node_to_python",
    "parse_manifest",
    "try_add_to_top_level_string_array",
    "try_get_invalid_required_module_specs",
    "try_get_psdata_string",
    "try_get_required_modules",
    "try_get_top_level_string",
    "try_get_top_level_string_array",
    "try_remove_from_top_level_string_array",
    "try_remove_required_module",
    "try_set_exports",
    "try_set_psdata_bool",
    "try_set_psdata_string",
    "try_set_psdata_string_array",
    "try_set_psdata_sub_bool",
    "try_set_psdata_sub_hashtable_array",
    "try_set_psdata_sub_string",
    "try_set_psdata_sub_string_array",
    "try_set_required_modules",
    "try_set_top_level_module_version",
    "try_set_top_level_string",
    "try_set_top_level_string_array",
    "try_upsert_required_module",
]
