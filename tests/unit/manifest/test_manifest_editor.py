"""Tests for in-place manifest edits."""
from __future__ import annotations

import pytest

from helpers.manifests import write_manifest
from modforge.core.exports import ExportSet
from modforge.core.manifest import (
    EditOutcome,
    ManifestEditor,
    RequiredModule,
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


def test_set_twice_returns_true_then_false_and_touches_only_the_value(tmp_path) -> None:
    path = write_manifest(tmp_path)
    before = path.read_bytes()

    assert try_set_top_level_module_version(path, "2.0.0") is True
    after_first = path.read_bytes()
    assert try_set_top_level_module_version(path, "2.0.0") is False

    assert after_first == before.replace(b"'1.0.0'", b"'2.0.0'", 1)
    assert path.read_bytes() == after_first


def test_bom_and_crlf_are_preserved(tmp_path) -> None:
    path = write_manifest(tmp_path, bom=True, crlf=True)

    try_set_top_level_string(path, "RootModule", "Other.psm1")

    data = path.read_bytes()
    assert data.startswith(b"\xef\xbb\xbf")
    assert b"\r\n" in data and b"\n" not in data.replace(b"\r\n", b"")


def test_file_without_bom_stays_without_bom(tmp_path) -> None:
    path = write_manifest(tmp_path, bom=False, crlf=False)

    try_set_top_level_string(path, "RootModule", "Other.psm1")

    assert not path.read_bytes().startswith(b"\xef\xbb\xbf")


def test_missing_file_returns_false(tmp_path) -> None:
    assert try_set_top_level_string(tmp_path / "nope.psd1", "RootModule", "x") is False
    assert ManifestEditor(tmp_path / "nope.psd1").set_module_version("1.0.0") is EditOutcome.FILE_NOT_FOUND


def test_missing_key_is_never_created(tmp_path) -> None:
    path = write_manifest(tmp_path)
    before = path.read_bytes()

    assert try_set_top_level_string(path, "HelpInfoURI", "https://example.invalid") is False
    assert try_set_psdata_sub_string(path, "Repository", "Branch", "dev") is False
    assert ManifestEditor(path).set_psdata_string("LicenseUri", "x") is EditOutcome.KEY_NOT_FOUND
    assert path.read_bytes() == before


def test_parse_error_returns_false_without_writing(tmp_path) -> None:
    path = tmp_path / "Broken.psd1"
    path.write_text("@{ ModuleVersion = '1.0.0' ", encoding="utf-8")

    assert try_set_top_level_module_version(path, "2.0.0") is False
    assert ManifestEditor(path).set_module_version("2.0.0") is EditOutcome.PARSE_ERROR
    assert path.read_text(encoding="utf-8") == "@{ ModuleVersion = '1.0.0' "


def test_strings_are_single_quoted_with_escaping(tmp_path) -> None:
    path = write_manifest(tmp_path, bom=False, crlf=False)

    assert try_set_top_level_string(path, "Author", "Dan O'Brien")

    assert "Author            = 'Dan O''Brien'" in path.read_text(encoding="utf-8")
    assert try_get_top_level_string(path, "Author") == "Dan O'Brien"


def test_string_array_replaces_bare_comma_list(tmp_path) -> None:
    path = write_manifest(tmp_path, bom=False, crlf=False)

    assert try_set_top_level_string_array(path, "CmdletsToExport", ["Get-New"])

    text = path.read_text(encoding="utf-8")
    assert "CmdletsToExport   = @('Get-New')\n" in text
    assert try_get_top_level_string_array(path, "CmdletsToExport") == ["Get-New"]


def test_here_string_value_is_replaced_whole(tmp_path) -> None:
    path = write_manifest(tmp_path, bom=False, crlf=False)

    assert try_set_top_level_string(path, "Description", "Short")

    text = path.read_text(encoding="utf-8")
    assert "Description       = 'Short'\n    FunctionsToExport" in text
    assert "Line one" not in text


def test_psdata_setters(tmp_path) -> None:
    path = write_manifest(tmp_path, bom=False, crlf=False)

    assert try_set_psdata_string(path, "ProjectUri", "https://example.invalid/new")
    assert try_set_psdata_string_array(path, "Tags", ["A", "B"])
    assert try_set_psdata_bool(path, "RequireLicenseAcceptance", True)

    text = path.read_text(encoding="utf-8")
    assert "ProjectUri               = 'https://example.invalid/new'" in text
    assert "Tags                     = @('A', 'B')" in text
    assert "RequireLicenseAcceptance = $true" in text
    assert try_get_psdata_string(path, "ProjectUri") == "https://example.invalid/new"


def test_psdata_sub_setters(tmp_path) -> None:
    path = write_manifest(tmp_path, bom=False, crlf=False)

    assert try_set_psdata_sub_string(path, "Delivery", "Branch", "release")
    assert try_set_psdata_sub_string_array(path, "Delivery", "Paths", ["Docs", "Examples"])
    assert try_set_psdata_sub_bool(path, "delivery", "enable", True)
    assert try_set_psdata_sub_hashtable_array(
        path,
        "Delivery",
        "ImportantLinks",
        [{"Name": "Docs", "Link": "https://example.invalid/docs"}, {"Name": "Issues", "Link": "https://example.invalid/i"}],
    )

    text = path.read_text(encoding="utf-8")
    assert "Branch         = 'release'" in text
    assert "Paths          = @('Docs', 'Examples')" in text
    assert "Enable         = $true" in text
    assert (
        "ImportantLinks = @(@{ Name = 'Docs'; Link = 'https://example.invalid/docs' }, "
        "@{ Name = 'Issues'; Link = 'https://example.invalid/i' })"
    ) in text


def test_required_modules_rendered_multiline(tmp_path) -> None:
    path = write_manifest(tmp_path, bom=False, crlf=False)
    records = [
        RequiredModule("PSSharedGoods"),
        RequiredModule("PSWriteColor", module_version="2.0.0", guid="0b0ba5c5-ec85-4c2b-a718-874e55a8bc3f"),
    ]

    assert try_set_required_modules(path, records)

    expected = (
        "RequiredModules   = @('PSSharedGoods', @{\n"
        f"            {'Guid':<15} = '0b0ba5c5-ec85-4c2b-a718-874e55a8bc3f'\n"
        f"            {'ModuleName':<15} = 'PSWriteColor'\n"
        f"            {'ModuleVersion':<15} = '2.0.0'\n"
        "        })\n"
    )
    assert expected in path.read_text(encoding="utf-8")
    assert try_set_required_modules(path, records) is False


def test_required_modules_read_back(tmp_path) -> None:
    path = write_manifest(tmp_path)

    modules = try_get_required_modules(path)

    assert modules == [
        RequiredModule("PSSharedGoods"),
        RequiredModule("PSWriteColor", module_version="1.0.1"),
    ]


def test_empty_required_modules_renders_empty_array(tmp_path) -> None:
    path = write_manifest(tmp_path, bom=False, crlf=False)

    assert try_set_required_modules(path, [RequiredModule("  ")])

    assert "RequiredModules   = @()\n" in path.read_text(encoding="utf-8")


def test_set_exports_writes_all_three_lists(tmp_path) -> None:
    path = write_manifest(tmp_path, bom=False, crlf=False)
    exports = ExportSet(functions=["Get-B", "get-a"], cmdlets=["Invoke-X"], aliases=[])

    assert try_set_exports(path, exports)

    text = path.read_text(encoding="utf-8")
    assert "FunctionsToExport = @('get-a', 'Get-B')" in text
    assert "CmdletsToExport   = @('Invoke-X')" in text
    assert "AliasesToExport   = @()" in text
    assert try_set_exports(path, exports) is False


@pytest.mark.parametrize("bom", [True, False])
def test_comments_survive_edits(tmp_path, bom: bool) -> None:
    path = write_manifest(tmp_path, bom=bom, crlf=False)

    try_set_top_level_module_version(path, "3.1.4")

    text = path.read_text(encoding="utf-8-sig")
    assert "'3.1.4'   # bumped by the build" in text
    assert "<# block\n       comment #>" in text


SPARSE_MANIFEST = """\
@{
    ModuleVersion   = '0.1.0'
    RequiredModules = @(
        'PSSharedGoods',
        @{ ModuleName = 'PSWriteColor' },
        @{ ModuleName = 'Pester'; RequiredVersion = '5.5.0' },
        @{ Guid = '0b0ba5c5-ec85-4c2b-a718-874e55a8bc3f' },
        @{ ModuleName = 'pswritecolor' }
    )
}
"""

BARE_MANIFEST = """\
@{
    ModuleVersion = '0.1.0'
}
"""


class TestRequiredModuleEdits:
    """Single-entry edits of RequiredModules."""

    def test_upsert_replaces_entry_by_name(self, tmp_path) -> None:
        path = write_manifest(tmp_path)
        updated = RequiredModule("pswritecolor", module_version="2.0.0")

        assert try_upsert_required_module(path, updated)

        assert try_get_required_modules(path) == [RequiredModule("PSSharedGoods"), updated]
        assert try_upsert_required_module(path, updated) is False

    def test_upsert_appends_new_entry(self, tmp_path) -> None:
        path = write_manifest(tmp_path)

        assert try_upsert_required_module(path, RequiredModule("Pester", required_version="5.5.0"))

        assert [m.module_name for m in try_get_required_modules(path)] == ["PSSharedGoods", "PSWriteColor", "Pester"]

    def test_remove_by_name_case_insensitively(self, tmp_path) -> None:
        path = write_manifest(tmp_path)

        assert try_remove_required_module(path, "pssharedgoods")

        assert try_get_required_modules(path) == [RequiredModule("PSWriteColor", module_version="1.0.1")]

    def test_remove_absent_name_is_unchanged(self, tmp_path) -> None:
        path = write_manifest(tmp_path)
        before = path.read_bytes()

        assert ManifestEditor(path).remove_required_module("Missing") is EditOutcome.UNCHANGED
        assert path.read_bytes() == before

    def test_missing_key_is_not_created(self, tmp_path) -> None:
        path = write_manifest(tmp_path, text=BARE_MANIFEST)
        before = path.read_bytes()
        editor = ManifestEditor(path)

        assert editor.upsert_required_module(RequiredModule("Pester")) is EditOutcome.KEY_NOT_FOUND
        assert editor.remove_required_module("Pester") is EditOutcome.KEY_NOT_FOUND
        assert path.read_bytes() == before

    def test_missing_file(self, tmp_path) -> None:
        editor = ManifestEditor(tmp_path / "Nope.psd1")

        assert editor.upsert_required_module(RequiredModule("Pester")) is EditOutcome.FILE_NOT_FOUND
        assert try_remove_required_module(tmp_path / "Nope.psd1", "Pester") is False


class TestInvalidRequiredModuleSpecs:
    def test_hashtables_without_version_are_reported_once(self, tmp_path) -> None:
        path = write_manifest(tmp_path, text=SPARSE_MANIFEST)

        assert try_get_invalid_required_module_specs(path) == ["PSWriteColor", "<unknown>"]

    def test_valid_entries_give_empty_list(self, tmp_path) -> None:
        path = write_manifest(tmp_path)

        assert try_get_invalid_required_module_specs(path) == []

    def test_absent_key_gives_none(self, tmp_path) -> None:
        path = write_manifest(tmp_path, text=BARE_MANIFEST)

        assert try_get_invalid_required_module_specs(path) is None


class TestTopLevelStringArrayItems:
    """Adding and removing single items of a top-level string array."""

    def test_add_missing_item(self, tmp_path) -> None:
        path = write_manifest(tmp_path, bom=False, crlf=False)

        assert try_add_to_top_level_string_array(path, "CmdletsToExport", "Invoke-New")

        assert try_get_top_level_string_array(path, "CmdletsToExport") == ["Get-Old", "Set-Old", "Invoke-New"]
        assert "CmdletsToExport   = @('Get-Old', 'Set-Old', 'Invoke-New')" in path.read_text(encoding="utf-8")

    def test_add_present_item_ignores_case(self, tmp_path) -> None:
        path = write_manifest(tmp_path)

        assert ManifestEditor(path).add_to_top_level_string_array("CmdletsToExport", "get-old") is EditOutcome.UNCHANGED

    def test_add_to_empty_array(self, tmp_path) -> None:
        path = write_manifest(tmp_path)

        assert try_add_to_top_level_string_array(path, "FunctionsToExport", "Get-Thing")

        assert try_get_top_level_string_array(path, "FunctionsToExport") == ["Get-Thing"]

    def test_remove_item_ignores_case(self, tmp_path) -> None:
        path = write_manifest(tmp_path)

        assert try_remove_from_top_level_string_array(path, "CmdletsToExport", "SET-OLD")

        assert try_get_top_level_string_array(path, "CmdletsToExport") == ["Get-Old"]
        assert try_remove_from_top_level_string_array(path, "CmdletsToExport", "Set-Old") is False

    def test_missing_key_is_not_created(self, tmp_path) -> None:
        path = write_manifest(tmp_path, text=BARE_MANIFEST)
        before = path.read_bytes()
        editor = ManifestEditor(path)

        assert editor.add_to_top_level_string_array("ScriptsToProcess", "init.ps1") is EditOutcome.KEY_NOT_FOUND
        assert editor.remove_from_top_level_string_array("ScriptsToProcess", "init.ps1") is EditOutcome.KEY_NOT_FOUND
        assert path.read_bytes() == before
