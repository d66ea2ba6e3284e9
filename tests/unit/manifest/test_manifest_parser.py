"""Tests for the span-tagged PSD1 parser."""
from __future__ import annotations

import pytest

from helpers.manifests import SAMPLE_MANIFEST
from modforge.core.exceptions import ManifestParseError
from modforge.core.manifest import ArrayNode, HashtableNode, ScalarNode, node_to_python, parse_manifest


def test_parses_sample_manifest_values() -> None:
    data = node_to_python(parse_manifest(SAMPLE_MANIFEST))

    assert data["ModuleVersion"] == "1.0.0"
    assert data["Author"] == "Jane O'Neil"
    assert data["Description"] == "Line one\nLine two"
    assert data["FunctionsToExport"] == []
    assert data["CmdletsToExport"] == ["Get-Old", "Set-Old"]
    assert data["PrivateData"]["PSData"]["RequireLicenseAcceptance"] is False
    assert data["PrivateData"]["PSData"]["Delivery"]["ImportantLinks"] == [
        {"Name": "Home", "Link": "https://example.invalid"}
    ]


def test_value_spans_cover_exact_source_text() -> None:
    root = parse_manifest(SAMPLE_MANIFEST)

    version = root.get("moduleversion")
    assert isinstance(version, ScalarNode)
    assert SAMPLE_MANIFEST[version.start:version.end] == "'1.0.0'"

    cmdlets = root.get("CmdletsToExport")
    assert isinstance(cmdlets, ArrayNode)
    assert SAMPLE_MANIFEST[cmdlets.start:cmdlets.end] == "'Get-Old', 'Set-Old'"

    psdata = root.get("PrivateData").get("PSData")
    assert isinstance(psdata, HashtableNode)
    assert SAMPLE_MANIFEST[psdata.start:psdata.start + 2] == "@{"
    assert SAMPLE_MANIFEST[psdata.end - 1] == "}"


def test_keys_match_case_insensitively() -> None:
    root = parse_manifest("@{ rootmodule = 'a.psm1' }")
    assert root.get("RootModule").value == "a.psm1"


def test_semicolon_separated_entries_and_casts() -> None:
    root = parse_manifest("@{ A = [version]'1.2'; B = 42; C = $true; D = Bare.Word }")
    data = node_to_python(root)

    assert data == {"A": "1.2", "B": "42", "C": True, "D": "Bare.Word"}
    assert root.get("A").cast == "version"


def test_double_quoted_escapes() -> None:
    root = parse_manifest('@{ A = "tab`there ""q""" }')
    assert root.get("A").value == 'tab\there "q"'


@pytest.mark.parametrize(
    "text",
    [
        "",
        "@{ A = 'unterminated }",
        "@{ A = 'x' B = 'y' }",
        "@{ A = }",
        "@{ A = 'x' } trailing",
        "@{ <# open comment }",
    ],
)
def test_malformed_input_raises(text: str) -> None:
    with pytest.raises(ManifestParseError):
        parse_manifest(text)
