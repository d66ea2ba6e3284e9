"""Tests for configuration loading, validation and domain accessors."""
from __future__ import annotations

import pytest

from modforge.core.config import load_config, load_defaults, validate_config
from modforge.core.config.domains import FormattingConfig, InstallerConfig, NormalizationConfig
from modforge.core.exceptions import ConfigError


def test_defaults_are_valid() -> None:
    config = load_defaults()

    validate_config(config)
    assert config["installer"]["keep_versions"] == 3
    assert config["normalization"]["line_ending"] == "crlf"


def test_load_defaults_returns_a_copy() -> None:
    first = load_defaults()
    first["installer"]["keep_versions"] = 99

    assert load_defaults()["installer"]["keep_versions"] == 3


def test_file_overlays_defaults(tmp_path) -> None:
    path = tmp_path / "modforge.yaml"
    path.write_text("installer:\n  strategy: auto_revision\n  roots: [/opt/modules]\n", encoding="utf-8")

    config = load_config(path)

    assert config["installer"]["strategy"] == "auto_revision"
    assert config["installer"]["keep_versions"] == 3
    assert config["formatting"]["timeout_seconds"] == 120


def test_overrides_win_over_file(tmp_path) -> None:
    path = tmp_path / "modforge.yaml"
    path.write_text("formatting:\n  timeout_seconds: 30\n", encoding="utf-8")

    config = load_config(path, overrides={"formatting": {"timeout_seconds": 5}})

    assert config["formatting"]["timeout_seconds"] == 5


def test_empty_file_means_defaults(tmp_path) -> None:
    path = tmp_path / "modforge.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path) == load_defaults()


@pytest.mark.parametrize(
    "text",
    [
        "installer:\n  keep_versions: 0\n",
        "installer:\n  strategy: newest\n",
        "normalization:\n  line_ending: cr\n",
        "unknown_section: {}\n",
    ],
)
def test_invalid_values_raise_config_error(tmp_path, text: str) -> None:
    path = tmp_path / "modforge.yaml"
    path.write_text(text, encoding="utf-8")

    with pytest.raises(ConfigError) as excinfo:
        load_config(path)
    assert excinfo.value.context["errors"]


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "absent.yaml")


def test_non_mapping_root_raises(tmp_path) -> None:
    path = tmp_path / "modforge.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(path)


def test_malformed_yaml_raises(tmp_path) -> None:
    path = tmp_path / "modforge.yaml"
    path.write_text("installer: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Failed to read"):
        load_config(path)


def test_error_payload_is_json_friendly() -> None:
    with pytest.raises(ConfigError) as excinfo:
        validate_config({"installer": {"keep_versions": "three"}})

    payload = excinfo.value.to_json_error()
    assert payload["code"] == "ConfigError"
    assert "installer.keep_versions" in payload["message"]


class TestDomainConfigs:
    """Typed accessors over config sections."""

    def test_defaults_when_no_config_given(self) -> None:
        assert InstallerConfig().strategy == "exact"
        assert FormattingConfig().command is None
        assert NormalizationConfig().encoding == "utf8bom"

    def test_installer_values(self, tmp_path) -> None:
        cfg = InstallerConfig(
            {"installer": {"roots": ["~/mods"], "manifest_extension": ".psd1", "preserve_versions": [1.0]}}
        )

        assert cfg.roots[0].name == "mods"
        assert "~" not in str(cfg.roots[0])
        assert cfg.manifest_extension == "psd1"
        assert cfg.preserve_versions == ["1.0"]

    def test_formatting_command_forms(self) -> None:
        assert FormattingConfig({"formatting": {"command": ["pwsh", "-File", "{script}"]}}).command == [
            "pwsh",
            "-File",
            "{script}",
        ]
        assert FormattingConfig({"formatting": {"command": "pwsh -File '{script}'"}}).command == [
            "pwsh",
            "-File",
            "{script}",
        ]

    def test_missing_section_uses_accessor_defaults(self) -> None:
        cfg = NormalizationConfig({})

        assert cfg.section == {}
        assert cfg.line_ending == "crlf"
        assert cfg.rollback_on_mismatch is True
