"""Tests for DoiFixConfig."""

from __future__ import annotations

import dataclasses

import pytest

from doi_fix import DoiFixConfig, __version__


class TestDoiFixConfig:
    def test_defaults(self):
        config = DoiFixConfig()
        assert config.version == __version__
        assert config.rows == 5
        assert config.crossref_api == "https://api.crossref.org/works"
        assert config.user_agent == f"Zotero DOI Manager/{__version__}"

    def test_frozen(self):
        config = DoiFixConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.version = "9.9"

    def test_from_dict_ignores_unknown_keys(self):
        config = DoiFixConfig.from_dict({"version": "2.0", "root-uri": "file:///plugin/", "colour": "blue"})
        assert config.version == "2.0"
        assert config.root_uri == "file:///plugin/"

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "doi-fix.yaml"
        path.write_text("version: '1.5'\ntimeout: 5\nlibrary_id: '123'\ndry_run: true\n", encoding="utf-8")

        config = DoiFixConfig.from_yaml(str(path))

        assert config.version == "1.5"
        assert config.timeout == 5
        assert config.library_id == "123"
        assert config.dry_run is True

    def test_from_yaml_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            DoiFixConfig.from_yaml(str(path))

    def test_from_env_fills_blanks_only(self, monkeypatch):
        monkeypatch.setenv("ZOTERO_LIBRARY_ID", "env-id")
        monkeypatch.setenv("ZOTERO_API_KEY", "env-key")

        config = DoiFixConfig.from_env(DoiFixConfig(library_id="file-id"))

        assert config.library_id == "file-id"
        assert config.api_key == "env-key"

    def test_with_overrides_skips_none(self):
        config = DoiFixConfig(library_type="group").with_overrides(library_type=None, dry_run=True)
        assert config.library_type == "group"
        assert config.dry_run is True
