"""
Unit tests for CLI configuration management.
"""

import json
import os

import pytest
import yaml

from cli.config import ConfigurationManager


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep user config files and LAYERED_* variables out of the tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("cli.config.CONFIG_SEARCH_PATHS", [tmp_path / ".layered.yml"])
    for key in list(os.environ):
        if key.startswith("LAYERED_"):
            monkeypatch.delenv(key)


class TestConfigurationManager:

    def test_defaults(self):
        manager = ConfigurationManager()
        assert manager.get('cli.output_format') == 'table'
        assert manager.get('registry.strict_fragments') is False
        assert manager.get('registry.missing', 'fallback') == 'fallback'
        assert manager.get_sources() == ['defaults']
        assert manager.validate() == []

    def test_storage_dir_expanded(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        manager = ConfigurationManager()
        assert manager.get('registry.storage_dir') == str(tmp_path / ".layered" / "registry")

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text(yaml.safe_dump({'registry': {'admin': 'alice', 'strict_fragments': True}}))

        manager = ConfigurationManager(config_file=str(path))
        assert manager.get('registry.admin') == 'alice'
        assert manager.get('registry.strict_fragments') is True
        assert manager.get('registry.backup_count') == 5
        assert manager.get_sources() == ['defaults', f'file:{path}']

    def test_json_file(self, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({'cli': {'output_format': 'json'}}))
        assert ConfigurationManager(config_file=str(path)).get('cli.output_format') == 'json'

    def test_search_path(self, tmp_path):
        (tmp_path / ".layered.yml").write_text("registry:\n  admin: bob\n")
        assert ConfigurationManager().get('registry.admin') == 'bob'

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigurationManager(config_file=str(tmp_path / "nope.yml")).load()

    def test_profile(self):
        manager = ConfigurationManager(profile='production')
        assert manager.get('registry.strict_fragments') is True
        assert manager.get('registry.backup_count') == 20

    def test_unknown_profile(self):
        with pytest.raises(ValueError):
            ConfigurationManager(profile='staging').load()

    def test_environment_overrides_file(self, monkeypatch, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text("registry:\n  admin: alice\n")
        monkeypatch.setenv("LAYERED_REGISTRY_ADMIN", "carol")
        monkeypatch.setenv("LAYERED_REGISTRY_BACKUP_COUNT", "0")
        monkeypatch.setenv("LAYERED_REGISTRY_STRICT_FRAGMENTS", "yes")

        manager = ConfigurationManager(config_file=str(path))
        assert manager.get('registry.admin') == 'carol'
        assert manager.get('registry.backup_count') == 0
        assert manager.get('registry.strict_fragments') is True
        assert manager.get_sources()[-1] == 'environment'

    def test_validate_reports_errors(self):
        manager = ConfigurationManager()
        manager.set('cli.output_format', 'xml')
        manager.set('registry.backup_count', -1)
        manager.set('registry.admin', '')

        errors = manager.validate()
        assert "Invalid output format: xml" in errors
        assert "registry.backup_count must be a non-negative integer" in errors
        assert "registry.admin must be a non-empty string" in errors

    def test_save_yaml(self, tmp_path):
        manager = ConfigurationManager()
        manager.set('registry.admin', 'dave')
        target = tmp_path / "out" / "config.yml"
        manager.save(str(target))

        assert yaml.safe_load(target.read_text())['registry']['admin'] == 'dave'
