"""Tests for settings file, environment and CLI override precedence."""

import json
from types import SimpleNamespace

from cli_config import apply_config_overrides
from common.paths import install_root
from constants import Constants, settings_path


def cli_args(**overrides):
    values = {"CONFIG": None, "CATALOG_URL": None, "INSTALL_ROOT": None}
    values.update(overrides)
    return SimpleNamespace(**values)


class TestApplyConfigOverrides:
    """Settings file < environment < command line."""

    def test_yaml_settings_file(self, tmp_path):
        settings = tmp_path / "settings.yml"
        settings.write_text("catalog_url: https://mirror.invalid/c.json\nrequest_timeout: 5\nlog_level: info\n")
        apply_config_overrides(cli_args(CONFIG=str(settings)))
        assert Constants.CATALOG_URL == "https://mirror.invalid/c.json"
        assert Constants.REQUEST_TIMEOUT == 5.0
        assert Constants.DEFAULT_LOG_LEVEL == "INFO"

    def test_json_settings_from_env(self, tmp_path, monkeypatch):
        settings = tmp_path / "settings.json"
        settings.write_text(json.dumps({"install_root": str(tmp_path / "rt")}))
        monkeypatch.setenv(Constants.ENV_CONFIG, str(settings))
        apply_config_overrides()
        assert install_root() == tmp_path / "rt"

    def test_environment_beats_file(self, tmp_path, monkeypatch):
        settings = tmp_path / "settings.yml"
        settings.write_text("catalog_url: https://file.invalid/c.json\n")
        monkeypatch.setenv(Constants.ENV_CATALOG_URL, "https://env.invalid/c.json")
        apply_config_overrides(cli_args(CONFIG=str(settings)))
        assert Constants.CATALOG_URL == "https://env.invalid/c.json"

    def test_cli_beats_environment(self, monkeypatch):
        monkeypatch.setenv(Constants.ENV_INSTALL_ROOT, "/from/env")
        apply_config_overrides(cli_args(INSTALL_ROOT="/from/cli"))
        assert Constants.INSTALL_ROOT == "/from/cli"

    def test_invalid_values_are_ignored(self, tmp_path, monkeypatch, caplog):
        monkeypatch.setenv(Constants.ENV_REQUEST_TIMEOUT, "soon")
        with caplog.at_level("WARNING"):
            apply_config_overrides()
        assert Constants.REQUEST_TIMEOUT == 30
        assert "request_timeout" in caplog.text

    def test_broken_yaml_is_ignored(self, tmp_path, caplog):
        settings = tmp_path / "settings.yml"
        settings.write_text("catalog_url: [unclosed\n")
        original = Constants.CATALOG_URL
        with caplog.at_level("WARNING"):
            apply_config_overrides(cli_args(CONFIG=str(settings)))
        assert Constants.CATALOG_URL == original
        assert "settings file" in caplog.text

    def test_non_mapping_yaml_is_ignored(self, tmp_path):
        settings = tmp_path / "settings.yml"
        settings.write_text("- just\n- a list\n")
        original = Constants.CATALOG_URL
        apply_config_overrides(cli_args(CONFIG=str(settings)))
        assert Constants.CATALOG_URL == original


class TestSettingsPath:
    """Where the settings file is looked up."""

    def test_explicit_wins(self):
        assert settings_path("/x/settings.yml") == "/x/settings.yml"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv(Constants.ENV_CONFIG, "/y/settings.json")
        assert settings_path() == "/y/settings.json"

    def test_default_location(self, tmp_path, monkeypatch):
        monkeypatch.delenv(Constants.ENV_CONFIG)
        monkeypatch.setattr("common.paths.config_dir", lambda: tmp_path)
        assert settings_path() == str(tmp_path / "settings.yml")
        (tmp_path / "settings.json").write_text("{}")
        assert settings_path() == str(tmp_path / "settings.json")
