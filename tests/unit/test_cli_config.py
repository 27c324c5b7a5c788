"""Tests for loading and saving the CLI config file."""

import pytest

from cf_cli.config import Config, Context, get_config_path, load_config, save_config
from cf_cli.helpers.error_handler import CLIError, UserInputError


class TestConfigFile:
    """Test config file handling."""

    def test_missing_file_is_empty_config(self, tmp_path):
        """Test a missing config file is an empty config."""
        config = load_config(tmp_path / "missing.yaml")
        assert config.contexts == {}

    def test_round_trip(self, tmp_path):
        """Test saving then loading a config."""
        path = tmp_path / "nested" / "config.yaml"
        config = Config("prod", {"prod": Context(api_url="https://cf.example.com")})

        save_config(config, path)

        assert load_config(path) == config

    def test_invalid_yaml(self, tmp_path):
        """Test invalid YAML syntax."""
        path = tmp_path / "config.yaml"
        path.write_text("contexts: [unclosed")
        with pytest.raises(CLIError, match="Invalid YAML syntax"):
            load_config(path)

    def test_unknown_context_fields_are_ignored(self, tmp_path):
        """Test unknown context fields are ignored."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "current_context: default\n"
            "contexts:\n"
            "  default:\n"
            "    api_url: https://cf.example.com\n"
            "    legacy_field: x\n"
        )
        assert load_config(path).current().api_url == "https://cf.example.com"

    def test_env_override(self, tmp_path, monkeypatch):
        """Test CF_CONFIG_FILE overrides the config path."""
        monkeypatch.setenv("CF_CONFIG_FILE", str(tmp_path / "cf.yaml"))
        assert get_config_path() == tmp_path / "cf.yaml"


class TestConfig:
    """Test Config behaviour."""

    def test_current_without_contexts(self):
        """Test current() with no contexts."""
        with pytest.raises(CLIError, match="No contexts were found"):
            Config().current()

    def test_current_missing_context(self):
        """Test current() with a missing context."""
        with pytest.raises(CLIError, match="Could not find context 'dev'"):
            Config("dev", {"prod": Context()}).current()

    def test_set_known_key(self):
        """Test setting a known key."""
        config = Config("default", {"default": Context()})
        config.set("dashboard_url", "https://dash.example.com")
        assert config.current().dashboard_url == "https://dash.example.com"

    def test_set_unknown_key(self):
        """Test setting an unknown key."""
        config = Config("default", {"default": Context()})
        with pytest.raises(UserInputError, match="supported keys: api_url, dashboard_url"):
            config.set("client_id", "x")
