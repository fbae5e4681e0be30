"""Test suite for config management functionality.

This test suite validates:
- Config path resolution (default location and KSECRET_CONFIG_FILE)
- Config loader validation
- Cache path resolution
- init command round trip
"""
import json
import os
from pathlib import Path

import pytest
import yaml

from ksecret.secrets.domains import config_loader
from ksecret.secrets.domains.config_loader import ConfigError


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)
    for var in ("KSECRET_CONFIG_FILE", "KSECRET_CACHE_FILE", "KSECRET_GCP_PROJECT", "GOOGLE_APPLICATION_CREDENTIALS"):
        monkeypatch.delenv(var, raising=False)
    return fake_home


@pytest.fixture
def temp_config_dir(temp_home):
    """Fixture to create temporary config directory."""
    config_dir = temp_home / ".config" / "ksecret"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


@pytest.fixture
def write_config(temp_config_dir):
    """Fixture returning a helper that writes a config document to the default location."""
    def _write(content):
        config_file = temp_config_dir / "config.yml"
        with open(config_file, 'w') as f:
            yaml.dump(content, f)
        return config_file
    return _write


class TestConfigPaths:
    """Test suite for path resolution."""

    def test_default_config_path(self, temp_home):
        assert config_loader.get_config_path() == temp_home / ".config" / "ksecret" / "config.yml"

    def test_config_path_env_override(self, temp_home, tmp_path, monkeypatch):
        custom = tmp_path / "custom.yml"
        monkeypatch.setenv("KSECRET_CONFIG_FILE", str(custom))
        assert config_loader.get_config_path() == custom

    def test_default_cache_path(self, temp_home):
        assert config_loader.get_cache_path({}) == temp_home / ".config" / "ksecret" / "cache.json"

    def test_cache_path_from_config(self, temp_home, tmp_path):
        config = {"cache": {"path": str(tmp_path / "c.json")}}
        assert config_loader.get_cache_path(config) == tmp_path / "c.json"

    def test_cache_path_env_override_wins(self, temp_home, tmp_path, monkeypatch):
        monkeypatch.setenv("KSECRET_CACHE_FILE", str(tmp_path / "env.json"))
        config = {"cache": {"path": str(tmp_path / "c.json")}}
        assert config_loader.get_cache_path(config) == tmp_path / "env.json"

    def test_cache_ttl(self):
        assert config_loader.get_cache_ttl({}) == 300
        assert config_loader.get_cache_ttl({"cache": {"ttl_seconds": 60}}) == 60


class TestConfigLoader:
    """Test suite for load_config."""

    def test_missing_config_without_override(self, temp_home):
        with pytest.raises(ConfigError) as exc_info:
            config_loader.load_config()
        assert "ksecret init" in str(exc_info.value)

    def test_missing_config_with_override(self, temp_home):
        config = config_loader.load_config("override-project")
        assert config["gcp"]["project_id"] == "override-project"
        assert config["secret_prefix"] == "k8s"

    def test_missing_config_with_env_project(self, temp_home, monkeypatch):
        monkeypatch.setenv("KSECRET_GCP_PROJECT", "env-project")
        assert config_loader.load_config()["gcp"]["project_id"] == "env-project"

    def test_load_config_success(self, temp_home, write_config):
        write_config({"gcp": {"project_id": "test-project"}, "secret_prefix": "app"})

        config = config_loader.load_config()

        assert config["gcp"]["project_id"] == "test-project"
        assert config["secret_prefix"] == "app"

    def test_prefix_defaults(self, temp_home, write_config):
        write_config({"gcp": {"project_id": "test-project"}})
        assert config_loader.load_config()["secret_prefix"] == "k8s"

    def test_override_beats_config_file(self, temp_home, write_config):
        write_config({"gcp": {"project_id": "file-project"}})
        assert config_loader.load_config("flag-project")["gcp"]["project_id"] == "flag-project"

    def test_load_config_validates_missing_gcp_section(self, temp_home, write_config):
        write_config({"secret_prefix": "k8s"})

        with pytest.raises(ConfigError) as exc_info:
            config_loader.load_config()

        assert "gcp" in str(exc_info.value)

    def test_load_config_validates_missing_project_id(self, temp_home, write_config):
        write_config({"gcp": {}})

        with pytest.raises(ConfigError) as exc_info:
            config_loader.load_config()

        assert "project_id" in str(exc_info.value)

    def test_service_account_exports_credentials(self, temp_home, write_config, tmp_path, monkeypatch):
        # Registered with monkeypatch so the exported value is undone afterwards
        monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", "placeholder")
        sa_file = tmp_path / "sa.json"
        sa_file.write_text(json.dumps({"type": "service_account"}))
        write_config({
            "gcp": {"project_id": "test-project"},
            "authentication": {"type": "service_account", "service_account_path": str(sa_file)},
        })

        config_loader.load_config()

        assert os.environ["GOOGLE_APPLICATION_CREDENTIALS"] == str(sa_file)

    def test_load_config_validates_service_account_file_exists(self, temp_home, write_config):
        write_config({
            "gcp": {"project_id": "test-project"},
            "authentication": {"type": "service_account", "service_account_path": "/nonexistent/sa.json"},
        })

        with pytest.raises(ConfigError) as exc_info:
            config_loader.load_config()

        assert "Service account file not found" in str(exc_info.value)


class TestEdgeCases:
    """Test edge cases and error handling."""

    def test_empty_config_file(self, temp_home, temp_config_dir):
        """Test handling of empty config file."""
        (temp_config_dir / "config.yml").write_text("")

        with pytest.raises(ConfigError) as exc_info:
            config_loader.load_config()

        assert "empty" in str(exc_info.value).lower()

    def test_invalid_yaml_config(self, temp_home, temp_config_dir):
        """Test handling of invalid YAML."""
        (temp_config_dir / "config.yml").write_text("invalid: yaml: content: [")

        with pytest.raises(ConfigError) as exc_info:
            config_loader.load_config()

        assert "parse" in str(exc_info.value).lower() or "YAML" in str(exc_info.value)

    def test_non_mapping_config(self, temp_home, temp_config_dir):
        (temp_config_dir / "config.yml").write_text("- just\n- a list\n")

        with pytest.raises(ConfigError):
            config_loader.load_config()

    def test_unsupported_auth_type(self, temp_home, write_config, tmp_path):
        """Test handling of unsupported authentication type."""
        sa_file = tmp_path / "sa.json"
        sa_file.write_text(json.dumps({"type": "service_account"}))
        write_config({
            "gcp": {"project_id": "test-project"},
            "authentication": {"type": "oauth2", "service_account_path": str(sa_file)},
        })

        with pytest.raises(ConfigError) as exc_info:
            config_loader.load_config()

        assert "Unsupported authentication type" in str(exc_info.value)


class TestCacheSettings:
    """Validation of the optional cache section."""

    def test_quoted_ttl_is_coerced_to_number(self, temp_home, write_config):
        write_config({"gcp": {"project_id": "test-project"}, "cache": {"ttl_seconds": "300"}})

        config = config_loader.load_config()

        assert config_loader.get_cache_ttl(config) == 300.0
        assert isinstance(config_loader.get_cache_ttl(config), float)

    def test_quoted_ttl_works_with_cache_store(self, temp_home, write_config, tmp_path):
        from ksecret.secrets.domains.cache_store import CacheStore
        from ksecret.secrets.domains.models import SecretKey

        write_config({"gcp": {"project_id": "test-project"}, "cache": {"ttl_seconds": "300"}})
        config = config_loader.load_config()
        store = CacheStore(tmp_path / "cache.json", ttl_seconds=config_loader.get_cache_ttl(config))
        store.put(SecretKey("dev", "a"), "1")

        assert store.get(SecretKey("dev", "a")).fresh

    @pytest.mark.parametrize("ttl", ["five minutes", 0, -30, True, [300]])
    def test_invalid_ttl_is_config_error(self, temp_home, write_config, ttl):
        write_config({"gcp": {"project_id": "test-project"}, "cache": {"ttl_seconds": ttl}})

        with pytest.raises(ConfigError) as exc_info:
            config_loader.load_config()

        assert "ttl_seconds" in str(exc_info.value)

    def test_non_mapping_cache_section(self, temp_home, write_config):
        write_config({"gcp": {"project_id": "test-project"}, "cache": "fast"})

        with pytest.raises(ConfigError):
            config_loader.load_config()


class TestSaveConfig:
    """Test suite for save_config."""

    def test_save_then_load(self, temp_home):
        path = config_loader.save_config("new-project", "app")

        assert path == temp_home / ".config" / "ksecret" / "config.yml"
        config = config_loader.load_config()
        assert config["gcp"]["project_id"] == "new-project"
        assert config["secret_prefix"] == "app"

    def test_save_respects_env_path(self, temp_home, tmp_path, monkeypatch):
        custom = tmp_path / "nested" / "ksecret.yml"
        monkeypatch.setenv("KSECRET_CONFIG_FILE", str(custom))

        assert config_loader.save_config("p") == custom
        assert custom.exists()
