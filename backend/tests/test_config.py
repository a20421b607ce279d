"""Tests for settings loading.

Covers:
* Defaults when no settings file exists
* YAML loading, partial sections, env-var override of the file path
* Log level validation
* get_config / set_config caching
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from roomchat.config import (
    AppSettings,
    LoggingSettings,
    SETTINGS_ENV_VAR,
    get_config,
    load_settings,
    set_config,
)


@pytest.fixture(autouse=True)
def _reset_config():
    yield
    set_config(None)


class TestDefaults:
    def test_missing_file_gives_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "nope.yaml")

        assert settings.server.host == "0.0.0.0"
        assert settings.server.port == 3000
        assert settings.server.allowed_origins == ["*"]
        assert settings.storage.db_path == "chat.duckdb"
        assert settings.uploads.public_prefix == "/uploads"
        assert settings.uploads.max_file_size_bytes == 20 * 1024 * 1024
        assert settings.logging.level == "info"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "roomchat.settings.yaml"
        path.write_text("")

        assert load_settings(path) == AppSettings()


class TestYamlLoading:
    def test_full_file(self, tmp_path):
        path = tmp_path / "roomchat.settings.yaml"
        path.write_text(
            "server:\n"
            "  host: 127.0.0.1\n"
            "  port: 8080\n"
            "  allowed_origins: ['http://localhost:5173']\n"
            "storage:\n"
            "  db_path: /var/lib/roomchat/chat.duckdb\n"
            "uploads:\n"
            "  upload_dir: /var/lib/roomchat/uploads\n"
            "  max_file_size_bytes: 1024\n"
            "logging:\n"
            "  level: DEBUG\n"
        )

        settings = load_settings(path)
        assert settings.server.host == "127.0.0.1"
        assert settings.server.port == 8080
        assert settings.server.allowed_origins == ["http://localhost:5173"]
        assert settings.storage.db_path == "/var/lib/roomchat/chat.duckdb"
        assert settings.uploads.upload_dir == "/var/lib/roomchat/uploads"
        assert settings.uploads.max_file_size_bytes == 1024
        assert settings.logging.level == "debug"

    def test_partial_section_keeps_other_defaults(self, tmp_path):
        path = tmp_path / "roomchat.settings.yaml"
        path.write_text("server:\n  port: 4000\n")

        settings = load_settings(path)
        assert settings.server.port == 4000
        assert settings.server.host == "0.0.0.0"
        assert settings.storage.db_path == "chat.duckdb"

    def test_env_var_points_at_settings_file(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("storage:\n  db_path: ':memory:'\n")
        monkeypatch.setenv(SETTINGS_ENV_VAR, str(path))

        assert load_settings().storage.db_path == ":memory:"

    def test_string_port_is_coerced(self, tmp_path):
        path = tmp_path / "roomchat.settings.yaml"
        path.write_text("server:\n  port: '3001'\n")

        assert load_settings(path).server.port == 3001


class TestLoggingSettings:
    @pytest.mark.parametrize("level", ["debug", "info", "warning", "error", "critical"])
    def test_known_levels(self, level):
        assert LoggingSettings(level=level).level == level

    def test_level_is_normalised(self):
        assert LoggingSettings(level="  Warning ").level == "warning"

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError):
            LoggingSettings(level="verbose")

    def test_unknown_level_in_file_rejected(self, tmp_path):
        path = tmp_path / "roomchat.settings.yaml"
        path.write_text("logging:\n  level: loud\n")

        with pytest.raises(ValidationError):
            load_settings(path)


class TestProcessConfig:
    def test_get_config_is_cached(self, tmp_path, monkeypatch):
        monkeypatch.setenv(SETTINGS_ENV_VAR, str(tmp_path / "missing.yaml"))
        set_config(None)

        assert get_config() is get_config()

    def test_set_config_overrides(self):
        custom = AppSettings(storage={"db_path": ":memory:"})
        set_config(custom)

        assert get_config() is custom
        assert get_config().storage.db_path == ":memory:"
