# tests/unit/config/test_settings.py - v2
"""Tests for config/settings.py - typed Settings and validation rules."""

from __future__ import annotations

import pytest

from polyglot.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_timeouts(self):
        s = Settings(_env_file=None)
        assert s.request_timeout_s == 30.0
        assert s.resource_timeout_s == 60.0

    def test_default_providers(self):
        s = Settings(_env_file=None)
        assert s.default_providers_list == ["claude", "openai", "gemini"]

    def test_default_logging(self):
        s = Settings(_env_file=None)
        assert s.log_level == "INFO"
        assert s.log_format == "json"
        assert s.log_file is None


class TestSettingsValidation:
    def test_request_longer_than_resource(self):
        with pytest.raises(ConfigurationError, match="REQUEST_TIMEOUT_S"):
            Settings(_env_file=None, request_timeout_s=90, resource_timeout_s=60)

    def test_unknown_default_provider(self):
        with pytest.raises(ConfigurationError, match="mistral"):
            Settings(_env_file=None, default_providers="claude,mistral")

    def test_non_positive_timeout(self):
        with pytest.raises(ValueError, match="timeouts"):
            Settings(_env_file=None, request_timeout_s=0)


class TestSettingsEnv:
    def test_keys_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        s = Settings(_env_file=None)
        assert s.api_key_for("openai_api_key") == "sk-env"
        assert s.api_key_for("gemini_api_key") == ""

    def test_env_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("DEFAULT_PROVIDERS=gemini\nLOG_FORMAT=text\n")
        s = Settings(_env_file=env)
        assert s.default_providers_list == ["gemini"]
        assert s.log_format == "text"

    def test_load_settings_overrides(self):
        s = load_settings(_env_file=None, resource_timeout_s=120)
        assert s.resource_timeout_s == 120
