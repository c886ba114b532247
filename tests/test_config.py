"""
Tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from aiwallet.config import BackendSettings, ServerSettings, Settings, get_settings, validate_all_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.backend.base_url == "http://localhost:3000"
        assert settings.backend.request_timeout_ms == 3000
        assert settings.backend.probe_timeout_ms == 1000
        assert settings.backend.probe_before_call is False
        assert settings.server.port == 3000
        assert settings.app.min_password_length == 8

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("AIWALLET_BACKEND_BASE_URL", "http://devbox:8080/")
        monkeypatch.setenv("AIWALLET_SERVER_CORS_ORIGINS", "http://a.test, http://b.test")
        settings = Settings()
        assert settings.backend.base_url == "http://devbox:8080"
        assert settings.server.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_timeout_bounds(self):
        with pytest.raises(ValidationError):
            BackendSettings(request_timeout_ms=10)

    def test_missing_static_dir_warns(self, tmp_path):
        with pytest.warns(UserWarning):
            ServerSettings(static_dir=str(tmp_path / "nope"))

    def test_validate_all_settings(self, monkeypatch):
        get_settings.cache_clear()
        monkeypatch.setenv("AIWALLET_SERVER_PORT", "99999")
        try:
            status = validate_all_settings()
        finally:
            get_settings.cache_clear()
        assert status["backend"] is True
        assert status["server"] is False
        assert "server_error" in status
