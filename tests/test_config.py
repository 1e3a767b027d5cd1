"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from tink_gcpkms import config
from tink_gcpkms.config import GcpKmsSettings, configure_settings, get_settings, reload_settings


class TestGcpKmsSettings:
    """Tests for GcpKmsSettings."""

    def test_defaults(self) -> None:
        settings = GcpKmsSettings()

        assert settings.transport == "grpc"
        assert settings.credentials_path is None
        assert settings.request_timeout is None
        assert settings.public_key_fetch_attempts == 3
        assert settings.log_level == "INFO"
        assert settings.structured_logging is False

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that TINK_GCPKMS_* variables are picked up."""
        monkeypatch.setenv("TINK_GCPKMS_TRANSPORT", "REST")
        monkeypatch.setenv("TINK_GCPKMS_CREDENTIALS_PATH", "/secrets/sa.json")
        monkeypatch.setenv("TINK_GCPKMS_REQUEST_TIMEOUT", "30")
        monkeypatch.setenv("TINK_GCPKMS_PUBLIC_KEY_FETCH_ATTEMPTS", "5")
        monkeypatch.setenv("TINK_GCPKMS_LOG_LEVEL", "debug")
        monkeypatch.setenv("TINK_GCPKMS_STRUCTURED_LOGGING", "true")

        settings = GcpKmsSettings()

        assert settings.transport == "rest"
        assert settings.credentials_path == Path("/secrets/sa.json")
        assert settings.request_timeout == 30.0
        assert settings.public_key_fetch_attempts == 5
        assert settings.log_level == "DEBUG"
        assert settings.structured_logging is True

    def test_invalid_transport(self) -> None:
        with pytest.raises(ValidationError, match="Transport must be one of"):
            GcpKmsSettings(transport="http")

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError, match="Log level must be one of"):
            GcpKmsSettings(log_level="VERBOSE")

    @pytest.mark.parametrize("attempts", [0, 11])
    def test_fetch_attempts_bounds(self, attempts: int) -> None:
        with pytest.raises(ValidationError):
            GcpKmsSettings(public_key_fetch_attempts=attempts)

    def test_non_positive_timeout(self) -> None:
        with pytest.raises(ValidationError):
            GcpKmsSettings(request_timeout=0)

    def test_default_call_context(self) -> None:
        assert GcpKmsSettings(request_timeout=4.0).default_call_context().timeout == 4.0
        assert GcpKmsSettings().default_call_context().timeout is None


class TestGlobalSettings:
    """Tests for the global settings instance."""

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_configure_settings(self) -> None:
        settings = GcpKmsSettings(transport="rest")

        configure_settings(settings)

        assert get_settings() is settings

    def test_reload_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_settings()
        monkeypatch.setenv("TINK_GCPKMS_PUBLIC_KEY_FETCH_ATTEMPTS", "7")

        reloaded = reload_settings()

        assert reloaded is not first
        assert reloaded.public_key_fetch_attempts == 7
        assert config._settings is reloaded
