"""Configuration for the Tink GCP KMS integration.

Settings are read from ``TINK_GCPKMS_*`` environment variables (or a ``.env``
file) with pydantic-settings and validated on load.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tink_gcpkms.context import CallContext

VALID_TRANSPORTS = frozenset({"grpc", "rest"})


class GcpKmsSettings(BaseSettings):
    """Client, retry and logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TINK_GCPKMS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    transport: str = Field(default="grpc", description="Cloud KMS transport (grpc or rest)")
    credentials_path: Path | None = Field(
        default=None, description="Service account credentials JSON file"
    )
    request_timeout: float | None = Field(
        default=None, gt=0, le=600, description="Default per-call deadline in seconds"
    )
    public_key_fetch_attempts: int = Field(
        default=3, ge=1, le=10, description="GetPublicKey attempts on checksum mismatch"
    )
    log_level: str = Field(default="INFO", description="Log level")
    structured_logging: bool = Field(default=False, description="Emit JSON log lines")

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, v: str) -> str:
        """Validate transport.

        Args:
            v: Transport value

        Returns:
            Lowercased transport

        Raises:
            ValueError: If transport is not grpc or rest
        """
        if v.lower() not in VALID_TRANSPORTS:
            raise ValueError(f"Transport must be one of {sorted(VALID_TRANSPORTS)}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level.

        Args:
            v: Log level value

        Returns:
            Uppercased log level

        Raises:
            ValueError: If log level is invalid
        """
        valid_levels = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    def default_call_context(self) -> CallContext:
        """Build the call context applied when callers pass none.

        Returns:
            CallContext with the configured request timeout
        """
        return CallContext(timeout=self.request_timeout)


# Global settings instance
_settings: GcpKmsSettings | None = None


def get_settings() -> GcpKmsSettings:
    """Get the global settings instance.

    Returns:
        Global GcpKmsSettings instance
    """
    global _settings
    if _settings is None:
        _settings = GcpKmsSettings()
    return _settings


def configure_settings(settings: GcpKmsSettings) -> None:
    """Configure the global settings instance.

    Args:
        settings: Settings instance to use globally
    """
    global _settings
    _settings = settings


def reload_settings() -> GcpKmsSettings:
    """Reload settings from environment variables.

    Returns:
        Reloaded GcpKmsSettings instance
    """
    global _settings
    _settings = GcpKmsSettings()
    return _settings
