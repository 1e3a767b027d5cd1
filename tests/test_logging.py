"""Tests for logging configuration."""

from __future__ import annotations

import json
import sys
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from kms_fakes import ENCRYPT_KEY_NAME, FakeKeyManagementService
from loguru import logger

from tink_gcpkms.aead import GcpKmsAead
from tink_gcpkms.checksum import compute_checksum
from tink_gcpkms.exceptions import IntegrityError
from tink_gcpkms.logging import (
    PACKAGE_NAME,
    configure_logging,
    get_key_logger,
    log_integrity_failure,
    serialize_log,
)


@pytest.fixture
def records() -> Generator[list[dict[str, Any]], None, None]:
    """Capture records logged by the package."""
    captured: list[dict[str, Any]] = []
    logger.enable(PACKAGE_NAME)
    handler_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    yield captured
    logger.remove(handler_id)
    logger.disable(PACKAGE_NAME)


@pytest.fixture
def restore_sinks() -> Generator[None, None, None]:
    yield
    logger.remove()
    logger.add(sys.stderr)
    logger.disable(PACKAGE_NAME)


class TestPackageLogging:
    def test_silent_by_default(self) -> None:
        """Test that the package does not log until enabled."""
        captured: list[Any] = []
        handler_id = logger.add(captured.append)
        try:
            log_integrity_failure(ENCRYPT_KEY_NAME, "encrypt", "name", "mismatch")
        finally:
            logger.remove(handler_id)

        assert captured == []

    def test_integrity_failure_fields(self, records: list[dict[str, Any]]) -> None:
        log_integrity_failure(ENCRYPT_KEY_NAME, "encrypt", "ciphertext_crc32c", "corrupted")

        (record,) = records
        assert record["level"].name == "WARNING"
        assert record["extra"]["key_name"] == ENCRYPT_KEY_NAME
        assert record["extra"]["operation"] == "encrypt"
        assert record["extra"]["check"] == "ciphertext_crc32c"
        assert record["extra"]["integrity_failure"] is True

    def test_key_logger_binds_context(self, records: list[dict[str, Any]]) -> None:
        get_key_logger("projects/p", "sign").info("with operation")
        get_key_logger("projects/p").info("without operation")

        first, second = records
        assert first["extra"] == {"key_name": "projects/p", "operation": "sign"}
        assert second["extra"] == {"key_name": "projects/p"}

    def test_rejected_response_is_logged(
        self, records: list[dict[str, Any]], fake_kms: FakeKeyManagementService
    ) -> None:
        """Test that rejected responses are logged without payload bytes."""
        fake_kms.response_hooks["decrypt"] = lambda r: type(r)(
            plaintext=b"secret plaintext", plaintext_crc32c=compute_checksum(b"other")
        )
        remote = GcpKmsAead(ENCRYPT_KEY_NAME, fake_kms)

        with pytest.raises(IntegrityError):
            remote.decrypt(remote.encrypt(b"secret plaintext", b""), b"")

        (record,) = [r for r in records if r["extra"].get("integrity_failure")]
        assert record["extra"]["check"] == "plaintext_crc32c"
        assert "secret plaintext" not in record["message"]


class TestSerializeLog:
    def test_structured_output(self, records: list[dict[str, Any]]) -> None:
        log_integrity_failure(ENCRYPT_KEY_NAME, "decrypt", "plaintext_crc32c", "bad {braces}")

        payload = json.loads(serialize_log(records[0]))

        assert payload["level"] == "WARNING"
        assert payload["key_name"] == ENCRYPT_KEY_NAME
        assert payload["operation"] == "decrypt"
        assert payload["extra"] == {"check": "plaintext_crc32c", "integrity_failure": True}
        assert "bad {braces}" in payload["message"]


class TestConfigureLogging:
    @pytest.mark.usefixtures("restore_sinks")
    def test_structured_file_sink(self, tmp_path: Path) -> None:
        log_file = tmp_path / "kms.log"

        configure_logging(level="WARNING", structured=True, log_file=log_file)
        log_integrity_failure(ENCRYPT_KEY_NAME, "encrypt", "name", "mismatch {x}")
        logger.remove()

        (line,) = log_file.read_text().splitlines()
        payload = json.loads(line)
        assert payload["key_name"] == ENCRYPT_KEY_NAME
        assert payload["extra"]["check"] == "name"

    @pytest.mark.usefixtures("restore_sinks")
    def test_level_filters(self, tmp_path: Path) -> None:
        log_file = tmp_path / "kms.log"

        configure_logging(level="ERROR", log_file=log_file)
        log_integrity_failure(ENCRYPT_KEY_NAME, "encrypt", "name", "mismatch")
        logger.remove()

        assert log_file.read_text() == ""

    @pytest.mark.usefixtures("restore_sinks")
    def test_level_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that TINK_GCPKMS_LOG_LEVEL sets the sink level when none is given."""
        monkeypatch.setenv("TINK_GCPKMS_LOG_LEVEL", "error")
        log_file = tmp_path / "kms.log"

        configure_logging(log_file=log_file)
        log_integrity_failure(ENCRYPT_KEY_NAME, "encrypt", "name", "mismatch")
        logger.remove()

        assert log_file.read_text() == ""

    @pytest.mark.usefixtures("restore_sinks")
    def test_structured_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TINK_GCPKMS_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("TINK_GCPKMS_STRUCTURED_LOGGING", "true")
        log_file = tmp_path / "kms.log"

        configure_logging(log_file=log_file)
        log_integrity_failure(ENCRYPT_KEY_NAME, "encrypt", "name", "mismatch")
        logger.remove()

        (line,) = log_file.read_text().splitlines()
        assert json.loads(line)["operation"] == "encrypt"

    @pytest.mark.usefixtures("restore_sinks")
    def test_explicit_level_overrides_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TINK_GCPKMS_LOG_LEVEL", "ERROR")
        log_file = tmp_path / "kms.log"

        configure_logging(level="WARNING", log_file=log_file)
        log_integrity_failure(ENCRYPT_KEY_NAME, "encrypt", "name", "mismatch")
        logger.remove()

        assert "mismatch" in log_file.read_text()
