"""Pytest configuration and fixtures for the Tink GCP KMS tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from kms_fakes import (
    KEY_NAME_ED25519,
    KEY_NAME_REQUIRES_DATA_1,
    KEY_NAME_REQUIRES_DATA_2,
    KEY_NAME_REQUIRES_DIGEST,
    KEY_NAME_REQUIRES_DIGEST_SHA384,
    KEY_NAME_REQUIRES_DIGEST_SHA512,
    KEY_NAME_UNSUPPORTED_ALGORITHM,
    Algorithm,
    FakeKeyManagementService,
    ProtectionLevel,
)

from tink_gcpkms import config


@pytest.fixture
def fake_kms() -> FakeKeyManagementService:
    """Fake KMS service with the standard signing keys registered."""
    service = FakeKeyManagementService()
    service.add_signing_key(KEY_NAME_REQUIRES_DATA_1, Algorithm.RSA_SIGN_RAW_PKCS1_2048)
    service.add_signing_key(
        KEY_NAME_REQUIRES_DATA_2,
        Algorithm.RSA_SIGN_PSS_2048_SHA256,
        ProtectionLevel.EXTERNAL,
    )
    service.add_signing_key(KEY_NAME_REQUIRES_DIGEST, Algorithm.RSA_SIGN_PSS_2048_SHA256)
    service.add_signing_key(KEY_NAME_REQUIRES_DIGEST_SHA384, Algorithm.EC_SIGN_P384_SHA384)
    service.add_signing_key(KEY_NAME_REQUIRES_DIGEST_SHA512, Algorithm.RSA_SIGN_PKCS1_4096_SHA512)
    service.add_signing_key(KEY_NAME_ED25519, Algorithm.EC_SIGN_ED25519)
    service.add_signing_key(KEY_NAME_UNSUPPORTED_ALGORITHM, Algorithm.RSA_DECRYPT_OAEP_2048_SHA256)
    return service


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep the global settings and TINK_GCPKMS_* variables out of each test."""
    for key in (
        "TINK_GCPKMS_TRANSPORT",
        "TINK_GCPKMS_CREDENTIALS_PATH",
        "TINK_GCPKMS_REQUEST_TIMEOUT",
        "TINK_GCPKMS_PUBLIC_KEY_FETCH_ATTEMPTS",
        "TINK_GCPKMS_LOG_LEVEL",
        "TINK_GCPKMS_STRUCTURED_LOGGING",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config, "_settings", None)
    yield
