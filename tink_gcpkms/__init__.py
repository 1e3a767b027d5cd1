"""Tink integration for Google Cloud KMS.

Provides a Tink AEAD and a Tink PublicKeySign that delegate to Cloud KMS
keys, validating CRC32C checksums and key names on every request and
response.
"""

from loguru import logger

from tink_gcpkms.aead import GcpKmsAead
from tink_gcpkms.checksum import compute_checksum
from tink_gcpkms.client import GCP_KEY_URI_PREFIX, GcpKmsClient, get_aead_with_context
from tink_gcpkms.config import GcpKmsSettings, get_settings
from tink_gcpkms.context import CallContext
from tink_gcpkms.exceptions import (
    ChecksumMismatchError,
    DataTooLargeError,
    GcpKmsError,
    IntegrityError,
    InvalidArgumentError,
    InvalidKeyNameError,
    InvalidKeyUriError,
    KmsTransportError,
    UnsupportedAlgorithmError,
)
from tink_gcpkms.key_name import KeyName
from tink_gcpkms.logging import configure_logging
from tink_gcpkms.signer import MAX_SIGN_DATA_SIZE, GcpKmsSigner

logger.disable("tink_gcpkms")

__version__ = "1.0.0"
__all__ = [
    # Client
    "GCP_KEY_URI_PREFIX",
    "GcpKmsClient",
    "get_aead_with_context",
    # Primitives
    "GcpKmsAead",
    "GcpKmsSigner",
    "MAX_SIGN_DATA_SIZE",
    "CallContext",
    "KeyName",
    "compute_checksum",
    # Configuration
    "GcpKmsSettings",
    "get_settings",
    "configure_logging",
    # Exceptions
    "GcpKmsError",
    "InvalidArgumentError",
    "InvalidKeyNameError",
    "InvalidKeyUriError",
    "DataTooLargeError",
    "KmsTransportError",
    "IntegrityError",
    "ChecksumMismatchError",
    "UnsupportedAlgorithmError",
]
