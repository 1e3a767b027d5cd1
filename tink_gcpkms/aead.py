"""Tink AEAD backed by Cloud KMS symmetric keys.

Every request carries CRC32C checksums of its payload fields, and every
response is validated before its ciphertext or plaintext is returned. See
https://cloud.google.com/kms/docs/data-integrity-guidelines.
"""

from __future__ import annotations

from typing import Any

from google.api_core import exceptions as google_exceptions
from google.cloud import kms_v1
from tink import aead

from tink_gcpkms.checksum import checksum_matches, compute_checksum
from tink_gcpkms.context import CallContext
from tink_gcpkms.exceptions import (
    ChecksumMismatchError,
    IntegrityError,
    InvalidArgumentError,
    KmsTransportError,
)
from tink_gcpkms.logging import get_key_logger, log_integrity_failure


class GcpKmsAead(aead.Aead):
    """AEAD primitive that encrypts and decrypts through a Cloud KMS key.

    The key name is used as an opaque identifier, typically a crypto key
    (``projects/.../cryptoKeys/K``) so that KMS picks the primary version.

    Example:
        >>> remote = GcpKmsAead(key_name, kms_v1.KeyManagementServiceClient())
        >>> envelope = aead.KmsEnvelopeAead(aead.aead_key_templates.AES128_GCM, remote)
    """

    def __init__(
        self,
        key_name: str,
        client: Any,
        default_context: CallContext | None = None,
    ) -> None:
        """Initialize KMS AEAD.

        Args:
            key_name: Cloud KMS key name, without the ``gcp-kms://`` prefix
            client: ``KeyManagementServiceClient`` used for the RPCs
            default_context: Context used by ``encrypt``/``decrypt``

        Raises:
            InvalidArgumentError: If no client is given
        """
        if client is None:
            raise InvalidArgumentError("kms client cannot be None")
        self._key_name = key_name
        self._client = client
        self._default_context = default_context or CallContext.default()

    @property
    def key_name(self) -> str:
        return self._key_name

    def encrypt(self, plaintext: bytes, associated_data: bytes) -> bytes:
        """Encrypt plaintext with associated_data using the default context."""
        return self.encrypt_with_context(self._default_context, plaintext, associated_data)

    def decrypt(self, ciphertext: bytes, associated_data: bytes) -> bytes:
        """Decrypt ciphertext with associated_data using the default context."""
        return self.decrypt_with_context(self._default_context, ciphertext, associated_data)

    def encrypt_with_context(
        self, context: CallContext, plaintext: bytes, associated_data: bytes
    ) -> bytes:
        """Encrypt plaintext with associated_data.

        Args:
            context: Deadline and metadata for the KMS call
            plaintext: Data to encrypt
            associated_data: Additional authenticated data

        Returns:
            Ciphertext produced by KMS

        Raises:
            KmsTransportError: If the Encrypt RPC fails
            IntegrityError: If the response cannot be trusted
        """
        request = kms_v1.EncryptRequest(
            name=self._key_name,
            plaintext=plaintext,
            plaintext_crc32c=compute_checksum(plaintext),
            additional_authenticated_data=associated_data,
            additional_authenticated_data_crc32c=compute_checksum(associated_data),
        )

        try:
            response = self._client.encrypt(request=request, **context.call_kwargs())
        except google_exceptions.GoogleAPIError as e:
            get_key_logger(self._key_name, "encrypt").error(f"GCP KMS Encrypt failed: {e}")
            raise KmsTransportError(f"GCP KMS Encrypt failed: {e}", original_error=e) from e

        if not response.verified_plaintext_crc32c:
            raise self._rejected(
                "encrypt",
                IntegrityError(
                    f"KMS request for {self._key_name!r} is missing the checksum field "
                    "plaintext_crc32c, and other information may be missing from the "
                    "response. Please retry a limited number of times in case the error "
                    "is transient",
                    check="verified_plaintext_crc32c",
                ),
            )
        if not response.verified_additional_authenticated_data_crc32c:
            raise self._rejected(
                "encrypt",
                IntegrityError(
                    f"KMS request for {self._key_name!r} is missing the checksum field "
                    "additional_authenticated_data_crc32c, and other information may be "
                    "missing from the response. Please retry a limited number of times in "
                    "case the error is transient",
                    check="verified_additional_authenticated_data_crc32c",
                ),
            )
        # KMS answers with the primary version, a child of the requested key.
        if not response.name.startswith(self._key_name):
            raise self._rejected(
                "encrypt",
                IntegrityError(
                    f"the requested key name {self._key_name!r} does not match the key "
                    f"name in the KMS response {response.name!r}",
                    check="name",
                ),
            )
        if not checksum_matches(response.ciphertext, response.ciphertext_crc32c):
            raise self._rejected(
                "encrypt",
                ChecksumMismatchError(
                    f"KMS response corrupted in transit for {self._key_name!r}: the checksum "
                    "in field ciphertext_crc32c did not match the data in field ciphertext. "
                    "Please retry in case this is a transient error",
                    check="ciphertext_crc32c",
                    expected=response.ciphertext_crc32c,
                    actual=compute_checksum(response.ciphertext),
                ),
            )

        return response.ciphertext

    def decrypt_with_context(
        self, context: CallContext, ciphertext: bytes, associated_data: bytes
    ) -> bytes:
        """Decrypt ciphertext with associated_data.

        Only the plaintext checksum of the response is validated.

        Args:
            context: Deadline and metadata for the KMS call
            ciphertext: Data to decrypt
            associated_data: Additional authenticated data used at encryption

        Returns:
            Plaintext produced by KMS

        Raises:
            KmsTransportError: If the Decrypt RPC fails, including wrong associated data
            ChecksumMismatchError: If the plaintext was corrupted in transit
        """
        request = kms_v1.DecryptRequest(
            name=self._key_name,
            ciphertext=ciphertext,
            ciphertext_crc32c=compute_checksum(ciphertext),
            additional_authenticated_data=associated_data,
            additional_authenticated_data_crc32c=compute_checksum(associated_data),
        )

        try:
            response = self._client.decrypt(request=request, **context.call_kwargs())
        except google_exceptions.GoogleAPIError as e:
            get_key_logger(self._key_name, "decrypt").error(f"GCP KMS Decrypt failed: {e}")
            raise KmsTransportError(f"GCP KMS Decrypt failed: {e}", original_error=e) from e

        if not checksum_matches(response.plaintext, response.plaintext_crc32c):
            raise self._rejected(
                "decrypt",
                ChecksumMismatchError(
                    f"KMS response corrupted in transit for {self._key_name!r}: the checksum "
                    "in field plaintext_crc32c did not match the data in field plaintext. "
                    "Please retry in case this is a transient error",
                    check="plaintext_crc32c",
                    expected=response.plaintext_crc32c,
                    actual=compute_checksum(response.plaintext),
                ),
            )

        return response.plaintext

    def _rejected(self, operation: str, error: IntegrityError) -> IntegrityError:
        log_integrity_failure(self._key_name, operation, error.check, error.message)
        return error
