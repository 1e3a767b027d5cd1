"""Tink PublicKeySign backed by Cloud KMS asymmetric keys.

A :class:`GcpKmsSigner` is built once per key version: construction fetches
and validates the public key and resolves the signing algorithm. After that
the signer holds no mutable state and can be shared between threads.
"""

from __future__ import annotations

from typing import Any

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from google.api_core import exceptions as google_exceptions
from google.cloud import kms_v1
from loguru import logger
from tink import signature

from tink_gcpkms.algorithms import (
    AlgorithmSpec,
    ProtectionLevel,
    calculate_digest,
    requires_data_for_sign,
    resolve_algorithm,
)
from tink_gcpkms.checksum import checksum_matches, compute_checksum
from tink_gcpkms.context import CallContext
from tink_gcpkms.exceptions import (
    ChecksumMismatchError,
    DataTooLargeError,
    IntegrityError,
    InvalidArgumentError,
    KmsTransportError,
)
from tink_gcpkms.key_name import KeyName
from tink_gcpkms.logging import get_key_logger, log_integrity_failure

# Maximum size of the data that can be signed.
MAX_SIGN_DATA_SIZE = 64 * 1024

DEFAULT_PUBLIC_KEY_FETCH_ATTEMPTS = 3

PublicKeyFormat = kms_v1.PublicKey.PublicKeyFormat


def _try_get_public_key(
    client: Any, request: kms_v1.GetPublicKeyRequest, context: CallContext
) -> kms_v1.PublicKey:
    """Fetch the public key once and validate its checksum.

    Raises:
        InvalidArgumentError: If the request does not specify a key format
        KmsTransportError: If the GetPublicKey RPC fails
        ChecksumMismatchError: If the key bytes do not match their checksum
    """
    if request.public_key_format == PublicKeyFormat.PUBLIC_KEY_FORMAT_UNSPECIFIED:
        raise InvalidArgumentError("public key format is required")

    try:
        response = client.get_public_key(request=request, **context.call_kwargs())
    except google_exceptions.GoogleAPIError as e:
        get_key_logger(request.name, "get_public_key").error(f"GCP KMS GetPublicKey failed: {e}")
        raise KmsTransportError(f"GCP KMS GetPublicKey failed: {e}", original_error=e) from e

    received = response.public_key.crc32c_checksum
    calculated = compute_checksum(response.public_key.data)
    if received != calculated:
        raise ChecksumMismatchError(
            f"checksum verification failed: received {received}, calculated {calculated}",
            check="public_key",
            expected=received,
            actual=calculated,
        )
    return response


def fetch_public_key(
    client: Any,
    key_name: str,
    context: CallContext | None = None,
    max_attempts: int = DEFAULT_PUBLIC_KEY_FETCH_ATTEMPTS,
    public_key_format: PublicKeyFormat = PublicKeyFormat.PEM,
) -> kms_v1.PublicKey:
    """Fetch the public key of a key version.

    Checksum mismatches are assumed to be transient corruption and the fetch is
    retried, up to max_attempts in total, without backoff. Other failures are
    raised immediately.

    Args:
        client: ``KeyManagementServiceClient`` used for the RPC
        key_name: Key version name
        context: Deadline and metadata for each attempt
        max_attempts: Total number of attempts on checksum mismatch
        public_key_format: Requested encoding of the key material

    Returns:
        Validated ``PublicKey`` response

    Raises:
        InvalidArgumentError: If max_attempts is below one or no format is given
        KmsTransportError: If the GetPublicKey RPC fails
        ChecksumMismatchError: If every attempt returned corrupted key bytes
        IntegrityError: If the response names a different key
    """
    if max_attempts < 1:
        raise InvalidArgumentError(f"max_attempts must be at least 1, got {max_attempts}")
    context = context or CallContext.default()
    request = kms_v1.GetPublicKeyRequest(name=key_name, public_key_format=public_key_format)
    key_logger = get_key_logger(key_name, "get_public_key")

    for attempt in range(1, max_attempts + 1):
        try:
            response = _try_get_public_key(client, request, context)
        except ChecksumMismatchError as e:
            if attempt >= max_attempts:
                log_integrity_failure(key_name, "get_public_key", e.check, e.message)
                raise
            key_logger.warning(f"Public key checksum mismatch on attempt {attempt}, retrying")
            continue
        break

    if response.name != key_name:
        message = (
            f"the response key name {response.name!r} does not match "
            f"the requested key name {key_name!r}"
        )
        log_integrity_failure(key_name, "get_public_key", "name", message)
        raise IntegrityError(message, check="name")
    return response


def build_asymmetric_sign_request(
    key_name: str,
    data: bytes,
    spec: AlgorithmSpec,
    protection_level: ProtectionLevel,
) -> kms_v1.AsymmetricSignRequest:
    """Build an AsymmetricSign request carrying either the data or its digest.

    Raises:
        UnsupportedAlgorithmError: If a digest is needed but no hash is available
    """
    if requires_data_for_sign(spec, protection_level):
        return kms_v1.AsymmetricSignRequest(
            name=key_name,
            data=data,
            data_crc32c=compute_checksum(data),
        )

    digest, digest_crc32c = calculate_digest(data, spec)
    return kms_v1.AsymmetricSignRequest(
        name=key_name,
        digest=digest,
        digest_crc32c=digest_crc32c,
    )


class GcpKmsSigner(signature.PublicKeySign):
    """PublicKeySign primitive that signs through a Cloud KMS key version.

    Use :meth:`create` to build instances; it validates the key name and the
    key's public key and algorithm before returning.

    Example:
        >>> signer = GcpKmsSigner.create(
        ...     "projects/p/locations/l/keyRings/r/cryptoKeys/k/cryptoKeyVersions/1",
        ...     kms_v1.KeyManagementServiceClient(),
        ... )
        >>> signature = signer.sign(b"payload")
    """

    def __init__(
        self,
        key_name: KeyName,
        client: Any,
        public_key: kms_v1.PublicKey,
        spec: AlgorithmSpec,
        default_context: CallContext | None = None,
    ) -> None:
        """Initialize KMS signer from already validated parts.

        Args:
            key_name: Validated key version name
            client: ``KeyManagementServiceClient`` used for the RPCs
            public_key: Validated GetPublicKey response
            spec: Resolved algorithm descriptor
            default_context: Context used by ``sign``
        """
        self._key_name = key_name
        self._client = client
        self._public_key = public_key
        self._spec = spec
        self._protection_level = ProtectionLevel(public_key.protection_level)
        self._default_context = default_context or CallContext.default()

    @classmethod
    def create(
        cls,
        key_name: str,
        client: Any,
        context: CallContext | None = None,
        max_attempts: int = DEFAULT_PUBLIC_KEY_FETCH_ATTEMPTS,
    ) -> GcpKmsSigner:
        """Create a signer for a KMS key version.

        Args:
            key_name: Key version name,
                ``projects/P/locations/L/keyRings/R/cryptoKeys/K/cryptoKeyVersions/V``
            client: ``KeyManagementServiceClient`` used for the RPCs
            context: Context for the public key fetch, also used by ``sign``
            max_attempts: Total public key fetch attempts on checksum mismatch

        Returns:
            Ready-to-use signer

        Raises:
            InvalidKeyNameError: If key_name is malformed
            InvalidArgumentError: If client is None
            KmsTransportError: If GetPublicKey fails
            IntegrityError: If the public key response cannot be trusted
            UnsupportedAlgorithmError: If the key algorithm is not supported
        """
        parsed = KeyName.parse(key_name)
        if client is None:
            raise InvalidArgumentError("kms client cannot be None")

        public_key = fetch_public_key(client, parsed.value, context, max_attempts)
        spec = resolve_algorithm(public_key.algorithm)

        logger.bind(key_name=parsed.value).info(
            f"Created KMS signer using {spec.name} "
            f"({ProtectionLevel(public_key.protection_level).name})"
        )
        return cls(parsed, client, public_key, spec, context)

    @property
    def key_name(self) -> str:
        return self._key_name.value

    @property
    def algorithm(self) -> AlgorithmSpec:
        return self._spec

    @property
    def protection_level(self) -> ProtectionLevel:
        return self._protection_level

    @property
    def public_key_pem(self) -> bytes:
        """Public key material as returned and validated at construction."""
        return self._public_key.public_key.data

    def public_key(self) -> Any:
        """Load the public key for local signature verification.

        Returns:
            ``cryptography`` public key object

        Raises:
            InvalidArgumentError: If the key material is not a PEM public key
        """
        try:
            return serialization.load_pem_public_key(
                self.public_key_pem, backend=default_backend()
            )
        except ValueError as e:
            raise InvalidArgumentError(f"Failed to load public key: {e}") from e

    def sign(self, data: bytes) -> bytes:
        """Sign data using the default context."""
        return self.sign_with_context(self._default_context, data)

    def sign_with_context(self, context: CallContext, data: bytes) -> bytes:
        """Sign data with the KMS key version.

        Args:
            context: Deadline and metadata for the KMS call
            data: Data to sign, at most 64 KiB

        Returns:
            Signature bytes

        Raises:
            DataTooLargeError: If data exceeds the KMS limit
            UnsupportedAlgorithmError: If no digest can be computed
            KmsTransportError: If the AsymmetricSign RPC fails
            IntegrityError: If the response cannot be trusted
        """
        if len(data) > MAX_SIGN_DATA_SIZE:
            raise DataTooLargeError(len(data), MAX_SIGN_DATA_SIZE)

        key_name = self._key_name.value
        request = build_asymmetric_sign_request(
            key_name, data, self._spec, self._protection_level
        )

        try:
            response = self._client.asymmetric_sign(request=request, **context.call_kwargs())
        except google_exceptions.GoogleAPIError as e:
            get_key_logger(key_name, "asymmetric_sign").error(
                f"GCP KMS AsymmetricSign failed: {e}"
            )
            raise KmsTransportError(
                f"GCP KMS AsymmetricSign failed: {e}", original_error=e
            ) from e

        if response.name != key_name:
            raise self._rejected(
                IntegrityError(
                    f"the response key name {response.name!r} does not match "
                    f"the requested key name {key_name!r}",
                    check="name",
                )
            )
        # The flag must match the field that was sent.
        if "digest" in request:
            sent_field, verified = "digest_crc32c", response.verified_digest_crc32c
        else:
            sent_field, verified = "data_crc32c", response.verified_data_crc32c
        if not verified:
            raise self._rejected(
                IntegrityError(
                    f"checking the input checksum failed for {key_name!r}: KMS did not "
                    f"verify the {sent_field} of the request",
                    check="verified_input_crc32c",
                )
            )
        if not checksum_matches(response.signature, response.signature_crc32c):
            raise self._rejected(
                ChecksumMismatchError(
                    f"signature checksum mismatch for {key_name!r}: the checksum in field "
                    "signature_crc32c did not match the data in field signature",
                    check="signature_crc32c",
                    expected=response.signature_crc32c,
                    actual=compute_checksum(response.signature),
                )
            )

        return response.signature

    def _rejected(self, error: IntegrityError) -> IntegrityError:
        log_integrity_failure(self._key_name.value, "asymmetric_sign", error.check, error.message)
        return error
