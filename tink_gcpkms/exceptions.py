"""Exceptions for the Tink GCP KMS integration.

Every error raised by this package derives from :class:`GcpKmsError`, which in
turn derives from :class:`tink.TinkError`, so Tink callers can keep catching
``TinkError`` while integrations that care can tell the failure categories
apart:

- malformed input (:class:`InvalidArgumentError` and subclasses)
- transport failures (:class:`KmsTransportError`)
- integrity failures (:class:`IntegrityError` and subclasses)
- unsupported configuration (:class:`UnsupportedAlgorithmError`)
"""

from __future__ import annotations

import tink


class GcpKmsError(tink.TinkError):
    """Base class for all GCP KMS integration errors."""

    def __init__(self, message: str, error_code: str = "GCP_KMS_ERROR") -> None:
        """Initialize GCP KMS error.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class InvalidArgumentError(GcpKmsError):
    """Raised when caller input is rejected before any network call."""

    def __init__(self, message: str, error_code: str = "INVALID_ARGUMENT") -> None:
        super().__init__(message, error_code)


class InvalidKeyNameError(InvalidArgumentError):
    """Raised when a key name does not match the KMS key version grammar."""

    def __init__(self, key_name: object, pattern: str) -> None:
        """Initialize invalid key name error.

        Args:
            key_name: The rejected key name
            pattern: The expected key name pattern
        """
        super().__init__(
            f"key name {key_name!r} does not match the expected format {pattern!r}",
            error_code="INVALID_KEY_NAME",
        )
        self.key_name = key_name
        self.pattern = pattern


class InvalidKeyUriError(InvalidArgumentError):
    """Raised when a key URI is not handled by this integration."""

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="INVALID_KEY_URI")


class DataTooLargeError(InvalidArgumentError):
    """Raised when the payload to sign exceeds the KMS size limit."""

    def __init__(self, size: int, limit: int) -> None:
        """Initialize data too large error.

        Args:
            size: Size of the rejected payload in bytes
            limit: Maximum allowed size in bytes
        """
        super().__init__(
            f"the input data ({size} bytes) is larger than the allowed limit ({limit} bytes)",
            error_code="DATA_TOO_LARGE",
        )
        self.size = size
        self.limit = limit


class KmsTransportError(GcpKmsError):
    """Raised when the call to Cloud KMS itself fails."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Initialize transport error.

        Args:
            message: Error message, prefixed with the failing RPC
            original_error: The exception raised by the Google API client
        """
        super().__init__(message, error_code="KMS_TRANSPORT")
        self.original_error = original_error


class IntegrityError(GcpKmsError):
    """Raised when a KMS response cannot be trusted."""

    def __init__(
        self,
        message: str,
        check: str,
        error_code: str = "INTEGRITY_CHECK_FAILED",
    ) -> None:
        """Initialize integrity error.

        Args:
            message: Error message
            check: Name of the integrity check that failed
            error_code: Machine-readable error code
        """
        super().__init__(message, error_code)
        self.check = check


class ChecksumMismatchError(IntegrityError):
    """Raised when a CRC32C checksum does not match the data it covers."""

    def __init__(
        self,
        message: str,
        check: str,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        """Initialize checksum mismatch error.

        Args:
            message: Error message
            check: Name of the checksummed field
            expected: Checksum attached by the server, if any
            actual: Checksum recomputed locally
        """
        super().__init__(message, check, error_code="CHECKSUM_MISMATCH")
        self.expected = expected
        self.actual = actual


class UnsupportedAlgorithmError(GcpKmsError):
    """Raised when a key uses an algorithm this integration cannot sign with."""

    def __init__(self, message: str, algorithm: str | None = None) -> None:
        super().__init__(message, error_code="UNSUPPORTED_ALGORITHM")
        self.algorithm = algorithm
