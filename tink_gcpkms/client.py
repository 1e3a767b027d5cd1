"""Tink KMS client for Google Cloud KMS.

Maps ``gcp-kms://`` key URIs to :class:`GcpKmsAead` primitives and key
version names to :class:`GcpKmsSigner` primitives, sharing one
``KeyManagementServiceClient``.
"""

from __future__ import annotations

import platform
from importlib import metadata
from pathlib import Path
from typing import Any

import tink
from google.api_core.gapic_v1.client_info import ClientInfo
from google.cloud import kms_v1
from google.oauth2 import service_account
from loguru import logger

from tink_gcpkms.aead import GcpKmsAead
from tink_gcpkms.config import VALID_TRANSPORTS, GcpKmsSettings, get_settings
from tink_gcpkms.context import CallContext
from tink_gcpkms.exceptions import InvalidArgumentError, InvalidKeyUriError
from tink_gcpkms.signer import GcpKmsSigner

GCP_KEY_URI_PREFIX = "gcp-kms://"


def _tink_user_agent() -> str:
    try:
        tink_version = metadata.version("tink")
    except metadata.PackageNotFoundError:
        tink_version = "unknown"
    return f"Tink/{tink_version} Python/{platform.python_version()}"


TINK_USER_AGENT = _tink_user_agent()


def _strip_prefix(key_uri: str) -> str:
    if key_uri.lower().startswith(GCP_KEY_URI_PREFIX):
        return key_uri[len(GCP_KEY_URI_PREFIX) :]
    return key_uri


class GcpKmsClient(tink.KmsClient):
    """Cloud KMS client handling key URIs that start with a given prefix.

    Example:
        >>> with GcpKmsClient("gcp-kms://projects/p/locations/global/") as client:
        ...     remote = client.get_aead(
        ...         "gcp-kms://projects/p/locations/global/keyRings/r/cryptoKeys/k"
        ...     )
    """

    def __init__(
        self,
        key_uri_prefix: str = GCP_KEY_URI_PREFIX,
        *,
        credentials_path: Path | str | None = None,
        transport: str | None = None,
        kms_client: Any = None,
        settings: GcpKmsSettings | None = None,
    ) -> None:
        """Initialize GCP KMS client.

        Args:
            key_uri_prefix: Prefix of the key URIs this client handles,
                ``gcp-kms://[path]``
            credentials_path: Service account JSON file; falls back to settings,
                then to application default credentials
            transport: ``grpc`` or ``rest``; falls back to settings
            kms_client: Ready ``KeyManagementServiceClient`` to use instead of
                building one; the caller keeps ownership and
                :meth:`close` leaves it open
            settings: Settings to use instead of the global settings

        Raises:
            InvalidKeyUriError: If key_uri_prefix does not start with ``gcp-kms://``
            InvalidArgumentError: If transport is not supported
        """
        if not key_uri_prefix.lower().startswith(GCP_KEY_URI_PREFIX):
            raise InvalidKeyUriError(f"key URI prefix must start with {GCP_KEY_URI_PREFIX}")

        self._settings = settings or get_settings()
        self._key_uri_prefix = key_uri_prefix
        self._transport = self._resolve_transport(transport)

        # Injected clients belong to the caller and are left open by close().
        self._owns_kms = kms_client is None
        if kms_client is not None:
            self._kms = kms_client
        else:
            self._kms = self._build_kms_client(
                credentials_path or self._settings.credentials_path
            )
        logger.bind(key_name=key_uri_prefix).info(
            f"GCP KMS client ready for {key_uri_prefix} over {self._transport}"
        )

    def _resolve_transport(self, transport: str | None) -> str:
        resolved = (transport or self._settings.transport).lower()
        if resolved not in VALID_TRANSPORTS:
            raise InvalidArgumentError(f"invalid transport specified: {transport!r}")
        return resolved

    def _build_kms_client(self, credentials_path: Path | str | None) -> Any:
        credentials = None
        if credentials_path is not None:
            credentials = service_account.Credentials.from_service_account_file(
                str(credentials_path)
            )
        return kms_v1.KeyManagementServiceClient(
            credentials=credentials,
            transport=self._transport,
            client_info=ClientInfo(user_agent=TINK_USER_AGENT),
        )

    @property
    def key_uri_prefix(self) -> str:
        return self._key_uri_prefix

    @property
    def transport(self) -> str:
        return self._transport

    @property
    def kms_client(self) -> Any:
        return self._kms

    def does_support(self, key_uri: str) -> bool:
        """Return True if this client handles key_uri."""
        return key_uri.startswith(self._key_uri_prefix)

    def get_aead(self, key_uri: str) -> GcpKmsAead:
        """Get an AEAD backed by the KMS key named by key_uri.

        Args:
            key_uri: ``gcp-kms://`` URI of a crypto key

        Returns:
            GcpKmsAead for the key

        Raises:
            InvalidKeyUriError: If this client does not handle key_uri
        """
        if not self.does_support(key_uri):
            raise InvalidKeyUriError(
                f"unsupported key URI {key_uri!r}: expected prefix {self._key_uri_prefix!r}"
            )
        return GcpKmsAead(
            _strip_prefix(key_uri),
            self._kms,
            default_context=self._settings.default_call_context(),
        )

    def get_signer(self, key_name: str, context: CallContext | None = None) -> GcpKmsSigner:
        """Get a signer for a KMS key version.

        Args:
            key_name: Key version name, optionally with the ``gcp-kms://`` prefix
            context: Context for the public key fetch and later sign calls

        Returns:
            Ready-to-use GcpKmsSigner
        """
        return GcpKmsSigner.create(
            _strip_prefix(key_name),
            self._kms,
            context=context or self._settings.default_call_context(),
            max_attempts=self._settings.public_key_fetch_attempts,
        )

    def close(self) -> None:
        """Close the transport of a KMS client built by this object."""
        if self._owns_kms:
            self._kms.transport.close()

    def __enter__(self) -> GcpKmsClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def get_aead_with_context(key_uri: str, **kwargs: Any) -> GcpKmsAead:
    """Build a client for key_uri and return its AEAD.

    The returned AEAD uses the KMS transport for as long as it lives, so the
    transport is not closed here. Pass ``kms_client`` to manage it yourself.

    Args:
        key_uri: ``gcp-kms://`` URI of a crypto key
        **kwargs: Keyword arguments forwarded to :class:`GcpKmsClient`

    Returns:
        GcpKmsAead exposing both the context-free and the ``*_with_context`` API
    """
    client = GcpKmsClient(key_uri, **kwargs)
    return client.get_aead(key_uri)
