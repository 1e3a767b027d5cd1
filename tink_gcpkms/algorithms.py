"""Signing algorithm descriptors for Cloud KMS asymmetric keys.

Some AsymmetricSign algorithms take the message itself and others take a
digest of it. This module holds the table of algorithms the signer supports,
the hash each digest-based algorithm uses, and the digest computation.
"""

from __future__ import annotations

from dataclasses import dataclass

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from google.cloud import kms_v1

from tink_gcpkms.checksum import compute_checksum
from tink_gcpkms.exceptions import UnsupportedAlgorithmError

Algorithm = kms_v1.CryptoKeyVersion.CryptoKeyVersionAlgorithm
ProtectionLevel = kms_v1.ProtectionLevel

_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


@dataclass(frozen=True)
class AlgorithmSpec:
    """Signing parameters of a KMS algorithm.

    ``hash_name`` is None for algorithms that sign the raw data.
    """

    algorithm: Algorithm
    hash_name: str | None = None

    @property
    def name(self) -> str:
        return self.algorithm.name

    @property
    def signs_raw_data(self) -> bool:
        return self.hash_name is None


SUPPORTED_ALGORITHMS: dict[Algorithm, AlgorithmSpec] = {
    spec.algorithm: spec
    for spec in (
        AlgorithmSpec(Algorithm.EC_SIGN_ED25519),
        AlgorithmSpec(Algorithm.EC_SIGN_P256_SHA256, "sha256"),
        AlgorithmSpec(Algorithm.EC_SIGN_P384_SHA384, "sha384"),
        AlgorithmSpec(Algorithm.EC_SIGN_SECP256K1_SHA256, "sha256"),
        AlgorithmSpec(Algorithm.RSA_SIGN_PSS_2048_SHA256, "sha256"),
        AlgorithmSpec(Algorithm.RSA_SIGN_PSS_3072_SHA256, "sha256"),
        AlgorithmSpec(Algorithm.RSA_SIGN_PSS_4096_SHA256, "sha256"),
        AlgorithmSpec(Algorithm.RSA_SIGN_PSS_4096_SHA512, "sha512"),
        AlgorithmSpec(Algorithm.RSA_SIGN_PKCS1_2048_SHA256, "sha256"),
        AlgorithmSpec(Algorithm.RSA_SIGN_PKCS1_3072_SHA256, "sha256"),
        AlgorithmSpec(Algorithm.RSA_SIGN_PKCS1_4096_SHA256, "sha256"),
        AlgorithmSpec(Algorithm.RSA_SIGN_PKCS1_4096_SHA512, "sha512"),
        AlgorithmSpec(Algorithm.RSA_SIGN_RAW_PKCS1_2048),
        AlgorithmSpec(Algorithm.RSA_SIGN_RAW_PKCS1_3072),
        AlgorithmSpec(Algorithm.RSA_SIGN_RAW_PKCS1_4096),
    )
}

_DATA_PROTECTION_LEVELS = frozenset({ProtectionLevel.EXTERNAL, ProtectionLevel.EXTERNAL_VPC})


def is_supported(algorithm: Algorithm) -> bool:
    """Check whether the signer can use keys of the given algorithm."""
    return algorithm in SUPPORTED_ALGORITHMS


def resolve_algorithm(algorithm: Algorithm) -> AlgorithmSpec:
    """Look up the signing parameters of an algorithm.

    Args:
        algorithm: Algorithm reported by GetPublicKey

    Returns:
        Algorithm descriptor

    Raises:
        UnsupportedAlgorithmError: If the algorithm is not a supported signing algorithm
    """
    spec = SUPPORTED_ALGORITHMS.get(algorithm)
    if spec is None:
        name = getattr(algorithm, "name", str(algorithm))
        raise UnsupportedAlgorithmError(
            f"the given algorithm {name!r} is not supported", algorithm=name
        )
    return spec


def requires_data_for_sign(spec: AlgorithmSpec, protection_level: ProtectionLevel) -> bool:
    """Return True if AsymmetricSign must receive the data rather than a digest.

    Ed25519 and raw PKCS#1 sign the message itself, and keys held by an
    external key manager always receive the data.
    """
    if spec.signs_raw_data:
        return True
    return protection_level in _DATA_PROTECTION_LEVELS


def digest_hash_for_algorithm(spec: AlgorithmSpec) -> hashes.HashAlgorithm:
    """Return the hash function producing the digest for spec.

    Raises:
        UnsupportedAlgorithmError: If the algorithm does not take digests or
            the hash is not available in the cryptography backend
    """
    if spec.hash_name is None or spec.hash_name not in _HASHES:
        raise UnsupportedAlgorithmError(
            f"algorithm {spec.name!r} does not support digests", algorithm=spec.name
        )
    hash_algorithm = _HASHES[spec.hash_name]()
    if not default_backend().hash_supported(hash_algorithm):
        raise UnsupportedAlgorithmError(
            f"hash function {hash_algorithm.name} is not available", algorithm=spec.name
        )
    return hash_algorithm


def calculate_digest(data: bytes, spec: AlgorithmSpec) -> tuple[kms_v1.Digest, int]:
    """Compute the digest of data for spec and the CRC32C of that digest.

    Args:
        data: Message to hash
        spec: Digest-based algorithm descriptor

    Returns:
        Tuple of the KMS ``Digest`` message and the digest checksum

    Raises:
        UnsupportedAlgorithmError: If no hash is available for the algorithm
    """
    hash_algorithm = digest_hash_for_algorithm(spec)
    hasher = hashes.Hash(hash_algorithm)
    hasher.update(data)
    digest_bytes = hasher.finalize()
    # Digest field names match the cryptography hash names: sha256, sha384, sha512.
    digest = kms_v1.Digest(**{hash_algorithm.name: digest_bytes})
    return digest, compute_checksum(digest_bytes)
