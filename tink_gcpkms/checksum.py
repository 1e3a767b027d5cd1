"""CRC32C checksums for Cloud KMS payload integrity fields."""

from __future__ import annotations

from functools import lru_cache

# Reflected Castagnoli polynomial.
_CASTAGNOLI = 0x82F63B78
_MASK = 0xFFFFFFFF


@lru_cache(maxsize=1)
def _crc32c_table() -> tuple[int, ...]:
    """Build the byte-wise CRC32C lookup table once per process."""
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            crc = (crc >> 1) ^ _CASTAGNOLI if crc & 1 else crc >> 1
        table.append(crc)
    return tuple(table)


def compute_checksum(value: bytes) -> int:
    """Compute the CRC32C checksum of value.

    The result is always in ``[0, 2**32)`` and therefore fits the signed
    64-bit ``*_crc32c`` fields used by the Cloud KMS API.

    Args:
        value: Bytes to checksum

    Returns:
        CRC32C checksum as an int
    """
    table = _crc32c_table()
    crc = _MASK
    for byte in value:
        crc = table[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ _MASK


def checksum_matches(value: bytes, checksum: int | None) -> bool:
    """Return True if checksum was attached and equals the CRC32C of value."""
    if checksum is None:
        return False
    return compute_checksum(value) == checksum
