"""Cloud KMS key version name value object."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, field_validator

from tink_gcpkms.exceptions import InvalidKeyNameError

KEY_NAME_PATTERN = re.compile(
    r"projects/([^/]+)/locations/([^/]+)/keyRings/([^/]+)/cryptoKeys/([^/]+)"
    r"/cryptoKeyVersions/([^/]+)"
)


class KeyName(BaseModel):
    """Immutable, validated name of a Cloud KMS crypto key version.

    The value must fully match
    ``projects/P/locations/L/keyRings/R/cryptoKeys/K/cryptoKeyVersions/V``.
    """

    model_config = ConfigDict(frozen=True)

    value: str

    @field_validator("value", mode="before")
    @classmethod
    def validate_key_name(cls, v: object) -> str:
        """Validate the key version name grammar.

        Args:
            v: Key name to validate

        Returns:
            Validated key name

        Raises:
            InvalidKeyNameError: If the name is not a key version path
        """
        if not isinstance(v, str) or KEY_NAME_PATTERN.fullmatch(v) is None:
            raise InvalidKeyNameError(v, f"^{KEY_NAME_PATTERN.pattern}$")
        return v

    @classmethod
    def parse(cls, value: str) -> KeyName:
        """Parse and validate a key version name."""
        return cls(value=value)

    @classmethod
    def from_parts(
        cls,
        project: str,
        location: str,
        key_ring: str,
        crypto_key: str,
        version: str | int,
    ) -> KeyName:
        """Build a key version name from its path segments."""
        return cls(
            value=(
                f"projects/{project}/locations/{location}/keyRings/{key_ring}"
                f"/cryptoKeys/{crypto_key}/cryptoKeyVersions/{version}"
            )
        )

    def _segments(self) -> tuple[str, ...]:
        # Validated names alternate literal labels and values.
        return tuple(self.value.split("/")[1::2])

    @property
    def project(self) -> str:
        return self._segments()[0]

    @property
    def location(self) -> str:
        return self._segments()[1]

    @property
    def key_ring(self) -> str:
        return self._segments()[2]

    @property
    def crypto_key(self) -> str:
        return self._segments()[3]

    @property
    def version(self) -> str:
        return self._segments()[4]

    def __str__(self) -> str:
        return self.value
