"""Per-call execution context for Cloud KMS requests."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CallContext(BaseModel):
    """Deadline and request metadata applied to a single KMS call.

    The timeout bounds the blocking RPC; once it elapses the Google client
    raises ``DeadlineExceeded``, which surfaces as a transport error.

    Example:
        >>> ctx = CallContext(timeout=5.0, metadata=(("x-request-id", "abc"),))
        >>> aead.encrypt_with_context(ctx, b"secret", b"aad")
    """

    model_config = ConfigDict(frozen=True)

    timeout: float | None = Field(default=None, gt=0, description="Deadline in seconds")
    metadata: tuple[tuple[str, str], ...] = Field(
        default=(), description="Additional gRPC metadata pairs"
    )

    @classmethod
    def default(cls) -> CallContext:
        """Context without a deadline, using the client's default timeout."""
        return cls()

    def call_kwargs(self) -> dict[str, Any]:
        """Build keyword arguments for a ``KeyManagementServiceClient`` method.

        Returns:
            Dictionary with ``metadata`` and, when set, ``timeout``
        """
        kwargs: dict[str, Any] = {"metadata": self.metadata}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return kwargs
