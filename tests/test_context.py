"""Tests for the per-call context."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tink_gcpkms.context import CallContext


class TestCallContext:
    def test_default_has_no_deadline(self) -> None:
        context = CallContext.default()

        assert context.timeout is None
        assert context.call_kwargs() == {"metadata": ()}

    def test_call_kwargs_include_timeout(self) -> None:
        context = CallContext(timeout=1.5, metadata=(("key", "value"),))

        assert context.call_kwargs() == {"metadata": (("key", "value"),), "timeout": 1.5}

    @pytest.mark.parametrize("timeout", [0, -1.0])
    def test_rejects_non_positive_timeout(self, timeout: float) -> None:
        with pytest.raises(ValidationError):
            CallContext(timeout=timeout)

    def test_frozen(self) -> None:
        context = CallContext(timeout=1.0)

        with pytest.raises(ValidationError):
            context.timeout = 2.0
