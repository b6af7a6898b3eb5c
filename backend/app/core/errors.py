"""
Error taxonomy for the simulation pipeline.

Validation failures are raised before any provider call. Provider and
parse failures abort the whole request; partial results are never
returned. ``AggregationInconsistency`` marks a broken invariant and is
not meant to be caught.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class SimulationError(RuntimeError):
    """Base class for failures the HTTP layer knows how to report."""


class PayloadValidationError(SimulationError):
    """The client payload cannot be turned into a simulation request."""


class ProviderFailure(str, Enum):
    TIMEOUT = "timeout"
    TERMINAL_FAILURE = "terminal_failure"
    REQUIRES_ACTION = "requires_action"
    NOT_CONFIGURED = "not_configured"
    INVALID_OUTPUT = "invalid_output"


class ProviderError(SimulationError):
    """The generation provider did not produce a usable result."""

    def __init__(
        self,
        message: str,
        reason: ProviderFailure = ProviderFailure.TERMINAL_FAILURE,
        status: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.status = status


class ProviderTimeout(ProviderError):
    def __init__(self, timeout: float, status: Optional[str] = None) -> None:
        super().__init__(
            f"Run timeout after {timeout:.1f}s",
            reason=ProviderFailure.TIMEOUT,
            status=status,
        )
        self.timeout = timeout


class ParseError(ProviderError):
    """The provider answered but the content is not usable JSON for the contract."""

    def __init__(self, message: str) -> None:
        super().__init__(message, reason=ProviderFailure.INVALID_OUTPUT)


class AggregationInconsistency(AssertionError):
    """A single-choice distribution left normalization without summing to 100."""
