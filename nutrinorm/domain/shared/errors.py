"""
Domain exceptions.

Typed exceptions for the normalization pipeline. Upstream provider
trouble is normally surfaced as data (empty lists, fallback results);
these types exist for the seams where it has to travel as an exception,
and to keep cancellation distinguishable from provider failure.
"""

from __future__ import annotations

from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """Base exception for all nutrinorm errors."""

    pass


class PipelineError(DomainError):
    """Base exception for pipeline failures."""

    pass


# ═══════════════════════════════════════════════════════════
# PROVIDER EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ProviderError(PipelineError):
    """
    Remote provider failed.

    Base for every failure that is the provider's fault (or the network's).
    Never used for caller-initiated aborts.

    Example:
        >>> raise ProviderError("vision backend failed", provider="vision")
    """

    def __init__(self, message: str, *, provider: Optional[str] = None) -> None:
        super().__init__(message)
        self.provider = provider


class ProviderUnavailableError(ProviderError):
    """
    Provider could not be reached.

    Raised by the HTTP health probe and the OpenFoodFacts client on
    connection or client failures. The health gate never raises it: a
    Down provider or safe mode comes back as ``GateResult(fallback=True)``.
    """

    pass


class ProviderHTTPError(ProviderError):
    """
    Provider answered with an HTTP error status.

    Example:
        >>> err = ProviderHTTPError("bad gateway", status=502, provider="enrich")
        >>> assert err.is_server_error
    """

    def __init__(
        self,
        message: str,
        *,
        status: int,
        provider: Optional[str] = None,
    ) -> None:
        super().__init__(message, provider=provider)
        self.status = status

    @property
    def is_server_error(self) -> bool:
        """True for 5xx responses."""
        return 500 <= self.status < 600


class ProviderTimeoutError(ProviderError):
    """Provider did not answer in time."""

    pass


# ═══════════════════════════════════════════════════════════
# CANCELLATION
# ═══════════════════════════════════════════════════════════


class OperationAbortedError(PipelineError):
    """
    Caller-supplied abort signal was observed.

    Not a ProviderError: an abort never marks a provider down.

    Example:
        >>> raise OperationAbortedError("detection aborted by caller")
    """

    pass
