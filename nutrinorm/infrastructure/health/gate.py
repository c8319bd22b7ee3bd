"""
Provider health gate.

A small circuit breaker in front of a remote enrichment provider:

- Unknown -> Healthy/Down via a probe, cached for ``ttl_s`` seconds
- Down -> Healthy on the next probe after the window, or on override
- Healthy -> Down on a 5xx / network / timeout failure of either the
  probe or a real call (fast decay, without waiting for the window)

Concurrent callers share one in-flight probe. State is a frozen
``ProviderHealthState`` replaced wholesale, and no lock is held across
an ``await``.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

import aiohttp
import structlog
from pydantic import BaseModel, ConfigDict

from nutrinorm.config import PipelineSettings
from nutrinorm.domain.shared.errors import (
    OperationAbortedError,
    ProviderHTTPError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from nutrinorm.infrastructure.health.state import ProviderHealthState
from nutrinorm.infrastructure.metrics import (
    GATE_FALLBACK_TOTAL,
    PROBE_TOTAL,
    MetricsRegistry,
    registry,
)

logger = structlog.get_logger(__name__)

# Async callable returning the HTTP status of a health endpoint
HealthProbe = Callable[[], Awaitable[int]]

_NETWORK_MARKERS = ("fetch", "network", "timeout", "timed out", "connection")


class GateResult(BaseModel):
    """
    Outcome of a gated call.

    Attributes:
        data: Provider result (None on fallback)
        error: Human-readable reason when ``fallback`` is set
        fallback: Caller should use its local fallback path
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    data: Any = None
    error: Optional[str] = None
    fallback: bool = False


def is_network_error(exc: BaseException) -> bool:
    """
    True for failures that say the provider itself is unreachable.

    Network and timeout errors plus 5xx responses count. Aborts and
    client-side errors (4xx, bad payloads) do not.
    """
    if isinstance(exc, OperationAbortedError):
        return False
    if isinstance(exc, ProviderHTTPError):
        return exc.is_server_error
    if isinstance(exc, aiohttp.ClientResponseError):
        return exc.status >= 500
    if isinstance(
        exc,
        (
            asyncio.TimeoutError,
            ConnectionError,
            aiohttp.ClientConnectionError,
            ProviderTimeoutError,
            ProviderUnavailableError,
        ),
    ):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _NETWORK_MARKERS)


async def run_abortable(
    coro: Awaitable[Any], abort: asyncio.Event, name: str = "provider"
) -> Any:
    """
    Await ``coro`` unless ``abort`` is set first.

    Raises:
        OperationAbortedError: ``abort`` was set before ``coro`` finished
    """
    task = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(abort.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        raise

    if task.done():
        waiter.cancel()
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    logger.info("Provider call aborted", provider=name)
    raise OperationAbortedError(f"{name}: call aborted")


class ProviderHealthGate:
    """
    Health gate for one provider.

    Construct once per process and pass it to callers.

    Example:
        >>> async def main(probe, fetch_product):
        ...     gate = ProviderHealthGate("enrich", probe)
        ...     result = await gate.call(fetch_product, "3017620422003")
        ...     if result.fallback:
        ...         return None
        ...     return result.data
    """

    def __init__(
        self,
        name: str,
        probe: HealthProbe,
        ttl_s: float = 30.0,
        safe_mode: bool = False,
        force_up: bool = False,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self.name = name
        self._probe = probe
        self.ttl_s = ttl_s
        self.safe_mode = safe_mode
        self.force_up = force_up
        self._clock = clock
        self._metrics = metrics or registry()
        self._state = ProviderHealthState()
        self._inflight: Optional["asyncio.Future[ProviderHealthState]"] = None

    @classmethod
    def from_settings(
        cls,
        name: str,
        probe: HealthProbe,
        settings: PipelineSettings,
        **kwargs: Any,
    ) -> "ProviderHealthGate":
        return cls(
            name,
            probe,
            ttl_s=settings.enrich_health_ttl_s,
            safe_mode=settings.enrich_safe_mode,
            force_up=settings.enrich_force_up,
            **kwargs,
        )

    @property
    def state(self) -> ProviderHealthState:
        return self._state

    # Probe (single-flight)

    async def check(self) -> ProviderHealthState:
        """
        Current state, probing if the cached result expired.

        Callers arriving while a probe is in flight await that probe.
        """
        if self._state.is_fresh(self._clock(), self.ttl_s):
            return self._state

        if self._inflight is None:
            self._state = self._state.model_copy(update={"check_in_progress": True})
            self._inflight = asyncio.ensure_future(self._run_probe())

        # a cancelled caller must not cancel the shared probe
        return await asyncio.shield(self._inflight)

    async def is_down(self) -> bool:
        if self.safe_mode:
            return True
        if self.force_up:
            return False
        state = await self.check()
        return state.is_down

    async def _run_probe(self) -> ProviderHealthState:
        was_down = self._state.is_down
        logger.debug("Probe started", provider=self.name)
        try:
            try:
                status = await self._probe()
                is_down = status >= 500
                outcome = "down" if is_down else "up"
                logger.debug("Probe finished", provider=self.name, status=status)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                is_down = True
                outcome = "error"
                logger.warning(
                    "Probe failed",
                    provider=self.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )

            self._metrics.counter(PROBE_TOTAL, provider=self.name, outcome=outcome).inc()
            self._state = ProviderHealthState(
                is_down=is_down,
                last_checked_at=self._clock(),
                check_in_progress=False,
            )
            self._log_transition(was_down, is_down, reason="probe")
            return self._state
        finally:
            if self._inflight is asyncio.current_task():
                self._inflight = None
            if self._state.check_in_progress:
                self._state = self._state.model_copy(
                    update={"check_in_progress": False}
                )

    # Gated call

    async def call(
        self,
        fn: Callable[..., Awaitable[Any]],
        *args: Any,
        abort: Optional[asyncio.Event] = None,
        **kwargs: Any,
    ) -> GateResult:
        """
        Call ``fn`` unless the provider is believed down.

        Args:
            fn: Async provider call
            *args: Positional arguments for ``fn``
            abort: Optional event; when set, the call is abandoned
            **kwargs: Keyword arguments for ``fn``

        Returns:
            GateResult; ``fallback=True`` on any provider failure

        Raises:
            OperationAbortedError: ``abort`` was set
            asyncio.CancelledError: The calling task was cancelled
        """
        self._raise_if_aborted(abort)

        if self.safe_mode:
            return self._fallback("safe_mode", f"{self.name}: safe mode enabled")

        if not self.force_up:
            state = await self.check()
            self._raise_if_aborted(abort)
            if state.is_down:
                return self._fallback("down", f"{self.name}: provider unavailable")

        try:
            if abort is None:
                data = await fn(*args, **kwargs)
            else:
                data = await run_abortable(fn(*args, **kwargs), abort, self.name)
        except (asyncio.CancelledError, OperationAbortedError):
            raise
        except Exception as e:
            if is_network_error(e):
                self.mark_down(reason=type(e).__name__)
                return self._fallback("network", f"{self.name}: {str(e) or type(e).__name__}")
            logger.warning(
                "Provider call failed",
                provider=self.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._fallback("error", f"{self.name}: {str(e) or type(e).__name__}")

        return GateResult(data=data)

    def _raise_if_aborted(self, abort: Optional[asyncio.Event]) -> None:
        if abort is not None and abort.is_set():
            raise OperationAbortedError(f"{self.name}: call aborted")

    def _fallback(self, reason: str, error: str) -> GateResult:
        self._metrics.counter(GATE_FALLBACK_TOTAL, provider=self.name, reason=reason).inc()
        logger.info("Gate fallback", provider=self.name, reason=reason)
        return GateResult(error=error, fallback=True)

    # State control

    def mark_down(self, reason: str = "call_failed") -> None:
        """Fast decay: Down for a full window starting now."""
        was_down = self._state.is_down
        self._state = ProviderHealthState(
            is_down=True,
            last_checked_at=self._clock(),
            check_in_progress=self._state.check_in_progress,
        )
        self._log_transition(was_down, True, reason=reason)

    def override(self, healthy: bool = True) -> None:
        """Force the state now, as if a probe had just answered."""
        was_down = self._state.is_down
        self._state = ProviderHealthState(
            is_down=not healthy,
            last_checked_at=self._clock(),
            check_in_progress=self._state.check_in_progress,
        )
        self._log_transition(was_down, not healthy, reason="override")

    def set_safe_mode(self, enabled: bool) -> None:
        self.safe_mode = enabled
        logger.warning("Safe mode changed", provider=self.name, enabled=enabled)

    def reset(self) -> None:
        """Back to Unknown; cancels an in-flight probe (tests)."""
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None
        self._state = ProviderHealthState()

    def _log_transition(self, was_down: bool, is_down: bool, reason: str) -> None:
        if was_down == is_down:
            return
        if is_down:
            logger.warning("Provider marked down", provider=self.name, reason=reason)
        else:
            logger.info("Provider recovered", provider=self.name, reason=reason)
