"""
Unit tests for ProviderHealthGate.

A fake clock drives the cache window; probes are plain async functions
or AsyncMocks so probe counts can be asserted.
"""

import asyncio
from typing import Any, List
from unittest.mock import AsyncMock

import aiohttp
import pytest

from nutrinorm.config import PipelineSettings
from nutrinorm.domain.shared.errors import (
    OperationAbortedError,
    ProviderHTTPError,
    ProviderTimeoutError,
)
from nutrinorm.infrastructure.health.gate import (
    ProviderHealthGate,
    is_network_error,
    run_abortable,
)
from nutrinorm.infrastructure.health.state import HealthStatus
from nutrinorm.infrastructure.metrics import (
    GATE_FALLBACK_TOTAL,
    PROBE_TOTAL,
    MetricsRegistry,
)


class BlockingProbe:
    """Probe that waits for ``release`` and counts invocations."""

    def __init__(self, status: int = 200) -> None:
        self.status = status
        self.calls = 0
        self.release = asyncio.Event()

    async def __call__(self) -> int:
        self.calls += 1
        await self.release.wait()
        return self.status


class TestProbe:
    """Test probing and caching."""

    @pytest.mark.asyncio
    async def test_unknown_then_healthy(self, gate: ProviderHealthGate, healthy_probe: AsyncMock) -> None:
        assert gate.state.status == HealthStatus.UNKNOWN

        state = await gate.check()

        assert state.status == HealthStatus.HEALTHY
        assert state.check_in_progress is False
        healthy_probe.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_result_cached_within_window(
        self, gate: ProviderHealthGate, healthy_probe: AsyncMock, clock: Any
    ) -> None:
        await gate.check()
        clock.advance(29)
        await gate.check()

        assert healthy_probe.await_count == 1

        clock.advance(2)
        await gate.check()

        assert healthy_probe.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, is_down", [(200, False), (404, False), (500, True), (503, True)])
    async def test_status_classification(
        self, clock: Any, metrics: MetricsRegistry, status: int, is_down: bool
    ) -> None:
        gate = ProviderHealthGate("enrich", AsyncMock(return_value=status), clock=clock, metrics=metrics)

        assert await gate.is_down() is is_down

    @pytest.mark.asyncio
    async def test_probe_exception_means_down(self, clock: Any, metrics: MetricsRegistry) -> None:
        probe = AsyncMock(side_effect=ProviderTimeoutError("probe timeout"))
        gate = ProviderHealthGate("enrich", probe, clock=clock, metrics=metrics)

        state = await gate.check()

        assert state.is_down is True
        assert metrics.value(PROBE_TOTAL, provider="enrich", outcome="error") == 1


class TestSingleFlight:
    """Test that concurrent callers share one probe."""

    @pytest.mark.asyncio
    async def test_concurrent_checks_probe_once(self, clock: Any, metrics: MetricsRegistry) -> None:
        probe = BlockingProbe()
        gate = ProviderHealthGate("enrich", probe, clock=clock, metrics=metrics)

        tasks = [asyncio.ensure_future(gate.check()) for _ in range(5)]
        await asyncio.sleep(0)

        assert gate.state.check_in_progress is True

        probe.release.set()
        states = await asyncio.gather(*tasks)

        assert probe.calls == 1
        assert all(s.status == HealthStatus.HEALTHY for s in states)
        assert gate.state.check_in_progress is False
        assert metrics.value(PROBE_TOTAL, provider="enrich", outcome="up") == 1

    @pytest.mark.asyncio
    async def test_concurrent_calls_probe_once(self, clock: Any, metrics: MetricsRegistry) -> None:
        probe = BlockingProbe()
        gate = ProviderHealthGate("enrich", probe, clock=clock, metrics=metrics)
        fn = AsyncMock(return_value="ok")

        tasks = [asyncio.ensure_future(gate.call(fn, i)) for i in range(3)]
        await asyncio.sleep(0)
        probe.release.set()
        results = await asyncio.gather(*tasks)

        assert probe.calls == 1
        assert [r.data for r in results] == ["ok", "ok", "ok"]
        assert fn.await_count == 3

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_probe(
        self, clock: Any, metrics: MetricsRegistry
    ) -> None:
        probe = BlockingProbe()
        gate = ProviderHealthGate("enrich", probe, clock=clock, metrics=metrics)

        first = asyncio.ensure_future(gate.check())
        second = asyncio.ensure_future(gate.check())
        await asyncio.sleep(0)

        first.cancel()
        probe.release.set()
        state = await second

        assert first.cancelled()
        assert state.status == HealthStatus.HEALTHY
        assert probe.calls == 1


class TestGatedCall:
    """Test call() outcomes."""

    @pytest.mark.asyncio
    async def test_success(self, gate: ProviderHealthGate) -> None:
        fn = AsyncMock(return_value={"product": "x"})

        result = await gate.call(fn, "3017620422003", locale="en")

        assert result.fallback is False
        assert result.error is None
        assert result.data == {"product": "x"}
        fn.assert_awaited_once_with("3017620422003", locale="en")

    @pytest.mark.asyncio
    async def test_down_provider_is_not_called(self, clock: Any, metrics: MetricsRegistry) -> None:
        gate = ProviderHealthGate("enrich", AsyncMock(return_value=502), clock=clock, metrics=metrics)
        fn = AsyncMock()

        result = await gate.call(fn)

        assert result.fallback is True
        assert result.data is None
        fn.assert_not_awaited()
        assert metrics.value(GATE_FALLBACK_TOTAL, provider="enrich", reason="down") == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            aiohttp.ClientConnectionError("connection refused"),
            asyncio.TimeoutError(),
            ProviderHTTPError("bad gateway", status=502),
            RuntimeError("Failed to fetch"),
        ],
    )
    async def test_fast_decay_on_network_error(
        self, gate: ProviderHealthGate, healthy_probe: AsyncMock, error: Exception
    ) -> None:
        """A failed real call marks the provider down without waiting for the window."""
        fn = AsyncMock(side_effect=error)

        result = await gate.call(fn)

        assert result.fallback is True
        assert result.error
        assert gate.state.is_down is True

        again = await gate.call(fn)

        assert again.fallback is True
        assert fn.await_count == 1
        assert healthy_probe.await_count == 1

    @pytest.mark.asyncio
    async def test_recovers_after_window(
        self, gate: ProviderHealthGate, healthy_probe: AsyncMock, clock: Any
    ) -> None:
        fn = AsyncMock(side_effect=[asyncio.TimeoutError(), "ok"])
        await gate.call(fn)

        clock.advance(31)
        result = await gate.call(fn)

        assert result.data == "ok"
        assert gate.state.is_down is False
        assert healthy_probe.await_count == 2

    @pytest.mark.asyncio
    async def test_client_error_does_not_mark_down(self, gate: ProviderHealthGate) -> None:
        fn = AsyncMock(side_effect=ProviderHTTPError("not found", status=404))

        result = await gate.call(fn)

        assert result.fallback is True
        assert "not found" in (result.error or "")
        assert gate.state.is_down is False

    @pytest.mark.asyncio
    async def test_error_without_message_uses_type_name(self, gate: ProviderHealthGate) -> None:
        result = await gate.call(AsyncMock(side_effect=ValueError()))

        assert result.error == "enrich: ValueError"


class TestOverrides:
    """Test safe mode, force-up and manual overrides."""

    @pytest.mark.asyncio
    async def test_safe_mode_skips_probe_and_call(
        self, gate: ProviderHealthGate, healthy_probe: AsyncMock, metrics: MetricsRegistry
    ) -> None:
        gate.set_safe_mode(True)
        fn = AsyncMock()

        result = await gate.call(fn)

        assert result.fallback is True
        fn.assert_not_awaited()
        healthy_probe.assert_not_awaited()
        assert await gate.is_down() is True
        assert metrics.value(GATE_FALLBACK_TOTAL, provider="enrich", reason="safe_mode") == 1

    @pytest.mark.asyncio
    async def test_force_up_skips_probe(self, clock: Any, metrics: MetricsRegistry) -> None:
        probe = AsyncMock(return_value=503)
        gate = ProviderHealthGate("enrich", probe, force_up=True, clock=clock, metrics=metrics)

        result = await gate.call(AsyncMock(return_value=1))

        assert result.data == 1
        probe.assert_not_awaited()
        assert await gate.is_down() is False

    @pytest.mark.asyncio
    async def test_override_restores_immediately(
        self, gate: ProviderHealthGate, healthy_probe: AsyncMock
    ) -> None:
        gate.mark_down()
        gate.override(healthy=True)

        result = await gate.call(AsyncMock(return_value="ok"))

        assert result.data == "ok"
        healthy_probe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reset(self, gate: ProviderHealthGate) -> None:
        gate.mark_down()

        gate.reset()

        assert gate.state.status == HealthStatus.UNKNOWN

    def test_from_settings(self, healthy_probe: AsyncMock) -> None:
        settings = PipelineSettings(enrich_safe_mode=True, enrich_health_ttl_s=5)

        gate = ProviderHealthGate.from_settings("enrich", healthy_probe, settings)

        assert gate.safe_mode is True
        assert gate.ttl_s == 5


class TestCancellation:
    """Test abort and cancellation semantics."""

    @pytest.mark.asyncio
    async def test_pre_set_abort_raises(self, gate: ProviderHealthGate, healthy_probe: AsyncMock) -> None:
        abort = asyncio.Event()
        abort.set()

        with pytest.raises(OperationAbortedError):
            await gate.call(AsyncMock(), abort=abort)
        healthy_probe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_abort_during_call_is_not_provider_down(self, gate: ProviderHealthGate) -> None:
        abort = asyncio.Event()
        started = asyncio.Event()

        async def slow() -> str:
            started.set()
            await asyncio.sleep(10)
            return "late"

        task = asyncio.ensure_future(gate.call(slow, abort=abort))
        await started.wait()
        abort.set()

        with pytest.raises(OperationAbortedError):
            await task
        assert gate.state.is_down is False

    @pytest.mark.asyncio
    async def test_task_cancellation_propagates(self, gate: ProviderHealthGate) -> None:
        started = asyncio.Event()

        async def slow() -> str:
            started.set()
            await asyncio.sleep(10)
            return "late"

        task = asyncio.ensure_future(gate.call(slow))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert gate.state.is_down is False


class TestHelpers:
    """Test error classification and abortable runner."""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (ProviderHTTPError("x", status=503), True),
            (ProviderHTTPError("x", status=429), False),
            (ProviderTimeoutError("x"), True),
            (ConnectionResetError(), True),
            (RuntimeError("Network request failed"), True),
            (ValueError("bad payload"), False),
            (OperationAbortedError("network aborted"), False),
        ],
    )
    def test_is_network_error(self, error: Exception, expected: bool) -> None:
        assert is_network_error(error) is expected

    @pytest.mark.asyncio
    async def test_run_abortable_returns_result(self) -> None:
        async def quick() -> List[int]:
            return [1, 2]

        assert await run_abortable(quick(), asyncio.Event()) == [1, 2]
