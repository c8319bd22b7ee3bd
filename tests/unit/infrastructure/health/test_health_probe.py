"""
Unit tests for HttpHealthProbe.
"""

import asyncio
from unittest.mock import MagicMock, patch

import aiohttp
import pytest

from nutrinorm.domain.shared.errors import ProviderTimeoutError, ProviderUnavailableError
from nutrinorm.infrastructure.health.gate import ProviderHealthGate
from nutrinorm.infrastructure.health.probe import HttpHealthProbe
from nutrinorm.infrastructure.metrics import MetricsRegistry

URL = "https://enrich.example.com/health"


def response(status: int) -> MagicMock:
    mock = MagicMock()
    mock.status = status
    return mock


class TestHttpHealthProbe:
    """Test the aiohttp probe."""

    @pytest.mark.asyncio
    async def test_returns_status(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = response(200)

            async with HttpHealthProbe(URL) as probe:
                assert await probe() == 200

            assert mock_get.call_args[0][0] == URL

    @pytest.mark.asyncio
    async def test_one_shot_session_outside_context(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = response(503)

            assert await HttpHealthProbe(URL)() == 503

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.side_effect = asyncio.TimeoutError()

            async with HttpHealthProbe(URL, timeout_seconds=0.5) as probe:
                with pytest.raises(ProviderTimeoutError):
                    await probe()

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.side_effect = aiohttp.ClientConnectionError("connection refused")

            async with HttpHealthProbe(URL) as probe:
                with pytest.raises(ProviderUnavailableError) as exc_info:
                    await probe()

            assert exc_info.value.provider == "enrich"

    @pytest.mark.asyncio
    async def test_gate_treats_probe_failure_as_down(self, metrics: MetricsRegistry) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.side_effect = aiohttp.ClientConnectionError("connection refused")

            async with HttpHealthProbe(URL) as probe:
                gate = ProviderHealthGate("enrich", probe, metrics=metrics)
                assert await gate.is_down() is True
