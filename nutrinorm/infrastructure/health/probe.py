"""
HTTP health probe.

Issues a single GET to a provider health endpoint and returns the
status code. Retrying is the gate's job (it re-probes after its cache
window), so there is no retry loop here.
"""

import asyncio
from typing import Optional

import aiohttp
import structlog

from nutrinorm.domain.shared.errors import (
    ProviderTimeoutError,
    ProviderUnavailableError,
)

logger = structlog.get_logger(__name__)


class HttpHealthProbe:
    """
    Health probe usable as a ``HealthProbe`` callable.

    Example:
        >>> async def main():
        ...     async with HttpHealthProbe("https://enrich.example.com/health") as probe:
        ...         gate = ProviderHealthGate("enrich", probe)
        ...         return await gate.is_down()
    """

    USER_AGENT = "nutrinorm/1.0"

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 3.0,
        provider: str = "enrich",
    ) -> None:
        """Initialize probe.

        Args:
            url: Health endpoint URL
            timeout_seconds: Total request timeout
            provider: Provider name used in logs and errors
        """
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.provider = provider
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "HttpHealthProbe":
        """Async context manager entry."""
        self._session = aiohttp.ClientSession(headers={"User-Agent": self.USER_AGENT})
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __call__(self) -> int:
        """
        Probe the endpoint once.

        Returns:
            HTTP status code

        Raises:
            ProviderTimeoutError: Request timed out
            ProviderUnavailableError: Connection or client failure
        """
        if self._session is not None:
            return await self._get(self._session)

        # Used outside ``async with``: one-shot session
        async with aiohttp.ClientSession(
            headers={"User-Agent": self.USER_AGENT}
        ) as session:
            return await self._get(session)

    async def _get(self, session: aiohttp.ClientSession) -> int:
        try:
            async with session.get(
                self.url,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                logger.debug(
                    "Health probe response",
                    provider=self.provider,
                    status=response.status,
                )
                return response.status

        except asyncio.TimeoutError as e:
            msg = f"{self.provider} health probe timeout"
            raise ProviderTimeoutError(msg, provider=self.provider) from e

        except aiohttp.ClientError as e:
            msg = f"{self.provider} health probe network error: {e}"
            raise ProviderUnavailableError(msg, provider=self.provider) from e
