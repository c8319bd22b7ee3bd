"""
OpenFoodFacts API client.

Fetches the raw product payload for a barcode. Normalization lives in
``normalizer.py``; health gating is the caller's job.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
import structlog

from nutrinorm.domain.shared.errors import (
    PipelineError,
    ProviderHTTPError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)

logger = structlog.get_logger(__name__)


class OpenFoodFactsClient:
    """OpenFoodFacts API client."""

    BASE_URL = "https://world.openfoodfacts.org/api/v2"
    USER_AGENT = "nutrinorm/1.0"
    PROVIDER = "openfoodfacts"

    def __init__(self, timeout_seconds: float = 10.0, base_url: Optional[str] = None) -> None:
        """Initialize API client.

        Args:
            timeout_seconds: Request timeout
            base_url: API root override
        """
        self.timeout_seconds = timeout_seconds
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "OpenFoodFactsClient":
        """Async context manager entry."""
        self._session = aiohttp.ClientSession(headers={"User-Agent": self.USER_AGENT})
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        if self._session:
            await self._session.close()
            self._session = None

    async def get_product(self, barcode: str) -> Optional[Dict[str, Any]]:
        """Get the raw product payload by barcode.

        Args:
            barcode: Product barcode

        Returns:
            OFF JSON envelope, or None when the product is unknown

        Raises:
            ProviderHTTPError: Non-404 error status
            ProviderTimeoutError: Request timed out
            ProviderUnavailableError: Network failure
            PipelineError: Client used outside ``async with``

        Example:
            >>> async def test():
            ...     async with OpenFoodFactsClient() as client:
            ...         return await client.get_product("3017620422003")
        """
        if not self._session:
            msg = "Client not initialized, use async with"
            raise PipelineError(msg)

        url = f"{self.base_url}/product/{barcode}"
        try:
            async with self._session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if response.status == 404:
                    logger.info("Barcode not found in OFF", barcode=barcode)
                    return None

                if response.status >= 400:
                    raise ProviderHTTPError(
                        f"OpenFoodFacts API error: {response.status}",
                        status=response.status,
                        provider=self.PROVIDER,
                    )

                data = await response.json()

        except asyncio.TimeoutError as e:
            msg = "OpenFoodFacts API timeout"
            raise ProviderTimeoutError(msg, provider=self.PROVIDER) from e

        except aiohttp.ClientError as e:
            msg = f"OpenFoodFacts API network error: {e}"
            raise ProviderUnavailableError(msg, provider=self.PROVIDER) from e

        if not isinstance(data, dict) or data.get("status") == 0 or not data.get("product"):
            logger.info("Product not found in OFF", barcode=barcode)
            return None

        logger.info(
            "Product found in OFF",
            barcode=barcode,
            name=data["product"].get("product_name"),
        )
        return data
