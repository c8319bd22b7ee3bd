"""
Barcode analysis service.

Barcode -> (gated) product lookup -> NormalizedProduct -> flags -> HealthReport.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Mapping, Optional

import structlog

from nutrinorm.domain.flags.engine import IngredientFlagEngine
from nutrinorm.domain.label.models import ParsedNutritionFacts
from nutrinorm.domain.report.models import HealthReport, ReportSource
from nutrinorm.domain.report.scoring import score_facts
from nutrinorm.infrastructure.health.gate import ProviderHealthGate
from nutrinorm.infrastructure.openfoodfacts.normalizer import (
    NormalizedProduct,
    OpenFoodFactsNormalizer,
)

logger = structlog.get_logger(__name__)

# Async lookup returning the raw product payload (None when unknown)
ProductLookup = Callable[[str], Awaitable[Optional[Mapping[str, Any]]]]


class BarcodeAnalysisService:
    """Builds a report for a scanned barcode.

    Flow:
    1. Look up the product through the provider health gate
    2. Normalize the OpenFoodFacts payload
    3. Evaluate ingredient, additive and nutrient flags

    With a gate, provider trouble yields a report with ``fallback=True``
    instead of an exception; cancellation and aborts propagate.
    """

    def __init__(
        self,
        lookup: ProductLookup,
        gate: Optional[ProviderHealthGate] = None,
        engine: Optional[IngredientFlagEngine] = None,
    ) -> None:
        """Initialize service.

        Args:
            lookup: Product lookup, e.g. ``OpenFoodFactsClient.get_product``
            gate: Health gate for the lookup provider (optional)
            engine: Flag engine
        """
        self.lookup = lookup
        self.gate = gate
        self.engine = engine or IngredientFlagEngine()

    async def analyze(
        self, barcode: str, abort: Optional[asyncio.Event] = None
    ) -> HealthReport:
        """Analyze one barcode.

        Args:
            barcode: Scanned barcode
            abort: Optional abort event

        Returns:
            HealthReport with ``source=barcode``

        Raises:
            OperationAbortedError: ``abort`` was set
            asyncio.CancelledError: The calling task was cancelled

        Example:
            >>> async def test():
            ...     async with OpenFoodFactsClient() as client:
            ...         service = BarcodeAnalysisService(client.get_product)
            ...         return await service.analyze("3017620422003")
        """
        barcode = barcode.strip()
        logger.info("Starting barcode analysis", barcode=barcode)

        if self.gate is not None:
            result = await self.gate.call(self.lookup, barcode, abort=abort)
            if result.fallback:
                logger.warning(
                    "Barcode lookup skipped",
                    barcode=barcode,
                    error=result.error,
                )
                return HealthReport(
                    source=ReportSource.BARCODE,
                    barcode=barcode,
                    fallback=True,
                    error=result.error,
                )
            payload = result.data
        else:
            payload = await self.lookup(barcode)

        if not payload:
            logger.info("Product not found", barcode=barcode)
            return HealthReport(source=ReportSource.BARCODE, barcode=barcode)

        product = OpenFoodFactsNormalizer.normalize(payload, barcode=barcode)
        report = self.build_report(product)
        logger.info(
            "Barcode analysis completed",
            barcode=barcode,
            name=product.name,
            flags=len(report.flags),
        )
        return report

    def build_report(self, product: NormalizedProduct) -> HealthReport:
        """Report for an already-normalized product."""
        facts = ParsedNutritionFacts(
            per100=product.per100,
            per_serving=product.per_serving,
            serving_size_raw=product.serving.raw if product.serving else None,
            serving=product.serving,
            ingredients_text=product.ingredients_text,
        )
        flags = self.engine.evaluate(facts, extra_terms=product.additives)
        return HealthReport(
            source=ReportSource.BARCODE,
            product_name=product.name,
            brand=product.brand,
            barcode=product.barcode or None,
            facts=facts,
            flags=flags,
            health_score=score_facts(facts, flags),
        )
