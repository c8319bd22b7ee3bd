"""
Label analysis service.

OCR text -> ParsedNutritionFacts -> flags -> HealthReport.
"""

from __future__ import annotations

from typing import Optional

import structlog

from nutrinorm.domain.flags.engine import IngredientFlagEngine
from nutrinorm.domain.label.models import ParsedNutritionFacts
from nutrinorm.domain.label.parser import NutritionPanelParser, scale_nutrients
from nutrinorm.domain.portion.density import lookup_density
from nutrinorm.domain.report.models import HealthReport, ReportSource
from nutrinorm.domain.report.scoring import score_facts

logger = structlog.get_logger(__name__)


class LabelAnalysisService:
    """
    Builds a report from the OCR text of a nutrition label.

    Example:
        >>> service = LabelAnalysisService()
        >>> report = service.analyze(
        ...     "Per 100g: Sugars 39 g. Ingredients: sugar, aspartame"
        ... )
        >>> [flag.code for flag in report.flags]
        ['aspartame', 'high_sugar']
    """

    def __init__(
        self,
        parser: Optional[NutritionPanelParser] = None,
        engine: Optional[IngredientFlagEngine] = None,
    ) -> None:
        self.parser = parser or NutritionPanelParser()
        self.engine = engine or IngredientFlagEngine()

    def analyze(
        self, ocr_text: Optional[str], product_name: Optional[str] = None
    ) -> HealthReport:
        """
        Analyze one label.

        Args:
            ocr_text: Raw OCR text (may be empty)
            product_name: Product name when known; enables ml serving conversion

        Returns:
            HealthReport with ``source=label``
        """
        facts = self.parser.parse(ocr_text)
        if product_name:
            facts = self.apply_volume_serving(facts, product_name)

        flags = self.engine.evaluate(facts)
        logger.debug(
            "Label analyzed",
            has_nutrition=facts.has_nutrition(),
            flags=len(flags),
        )
        return HealthReport(
            source=ReportSource.LABEL,
            product_name=product_name,
            facts=facts,
            flags=flags,
            health_score=score_facts(facts, flags),
        )

    @staticmethod
    def apply_volume_serving(
        facts: ParsedNutritionFacts, product_name: str
    ) -> ParsedNutritionFacts:
        """
        Fill the missing basis for a millilitre serving using food density.

        The parser never derives across a volume serving; with a product
        name the serving mass is ``ml * density`` and derivation proceeds
        as for a gram serving.
        """
        serving = facts.serving
        if serving is None or not serving.is_volume:
            return facts

        grams = serving.amount * lookup_density(product_name)
        if facts.per_serving.is_empty() and not facts.per100.is_empty():
            return facts.model_copy(
                update={
                    "per_serving": scale_nutrients(facts.per100, grams / 100),
                    "per_serving_derived": True,
                }
            )
        if facts.per100.is_empty() and not facts.per_serving.is_empty():
            return facts.model_copy(
                update={
                    "per100": scale_nutrients(facts.per_serving, 100 / grams),
                    "per100_derived": True,
                }
            )
        return facts
