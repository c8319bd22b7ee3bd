"""
Shared fixtures for nutrinorm tests.
"""

from typing import Any, Dict
from unittest.mock import AsyncMock

import pytest

from nutrinorm.domain.flags.engine import IngredientFlagEngine
from nutrinorm.domain.label.parser import NutritionPanelParser
from nutrinorm.domain.portion.estimator import PortionEstimator
from nutrinorm.infrastructure.health.gate import ProviderHealthGate
from nutrinorm.infrastructure.metrics import MetricsRegistry


# ═══════════════════════════════════════════════════════════
# TEST DOUBLES
# ═══════════════════════════════════════════════════════════


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ═══════════════════════════════════════════════════════════
# DOMAIN FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def parser() -> NutritionPanelParser:
    return NutritionPanelParser()


@pytest.fixture
def flag_engine() -> IngredientFlagEngine:
    return IngredientFlagEngine()


@pytest.fixture
def estimator() -> PortionEstimator:
    return PortionEstimator()


@pytest.fixture
def nutrition_facts_text() -> str:
    """US-style panel with a per 100g column."""
    return (
        "Nutrition Facts Serving size 1 bar (40g) per 100g "
        "Calories 140 Total Fat 8g Saturated Fat 5.5g Sodium 35mg "
        "Total Carbohydrate 45g Dietary Fiber 2g Total Sugars 39g Protein 6g "
        "Ingredients: sugar, palm oil, hazelnuts, high fructose corn syrup, "
        "soy lecithin, vanillin."
    )


# ═══════════════════════════════════════════════════════════
# PROVIDER PAYLOAD FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def nutella_payload() -> Dict[str, Any]:
    """OpenFoodFacts envelope for Nutella (3017620422003)."""
    return {
        "status": 1,
        "code": "3017620422003",
        "product": {
            "code": "3017620422003",
            "product_name": "Nutella",
            "brands": "Ferrero, Nutella",
            "serving_size": "15 g",
            "image_url": "https://images.openfoodfacts.org/images/products/301/762/042/2003/front_en.jpg",
            "ingredients_text_en": "Sugar, palm oil, hazelnuts (13%), skimmed milk powder (8.7%), "
            "fat-reduced cocoa (7.4%), emulsifier: lecithins (soya), vanillin.",
            "additives_tags": ["en:e322", "en:e322i"],
            "allergens_tags": ["en:milk", "en:nuts", "en:soybeans"],
            "nutriments": {
                "energy-kcal_100g": 539.0,
                "energy_100g": 2255,
                "proteins_100g": 6.3,
                "carbohydrates_100g": 57.5,
                "sugars_100g": 56.3,
                "fat_100g": 30.9,
                "saturated-fat_100g": 10.6,
                "fiber_100g": 0,
                "salt_100g": 0.107,
            },
        },
    }


@pytest.fixture
def gpt_payload() -> Dict[str, Any]:
    """GPT detector response with a tableware label mixed in."""
    return {
        "items": [
            {"name": "Salmon", "confidence": 0.92, "portion_estimate": 160},
            {"name": "plate", "confidence": 0.99},
            {"label": "Asparagus", "score": 0.81},
        ]
    }


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def metrics() -> MetricsRegistry:
    """Fresh registry per test."""
    return MetricsRegistry()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def healthy_probe() -> AsyncMock:
    return AsyncMock(return_value=200)


@pytest.fixture
def gate(healthy_probe: AsyncMock, clock: FakeClock, metrics: MetricsRegistry) -> ProviderHealthGate:
    """Gate in front of a healthy provider, 30s window."""
    return ProviderHealthGate(
        "enrich",
        healthy_probe,
        ttl_s=30.0,
        clock=clock,
        metrics=metrics,
    )
