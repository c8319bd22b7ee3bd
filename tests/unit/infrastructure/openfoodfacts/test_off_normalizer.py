"""
Unit tests for OpenFoodFactsNormalizer.

Real-world test case: Nutella, barcode 3017620422003.
"""

from typing import Any, Dict

import pytest

from nutrinorm.infrastructure.openfoodfacts.normalizer import (
    OpenFoodFactsNormalizer,
    split_ingredients_list,
)


class TestNormalize:
    """Test full product normalization."""

    def test_nutella(self, nutella_payload: Dict[str, Any]) -> None:
        product = OpenFoodFactsNormalizer.normalize(nutella_payload, barcode="3017620422003")

        assert product.barcode == "3017620422003"
        assert product.name == "Nutella"
        assert product.brand == "Ferrero"
        assert product.image_url is not None
        assert product.per100.energy_kcal == 539.0
        assert product.per100.sugar_g == 56.3
        assert product.per100.satfat_g == 10.6
        assert product.per100.fiber_g == 0.0
        assert product.additives == ["e322", "e322i"]
        assert product.allergens == ["milk", "nuts", "soybeans"]

    def test_sodium_from_salt(self, nutella_payload: Dict[str, Any]) -> None:
        product = OpenFoodFactsNormalizer.normalize(nutella_payload)

        # 0.107 g salt * 0.4 * 1000
        assert product.per100.sodium_mg == 42.8

    def test_sodium_grams_preferred(self, nutella_payload: Dict[str, Any]) -> None:
        nutella_payload["product"]["nutriments"]["sodium_100g"] = 0.041

        product = OpenFoodFactsNormalizer.normalize(nutella_payload)

        assert product.per100.sodium_mg == 41.0

    def test_per_serving_derived(self, nutella_payload: Dict[str, Any]) -> None:
        product = OpenFoodFactsNormalizer.normalize(nutella_payload)

        assert product.serving is not None
        assert product.serving.grams == 15.0
        # 539 kcal * 0.15
        assert product.per_serving.energy_kcal == 81.0

    def test_per_serving_values_kept(self, nutella_payload: Dict[str, Any]) -> None:
        nutella_payload["product"]["nutriments"]["energy-kcal_serving"] = 80
        nutella_payload["product"]["nutriments"]["sugars_serving"] = 8.4

        product = OpenFoodFactsNormalizer.normalize(nutella_payload)

        assert product.per_serving.energy_kcal == 80
        assert product.per_serving.sugar_g == 8.4
        assert product.per_serving.fat_g is None

    def test_ingredients_split_from_text(self, nutella_payload: Dict[str, Any]) -> None:
        product = OpenFoodFactsNormalizer.normalize(nutella_payload)

        assert product.ingredients[0] == "Sugar"
        assert "hazelnuts (13%)" in product.ingredients
        assert product.ingredients[-1] == "vanillin"

    def test_bare_product_and_code_fallback(self) -> None:
        product = OpenFoodFactsNormalizer.normalize(
            {"code": "123", "product_name_en": "Oat Drink", "brands": ""}
        )

        assert product.barcode == "123"
        assert product.name == "Oat Drink"
        assert product.brand is None

    def test_empty_payload(self) -> None:
        product = OpenFoodFactsNormalizer.normalize({})

        assert product.name is None
        assert product.per100.is_empty()
        assert product.ingredients == []


class TestNutrients:
    """Test nutriment basis reading."""

    def test_kj_converted(self) -> None:
        nutrients = OpenFoodFactsNormalizer.nutrients({"energy_100g": 1046}, "100g")

        assert nutrients.energy_kcal == 250.0

    def test_kcal_preferred_over_kj(self) -> None:
        nutrients = OpenFoodFactsNormalizer.nutrients(
            {"energy-kcal_100g": 100, "energy-kj_100g": 1046}, "100g"
        )

        assert nutrients.energy_kcal == 100

    @pytest.mark.parametrize("value", ["n/a", -1, True, None])
    def test_bad_values_unset(self, value: Any) -> None:
        nutrients = OpenFoodFactsNormalizer.nutrients({"proteins_100g": value}, "100g")

        assert nutrients.protein_g is None

    def test_numeric_strings(self) -> None:
        assert OpenFoodFactsNormalizer.nutrients({"fat_100g": "3.5"}, "100g").fat_g == 3.5


class TestIngredientsText:
    """Test locale fallback."""

    def test_english_preferred(self) -> None:
        product = OpenFoodFactsNormalizer.normalize(
            {"ingredients_text": "sucre", "ingredients_text_en": "sugar"}
        )

        assert product.ingredients_text == "sugar"

    def test_falls_back_to_other_locales(self) -> None:
        product = OpenFoodFactsNormalizer.normalize({"ingredients_text_fr": "sucre, cacao"})

        assert product.ingredients_text == "sucre, cacao"
        assert product.ingredients == ["sucre", "cacao"]

    def test_structured_ingredients_preferred(self) -> None:
        product = OpenFoodFactsNormalizer.normalize(
            {
                "ingredients_text": "sugar, cocoa",
                "ingredients": [{"id": "en:sugar", "text": "Sugar"}, {"id": "en:cocoa"}],
            }
        )

        assert product.ingredients == ["Sugar", "en:cocoa"]


class TestServingSize:
    """Test serving size parsing."""

    @pytest.mark.parametrize(
        "raw, amount, unit",
        [
            ("30 g", 30.0, "g"),
            ("1 bar (40g)", 40.0, "g"),
            ("250 ml", 250.0, "ml"),
            ("15,5 g", 15.5, "g"),
        ],
    )
    def test_parse(self, raw: str, amount: float, unit: str) -> None:
        serving = OpenFoodFactsNormalizer.parse_serving_size(raw)

        assert serving is not None
        assert serving.amount == amount
        assert serving.unit.value == unit

    @pytest.mark.parametrize("raw", [None, "", "1 slice", "0 g"])
    def test_unparseable(self, raw: Any) -> None:
        assert OpenFoodFactsNormalizer.parse_serving_size(raw) is None


class TestSplitIngredientsList:
    """Test top-level comma splitting."""

    def test_nested_commas_kept(self) -> None:
        assert split_ingredients_list("Sugar, Cocoa (12%), Emulsifier (Soy, Lecithin).") == [
            "Sugar",
            "Cocoa (12%)",
            "Emulsifier (Soy, Lecithin)",
        ]

    def test_semicolons(self) -> None:
        assert split_ingredients_list("water; salt") == ["water", "salt"]
