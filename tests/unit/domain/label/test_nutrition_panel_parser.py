"""
Unit tests for NutritionPanelParser.
"""

import pytest

from nutrinorm.domain.label.models import NutrientSet, ParsedNutritionFacts
from nutrinorm.domain.label.parser import NutritionPanelParser, scale_nutrients


class TestParsePer100:
    """Test labels with a per-100 column."""

    def test_us_panel(self, parser: NutritionPanelParser) -> None:
        """Should read sugar and sodium per 100g."""
        text = "Nutrition Facts ... per 100g Calories 140 ... Sugars 39g ... Sodium 35mg"

        facts = parser.parse(text)

        assert facts.per100.sugar_g == 39
        assert facts.per100.sodium_mg == 35
        assert facts.per100.energy_kcal == 140

    def test_full_panel(self, parser: NutritionPanelParser, nutrition_facts_text: str) -> None:
        facts = parser.parse(nutrition_facts_text)

        assert facts.per100 == NutrientSet(
            energy_kcal=140,
            protein_g=6,
            carbs_g=45,
            sugar_g=39,
            fat_g=8,
            satfat_g=5.5,
            fiber_g=2,
            sodium_mg=35,
        )
        assert facts.serving_size_raw == "(40g)"
        assert facts.ingredients_text is not None
        assert facts.ingredients_text.startswith("sugar, palm oil")

    def test_per_serving_derived_from_serving_grams(
        self, parser: NutritionPanelParser, nutrition_facts_text: str
    ) -> None:
        facts = parser.parse(nutrition_facts_text)

        assert facts.per_serving_derived is True
        assert facts.per100_derived is False
        assert facts.per_serving.energy_kcal == 56.0
        assert facts.per_serving.sugar_g == 15.6
        assert facts.per_serving.sodium_mg == 14.0

    def test_volume_serving_is_not_used_for_derivation(self, parser: NutritionPanelParser) -> None:
        facts = parser.parse("Serving size 1 cup (240 ml) per 100ml Energy 45 kcal Sugars 10 g")

        assert facts.per100.energy_kcal == 45
        assert facts.per100.sugar_g == 10
        assert facts.serving is not None and facts.serving.is_volume
        assert facts.per_serving.is_empty()
        assert facts.per_serving_derived is False

    def test_decimal_comma(self, parser: NutritionPanelParser) -> None:
        facts = parser.parse("per 100 g: fat 3,5 g, sugars 1,2 g")

        assert facts.per100.fat_g == 3.5
        assert facts.per100.sugar_g == 1.2

    def test_kj_only_label(self, parser: NutritionPanelParser) -> None:
        facts = parser.parse("per 100g energy 2092 kJ protein 4 g")

        assert facts.per100.energy_kcal == 500.0


class TestParsePerServing:
    """Test labels without a per-100 marker."""

    def test_values_read_as_per_serving(self, parser: NutritionPanelParser) -> None:
        facts = parser.parse("Serving size (30 g) Energy 120 kcal Protein 3 g Sugars 9 g")

        assert facts.per_serving.energy_kcal == 120
        assert facts.per_serving.protein_g == 3

    def test_per100_derived_inversely(self, parser: NutritionPanelParser) -> None:
        facts = parser.parse("Serving size (30 g) Energy 120 kcal Protein 3 g Sugars 9 g")

        assert facts.per100_derived is True
        assert facts.per100.energy_kcal == 400.0
        assert facts.per100.protein_g == 10.0
        assert facts.per100.sugar_g == 30.0

    def test_no_serving_no_derivation(self, parser: NutritionPanelParser) -> None:
        facts = parser.parse("Energy 120 kcal")

        assert facts.per_serving.energy_kcal == 120
        assert facts.per100.is_empty()


class TestParseEdgeCases:
    """Test bad input."""

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_input(self, parser: NutritionPanelParser, text: object) -> None:
        facts = parser.parse(text)  # type: ignore[arg-type]

        assert facts == ParsedNutritionFacts.empty()
        assert facts.has_nutrition() is False

    def test_garbage_never_raises(self, parser: NutritionPanelParser) -> None:
        facts = parser.parse("l0rem ipsum %%% 12 ### kcal?? g")

        assert facts.per100.is_empty()
        assert facts.per_serving.protein_g is None

    def test_missing_fields_stay_unset(self, parser: NutritionPanelParser) -> None:
        facts = parser.parse("per 100g sugars 5 g")

        assert facts.per100.sugar_g == 5
        assert facts.per100.fat_g is None
        assert facts.per100.sodium_mg is None

    def test_missing_value_does_not_borrow_next_nutrient(
        self, parser: NutritionPanelParser
    ) -> None:
        """OCR dropped the sugar value; protein's value must stay protein's."""
        facts = parser.parse("per 100g Fat 3g Sugars Protein 5g")

        assert facts.per100.sugar_g is None
        assert facts.per100.protein_g == 5
        assert facts.per100.fat_g == 3

    @pytest.mark.parametrize(
        "text", ["per 100g Total Fat .5g Protein 3g", "per 100g Fat O.5g Protein 3g"]
    )
    def test_leading_point_values(self, parser: NutritionPanelParser, text: str) -> None:
        facts = parser.parse(text)

        assert facts.per100.fat_g == 0.5
        assert facts.per100.protein_g == 3

    def test_lookahead_window_is_configurable(self) -> None:
        text = "protein (per portion) 8 g"

        assert NutritionPanelParser().parse(text).per_serving.protein_g == 8
        assert NutritionPanelParser(lookahead_chars=5).parse(text).per_serving.protein_g is None


class TestScaleNutrients:
    """Test linear scaling."""

    def test_unset_values_stay_unset(self) -> None:
        scaled = scale_nutrients(NutrientSet(sugar_g=10), 2.5)

        assert scaled.sugar_g == 25.0
        assert scaled.fat_g is None
