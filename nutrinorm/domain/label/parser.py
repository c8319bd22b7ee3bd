"""
Nutrition panel parser.

Turns raw OCR text of a nutrition label into ``ParsedNutritionFacts``.
Parsing never raises on bad data: whatever cannot be read stays unset.
"""

from __future__ import annotations

from typing import Optional

from nutrinorm.domain.label.extractors import (
    CARBS,
    DEFAULT_LOOKAHEAD_CHARS,
    FAT,
    FIBER,
    PER_100_MARKER,
    PROTEIN,
    SATFAT,
    SUGAR,
    extract_amount,
    extract_energy_kcal,
    extract_serving,
    extract_sodium_mg,
    normalize_label_text,
    round_nutrient,
    split_ingredients,
)
from nutrinorm.domain.label.models import NutrientSet, ParsedNutritionFacts


def scale_nutrients(nutrients: NutrientSet, factor: float) -> NutrientSet:
    """Linear scaling with label rounding applied to every observed value."""
    return nutrients.map_values(lambda value: round_nutrient(value * factor))


class NutritionPanelParser:
    """
    Parses OCR text from a nutrition panel.

    Values are searched within ``lookahead_chars`` characters after each
    nutrient keyword. The search stops at the next digit or the next
    nutrient name, so a missing value never picks up a neighbour's number.

    If the label has a "per 100" marker, values after it are per100 and
    per_serving is derived from the serving mass. Without the marker,
    values are read as per_serving and per100 is derived inversely.
    Volume servings (ml) are never used for derivation.

    Example:
        >>> parser = NutritionPanelParser()
        >>> facts = parser.parse("Per 100g: Energy 250 kcal, Protein 10 g (30 g)")
        >>> facts.per100.energy_kcal, facts.per_serving.energy_kcal
        (250.0, 75.0)
    """

    def __init__(self, lookahead_chars: int = DEFAULT_LOOKAHEAD_CHARS) -> None:
        self.lookahead_chars = lookahead_chars

    def parse(self, ocr_text: Optional[str]) -> ParsedNutritionFacts:
        if not ocr_text or not ocr_text.strip():
            return ParsedNutritionFacts.empty()

        text = normalize_label_text(ocr_text)
        nutrition_text, ingredients = split_ingredients(text)
        serving = extract_serving(nutrition_text)
        serving_grams = serving.grams if serving else None

        per100 = NutrientSet()
        per_serving = NutrientSet()
        per100_derived = False
        per_serving_derived = False

        marker = PER_100_MARKER.search(nutrition_text)
        if marker:
            per100 = self.extract_nutrients(nutrition_text[marker.end():])
            if serving_grams and not per100.is_empty():
                per_serving = scale_nutrients(per100, serving_grams / 100)
                per_serving_derived = True
        else:
            per_serving = self.extract_nutrients(nutrition_text)
            if serving_grams and not per_serving.is_empty():
                per100 = scale_nutrients(per_serving, 100 / serving_grams)
                per100_derived = True

        return ParsedNutritionFacts(
            per100=per100,
            per_serving=per_serving,
            serving_size_raw=serving.raw if serving else None,
            serving=serving,
            ingredients_text=ingredients,
            per100_derived=per100_derived,
            per_serving_derived=per_serving_derived,
        )

    def extract_nutrients(self, text: str) -> NutrientSet:
        """Read every nutrient independently from ``text``."""
        n = self.lookahead_chars
        return NutrientSet(
            energy_kcal=extract_energy_kcal(text, n),
            protein_g=extract_amount(text, PROTEIN, lookahead=n),
            carbs_g=extract_amount(text, CARBS, lookahead=n),
            sugar_g=extract_amount(text, SUGAR, lookahead=n),
            fat_g=extract_amount(text, FAT, lookahead=n),
            satfat_g=extract_amount(text, SATFAT, lookahead=n),
            fiber_g=extract_amount(text, FIBER, lookahead=n),
            sodium_mg=extract_sodium_mg(text, n),
        )
