"""
Health score.

A 0-100 score for one product or label: starts neutral at 50, earns
bounded points for protein and fiber, loses bounded points for sugar,
sodium, calories, each flag and very long ingredient lists.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional

from nutrinorm.domain.flags.models import Flag
from nutrinorm.domain.label.models import NutrientSet, ParsedNutritionFacts

BASE_SCORE = 50.0

# Per-severity penalty for each flag
FLAG_PENALTIES = {"high": 15.0, "med": 8.0, "low": 3.0}


def _bounded(amount: float, cap: float) -> float:
    return min(max(amount, 0.0), cap)


def compute_health_score(
    nutrients: NutrientSet,
    flags: Iterable[Flag] = (),
    ingredients_text: Optional[str] = None,
) -> int:
    """
    Score nutrients (per serving when known) plus flags and ingredients.

    Bounds per factor:
    - protein: +2 per g, at most +20
    - fiber: +3 per g, at most +15
    - sugar over 5 g: -1.5 per g, at most -25
    - sodium over 400 mg: -0.02 per mg, at most -20
    - calories over 300 kcal: -0.03 per kcal, at most -15
    - ingredients beyond 10: -0.5 each, at most -10

    Example:
        >>> compute_health_score(NutrientSet(protein_g=5, sugar_g=10))
        53
    """
    score = BASE_SCORE

    score += _bounded((nutrients.protein_g or 0) * 2, 20)
    score += _bounded((nutrients.fiber_g or 0) * 3, 15)

    score -= _bounded(((nutrients.sugar_g or 0) - 5) * 1.5, 25)
    score -= _bounded(((nutrients.sodium_mg or 0) - 400) * 0.02, 20)
    score -= _bounded(((nutrients.energy_kcal or 0) - 300) * 0.03, 15)

    for flag in flags:
        score -= FLAG_PENALTIES.get(str(flag.severity), FLAG_PENALTIES["low"])

    if ingredients_text:
        count = len(ingredients_text.split(","))
        score -= _bounded((count - 10) * 0.5, 10)

    # half rounds up
    return int(min(100, max(0, math.floor(score + 0.5))))


def score_facts(facts: ParsedNutritionFacts, flags: Iterable[Flag]) -> Optional[int]:
    """
    Score parsed facts; ``None`` when there is nothing to score.

    Per-serving values are scored when observed or derived, else per100.
    """
    flags = list(flags)
    if not (facts.has_nutrition() or facts.ingredients_text or flags):
        return None
    nutrients = facts.per100 if facts.per_serving.is_empty() else facts.per_serving
    return compute_health_score(nutrients, flags, facts.ingredients_text)
