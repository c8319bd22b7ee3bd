"""
Ingredient flag engine.

Scans ingredient text and per-100 nutrient values and returns flags
deduplicated by code, first occurrence first.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

from nutrinorm.domain.flags.models import Flag
from nutrinorm.domain.flags.patterns import (
    INGREDIENT_RULES,
    THRESHOLD_RULES,
    IngredientRule,
    ThresholdRule,
)
from nutrinorm.domain.label.models import NutrientSet, ParsedNutritionFacts
from nutrinorm.domain.shared.text import collapse_whitespace, fold_unicode

_PARENS = re.compile(r"[()\[\]]")


def normalize_ingredients(text: Optional[str]) -> str:
    """
    Fold diacritics, lowercase, drop parentheses and periods.

    Example:
        >>> normalize_ingredients("Colorant (F.D.&C. Red No. 40)")
        'colorant fd&c red no 40'
    """
    if not text:
        return ""
    folded = fold_unicode(text).lower().replace(".", "")
    return collapse_whitespace(_PARENS.sub(" ", folded))


def dedupe_flags(flags: Iterable[Flag]) -> List[Flag]:
    """Keep the first flag per code, preserving order."""
    seen = set()
    unique = []
    for flag in flags:
        if flag.code in seen:
            continue
        seen.add(flag.code)
        unique.append(flag)
    return unique


def _format_amount(value: float) -> str:
    return f"{value:g}"


class IngredientFlagEngine:
    """
    Evaluates parsed facts into flags.

    Ingredient flags come first (table order), then nutrient threshold
    flags (table order).

    Example:
        >>> engine = IngredientFlagEngine()
        >>> facts = ParsedNutritionFacts(
        ...     ingredients_text="sugar, high fructose corn syrup, HFCS"
        ... )
        >>> [(f.code, f.severity) for f in engine.evaluate(facts)]
        [('hfcs', 'high')]
    """

    def __init__(
        self,
        ingredient_rules: Sequence[IngredientRule] = INGREDIENT_RULES,
        threshold_rules: Sequence[ThresholdRule] = THRESHOLD_RULES,
    ) -> None:
        self.ingredient_rules = tuple(ingredient_rules)
        self.threshold_rules = tuple(threshold_rules)

    def evaluate(
        self,
        facts: ParsedNutritionFacts,
        extra_terms: Iterable[str] = (),
    ) -> List[Flag]:
        """
        Flags for one analysis.

        Args:
            facts: Parsed nutrition facts (ingredients text and per100)
            extra_terms: Additional ingredient tokens, e.g. additive codes

        Returns:
            Flags, unique by code
        """
        text = " ".join(
            part for part in (facts.ingredients_text, *extra_terms) if part
        )
        flags = self.flags_for_ingredients(text)
        flags.extend(self.flags_for_nutrients(facts.per100))
        return dedupe_flags(flags)

    def flags_for_ingredients(self, ingredients_text: Optional[str]) -> List[Flag]:
        text = normalize_ingredients(ingredients_text)
        if not text:
            return []
        return [
            Flag(code=rule.code, severity=rule.severity, reason=rule.reason)
            for rule in self.ingredient_rules
            if rule.matches(text)
        ]

    def flags_for_nutrients(self, per100: NutrientSet) -> List[Flag]:
        flags = []
        for rule in self.threshold_rules:
            value = getattr(per100, rule.nutrient)
            if not rule.matches(value):
                continue
            flags.append(
                Flag(
                    code=rule.code,
                    severity=rule.severity,
                    reason=(
                        f"{rule.label.capitalize()} "
                        f"{_format_amount(value)}{rule.unit} per 100g"
                    ),
                )
            )
        return dedupe_flags(flags)
